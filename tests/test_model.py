import os
from datetime import date

import numpy as np
import pytest

from dataset_iterator import IrrigationDatasetIterator
from errors import InsufficientDataError
from models.lstm import build_lstm_regressor, evaluate_on_iterator, predict_last_step, train_on_iterator
from recommender import format_amount, generate_recommendation, predict_next_day, train_model


def test_regressor_emits_one_value_per_time_step():
    """Any window length goes in, [n, T, 1] comes out."""
    model = build_lstm_regressor(n_feats=6, latent=4)
    for n, T in ((2, 3), (1, 5), (2, 8)):
        out = np.asarray(model.predict_on_batch(np.zeros((n, T, 6), dtype="float32")))
        assert out.shape == (n, T, 1)


def test_last_step_prediction_after_window_change():
    model = build_lstm_regressor(n_feats=6, latent=4)
    x_short = np.zeros((2, 3, 6), dtype="float32")
    x_long = np.ones((1, 7, 6), dtype="float32")
    predict_last_step(model, x_short)
    value = predict_last_step(model, x_long)
    assert isinstance(value, float)
    assert np.isfinite(value)


def test_evaluate_after_training_with_another_window_length(history_csv):
    model = build_lstm_regressor(n_feats=6, latent=4)
    short = IrrigationDatasetIterator(history_csv, columns=7, batch_size=2, window_length=3)
    train_on_iterator(model, short, epochs=1)

    long = IrrigationDatasetIterator(history_csv, columns=7, batch_size=1, window_length=8)
    stats = evaluate_on_iterator(model, long)
    assert stats["batches"] == 2
    assert stats["mse"] >= 0.0


def test_train_and_evaluate_on_iterator(history_csv):
    it = IrrigationDatasetIterator(history_csv, columns=7, batch_size=2, window_length=5)
    model = build_lstm_regressor(it.input_columns(), latent=4)

    history = train_on_iterator(model, it, epochs=2)
    assert len(history) == 2
    assert all(np.isfinite(history))
    assert it.offset == 1  # reset after each epoch

    stats = evaluate_on_iterator(model, it)
    assert stats["batches"] == 1  # the reset offset leaves room for one batch only
    assert stats["mse"] >= 0.0


def test_train_model_reports_stats(history_csv):
    model, stats = train_model(history_csv, 7, window_length=5, batch_size=2, epochs=1)
    assert stats["epochs"] == 1
    assert stats["window_length"] == 5
    assert stats["columns"] == 7
    assert model is not None


def test_train_model_needs_one_full_batch(make_csv):
    path = make_csv(rows=1)
    with pytest.raises(InsufficientDataError):
        train_model(path, 7, window_length=5, epochs=1)


@pytest.mark.parametrize("amount,text", [(0.4567, "0.46"), (1.0, "1.00"), (0.0, ""), (-0.3, ""), (0.004, "")])
def test_format_amount(amount, text):
    assert format_amount(amount) == text


def test_prediction_uses_the_latest_window(history_csv, stub_model):
    value = predict_next_day(stub_model, history_csv, 7, window_length=5)
    assert value == pytest.approx(0.75)
    assert stub_model.seen == [(1, 5, 6)]


def test_generate_recommendation_writes_report(tmp_path, history_csv, stub_model):
    path, results = generate_recommendation(
        stub_model, history_csv, "corn", "loam", 6.0, window_length=5,
        report_dir=str(tmp_path), today=date(2024, 5, 1),
    )
    assert results == "0.75"
    assert os.path.basename(path) == "ReportCORNloam512024.txt"
    with open(path, encoding="utf-8") as f:
        assert "0.75 inches" in f.read()


def test_no_irrigation_when_prediction_is_negative(tmp_path, history_csv, stub_model):
    stub_model.value = -0.2
    path, results = generate_recommendation(
        stub_model, history_csv, "corn", "loam", 6.0, window_length=5, report_dir=str(tmp_path),
    )
    assert results == ""
    with open(path, encoding="utf-8") as f:
        assert "no irrigation is recommended tomorrow" in f.read()
