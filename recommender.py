"""
Train -> predict -> report, the three things the input form can ask for.

train_model() fits the LSTM collaborator on a history CSV through the
windowed iterator. generate_recommendation() feeds the most recent window of
a history CSV to a trained model and writes the plain-text report.
"""
import logging

from config import DEFAULT_BATCH_SIZE, DEFAULT_EPOCHS, DEFAULT_WINDOW_LENGTH, UNSET_DEPTH, columns_for_depths
from dataset_iterator import IrrigationDatasetIterator
from errors import InsufficientDataError
from models.lstm import build_lstm_regressor, evaluate_on_iterator, predict_last_step, train_on_iterator
from recommendation import Recommendation

logger = logging.getLogger(__name__)

# predictions below this many inches are reported as "no irrigation"
MIN_IRRIGATION_IN = 0.005


def train_model(csv_path, columns, window_length=DEFAULT_WINDOW_LENGTH,
                batch_size=DEFAULT_BATCH_SIZE, epochs=DEFAULT_EPOCHS, normalizer=None):
    """Returns (model, stats). Raises InsufficientDataError if not one batch fits in the file."""
    with IrrigationDatasetIterator(csv_path, columns=columns, batch_size=batch_size,
                                   window_length=window_length, normalizer=normalizer,
                                   indexed=True) as it:
        if not it.has_next():
            raise InsufficientDataError(needed=it.batch() * max(it.num_examples(), 1), read=it.file_records)
        model = build_lstm_regressor(it.input_columns())
        history = train_on_iterator(model, it, epochs=epochs)
        stats = evaluate_on_iterator(model, it)
        stats.update({
            "epochs": len(history),
            "loss_history": history,
            "window_length": it.num_examples(),
            "columns": it.columns,
        })
    logger.info(f"Model trained on {csv_path}: {stats['batches']} batches, mse={stats['mse']}")
    return model, stats


def format_amount(amount: float) -> str:
    if amount is None or amount < MIN_IRRIGATION_IN:
        return ""
    return f"{amount:.2f}"


def predict_next_day(model, csv_path, columns, window_length=DEFAULT_WINDOW_LENGTH, normalizer=None):
    """Predicted irrigation (inches) for the day after the last row of `csv_path`."""
    with IrrigationDatasetIterator(csv_path, columns=columns, batch_size=1,
                                   window_length=window_length, normalizer=normalizer,
                                   indexed=True) as it:
        # most recent complete window
        it.scan_to(it.file_records - it.num_examples())
        batch = it.next(1)
        if batch is None:
            raise InsufficientDataError(needed=max(it.num_examples(), 1), read=it.file_records)
        x, _ = batch.as_sequences()
        return predict_last_step(model, x)


def generate_recommendation(model, csv_path, crop, soil, depth1, depth2=UNSET_DEPTH, depth3=UNSET_DEPTH,
                            window_length=DEFAULT_WINDOW_LENGTH, report_dir=None, today=None, normalizer=None):
    """Returns (report_path, results) where results is "" when no irrigation is recommended."""
    columns = columns_for_depths(depth1, depth2, depth3)
    amount = predict_next_day(model, csv_path, columns, window_length=window_length, normalizer=normalizer)
    results = format_amount(amount)

    rec = Recommendation(crop, soil, report_dir=report_dir, today=today)
    rec.set_sensor_depth(1, depth1)
    rec.set_sensor_depth(2, depth2)
    rec.set_sensor_depth(3, depth3)
    path = rec.create_report(results)
    logger.info(f"Recommendation report written to {path} (amount={results or 'none'})")
    return path, results
