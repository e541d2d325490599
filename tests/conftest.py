import numpy as np
import pytest
import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from app import create_app


def write_history(path, rows=20, columns=7, bad=None, header=True, trailing_blank=False):
    """
    Write a history CSV whose values are easy to predict:
    row i, feature column k -> i*10 + k ; label -> i*0.5
    `bad` = (row_index, column_index, text) replaces one cell.
    """
    lines = []
    if header:
        lines.append(",".join(["date"] + [f"f{k}" for k in range(1, columns - 1)] + ["irrigation_in"]))
    for i in range(rows):
        cells = [f"2024-01-{(i % 28) + 1:02d}"]
        cells += [str(i * 10 + k) for k in range(1, columns - 1)]
        cells.append(str(i * 0.5))
        if bad is not None and bad[0] == i:
            cells[bad[1]] = bad[2]
        lines.append(",".join(cells))
    text = "\n".join(lines) + "\n"
    if trailing_blank:
        text += "\n\n"
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)
    return str(path)


@pytest.fixture
def make_csv(tmp_path):
    def _make(name="history.csv", **kwargs):
        return write_history(tmp_path / name, **kwargs)
    return _make


@pytest.fixture
def history_csv(make_csv):
    # 1 header + 20 data rows, 7 columns
    return make_csv()


class StubModel:
    """Stands in for the keras model: predicts a constant per time step."""

    def __init__(self, value=0.75):
        self.value = value
        self.seen = []

    def predict_on_batch(self, x):
        self.seen.append(x.shape)
        return np.full((x.shape[0], x.shape[1], 1), self.value, dtype="float32")


@pytest.fixture
def stub_model():
    return StubModel()


@pytest.fixture
def app(tmp_path, history_csv):
    flask_app = create_app()
    flask_app.config['TESTING'] = True
    flask_app.config['DATA_PATH'] = history_csv
    flask_app.config['REPORT_DIR'] = str(tmp_path)
    flask_app.config['WINDOW_LENGTH'] = 5
    flask_app.config['EPOCHS'] = 1
    yield flask_app
