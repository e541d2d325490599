from dataclasses import dataclass
from typing import Tuple

import numpy as np

from errors import InsufficientDataError, RecordParseError
from record_source import RecordSource


@dataclass
class Minibatch:
    """
    features: [n, columns-1, window]   slot k holds source column k, slot 0 (date) stays 0
    labels:   [n, 1, window]
    """
    features: np.ndarray
    labels: np.ndarray

    @property
    def num_batches(self) -> int:
        return int(self.features.shape[0])

    @property
    def window_length(self) -> int:
        return int(self.features.shape[2])

    def as_sequences(self) -> Tuple[np.ndarray, np.ndarray]:
        # keras recurrent layers want [n, time, features]
        return (np.transpose(self.features, (0, 2, 1)),
                np.transpose(self.labels, (0, 2, 1)))

    def copy(self) -> "Minibatch":
        return Minibatch(self.features.copy(), self.labels.copy())


def _to_float(value, line_number: int, column: int) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise RecordParseError(line_number, column, value) from None


class WindowedBatchAssembler:
    """Reads consecutive rows from a RecordSource and shapes them into a Minibatch."""

    def __init__(self, source: RecordSource, columns: int):
        self.source = source
        self.columns = columns

    @property
    def feature_slots(self) -> int:
        return self.columns - 1

    def assemble(self, num_batches: int, num_examples: int) -> Minibatch:
        needed = num_batches * num_examples
        features = np.zeros((num_batches, self.feature_slots, num_examples), dtype=np.float32)
        labels = np.zeros((num_batches, 1, num_examples), dtype=np.float32)
        label_col = self.columns - 1

        read = 0
        for i in range(num_batches):
            for j in range(num_examples):
                if not self.source.has_more():
                    raise InsufficientDataError(needed=needed, read=read)
                line_no, values = self.source.next_row()
                read += 1
                if len(values) < self.columns:
                    # first missing column
                    raise RecordParseError(line_no, len(values), None)

                # column 0 is the date, never parsed
                for k in range(1, label_col):
                    features[i, k, j] = _to_float(values[k], line_no, k)
                labels[i, 0, j] = _to_float(values[label_col], line_no, label_col)

        return Minibatch(features, labels)
