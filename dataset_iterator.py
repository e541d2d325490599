import logging
from typing import Iterator, Optional

from batching import Minibatch, WindowedBatchAssembler
from config import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_COLUMNS,
    DEFAULT_WINDOW_LENGTH,
    clamp_window,
    validate_shape,
)
from cursor import CursorTracker
from errors import ConfigurationError
from normalization import NormalizationPolicy, PerBatchMinMaxNormalizer
from record_source import RecordSource

logger = logging.getLogger(__name__)


class IrrigationDatasetIterator:
    """
    Windowed minibatch iterator over a daily irrigation history CSV.

    Every call to next() repositions the source to the current record offset,
    reads ``n * window_length`` consecutive rows, shapes them into a
    Minibatch, normalizes the inputs and advances the offset.

    Not thread-safe. The iterator owns its source position and cursor;
    concurrent callers must serialize access themselves.
    """

    def __init__(self, csv_path, columns: int = DEFAULT_COLUMNS, batch_size: int = DEFAULT_BATCH_SIZE,
                 window_length: int = DEFAULT_WINDOW_LENGTH, normalizer: Optional[NormalizationPolicy] = None,
                 indexed: bool = False, strict: bool = True):
        logger.info(f"CSV file path is {csv_path}")
        self.config = validate_shape(columns, batch_size)
        self.source = RecordSource(csv_path, indexed=indexed, strict=strict)
        try:
            clamp_window(window_length, self.source.file_records, self.config)
        except ConfigurationError:
            self.source.close()
            raise
        logger.info(
            f"columns={self.config.columns} batch_size={self.config.batch_size} "
            f"window_length={self.config.window_length} file_records={self.source.file_records}"
        )

        self._cursor = CursorTracker(
            file_records=self.source.file_records,
            batch_size=self.config.batch_size,
            window_length=self.config.window_length,
        )
        self._assembler = WindowedBatchAssembler(self.source, self.config.columns)
        self._normalizer = normalizer if normalizer is not None else PerBatchMinMaxNormalizer()
        self._started = False

    # --- iteration -------------------------------------------------------

    def has_next(self) -> bool:
        return self._cursor.ready()

    def next(self, num: Optional[int] = None) -> Optional[Minibatch]:
        """Return the next normalized minibatch of `num` windows, or None when exhausted."""
        num = self.batch() if num is None else int(num)
        if num <= 0:
            raise ConfigurationError(f"number of batches must be positive, got {num}")
        if not self.has_next():
            return None

        self.source.seek(self._cursor.offset)
        batch = self._assembler.assemble(num, self.num_examples())
        batch = self._normalizer.apply(batch)
        self._cursor.advance(num)
        self._started = True
        return batch

    def __iter__(self) -> Iterator[Minibatch]:
        return self

    def __next__(self) -> Minibatch:
        batch = self.next()
        if batch is None:
            raise StopIteration
        return batch

    def iter_raw_batches(self) -> Iterator[Minibatch]:
        """Un-normalized batches from the first record; the cursor is left alone."""
        total = self.total_examples()
        if not total:
            return
        self.source.rewind()
        for _ in range(total):
            yield self._assembler.assemble(self.batch(), self.num_examples())

    def reset(self):
        self._cursor.reset()
        self.source.rewind()
        self._started = False

    def scan_to(self, offset: int):
        """Move the logical position to record `offset`."""
        self._cursor.move_to(offset)
        self.source.seek(self._cursor.offset)

    # --- position --------------------------------------------------------

    def cursor(self) -> int:
        """Index of the batch the iterator is on (offset // records per batch)."""
        return self._cursor.batch_index()

    @property
    def offset(self) -> int:
        return self._cursor.offset

    def total_examples(self) -> int:
        """How many times next() can be called from offset 0 with the default batch size."""
        return self._cursor.total_batches()

    @property
    def state(self) -> str:
        if not self.has_next():
            return "exhausted"
        return "iterating" if self._started else "ready"

    # --- shape / configuration accessors --------------------------------

    @property
    def columns(self) -> int:
        return self.config.columns

    @property
    def file_records(self) -> int:
        return self.source.file_records

    def input_columns(self) -> int:
        return self.config.columns - 1

    def total_outcomes(self) -> int:
        return 1

    def batch(self) -> int:
        return self.config.batch_size

    def num_examples(self) -> int:
        return self.config.window_length

    def reset_supported(self) -> bool:
        return True

    def async_supported(self) -> bool:
        # advertised for compatibility; there is no internal locking
        return True

    def get_pre_processor(self) -> NormalizationPolicy:
        return self._normalizer

    def set_pre_processor(self, normalizer: NormalizationPolicy):
        self._normalizer = normalizer

    def describe(self) -> dict:
        return {
            "path": str(self.source.path),
            "file_records": self.file_records,
            "columns": self.columns,
            "batch_size": self.batch(),
            "window_length": self.num_examples(),
            "total_examples": self.total_examples(),
            "input_shape": [self.batch(), self.input_columns(), self.num_examples()],
            "label_shape": [self.batch(), self.total_outcomes(), self.num_examples()],
            "issues": [i.as_dict() for i in self.config.issues],
        }

    def close(self):
        self.source.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
