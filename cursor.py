from dataclasses import dataclass


@dataclass
class CursorTracker:
    """Logical read position of an iterator, counted in records (never batches)."""

    file_records: int
    batch_size: int
    window_length: int
    offset: int = 0

    @property
    def records_per_batch(self) -> int:
        return self.batch_size * self.window_length

    @property
    def degenerate(self) -> bool:
        # no usable window (empty/unavailable file or a single data row)
        return self.window_length <= 0 or self.file_records <= 0

    def ready(self) -> bool:
        if self.degenerate:
            return False
        return self.file_records - self.offset >= self.records_per_batch

    def advance(self, num_batches: int):
        self.offset += num_batches * self.window_length

    def reset(self):
        # reset leaves the offset at record 1, so the first data row is skipped
        self.offset = 1

    def move_to(self, offset: int):
        self.offset = max(0, int(offset))

    def batch_index(self) -> int:
        if self.degenerate:
            return 0
        return self.offset // self.records_per_batch

    def total_batches(self) -> int:
        if self.degenerate:
            return 0
        return self.file_records // self.records_per_batch
