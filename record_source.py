import csv
import logging
import pathlib
from typing import List, Optional, Tuple

from config import DELIMITER, HEADER_LINES
from errors import InsufficientDataError, RecordParseError, SourceUnavailableError

logger = logging.getLogger(__name__)

Row = List[str]
RowWithLineNumber = Tuple[int, Row]


class RecordSource:
    """
    Sequential reader over a delimited history file.

    The header line(s) are skipped and never validated. The number of data
    rows is counted once, at construction, and never changes afterwards.
    Blank lines are ignored both when counting and when reading.

    Repositioning is a rewind followed by a linear scan unless the source is
    built with indexed=True, in which case the counting pass also records the
    byte offset of every data row and seek() jumps straight to it.
    """

    def __init__(self, path, skip_lines: int = HEADER_LINES, delimiter: str = DELIMITER,
                 indexed: bool = False, strict: bool = True, encoding: str = "utf-8"):
        self.path = pathlib.Path(path)
        self.skip_lines = skip_lines
        self.delimiter = delimiter
        self.indexed = indexed
        self.encoding = encoding
        self.file_records = 0
        self.available = False
        self.position = 0  # data rows consumed since the last rewind

        self._index: List[Tuple[int, int]] = []  # (byte offset, line number) per data row
        self._fh = None
        self._line_no = 0
        self._last_line = 0
        self._peeked: Optional[RowWithLineNumber] = None

        try:
            self._count_records()
            self._fh = open(self.path, "rb")
        except OSError as e:
            if strict:
                raise SourceUnavailableError(self.path, e) from e
            logger.error(f"Could not open the data file at {self.path}: {e}")
            self.file_records = 0
            self._index = []
            return

        self.available = True
        self.rewind()
        logger.info(f"Number of file records in {self.path}: {self.file_records}")

    def _count_records(self):
        records = 0
        with open(self.path, "rb") as f:
            for _ in range(self.skip_lines):
                f.readline()
            line_no = self.skip_lines
            while True:
                pos = f.tell()
                raw = f.readline()
                if not raw:
                    break
                line_no += 1
                if not raw.strip():
                    continue
                records += 1
                if self.indexed:
                    self._index.append((pos, line_no))
        self.file_records = records
        self._last_line = line_no

    def _parse(self, raw: bytes, line_no: int) -> Row:
        try:
            text = raw.decode(self.encoding)
        except UnicodeDecodeError:
            # report the first cell that does not decode
            cells = raw.rstrip(b"\r\n").split(self.delimiter.encode(self.encoding))
            for column, cell in enumerate(cells):
                try:
                    cell.decode(self.encoding)
                except UnicodeDecodeError:
                    raise RecordParseError(line_no, column, cell.decode(self.encoding, "replace")) from None
            raise RecordParseError(line_no, -1, raw.decode(self.encoding, "replace")) from None
        return next(csv.reader([text], delimiter=self.delimiter))

    def _peek(self) -> Optional[RowWithLineNumber]:
        if self._peeked is not None or self._fh is None:
            return self._peeked
        while True:
            raw = self._fh.readline()
            if not raw:
                return None
            self._line_no += 1
            if raw.strip():
                self._peeked = (self._line_no, self._parse(raw, self._line_no))
                return self._peeked

    def rewind(self):
        """Go back to the first data row."""
        self.position = 0
        self._peeked = None
        if self._fh is None:
            return
        self._fh.seek(0)
        for _ in range(self.skip_lines):
            self._fh.readline()
        self._line_no = self.skip_lines

    def has_more(self) -> bool:
        return self._peek() is not None

    def next_row(self) -> RowWithLineNumber:
        """Return (line_number, values) for the next data row."""
        row = self._peek()
        if row is None:
            raise InsufficientDataError(needed=self.position + 1, read=self.position)
        self._peeked = None
        self.position += 1
        return row

    def seek(self, offset: int):
        """Position the source so that the next row read is data row `offset` (0-based)."""
        offset = max(0, int(offset))
        if self.indexed and self._fh is not None:
            self._peeked = None
            if offset < len(self._index):
                byte_pos, line_no = self._index[offset]
                self._fh.seek(byte_pos)
                self._line_no = line_no - 1
                self.position = offset
            else:
                self._fh.seek(0, 2)
                self._line_no = self._last_line
                self.position = self.file_records
            return

        self.rewind()
        while self.position < offset and self.has_more():
            self.next_row()

    def close(self):
        if self._fh is not None:
            self._fh.close()
            self._fh = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
