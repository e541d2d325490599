class IrrigationDataError(Exception):
    """Base class for every error raised by the data-feeding pipeline."""


class ConfigurationError(IrrigationDataError):
    pass


class SourceUnavailableError(IrrigationDataError):
    """The history file could not be opened or read."""

    def __init__(self, path, reason):
        self.path = str(path)
        self.reason = str(reason)
        super().__init__(f"history file unavailable at {self.path}: {self.reason}")


class RecordParseError(IrrigationDataError):
    """A feature or label cell is not numeric (or the row is too short)."""

    def __init__(self, line_number: int, column: int, value):
        self.line_number = line_number
        self.column = column
        self.value = value
        super().__init__(
            f"line {line_number}, column {column}: cannot parse {value!r} as a number"
        )


class InsufficientDataError(IrrigationDataError):
    """The source ran out of rows while a minibatch was being assembled."""

    def __init__(self, needed: int, read: int):
        self.needed = needed
        self.read = read
        super().__init__(f"insufficient data: needed {needed} rows, source ended after {read}")


class NormalizerNotFittedError(IrrigationDataError):
    pass
