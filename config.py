import os, pathlib, logging
from dataclasses import dataclass, field
from typing import List, Optional

from errors import ConfigurationError


BASE_DIR = pathlib.Path(__file__).resolve().parent
DEFAULT_DATA = BASE_DIR / "data" / "history.csv"
DATA_PATH = os.getenv("IRS_DATA_PATH", str(DEFAULT_DATA))
REPORT_DIR = os.getenv("IRS_REPORT_DIR")  # None -> current working directory

DEFAULT_COLUMNS = 7
DEFAULT_BATCH_SIZE = 1
DEFAULT_WINDOW_LENGTH = int(os.getenv("IRS_WINDOW_LENGTH", "30"))
DEFAULT_EPOCHS = int(os.getenv("IRS_EPOCHS", "50"))
NORMALIZATION_RANGE = (-10.0, 10.0)
HEADER_LINES = 1
DELIMITER = ","

# number of sensor depths supplied -> csv column count
COLUMN_PRESETS = {1: 7, 2: 10, 3: 13}

# sentinel used by the input forms for "no depth given"
UNSET_DEPTH = -1.0

logger = logging.getLogger(__name__)


def count_sensor_depths(*depths) -> int:
    """Count depths that were actually supplied (not -1, not 0, not None)."""
    n = 0
    for d in depths:
        if d is None:
            continue
        if float(d) != UNSET_DEPTH and float(d) != 0:
            n += 1
    return n


def columns_for_depths(*depths) -> int:
    # 2 sensors -> 10 columns, 3 -> 13, anything else falls back to 7
    return COLUMN_PRESETS.get(count_sensor_depths(*depths), COLUMN_PRESETS[1])


@dataclass
class ConfigIssue:
    field: str
    kind: str          # "non_positive" | "out_of_range"
    supplied: object
    applied: object

    def as_dict(self):
        return {"field": self.field, "kind": self.kind,
                "supplied": self.supplied, "applied": self.applied}


@dataclass
class ValidatedConfig:
    columns: int
    batch_size: int
    window_length: Optional[int] = None
    issues: List[ConfigIssue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.issues

    def as_dict(self):
        return {
            "columns": self.columns,
            "batch_size": self.batch_size,
            "window_length": self.window_length,
            "issues": [i.as_dict() for i in self.issues],
        }


def validate_shape(columns, batch_size) -> ValidatedConfig:
    """
    Validate column count and batch size.

    Non-positive values are not rejected: they are replaced by
    DEFAULT_COLUMNS / DEFAULT_BATCH_SIZE and the replacement is recorded
    as a ConfigIssue so callers can surface it.
    """
    try:
        result = ValidatedConfig(columns=int(columns), batch_size=int(batch_size))
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"columns and batch_size must be integers: {e}") from e
    if result.columns <= 0:
        result.issues.append(ConfigIssue("columns", "non_positive", columns, DEFAULT_COLUMNS))
        result.columns = DEFAULT_COLUMNS
    if result.batch_size <= 0:
        result.issues.append(ConfigIssue("batch_size", "non_positive", batch_size, DEFAULT_BATCH_SIZE))
        result.batch_size = DEFAULT_BATCH_SIZE
    for issue in result.issues:
        logger.warning(f"{issue.field}={issue.supplied} is not positive; using {issue.applied}")
    return result


def clamp_window(window_length, file_records: int, result: Optional[ValidatedConfig] = None) -> int:
    """Window must satisfy 0 < window < file_records, otherwise it becomes file_records - 1."""
    try:
        w = int(window_length)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"window_length must be an integer: {e}") from e
    if 0 < w < file_records:
        applied = w
    else:
        applied = file_records - 1
        kind = "non_positive" if w <= 0 else "out_of_range"
        if result is not None:
            result.issues.append(ConfigIssue("window_length", kind, window_length, applied))
        logger.warning(f"window_length={window_length} invalid for {file_records} records; using {applied}")
    if result is not None:
        result.window_length = applied
    return applied
