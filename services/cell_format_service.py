import math
import re
import warnings
from datetime import date, timedelta
from typing import Any, Optional

import pandas as pd

DATE_KEYWORDS = ["date", "time", "day", "month", "year", "日期", "时间", "天", "月", "年"]

# Excel serial day 0 (the 1900 leap-year bug is folded into the epoch)
EXCEL_EPOCH = date(1899, 12, 30)
# serials strictly inside this range are read as dates (1970-01-01 .. ~2119)
EXCEL_SERIAL_MIN = 25569
EXCEL_SERIAL_MAX = 80000

_LEADING_FLOAT = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def is_date_field(field_name: str) -> bool:
    """True when the header name looks like a date column."""
    lowered = str(field_name).lower()
    return any(keyword in lowered for keyword in DATE_KEYWORDS)


def is_empty_cell(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, float) and math.isnan(value):
        return True
    return False


def stringify_cell(value: Any) -> str:
    """
    Text form of a cell as shown on the chart.

    Integral floats drop their ".0" (Excel hands every number over as float)
    and booleans are lower-case.
    """
    if is_empty_cell(value):
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_excel_date(value: Any) -> str:
    """
    Render an Excel serial number as YYYY-MM-DD.

    Only numbers in the plausible serial range are converted; anything else
    is stringified unchanged. Plain numbers in range are converted too.
    """
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if EXCEL_SERIAL_MIN < value < EXCEL_SERIAL_MAX:
            try:
                return (EXCEL_EPOCH + timedelta(days=math.floor(value))).isoformat()
            except (OverflowError, ValueError):
                return stringify_cell(value)
    return stringify_cell(value)


def format_cell(value: Any, is_date_column: bool) -> str:
    return format_excel_date(value) if is_date_column else stringify_cell(value)


def parse_leading_float(value: Any) -> Optional[float]:
    """Number at the start of the cell text ("12.5kg" -> 12.5), None if there is none."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return None if math.isnan(value) else float(value)
    if value is None:
        return None
    match = _LEADING_FLOAT.match(str(value))
    if not match:
        return None
    return float(match.group(1))


def to_number(text: str) -> Optional[float]:
    """Whole-string numeric parse used when ordering categories; blank counts as 0."""
    stripped = text.strip()
    if stripped == "":
        return 0.0
    try:
        number = float(stripped)
    except ValueError:
        return None
    return None if math.isnan(number) else number


def parse_date(text: str) -> Optional[pd.Timestamp]:
    if not text or not text.strip():
        return None
    try:
        with warnings.catch_warnings():
            # pandas warns when it has to guess the format of a single value
            warnings.simplefilter("ignore", UserWarning)
            parsed = pd.to_datetime(text, errors="coerce")
    except (ValueError, TypeError, OverflowError):
        return None
    if parsed is None or pd.isna(parsed):
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.tz_convert(None)
    return parsed
