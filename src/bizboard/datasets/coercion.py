"""Field coercion from raw cell text to typed values.

Every function either returns the typed value (None for an empty optional
cell) or raises FieldDecodeError naming the column and the raw input.
"""

import math
import re
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from bizboard.errors import FieldDecodeError


class DateFormat(str, Enum):
    """Per-dataset date layouts found in the exports."""

    DAY_MONTH_YEAR = "DD/MM/YYYY"
    DAY_MONTH_ABBR_YEAR = "DD-MMM-YYYY"


_MONTH_ABBR = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}

_DAY_MONTH_YEAR = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_DAY_MONTH_ABBR_YEAR = re.compile(r"^(\d{1,2})-([A-Za-z]{3})-(\d{4})$")
# Native date cells are rendered as ISO-8601 by the decoder
_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})(?:[T ](\d{2}):(\d{2})(?::(\d{2}))?)?$")
# Formatted numeric cells, e.g. "1,234,567.50"
_GROUPED_NUMBER = re.compile(r"^[+-]?\d{1,3}(,\d{3})+(\.\d+)?$")


def _clean(raw: Optional[str]) -> Optional[str]:
    if raw is None:
        return None
    text = str(raw).strip()
    return text or None


def coerce_text(field: str, raw: Optional[str]) -> Optional[str]:
    """Stripped text, or None for an empty cell."""
    return _clean(raw)


def coerce_stage(field: str, raw: Optional[str]) -> Optional[str]:
    """Stage codes are opaque; aggregation decides which ones it knows."""
    return _clean(raw)


def coerce_number(
    field: str,
    raw: Optional[str],
    *,
    required: bool = False,
    non_negative: bool = False,
) -> Optional[float]:
    """Parse a finite float. Empty is None unless required; garbage never becomes 0."""
    text = _clean(raw)
    if text is None:
        if required:
            raise FieldDecodeError(field, raw, "value is required")
        return None
    candidate = text.replace(",", "") if _GROUPED_NUMBER.match(text) else text
    if "_" in candidate:
        raise FieldDecodeError(field, raw, "not a number")
    try:
        value = float(candidate)
    except ValueError:
        raise FieldDecodeError(field, raw, "not a number") from None
    if not math.isfinite(value):
        raise FieldDecodeError(field, raw, "not a finite number")
    if non_negative and value < 0:
        raise FieldDecodeError(field, raw, "must not be negative")
    return value


def coerce_date(field: str, raw: Optional[str], fmt: DateFormat) -> Optional[datetime]:
    """Parse a UTC date in the dataset's layout (or ISO-8601); None for an empty cell."""
    text = _clean(raw)
    if text is None:
        return None

    parts: Optional[tuple[int, ...]] = None
    iso = _ISO_DATE.match(text)
    if iso:
        year, month, day = int(iso.group(1)), int(iso.group(2)), int(iso.group(3))
        hour, minute, second = (int(g) if g else 0 for g in iso.group(4, 5, 6))
        parts = (year, month, day, hour, minute, second)
    elif fmt == DateFormat.DAY_MONTH_YEAR:
        m = _DAY_MONTH_YEAR.match(text)
        if m:
            parts = (int(m.group(3)), int(m.group(2)), int(m.group(1)), 0, 0, 0)
    elif fmt == DateFormat.DAY_MONTH_ABBR_YEAR:
        m = _DAY_MONTH_ABBR_YEAR.match(text)
        if m and m.group(2).lower() in _MONTH_ABBR:
            parts = (int(m.group(3)), _MONTH_ABBR[m.group(2).lower()], int(m.group(1)), 0, 0, 0)

    if parts is None:
        raise FieldDecodeError(field, raw, f"expected date as {fmt.value}")
    try:
        return datetime(*parts, tzinfo=timezone.utc)
    except ValueError:
        raise FieldDecodeError(field, raw, "not a valid calendar date") from None
