"""
Value helpers - text forms, loose parsing and type coercion.

Shared by the entity model (typed reads, actualization), the merge helpers
and the text grammar. Everything here is pure and stateless apart from the
separator/date-layout lists read from :mod:`recordkit.core.settings`.

Examples:
    >>> format_value(True)
    'true'
    >>> canonical_number(2.0)
    '2'
    >>> parse_number("1.5")
    1.5
    >>> parse_number("1,5") is None
    True
    >>> coerce_value(DataType.INT64, "42")
    42

Tags:
    parsing, coercion, formatting, recordkit
"""

from __future__ import annotations

import base64
import re
import uuid
from datetime import date, datetime, time, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any

from recordkit.core.enums import DataType
from recordkit.core.settings import get_settings

_NUMBER = re.compile(r"-*[0-9,.]+(?:[Ee][+-]?[0-9]+)?")
_UTC_DATE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}T[0-9]{2}:[0-9]{2}:[0-9]{2}")

ISO_SECONDS = "%Y-%m-%dT%H:%M:%S"

_TRUE_TOKENS = ("true", "1")
_FALSE_TOKENS = ("false", "0", "")


# -- text checks --------------------------------------------------------------


def is_number(text: str) -> bool:
    """Loose check: signed digits and separators with an optional exponent, 1..32 chars."""
    return 0 < len(text) <= 32 and _NUMBER.fullmatch(text) is not None


def is_utc_date(text: str) -> bool:
    """``YYYY-MM-DDThh:mm:ss`` with an optional ``+offset`` suffix."""
    if not 4 < len(text) <= 32:
        return False
    return _UTC_DATE.fullmatch(text.split("+")[0]) is not None


def is_empty_guid(value: Any) -> bool:
    return isinstance(value, uuid.UUID) and value.int == 0


def try_parse_guid(text: str) -> uuid.UUID | None:
    try:
        return uuid.UUID(text.strip())
    except (ValueError, AttributeError):
        return None


# -- formatting ---------------------------------------------------------------


def canonical_number(value: float) -> str:
    """Shortest round-trip form: ``2.0 -> "2"``, ``1e20 -> "1E+20"``."""
    text = repr(float(value))
    if text.endswith(".0"):
        text = text[:-2]
    return text.replace("e", "E")


def format_value(value: Any) -> str:
    """
    Plain text form of a value (no quoting).

    Datetimes use second precision ISO form, booleans are lower-case,
    floats use :func:`canonical_number`, bytes are base64.
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, datetime):
        return value.strftime(ISO_SECONDS)
    if isinstance(value, (date, time)):
        return value.isoformat()
    if isinstance(value, float):
        return canonical_number(value)
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode("ascii")
    return str(value)


# -- parsing ------------------------------------------------------------------


def parse_number(text: str, formats: list[tuple[str, str]] | None = None) -> float | None:
    """
    Parse ``text`` as a float under each configured separator pair.

    A parse only counts when the canonical form of the result reproduces
    ``text`` exactly, so ``"12.50"`` or ``"1 000"`` stay unparsed.
    """
    if not is_number(text):
        return None
    if formats is None:
        formats = get_settings().number_formats
    for decimal_sep, group_sep in formats:
        candidate = text
        if group_sep:
            candidate = candidate.replace(group_sep, "")
        candidate = candidate.replace(decimal_sep, ".")
        try:
            number = float(candidate)
        except ValueError:
            continue
        if canonical_number(number) == text:
            return number
    return None


def parse_utc_date(text: str) -> datetime | None:
    """Read ``YYYY-MM-DDThh:mm:ss[+offset]`` ignoring the offset."""
    if not is_utc_date(text):
        return None
    try:
        return datetime.strptime(text.split("+")[0], ISO_SECONDS)
    except ValueError:
        return None


def parse_date_text(text: str, formats: list[str] | None = None) -> datetime | None:
    """Try each configured ``strptime`` layout in order."""
    text = text.strip()
    if not text:
        return None
    if formats is None:
        formats = get_settings().date_formats
    for layout in formats:
        try:
            return datetime.strptime(text, layout)
        except ValueError:
            continue
    return None


# -- coercion -----------------------------------------------------------------


def _to_int(value: Any) -> int:
    if isinstance(value, (int, Decimal)):
        return int(value)
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"not an integral number: {value!r}")
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            number = parse_number(text)
            if number is None or not number.is_integer():
                raise
            return int(number)
    raise TypeError(f"cannot convert {type(value).__name__} to int")


def _to_float(value: Any) -> float:
    if isinstance(value, (int, float, Decimal)):
        return float(value)
    if isinstance(value, str):
        number = parse_number(value.strip())
        if number is not None:
            return number
        return float(value.strip().replace(",", "."))
    raise TypeError(f"cannot convert {type(value).__name__} to float")


def _to_bool(value: Any) -> bool:
    if isinstance(value, (bool, int, float, Decimal)):
        return bool(value)
    if isinstance(value, str):
        token = value.strip().lower()
        if token in _TRUE_TOKENS:
            return True
        if token in _FALSE_TOKENS:
            return False
        raise ValueError(f"not a boolean: {value!r}")
    raise TypeError(f"cannot convert {type(value).__name__} to bool")


def _to_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time())
    if isinstance(value, str):
        parsed = parse_utc_date(value.strip())
        if parsed is None:
            try:
                parsed = datetime.fromisoformat(value.strip())
            except ValueError:
                parsed = parse_date_text(value)
        if parsed is None:
            raise ValueError(f"not a date: {value!r}")
        return parsed
    raise TypeError(f"cannot convert {type(value).__name__} to datetime")


def _to_time(value: Any) -> time | timedelta:
    if isinstance(value, (time, timedelta)):
        return value
    if isinstance(value, datetime):
        return value.time()
    if isinstance(value, str):
        return time.fromisoformat(value.strip())
    raise TypeError(f"cannot convert {type(value).__name__} to time")


def _to_guid(value: Any) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    if isinstance(value, (bytes, bytearray)) and len(value) == 16:
        return uuid.UUID(bytes=bytes(value))
    if isinstance(value, str):
        return uuid.UUID(value.strip())
    raise TypeError(f"cannot convert {type(value).__name__} to GUID")


def _to_bytes(value: Any) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        return value.encode("utf-8")
    raise TypeError(f"cannot convert {type(value).__name__} to bytes")


def coerce_value(data_type: DataType, value: Any) -> Any:
    """
    Convert ``value`` to the Python representation of ``data_type``.

    ``None`` passes through. Composite and unknown types are returned
    unchanged.

    Raises:
        ValueError: the value has the right kind but unreadable content
        TypeError: the value's kind cannot be converted at all
    """
    if value is None:
        return None
    if data_type == DataType.STRING:
        return format_value(value)
    if data_type == DataType.BINARY:
        return _to_bytes(value)
    if data_type == DataType.BOOLEAN:
        return _to_bool(value)
    if data_type == DataType.BYTE:
        number = _to_int(value)
        if not 0 <= number <= 255:
            raise ValueError(f"byte out of range: {number}")
        return number
    if data_type in (DataType.INT16, DataType.INT32, DataType.INT64):
        return _to_int(value)
    if data_type in (DataType.DOUBLE, DataType.CURRENCY):
        return _to_float(value)
    if data_type == DataType.DECIMAL:
        text = canonical_number(value) if isinstance(value, float) else format_value(value)
        try:
            return Decimal(text.strip())
        except InvalidOperation as exc:
            raise ValueError(f"not a decimal: {value!r}") from exc
    if data_type == DataType.GUID:
        return _to_guid(value)
    if data_type in (DataType.DATE, DataType.DATETIME):
        return _to_datetime(value)
    if data_type == DataType.TIME:
        return _to_time(value)
    return value


def coerce_to_type(target: type, value: Any) -> Any:
    """Convert ``value`` to a Python type (``int``, ``bool``, ``datetime`` ...)."""
    if value is None or target is object or isinstance(value, target):
        if not (target is int and isinstance(value, bool)):
            return value
    data_type = _TYPE_TARGETS.get(target)
    if data_type is None:
        return value
    if target is date and not isinstance(value, (date, str)):
        raise TypeError(f"cannot convert {type(value).__name__} to date")
    converted = coerce_value(data_type, value)
    if target is date and isinstance(converted, datetime):
        return converted.date()
    return converted


_TYPE_TARGETS: dict[type, DataType] = {
    str: DataType.STRING,
    bytes: DataType.BINARY,
    bool: DataType.BOOLEAN,
    int: DataType.INT64,
    float: DataType.DOUBLE,
    Decimal: DataType.DECIMAL,
    uuid.UUID: DataType.GUID,
    datetime: DataType.DATETIME,
    date: DataType.DATE,
    time: DataType.TIME,
}


__all__ = [
    "ISO_SECONDS",
    "is_number",
    "is_utc_date",
    "is_empty_guid",
    "try_parse_guid",
    "canonical_number",
    "format_value",
    "parse_number",
    "parse_utc_date",
    "parse_date_text",
    "coerce_value",
    "coerce_to_type",
]
