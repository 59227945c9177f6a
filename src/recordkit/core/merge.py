"""Field-level reconciliation between two entities.

Each helper copies one item from a *source* entity to a *target* entity
when the two differ, and reports whether the target changed. They are
meant for sync jobs that replay an external feed over stored records, so
absent source data is a normal input: it either leaves the target alone or
applies the given default.

    >>> src, dst = Entity("Feed"), Entity("Customer")
    >>> src["active"] = "да"
    >>> set_boolean_item(src, "active", dst, "IsActive")
    True
    >>> dst["IsActive"]
    True
"""

from __future__ import annotations

from datetime import datetime, timedelta

from recordkit.core.entity import Entity
from recordkit.core.settings import get_settings
from recordkit.core.values import parse_date_text, parse_number, parse_utc_date

_FALSE_WORDS = ("0", "no", "нет", "ложь")
_TRUE_WORDS = ("1", "yes", "да", "истина")


def set_text_item(
    source: Entity, source_item: str, target: Entity, target_item: str, default: str = ""
) -> bool:
    data = source.get_item_text(source_item).strip()
    text = target.get_item_text(target_item).strip()
    if data == "" and text == default:
        return False
    if data != text:
        target[target_item] = data
        return True
    if not text and text != default:
        target[target_item] = default
        return True
    return False


def _parse_int(text: str) -> int | None:
    try:
        return int(text)
    except ValueError:
        return None


def set_integer_item(
    source: Entity, source_item: str, target: Entity, target_item: str, default: int = 0
) -> bool:
    data = source.get_item_text(source_item).strip()
    text = target.get_item_text(target_item).strip()
    result = _parse_int(data) if data and data != text else None
    if result is not None:
        if text and _parse_int(text) == result:
            return False
        target[target_item] = result
        return True
    if not text and default != 0:
        target[target_item] = default
        return True
    return False


def _parse_float(text: str) -> float | None:
    """Lenient number read: canonical forms first, then any separator pair."""
    number = parse_number(text)
    if number is not None:
        return number
    for decimal_sep, group_sep in get_settings().number_formats:
        candidate = text.replace(group_sep, "") if group_sep else text
        try:
            return float(candidate.replace(decimal_sep, "."))
        except ValueError:
            continue
    return None


def set_double_item(
    source: Entity, source_item: str, target: Entity, target_item: str, default: float = 0.0
) -> bool:
    data = source.get_item_text(source_item).strip()
    text = target.get_item_text(target_item).strip()
    if data and data != text:
        result = _parse_float(data)
        if result is not None:
            if text and _parse_float(text) == result:
                return False
            target[target_item] = result
            return True
    if not text and default != 0.0:
        target[target_item] = default
        return True
    return False


def _read_datetime(entity: Entity, item: str) -> datetime | None:
    value = entity.get_item_value(item)
    if isinstance(value, datetime):
        return value
    text = entity.get_item_text(item).strip()
    if not text:
        return None
    return parse_utc_date(text) or parse_date_text(text)


def set_datetime_item(
    source: Entity, source_item: str, target: Entity, target_item: str, today: bool = False
) -> bool:
    """
    Copy a timestamp unless both sides are within the tolerance window.

    With ``today`` set and nothing copied, the target falls back to today's
    date (again subject to the tolerance window).
    """
    tolerance = timedelta(hours=get_settings().date_tolerance_hours)
    moment = _read_datetime(source, source_item)
    if moment is not None:
        if target.get_item_text(target_item):
            existing = _read_datetime(target, target_item) or datetime.min
            if moment != existing and abs(moment - existing) >= tolerance:
                target[target_item] = moment
                return True
        elif moment != datetime.min:
            target[target_item] = moment
            return True
    if today:
        midnight = datetime.combine(datetime.now().date(), datetime.min.time())
        existing = _read_datetime(target, target_item) or datetime.min
        if abs(midnight - existing) >= tolerance:
            target[target_item] = midnight
            return True
    return False


def set_boolean_item(
    source: Entity, source_item: str, target: Entity, target_item: str, default: bool = False
) -> bool:
    """Copy a flag, reading yes/no words (including Russian ones) as booleans."""
    use_default = False
    token = source.get_item_text(source_item).lower().strip()
    if token == "":
        use_default = True
        data = False
    elif token in _FALSE_WORDS:
        data = False
    elif token in _TRUE_WORDS:
        data = True
    else:
        data = bool(source.get_typed(source_item, bool, False))

    if target.get_item_text(target_item):
        existing = bool(target.get_typed(target_item, bool, False))
        if data != existing:
            target[target_item] = data
            return True
        return False

    target[target_item] = default if use_default else data
    return True


__all__ = [
    "set_text_item",
    "set_integer_item",
    "set_double_item",
    "set_datetime_item",
    "set_boolean_item",
]
