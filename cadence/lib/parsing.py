import re

from cadence.core.errors import ValidationError
from cadence.core.models import IntervalUnit, RecurrenceKind

_WEEKDAY_NAMES = {
    "sun": 0,
    "mon": 1,
    "tue": 2,
    "wed": 3,
    "thu": 4,
    "fri": 5,
    "sat": 6,
}
_DAY_ALIASES = {
    "sunday": "sun",
    "monday": "mon",
    "tuesday": "tue",
    "wednesday": "wed",
    "thursday": "thu",
    "friday": "fri",
    "saturday": "sat",
}
_UNIT_ALIASES = {
    "h": IntervalUnit.HOURS,
    "hour": IntervalUnit.HOURS,
    "hours": IntervalUnit.HOURS,
    "d": IntervalUnit.DAYS,
    "day": IntervalUnit.DAYS,
    "days": IntervalUnit.DAYS,
    "w": IntervalUnit.WEEKS,
    "week": IntervalUnit.WEEKS,
    "weeks": IntervalUnit.WEEKS,
    "m": IntervalUnit.MONTHS,
    "month": IntervalUnit.MONTHS,
    "months": IntervalUnit.MONTHS,
}
_KIND_ALIASES = {
    "fixed": RecurrenceKind.FIXED_SCHEDULE,
    "fixed_schedule": RecurrenceKind.FIXED_SCHEDULE,
    "after": RecurrenceKind.AFTER_COMPLETION,
    "after_completion": RecurrenceKind.AFTER_COMPLETION,
}


def parse_weekdays(text: str) -> frozenset[int]:
    """Parse 'sat,sun' or '6,0' into Sunday=0 weekday numbers."""
    days: set[int] = set()
    for token in re.split(r"[,\s]+", text.strip().lower()):
        if not token:
            continue
        if token.isdigit():
            value = int(token)
            if not 0 <= value <= 6:
                raise ValidationError(f"weekday out of range: {token}")
            days.add(value)
            continue
        name = _DAY_ALIASES.get(token, token[:3])
        if name not in _WEEKDAY_NAMES:
            raise ValidationError(f"unknown weekday '{token}'")
        days.add(_WEEKDAY_NAMES[name])
    return frozenset(days)


def format_weekdays(days: frozenset[int]) -> str:
    names = {v: k for k, v in _WEEKDAY_NAMES.items()}
    return ",".join(names[d] for d in sorted(days))


def parse_unit(unit: str) -> IntervalUnit:
    try:
        return _UNIT_ALIASES[unit.strip().lower()]
    except KeyError:
        raise ValidationError(f"unknown interval unit '{unit}' (use hours, days, weeks or months)") from None


def parse_kind(kind: str) -> RecurrenceKind:
    try:
        return _KIND_ALIASES[kind.strip().lower()]
    except KeyError:
        raise ValidationError(f"unknown recurrence kind '{kind}' (use fixed or after)") from None
