import calendar
import re
from datetime import date, datetime, time, timedelta
from typing import TypeVar

from dateutil import parser as dateutil_parser
from dateutil.parser import ParserError
from dateutil.relativedelta import relativedelta

from cadence.core.errors import InvalidPatternError, ValidationError
from cadence.core.models import LAST_DAY_OF_MONTH, IntervalUnit

__all__ = [
    "add_interval",
    "calendar_days_between",
    "days_in_month",
    "next_allowed_weekday",
    "parse_when",
    "weekday",
    "with_day_of_month",
]

ALL_WEEKDAYS = frozenset(range(7))

D = TypeVar("D", date, datetime)


def weekday(d: date) -> int:
    """Weekday with Sunday=0 .. Saturday=6."""
    return d.isoweekday() % 7


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def add_interval(d: D, unit: IntervalUnit, amount: int) -> D:
    """Add `amount` of `unit` to `d`.

    Month arithmetic clamps to the last valid day of the target month
    (Jan 31 + 1 month -> Feb 28/29), never overflowing into the month after.
    """
    if unit == IntervalUnit.HOURS:
        return d + timedelta(hours=amount)
    if unit == IntervalUnit.DAYS:
        return d + timedelta(days=amount)
    if unit == IntervalUnit.WEEKS:
        return d + timedelta(weeks=amount)
    if unit == IntervalUnit.MONTHS:
        return d + relativedelta(months=amount)
    raise InvalidPatternError(f"unknown interval unit: {unit!r}")


def with_day_of_month(d: D, day_of_month: int) -> D:
    """Move `d` to `day_of_month` within its own month, clamped to the month length."""
    last = days_in_month(d.year, d.month)
    if day_of_month == LAST_DAY_OF_MONTH:
        return d.replace(day=last)
    return d.replace(day=min(day_of_month, last))


def next_allowed_weekday(d: D, excluded: frozenset[int] | set[int]) -> D:
    """Advance day by day until the weekday is not excluded. `d` itself counts."""
    if ALL_WEEKDAYS <= set(excluded):
        raise InvalidPatternError("excluded weekdays cover the whole week")
    while weekday(d) in excluded:
        d = d + timedelta(days=1)
    return d


def calendar_days_between(start: date, end: date) -> int:
    """Whole calendar days from `start` to `end`, ignoring time of day."""
    if isinstance(start, datetime):
        start = start.date()
    if isinstance(end, datetime):
        end = end.date()
    return (end - start).days


def parse_when(text: str, now: datetime) -> datetime:
    """Parse a user-supplied timestamp ('now', 'today', 'yesterday', ISO, free text)."""
    lowered = text.strip().lower()
    if lowered == "now":
        return now
    if lowered == "today":
        return now
    if lowered == "yesterday":
        return now - timedelta(days=1)
    if re.match(r"^\d{1,2}:\d{2}$", lowered):
        hour, minute = (int(p) for p in lowered.split(":"))
        try:
            return datetime.combine(now.date(), time(hour, minute))
        except ValueError as e:
            raise ValidationError(f"invalid time '{text}'") from e
    try:
        parsed = dateutil_parser.parse(text, default=datetime(now.year, now.month, now.day))
    except (ParserError, ValueError, OverflowError) as e:
        raise ValidationError(f"cannot parse date '{text}'") from e
    if parsed.tzinfo is not None:
        # stored datetimes are naive local time
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed
