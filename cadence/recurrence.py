"""Next-due-date resolution for recurrence groups.

Two semantics are supported. Fixed-schedule patterns walk a calendar grid
anchored at `anchor_date`; the next occurrence never depends on when the prior
one was completed. After-completion patterns offset the actual completion
timestamp by one interval.

Every function here is pure: timestamps are passed in, nothing reads a clock.
A `None` result means the group is exhausted, which is a normal outcome.
"""

import dataclasses
import logging
from datetime import datetime

from .core.errors import InvalidPatternError
from .core.models import LAST_DAY_OF_MONTH, IntervalUnit, RecurrenceKind, RecurrencePattern
from .lib.dates import ALL_WEEKDAYS, add_interval, next_allowed_weekday, with_day_of_month

__all__ = [
    "is_exhausted",
    "preview_next_occurrences",
    "resolve_next",
    "resolve_next_after_completion",
    "resolve_next_fixed_schedule",
    "validate_pattern",
]

logger = logging.getLogger(__name__)


def validate_pattern(pattern: RecurrencePattern) -> None:
    if pattern.interval_value < 0:
        raise InvalidPatternError(f"interval must be >= 0, got {pattern.interval_value}")
    if not set(pattern.excluded_weekdays) <= ALL_WEEKDAYS:
        raise InvalidPatternError(
            f"excluded weekdays must be 0-6, got {sorted(pattern.excluded_weekdays)}"
        )
    if ALL_WEEKDAYS <= set(pattern.excluded_weekdays):
        raise InvalidPatternError("excluded weekdays cover the whole week")
    if pattern.kind == RecurrenceKind.FIXED_SCHEDULE and pattern.anchor_date is None:
        raise InvalidPatternError("fixed schedule requires an anchor date")
    if pattern.day_of_month is not None:
        if pattern.interval_unit != IntervalUnit.MONTHS:
            raise InvalidPatternError("day of month only applies to monthly patterns")
        if pattern.day_of_month != LAST_DAY_OF_MONTH and not 1 <= pattern.day_of_month <= 31:
            raise InvalidPatternError(
                f"day of month must be 1-31 or {LAST_DAY_OF_MONTH}, got {pattern.day_of_month}"
            )
    if pattern.max_occurrence_count is not None and pattern.max_occurrence_count < 1:
        raise InvalidPatternError(
            f"max occurrence count must be >= 1, got {pattern.max_occurrence_count}"
        )


def is_exhausted(pattern: RecurrencePattern, candidate: datetime | None = None) -> bool:
    """True when the group may not produce `candidate` (or any further occurrence)."""
    if pattern.interval_value == 0:
        return True
    if (
        pattern.max_occurrence_count is not None
        and pattern.occurrence_count >= pattern.max_occurrence_count
    ):
        return True
    return bool(pattern.end_date and candidate and candidate > pattern.end_date)


def _schedule_point(pattern: RecurrencePattern, index: int) -> datetime:
    assert pattern.anchor_date is not None
    point = add_interval(
        pattern.anchor_date, pattern.interval_unit, index * pattern.interval_value
    )
    if pattern.day_of_month is not None:
        point = with_day_of_month(point, pattern.day_of_month)
    return point


def _start_index(pattern: RecurrencePattern, reference: datetime) -> int:
    """A grid index whose point is known to be at or before `reference`."""
    anchor = pattern.anchor_date
    assert anchor is not None
    if reference < anchor:
        return 0
    if pattern.interval_unit == IntervalUnit.MONTHS:
        months = (reference.year - anchor.year) * 12 + (reference.month - anchor.month)
        return max(0, months // pattern.interval_value - 1)
    step = add_interval(anchor, pattern.interval_unit, pattern.interval_value) - anchor
    return max(0, (reference - anchor) // step - 1)


def resolve_next_fixed_schedule(
    pattern: RecurrencePattern, reference_date: datetime
) -> datetime | None:
    """Smallest schedule point strictly after `reference_date`, moved off excluded weekdays.

    Schedule points are `anchor + k * interval` computed from the anchor each
    time, so month-end clamping on one point never shifts the later ones.
    """
    validate_pattern(pattern)
    if pattern.interval_value == 0 or is_exhausted(pattern):
        return None

    index = _start_index(pattern, reference_date)
    candidate = _schedule_point(pattern, index)
    assert pattern.anchor_date is not None
    while candidate <= reference_date or candidate < pattern.anchor_date:
        index += 1
        candidate = _schedule_point(pattern, index)

    candidate = next_allowed_weekday(candidate, pattern.excluded_weekdays)
    if is_exhausted(pattern, candidate):
        logger.debug("group %s past end date at %s", pattern.group_id, candidate)
        return None
    return candidate


def resolve_next_after_completion(
    completed_at: datetime, pattern: RecurrencePattern
) -> datetime | None:
    """`completed_at` plus one interval. Excluded weekdays do not apply here."""
    validate_pattern(pattern)
    if pattern.interval_value == 0 or is_exhausted(pattern):
        return None

    candidate = add_interval(completed_at, pattern.interval_unit, pattern.interval_value)
    if is_exhausted(pattern, candidate):
        logger.debug("group %s past end date at %s", pattern.group_id, candidate)
        return None
    return candidate


def resolve_next(
    pattern: RecurrencePattern, completed_at: datetime, now: datetime
) -> datetime | None:
    if pattern.kind == RecurrenceKind.FIXED_SCHEDULE:
        return resolve_next_fixed_schedule(pattern, now)
    return resolve_next_after_completion(completed_at, pattern)


def preview_next_occurrences(
    pattern: RecurrencePattern, count: int, after: datetime
) -> list[datetime]:
    """Upcoming due dates after `after`, assuming each occurrence is completed on time."""
    if count < 0:
        raise InvalidPatternError(f"preview count must be >= 0, got {count}")
    validate_pattern(pattern)

    dates: list[datetime] = []
    reference = after
    while len(dates) < count:
        nxt = resolve_next(pattern, reference, reference)
        if nxt is None:
            break
        dates.append(nxt)
        reference = nxt
        pattern = dataclasses.replace(pattern, occurrence_count=pattern.occurrence_count + 1)
    return dates
