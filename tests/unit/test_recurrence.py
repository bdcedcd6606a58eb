from datetime import datetime, timedelta

import pytest

from cadence.core.errors import InvalidPatternError
from cadence.core.models import IntervalUnit, RecurrenceKind, RecurrencePattern
from cadence.lib.dates import weekday
from cadence.recurrence import (
    is_exhausted,
    preview_next_occurrences,
    resolve_next,
    resolve_next_after_completion,
    resolve_next_fixed_schedule,
    validate_pattern,
)

MONDAY = datetime(2024, 1, 1)


def fixed(unit=IntervalUnit.WEEKS, value=1, anchor=MONDAY, **kwargs) -> RecurrencePattern:
    return RecurrencePattern(
        group_id="g1",
        kind=RecurrenceKind.FIXED_SCHEDULE,
        interval_unit=unit,
        interval_value=value,
        anchor_date=anchor,
        **kwargs,
    )


def after(unit=IntervalUnit.DAYS, value=3, **kwargs) -> RecurrencePattern:
    return RecurrencePattern(
        group_id="g1",
        kind=RecurrenceKind.AFTER_COMPLETION,
        interval_unit=unit,
        interval_value=value,
        **kwargs,
    )


def test_weekly_completed_sunday_next_monday():
    result = resolve_next_fixed_schedule(fixed(), datetime(2024, 1, 7, 18, 0))
    assert result == datetime(2024, 1, 8)


def test_biweekly_with_weekend_excluded_lands_on_monday():
    pattern = fixed(value=2, excluded_weekdays=frozenset({6, 0}))
    result = resolve_next_fixed_schedule(pattern, datetime(2024, 1, 12, 17, 0))
    assert result == datetime(2024, 1, 15)
    assert weekday(result) == 1


def test_schedule_point_on_excluded_day_moves_forward():
    saturday_anchor = fixed(anchor=datetime(2024, 1, 6, 9, 0), excluded_weekdays=frozenset({6, 0}))
    result = resolve_next_fixed_schedule(saturday_anchor, datetime(2024, 1, 7))
    assert result == datetime(2024, 1, 15, 9, 0)


def test_reference_before_anchor_returns_anchor():
    assert resolve_next_fixed_schedule(fixed(), datetime(2023, 12, 1)) == MONDAY


def test_reference_on_schedule_point_is_excluded():
    assert resolve_next_fixed_schedule(fixed(), datetime(2024, 1, 8)) == datetime(2024, 1, 15)


def test_far_reference_fast_forwards():
    result = resolve_next_fixed_schedule(fixed(), datetime(2030, 6, 5, 12, 0))
    assert result == datetime(2030, 6, 10)


def test_hourly_schedule():
    pattern = fixed(unit=IntervalUnit.HOURS, value=6, anchor=datetime(2024, 1, 1, 8, 0))
    assert resolve_next_fixed_schedule(pattern, datetime(2024, 1, 1, 9, 0)) == datetime(
        2024, 1, 1, 14, 0
    )


def test_monthly_from_month_end_does_not_drift():
    pattern = fixed(unit=IntervalUnit.MONTHS, anchor=datetime(2024, 1, 31))
    assert resolve_next_fixed_schedule(pattern, datetime(2024, 2, 1)) == datetime(2024, 2, 29)
    assert resolve_next_fixed_schedule(pattern, datetime(2024, 2, 29)) == datetime(2024, 3, 31)


def test_monthly_last_day_of_month():
    pattern = fixed(unit=IntervalUnit.MONTHS, anchor=datetime(2023, 1, 15), day_of_month=-1)
    assert resolve_next_fixed_schedule(pattern, datetime(2023, 1, 20)) == datetime(2023, 1, 31)
    assert resolve_next_fixed_schedule(pattern, datetime(2023, 1, 31)) == datetime(2023, 2, 28)


def test_monthly_day_of_month_clamped():
    pattern = fixed(unit=IntervalUnit.MONTHS, anchor=datetime(2024, 3, 31), day_of_month=31)
    assert resolve_next_fixed_schedule(pattern, datetime(2024, 4, 1)) == datetime(2024, 4, 30)


def test_result_strictly_after_reference_and_never_excluded():
    pattern = fixed(value=1, anchor=datetime(2024, 1, 6, 9, 0), excluded_weekdays=frozenset({6}))
    reference = datetime(2024, 1, 1)
    while reference < datetime(2024, 3, 1):
        result = resolve_next_fixed_schedule(pattern, reference)
        assert result is not None
        assert result > reference
        assert weekday(result) != 6
        reference += timedelta(hours=7)


def test_fixed_schedule_is_deterministic():
    pattern = fixed(unit=IntervalUnit.MONTHS, value=2, anchor=datetime(2024, 1, 31))
    reference = datetime(2024, 9, 14, 3, 0)
    assert resolve_next_fixed_schedule(pattern, reference) == resolve_next_fixed_schedule(
        pattern, reference
    )


def test_zero_interval_returns_none():
    assert resolve_next_fixed_schedule(fixed(value=0), datetime(2024, 1, 7)) is None
    assert resolve_next_after_completion(datetime(2024, 1, 7), after(value=0)) is None


def test_end_date_exhausts():
    pattern = fixed(end_date=datetime(2024, 1, 10))
    assert resolve_next_fixed_schedule(pattern, datetime(2024, 1, 2)) == datetime(2024, 1, 8)
    assert resolve_next_fixed_schedule(pattern, datetime(2024, 1, 8)) is None


def test_max_occurrence_count_exhausts():
    pattern = fixed(max_occurrence_count=3, occurrence_count=3)
    assert resolve_next_fixed_schedule(pattern, datetime(2024, 1, 7)) is None
    assert resolve_next_after_completion(datetime(2024, 1, 7), after(max_occurrence_count=1)) is None


def test_is_exhausted():
    assert is_exhausted(fixed(value=0))
    assert not is_exhausted(fixed(max_occurrence_count=2))
    assert is_exhausted(fixed(end_date=MONDAY), datetime(2024, 1, 2))


def test_after_completion_uses_actual_completion():
    result = resolve_next_after_completion(datetime(2024, 1, 8, 10, 0), after())
    assert result == datetime(2024, 1, 11, 10, 0)


def test_after_completion_ignores_excluded_weekdays():
    pattern = after(value=2, excluded_weekdays=frozenset({6, 0}))
    result = resolve_next_after_completion(datetime(2024, 1, 11, 9, 0), pattern)
    assert result == datetime(2024, 1, 13, 9, 0)
    assert weekday(result) == 6


def test_after_completion_monthly_clamps():
    pattern = after(unit=IntervalUnit.MONTHS, value=1)
    assert resolve_next_after_completion(datetime(2023, 1, 31, 7, 0), pattern) == datetime(
        2023, 2, 28, 7, 0
    )


def test_resolve_next_dispatches_on_kind():
    completed = datetime(2024, 1, 3, 12, 0)
    now = datetime(2024, 1, 7, 18, 0)
    assert resolve_next(fixed(), completed, now) == datetime(2024, 1, 8)
    assert resolve_next(after(), completed, now) == datetime(2024, 1, 6, 12, 0)


@pytest.mark.parametrize(
    "pattern",
    [
        fixed(value=-1),
        fixed(excluded_weekdays=frozenset(range(7))),
        fixed(excluded_weekdays=frozenset({7})),
        fixed(anchor=None),
        fixed(unit=IntervalUnit.WEEKS, day_of_month=5),
        fixed(unit=IntervalUnit.MONTHS, day_of_month=0),
        fixed(unit=IntervalUnit.MONTHS, day_of_month=32),
        fixed(max_occurrence_count=0),
    ],
)
def test_invalid_patterns_rejected(pattern):
    with pytest.raises(InvalidPatternError):
        validate_pattern(pattern)
    with pytest.raises(InvalidPatternError):
        resolve_next_fixed_schedule(pattern, datetime(2024, 1, 7))


def test_after_completion_needs_no_anchor():
    validate_pattern(after())


def test_preview_fixed_schedule():
    dates = preview_next_occurrences(fixed(), 3, datetime(2023, 12, 31))
    assert dates == [datetime(2024, 1, 1), datetime(2024, 1, 8), datetime(2024, 1, 15)]


def test_preview_after_completion():
    dates = preview_next_occurrences(after(value=1), 3, datetime(2024, 1, 1, 10, 0))
    assert dates == [
        datetime(2024, 1, 2, 10, 0),
        datetime(2024, 1, 3, 10, 0),
        datetime(2024, 1, 4, 10, 0),
    ]


def test_preview_stops_at_exhaustion():
    assert preview_next_occurrences(fixed(max_occurrence_count=2), 5, MONDAY) == [
        datetime(2024, 1, 8)
    ]
    assert preview_next_occurrences(fixed(value=0), 5, MONDAY) == []
