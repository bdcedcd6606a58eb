import logging
from collections.abc import Iterable
from datetime import date, datetime, timedelta

from .core.errors import ValidationError
from .core.models import CompletionRecord, HabitConfig, StreakState
from .lib.dates import ALL_WEEKDAYS, weekday
from .ledger import completion_days

__all__ = ["compute_streak", "habit_streak"]

logger = logging.getLogger(__name__)

_ONE_DAY = timedelta(days=1)


def _missed_days(after: date, upto: date, schedule_days: frozenset[int]) -> int:
    """Due days in the half-open range (after, upto]. Empty schedule means every day."""
    span = (upto - after).days
    if span <= 0:
        return 0
    if not schedule_days:
        return span
    weeks, rest = divmod(span, 7)
    missed = weeks * len(schedule_days)
    for offset in range(1, rest + 1):
        if weekday(after + timedelta(days=offset)) in schedule_days:
            missed += 1
    return missed


def _current_streak(
    days: list[date], grace_period_days: int, today: date, schedule_days: frozenset[int]
) -> int:
    streak = 0
    expected = today
    for d in reversed(days):
        if d > today:
            continue
        if _missed_days(d, expected, schedule_days) > grace_period_days:
            break
        streak += 1
        expected = d - _ONE_DAY
    return streak


def _safe_until(last: date, grace_period_days: int, schedule_days: frozenset[int]) -> date:
    """Last day a completion still continues the run that ended on `last`."""
    d = last
    due_seen = 0
    while True:
        d += _ONE_DAY
        if not schedule_days or weekday(d) in schedule_days:
            due_seen += 1
            if due_seen > grace_period_days:
                return d


def _longest_streak(
    days: list[date], grace_period_days: int, schedule_days: frozenset[int]
) -> int:
    if not days:
        return 0
    longest = run = 1
    for prev, d in zip(days, days[1:]):
        if _missed_days(prev, d - _ONE_DAY, schedule_days) <= grace_period_days:
            run += 1
        else:
            run = 1
        longest = max(longest, run)
    return longest


def compute_streak(
    records: Iterable[CompletionRecord],
    grace_period_days: int,
    today: date,
    schedule_days: frozenset[int] = frozenset(),
) -> StreakState:
    """Derive streak state from completion history.

    Streaks count distinct calendar days, not records. Walking back from
    `today`, each completion day extends the current streak as long as no more
    than `grace_period_days` due days were missed since the next one. The
    longest streak applies the same gap rule across the whole history.

    `streak_safe_until` is the last day a new completion still continues the
    run; it is None once that day has passed. The run is in its grace period
    when a due day before today was already missed.
    """
    if grace_period_days < 0:
        raise ValidationError(f"grace period must be >= 0, got {grace_period_days}")
    if not schedule_days <= ALL_WEEKDAYS:
        raise ValidationError(f"schedule days must be within 0-6, got {sorted(schedule_days)}")
    if isinstance(today, datetime):
        today = today.date()

    days = completion_days(records)
    if not days:
        return StreakState()

    past = [d for d in days if d <= today]
    safe_until: date | None = None
    in_grace = False
    if past:
        safe_until = _safe_until(past[-1], grace_period_days, schedule_days)
        if safe_until < today:
            safe_until = None
        else:
            in_grace = _missed_days(past[-1], today - _ONE_DAY, schedule_days) > 0
    state = StreakState(
        current_streak=_current_streak(days, grace_period_days, today, schedule_days),
        longest_streak=_longest_streak(days, grace_period_days, schedule_days),
        is_completed_today=today in days,
        days_since_last_completion=(today - past[-1]).days if past else None,
        streak_safe_until=safe_until,
        is_in_grace_period=in_grace,
    )
    logger.debug("streak over %d days: %s", len(days), state)
    return state


def habit_streak(
    records: Iterable[CompletionRecord], habit: HabitConfig | None, today: date
) -> StreakState:
    habit = habit or HabitConfig()
    return compute_streak(records, habit.grace_period_days, today, habit.schedule_days)
