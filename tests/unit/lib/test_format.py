from datetime import date, datetime

from cadence.core.models import StreakState, TaskOccurrence
from cadence.lib.format import (
    format_due,
    format_elapsed,
    format_occurrence,
    format_status,
    format_streak,
)

NOW = datetime(2024, 1, 10, 12, 0)


def test_format_elapsed():
    assert format_elapsed(datetime(2024, 1, 10, 11, 59, 30), NOW) == "30s ago"
    assert format_elapsed(datetime(2024, 1, 10, 9, 0), NOW) == "3h ago"
    assert format_elapsed(datetime(2024, 1, 8, 12, 0), NOW) == "2d ago"
    assert format_elapsed(datetime(2023, 12, 1), NOW) == "2023-12-01"


def test_format_due_hides_midnight():
    assert format_due(datetime(2024, 1, 8), colorize=False) == "Mon 2024-01-08"
    assert format_due(datetime(2024, 1, 8, 9, 30), colorize=False) == "Mon 2024-01-08 09:30"
    assert format_due(None) == ""


def test_format_occurrence():
    occ = TaskOccurrence(
        id="abcdef123456",
        title="Water Plants",
        created_at=NOW,
        due_date=datetime(2024, 1, 8),
        tags=("home",),
    )
    assert format_occurrence(occ) == "water plants Mon 2024-01-08 #home [abcdef12]"
    assert format_occurrence(occ, show_id=False) == "water plants Mon 2024-01-08 #home"


def test_format_streak():
    state = StreakState(
        current_streak=4, longest_streak=9, is_completed_today=True, days_since_last_completion=0
    )
    assert format_streak(state) == "streak 4  best 9  ✓ today  last today"
    assert format_streak(StreakState()) == "streak 0  best 0  □ today  last never"


def test_format_status():
    assert format_status("✓", "done", "abcdef123456") == "✓ done [abcdef12]"
    assert format_status("+", "added") == "+ added"


def test_format_streak_shows_deadline():
    on_grace = StreakState(
        current_streak=3,
        longest_streak=3,
        days_since_last_completion=2,
        streak_safe_until=date(2024, 1, 11),
        is_in_grace_period=True,
    )
    assert format_streak(on_grace).endswith("last 2d ago  grace until Thu 2024-01-11")

    pending = StreakState(
        current_streak=3,
        longest_streak=3,
        days_since_last_completion=1,
        streak_safe_until=date(2024, 1, 10),
    )
    assert format_streak(pending).endswith("safe until Wed 2024-01-10")
