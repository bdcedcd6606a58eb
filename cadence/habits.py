from datetime import datetime

from fncli import cli

from . import config
from .core.errors import NotFoundError
from .core.models import HabitConfig, StreakState
from .lib import clock
from .lib.errors import echo
from .lib.format import format_streak
from .ports import OccurrenceStore
from .store import SqliteStore
from .streaks import habit_streak

__all__ = ["group_streak"]


def group_streak(
    group_id: str, now: datetime, store: OccurrenceStore | None = None
) -> StreakState:
    """Streak state for a recurrence group, derived from its completion ledger.

    Groups without their own habit config fall back to the configured grace period.
    """
    store = store or SqliteStore()
    template = store.load_template(group_id)
    if template is None:
        raise NotFoundError(f"no recurrence group '{group_id}'")
    habit = template.habit or HabitConfig(grace_period_days=config.get_grace_period_days())
    records = store.load_completion_records(group_id)
    return habit_streak(records, habit, now.date())


@cli("cadence")
def streak(group_id: str) -> None:
    """Show streak for a habit group"""
    state = group_streak(group_id, clock.now())
    echo(format_streak(state))
