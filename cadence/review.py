import logging
from datetime import datetime

from fncli import cli

from . import config
from .core.errors import NotFoundError, ValidationError
from .core.models import TaskOccurrence, TaskType
from .lib import clock
from .lib.errors import echo
from .lib.format import format_elapsed, format_occurrence, format_status
from .nudges import due_for_review, record_nudge, should_suggest_archive
from .ports import SomedayStore
from .store import SqliteStore

__all__ = ["nudge_task", "someday_review"]

logger = logging.getLogger(__name__)


def someday_review(now: datetime, store: SomedayStore | None = None) -> list[TaskOccurrence]:
    store = store or SqliteStore()
    return due_for_review(store.list_someday(), config.get_nudge_interval_days(), now)


def nudge_task(
    occurrence_id: str, now: datetime, store: SomedayStore | None = None
) -> TaskOccurrence:
    store = store or SqliteStore()
    task = store.load_occurrence(occurrence_id)
    if task is None:
        raise NotFoundError(f"no occurrence '{occurrence_id}'")
    if task.type != TaskType.SOMEDAY:
        raise ValidationError(f"'{task.title}' is not a someday task")
    nudged = record_nudge(task, now)
    store.update_occurrence(nudged)
    logger.debug("nudged %s (%d)", occurrence_id, nudged.nudge_count)
    return nudged


@cli("cadence")
def review() -> None:
    """List someday tasks due for review"""
    now = clock.now()
    due = someday_review(now)
    if not due:
        echo("nothing to review")
        return
    max_nudges = config.get_max_nudge_count()
    for task in due:
        since = task.last_nudge_at or task.created_at
        hint = "  consider archiving" if should_suggest_archive(task, max_nudges) else ""
        echo(f"  {format_occurrence(task)}  {format_elapsed(since, now)}{hint}")


@cli("cadence")
def nudge(occurrence_id: str) -> None:
    """Mark a someday task as reviewed"""
    nudged = nudge_task(occurrence_id, clock.now())
    echo(format_status("↻", f"{nudged.title} (nudge {nudged.nudge_count})", nudged.id))
    if should_suggest_archive(nudged, config.get_max_nudge_count()):
        echo("  nudged often; consider `cadence archive`")
