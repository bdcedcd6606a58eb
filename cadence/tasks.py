import dataclasses
import logging
import uuid
from datetime import datetime

from fncli import UsageError, cli

from . import recurrence
from .core.errors import NotFoundError, ValidationError
from .core.models import (
    HabitConfig,
    OccurrenceTemplate,
    RecurrenceKind,
    RecurrencePattern,
    TaskOccurrence,
    TaskStatus,
    TaskType,
    WriteSet,
)
from .generator import archive_occurrence, on_occurrence_completed, stamp_occurrence, transition
from .lib import clock
from .lib.dates import next_allowed_weekday, parse_when, with_day_of_month
from .lib.errors import echo
from .lib.format import format_due, format_occurrence, format_status
from .lib.parsing import parse_kind, parse_unit, parse_weekdays
from .ports import OccurrenceStore
from .store import SqliteStore

__all__ = [
    "add_task",
    "archive_task",
    "complete_occurrence",
    "create_recurrence",
    "get_occurrence",
    "set_status",
]

logger = logging.getLogger(__name__)


# ── domain ───────────────────────────────────────────────────────────────────


def get_occurrence(occurrence_id: str, store: OccurrenceStore | None = None) -> TaskOccurrence:
    store = store or SqliteStore()
    occurrence = store.load_occurrence(occurrence_id)
    if occurrence is None:
        raise NotFoundError(f"no occurrence '{occurrence_id}'")
    return occurrence


def complete_occurrence(
    occurrence_id: str,
    completed_at: datetime,
    *,
    now: datetime,
    is_retroactive: bool = False,
    store: OccurrenceStore | None = None,
) -> WriteSet:
    """Complete one occurrence and commit the resulting write-set.

    Safe to call again after a failed commit: the write-set is recomputed from
    the stored state and the already-completed guard rejects duplicates.
    """
    store = store or SqliteStore()
    occurrence = get_occurrence(occurrence_id, store)

    pattern = template = None
    if occurrence.group_id is not None:
        pattern = store.load_pattern(occurrence.group_id)
        template = store.load_template(occurrence.group_id)

    write_set = on_occurrence_completed(
        occurrence,
        completed_at,
        is_retroactive,
        now=now,
        pattern=pattern,
        template=template,
    )
    store.apply(write_set)
    logger.info(
        "completed %s%s",
        occurrence_id,
        f", next due {write_set.new_occurrence.due_date}" if write_set.new_occurrence else "",
    )
    return write_set


def set_status(
    occurrence_id: str, status: TaskStatus, store: OccurrenceStore | None = None
) -> TaskOccurrence:
    if status == TaskStatus.COMPLETED:
        raise ValidationError("use complete_occurrence to complete an occurrence")
    store = store or SqliteStore()
    current = get_occurrence(occurrence_id, store)
    updated = transition(current, status)
    if updated is not current:
        store.update_occurrence(updated)
    return updated


def archive_task(occurrence_id: str, store: OccurrenceStore | None = None) -> TaskOccurrence:
    store = store or SqliteStore()
    current = get_occurrence(occurrence_id, store)
    archived = archive_occurrence(current)
    if archived is not current:
        store.update_occurrence(archived)
    logger.info("archived %s", occurrence_id)
    return archived


def _first_due(pattern: RecurrencePattern, now: datetime) -> datetime:
    if pattern.kind == RecurrenceKind.AFTER_COMPLETION or pattern.anchor_date is None:
        return now
    first = pattern.anchor_date
    if pattern.day_of_month is not None:
        first = with_day_of_month(first, pattern.day_of_month)
        if first < pattern.anchor_date:
            nxt = recurrence.resolve_next_fixed_schedule(pattern, pattern.anchor_date)
            first = nxt if nxt is not None else pattern.anchor_date
    return next_allowed_weekday(first, pattern.excluded_weekdays)


def create_recurrence(
    template: OccurrenceTemplate,
    pattern: RecurrencePattern,
    *,
    now: datetime,
    first_due: datetime | None = None,
    store: SqliteStore | None = None,
) -> TaskOccurrence:
    """Validate a pattern and persist a new group with its first occurrence."""
    if template.group_id != pattern.group_id:
        raise ValidationError("template and pattern belong to different groups")
    recurrence.validate_pattern(pattern)
    store = store or SqliteStore()

    due = first_due or _first_due(pattern, now)
    pattern = dataclasses.replace(
        pattern,
        occurrence_count=1,
        next_due_date=None if pattern.is_one_time else due,
        last_generated_at=now,
    )
    first = stamp_occurrence(template, 1, due, now)
    store.create_group(template, pattern, first)
    logger.info("created group %s, first due %s", template.group_id, due)
    return first


def add_task(
    title: str,
    *,
    now: datetime,
    task_type: TaskType = TaskType.TASK,
    due_date: datetime | None = None,
    tags: tuple[str, ...] = (),
    store: OccurrenceStore | None = None,
) -> TaskOccurrence:
    """Create a one-time task outside any recurrence group."""
    if not title.strip():
        raise ValidationError("task title is empty")
    store = store or SqliteStore()
    task = TaskOccurrence(
        id=str(uuid.uuid4()),
        title=title.strip(),
        created_at=now,
        type=task_type,
        due_date=due_date,
        tags=tags,
    )
    store.add_occurrence(task)
    logger.info("added %s task %s", task_type.value, task.id)
    return task


# ── cli ──────────────────────────────────────────────────────────────────────


@cli("cadence")
def done(occurrence_id: str, at: str | None = None, retro: bool = False) -> None:
    """Complete an occurrence"""
    now = clock.now()
    completed_at = parse_when(at, now) if at else now
    write_set = complete_occurrence(
        occurrence_id, completed_at, now=now, is_retroactive=retro or completed_at < now
    )
    late = " (late)" if write_set.completion.was_late else ""
    echo(format_status("✓", f"{write_set.occurrence.title}{late}", write_set.occurrence.id))
    if write_set.new_occurrence:
        echo(f"  next: {format_due(write_set.new_occurrence.due_date)}")


@cli("cadence")
def archive(occurrence_id: str) -> None:
    """Archive an occurrence without spawning the next one"""
    archived = archive_task(occurrence_id)
    echo(format_status("×", archived.title, archived.id))


@cli("cadence")
def status(occurrence_id: str, to: str) -> None:
    """Move an occurrence between ready, in_progress and blocked"""
    try:
        target = TaskStatus(to.lower())
    except ValueError:
        raise UsageError(f"unknown status '{to}'") from None
    updated = set_status(occurrence_id, target)
    echo(format_status("→", f"{updated.title} {updated.status.value}", updated.id))


@cli("cadence")
def repeat(
    title: str,
    kind: str,
    unit: str,
    every: int,
    anchor: str | None = None,
    exclude: str | None = None,
    day: int | None = None,
    until: str | None = None,
    times: int | None = None,
    habit: bool = False,
    grace: int = 0,
    days: str | None = None,
) -> None:
    """Create a recurring task or habit"""
    now = clock.now()
    group_id = str(uuid.uuid4())
    habit_config = None
    if habit:
        habit_config = HabitConfig(
            schedule_days=parse_weekdays(days) if days else frozenset(),
            grace_period_days=grace,
        )
    template = OccurrenceTemplate(
        group_id=group_id,
        title=title,
        type=TaskType.HABIT if habit else TaskType.RECURRING,
        habit=habit_config,
    )
    pattern = RecurrencePattern(
        group_id=group_id,
        kind=parse_kind(kind),
        interval_unit=parse_unit(unit),
        interval_value=every,
        anchor_date=parse_when(anchor, now) if anchor else None,
        excluded_weekdays=parse_weekdays(exclude) if exclude else frozenset(),
        day_of_month=day,
        end_date=parse_when(until, now) if until else None,
        max_occurrence_count=times,
    )
    first = create_recurrence(template, pattern, now=now)
    echo(format_status("+", format_occurrence(first, show_id=False), first.id))
    echo(f"  group {group_id}")


@cli("cadence", flags={"due": ["-d", "--due"], "tag": ["-t", "--tag"]})
def add(title: str, due: str | None = None, tag: str | None = None, someday: bool = False) -> None:
    """Add a one-time or someday task"""
    now = clock.now()
    task = add_task(
        title,
        now=now,
        task_type=TaskType.SOMEDAY if someday else TaskType.TASK,
        due_date=parse_when(due, now) if due else None,
        tags=tuple(t.strip() for t in tag.split(",") if t.strip()) if tag else (),
    )
    echo(format_status("□", format_occurrence(task, show_id=False), task.id))
