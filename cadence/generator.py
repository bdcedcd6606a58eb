"""Turns one completion event into a write-set.

`on_occurrence_completed` never touches storage. It returns the completed
occurrence, its ledger record, and (when the group's pattern allows another
occurrence) the freshly stamped next occurrence plus the advanced pattern. The
persistence collaborator commits all of it in one transaction.

Generated ids are derived from the group and occurrence ordinal, so a retried
transaction recomputes exactly the same write-set.
"""

import dataclasses
import logging
import uuid
from datetime import datetime

from .core.errors import AlreadyCompletedError, InvalidTransitionError, ValidationError
from .core.models import (
    ACTIVE_STATUSES,
    CompletionRecord,
    HabitConfig,
    OccurrenceTemplate,
    RecurrencePattern,
    TaskOccurrence,
    TaskStatus,
    WriteSet,
)
from .lib.dates import calendar_days_between
from .recurrence import is_exhausted, resolve_next, validate_pattern

__all__ = [
    "archive_occurrence",
    "capture_template",
    "is_due_today",
    "is_overdue",
    "on_occurrence_completed",
    "stamp_occurrence",
    "transition",
]

logger = logging.getLogger(__name__)

_ID_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_URL, "cadence/occurrences")


def _occurrence_id(group_id: str, ordinal: int) -> str:
    return str(uuid.uuid5(_ID_NAMESPACE, f"{group_id}:{ordinal}"))


def _completion_id(occurrence_id: str) -> str:
    return str(uuid.uuid5(_ID_NAMESPACE, f"completion:{occurrence_id}"))


def transition(occurrence: TaskOccurrence, status: TaskStatus) -> TaskOccurrence:
    """Move an occurrence to `status`.

    Ready, in-progress and blocked move freely among each other and may end in
    completed or archived. Completed and archived are terminal.
    """
    if occurrence.status == status:
        return occurrence
    if occurrence.status == TaskStatus.COMPLETED:
        raise AlreadyCompletedError(occurrence.id)
    if occurrence.status not in ACTIVE_STATUSES:
        raise InvalidTransitionError(occurrence.id, occurrence.status, status)
    return dataclasses.replace(occurrence, status=status)


def archive_occurrence(occurrence: TaskOccurrence) -> TaskOccurrence:
    return transition(occurrence, TaskStatus.ARCHIVED)


def capture_template(
    occurrence: TaskOccurrence, habit: HabitConfig | None = None
) -> OccurrenceTemplate:
    if occurrence.group_id is None:
        raise ValidationError(f"occurrence '{occurrence.id}' is not part of a recurrence group")
    return OccurrenceTemplate(
        group_id=occurrence.group_id,
        title=occurrence.title,
        description=occurrence.description,
        type=occurrence.type,
        parent_id=occurrence.parent_id,
        tags=occurrence.tags,
        estimated_minutes=occurrence.estimated_minutes,
        habit=habit,
    )


def stamp_occurrence(
    template: OccurrenceTemplate, ordinal: int, due_date: datetime | None, now: datetime
) -> TaskOccurrence:
    return TaskOccurrence(
        id=_occurrence_id(template.group_id, ordinal),
        group_id=template.group_id,
        title=template.title,
        description=template.description,
        type=template.type,
        parent_id=template.parent_id,
        tags=template.tags,
        estimated_minutes=template.estimated_minutes,
        status=TaskStatus.READY,
        due_date=due_date,
        completed_at=None,
        completed_count=0,
        created_at=now,
    )


def on_occurrence_completed(
    occurrence: TaskOccurrence,
    completed_at: datetime,
    is_retroactive: bool = False,
    *,
    now: datetime,
    pattern: RecurrencePattern | None = None,
    template: OccurrenceTemplate | None = None,
) -> WriteSet:
    if occurrence.status == TaskStatus.COMPLETED:
        raise AlreadyCompletedError(occurrence.id)
    if pattern is not None:
        validate_pattern(pattern)
        if pattern.group_id != occurrence.group_id:
            raise ValidationError(
                f"pattern for group '{pattern.group_id}' does not match "
                f"occurrence group '{occurrence.group_id}'"
            )

    completed = dataclasses.replace(
        transition(occurrence, TaskStatus.COMPLETED),
        completed_at=completed_at,
        completed_count=occurrence.completed_count + 1,
    )
    record = CompletionRecord(
        id=_completion_id(occurrence.id),
        group_id=occurrence.group_id,
        occurrence_id=occurrence.id,
        completed_at=completed_at,
        was_late=occurrence.due_date is not None and completed_at > occurrence.due_date,
        was_retroactive=is_retroactive,
    )

    if pattern is None or pattern.interval_value == 0 or is_exhausted(pattern):
        return WriteSet(occurrence=completed, completion=record)

    next_due = resolve_next(pattern, completed_at, now)
    if next_due is None:
        logger.debug("group %s exhausted after %s", pattern.group_id, occurrence.id)
        return WriteSet(occurrence=completed, completion=record)

    ordinal = pattern.occurrence_count + 1
    new_occurrence = stamp_occurrence(
        template or capture_template(occurrence), ordinal, next_due, now
    )
    advanced = dataclasses.replace(
        pattern,
        occurrence_count=ordinal,
        next_due_date=next_due,
        last_generated_at=now,
    )
    logger.debug("group %s: occurrence #%d due %s", pattern.group_id, ordinal, next_due)
    return WriteSet(
        occurrence=completed,
        completion=record,
        new_occurrence=new_occurrence,
        pattern=advanced,
    )


def is_overdue(occurrence: TaskOccurrence, now: datetime) -> bool:
    if occurrence.due_date is None or occurrence.status not in ACTIVE_STATUSES:
        return False
    return calendar_days_between(occurrence.due_date, now) > 0


def is_due_today(occurrence: TaskOccurrence, now: datetime) -> bool:
    if occurrence.due_date is None:
        return False
    return calendar_days_between(occurrence.due_date, now) == 0
