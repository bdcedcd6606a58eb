import dataclasses
from collections.abc import Iterable
from datetime import datetime, timedelta

from .core.errors import ValidationError
from .core.models import ACTIVE_STATUSES, TaskOccurrence, TaskType

__all__ = [
    "due_for_review",
    "is_due_for_review",
    "record_nudge",
    "review_interval",
    "should_suggest_archive",
]


def is_due_for_review(task: TaskOccurrence, nudge_interval_days: int, now: datetime) -> bool:
    if nudge_interval_days < 0:
        raise ValidationError(f"nudge interval must be >= 0, got {nudge_interval_days}")
    since = task.last_nudge_at or task.created_at
    return now - since >= timedelta(days=nudge_interval_days)


def record_nudge(task: TaskOccurrence, now: datetime) -> TaskOccurrence:
    return dataclasses.replace(task, last_nudge_at=now, nudge_count=task.nudge_count + 1)


def should_suggest_archive(task: TaskOccurrence, max_nudge_count: int) -> bool:
    return task.nudge_count >= max_nudge_count


def review_interval(task: TaskOccurrence, default_days: int) -> int:
    """Per-task threshold when set, otherwise the configured default."""
    if task.nudge_threshold_days is not None:
        return task.nudge_threshold_days
    return default_days


def due_for_review(
    tasks: Iterable[TaskOccurrence], default_interval_days: int, now: datetime
) -> list[TaskOccurrence]:
    """Active someday tasks whose review interval has elapsed, stalest first."""
    due = [
        t
        for t in tasks
        if t.type == TaskType.SOMEDAY
        and t.status in ACTIVE_STATUSES
        and is_due_for_review(t, review_interval(t, default_interval_days), now)
    ]
    return sorted(due, key=lambda t: t.last_nudge_at or t.created_at)
