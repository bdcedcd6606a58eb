import dataclasses
from datetime import date, datetime
from enum import StrEnum


class RecurrenceKind(StrEnum):
    FIXED_SCHEDULE = "fixed_schedule"
    AFTER_COMPLETION = "after_completion"


class IntervalUnit(StrEnum):
    HOURS = "hours"
    DAYS = "days"
    WEEKS = "weeks"
    MONTHS = "months"


class TaskStatus(StrEnum):
    READY = "ready"
    IN_PROGRESS = "in_progress"
    BLOCKED = "blocked"
    COMPLETED = "completed"
    ARCHIVED = "archived"


class TaskType(StrEnum):
    TASK = "task"
    HABIT = "habit"
    RECURRING = "recurring"
    SOMEDAY = "someday"


ACTIVE_STATUSES = frozenset({TaskStatus.READY, TaskStatus.IN_PROGRESS, TaskStatus.BLOCKED})
TERMINAL_STATUSES = frozenset({TaskStatus.COMPLETED, TaskStatus.ARCHIVED})

LAST_DAY_OF_MONTH = -1


@dataclasses.dataclass(frozen=True)
class RecurrencePattern:
    group_id: str
    kind: RecurrenceKind
    interval_unit: IntervalUnit
    interval_value: int
    anchor_date: datetime | None = None
    excluded_weekdays: frozenset[int] = frozenset()
    day_of_month: int | None = None
    end_date: datetime | None = None
    max_occurrence_count: int | None = None
    occurrence_count: int = 1
    next_due_date: datetime | None = None
    last_generated_at: datetime | None = None

    @property
    def is_one_time(self) -> bool:
        return self.interval_value == 0


@dataclasses.dataclass(frozen=True)
class HabitConfig:
    schedule_days: frozenset[int] = frozenset()
    grace_period_days: int = 0


@dataclasses.dataclass(frozen=True)
class OccurrenceTemplate:
    """Immutable snapshot of a recurrence group's descriptive fields.

    Captured once when the group is created and re-stamped onto every
    generated occurrence.
    """

    group_id: str
    title: str
    description: str | None = None
    type: TaskType = TaskType.RECURRING
    parent_id: str | None = None
    tags: tuple[str, ...] = ()
    estimated_minutes: int | None = None
    habit: HabitConfig | None = None


@dataclasses.dataclass(frozen=True)
class TaskOccurrence:
    id: str
    title: str
    created_at: datetime
    group_id: str | None = None
    status: TaskStatus = TaskStatus.READY
    due_date: datetime | None = None
    completed_at: datetime | None = None
    completed_count: int = 0
    description: str | None = None
    type: TaskType = TaskType.TASK
    parent_id: str | None = None
    tags: tuple[str, ...] = ()
    estimated_minutes: int | None = None
    last_nudge_at: datetime | None = None
    nudge_count: int = 0
    nudge_threshold_days: int | None = None


@dataclasses.dataclass(frozen=True)
class CompletionRecord:
    id: str
    group_id: str | None
    occurrence_id: str
    completed_at: datetime
    was_late: bool = False
    was_retroactive: bool = False


@dataclasses.dataclass(frozen=True)
class WriteSet:
    """Everything one completion event changes, committed as a single transaction."""

    occurrence: TaskOccurrence
    completion: CompletionRecord
    new_occurrence: TaskOccurrence | None = None
    pattern: RecurrencePattern | None = None


@dataclasses.dataclass(frozen=True)
class StreakState:
    current_streak: int = 0
    longest_streak: int = 0
    is_completed_today: bool = False
    days_since_last_completion: int | None = None
    streak_safe_until: date | None = None
    is_in_grace_period: bool = False
