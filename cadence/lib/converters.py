import json
from datetime import datetime
from typing import Any, cast

from cadence.core.models import (
    CompletionRecord,
    HabitConfig,
    IntervalUnit,
    OccurrenceTemplate,
    RecurrenceKind,
    RecurrencePattern,
    TaskOccurrence,
    TaskStatus,
    TaskType,
)

Row = tuple[object, ...]

OCCURRENCE_COLS = (
    "id, title, created_at, group_id, status, due_date, completed_at, completed_count, "
    "description, type, parent_id, tags, estimated_minutes, last_nudge_at, nudge_count, "
    "nudge_threshold_days"
)
PATTERN_COLS = (
    "group_id, kind, interval_unit, interval_value, anchor_date, excluded_weekdays, "
    "day_of_month, end_date, max_occurrence_count, occurrence_count, next_due_date, "
    "last_generated_at"
)
TEMPLATE_COLS = (
    "group_id, title, description, type, parent_id, tags, estimated_minutes, "
    "schedule_days, grace_period_days"
)
COMPLETION_COLS = "id, group_id, occurrence_id, completed_at, was_late, was_retroactive"


def weekdays_to_bitset(days: frozenset[int]) -> int:
    """Sunday=0 weekday set as a bitset (bit n set for weekday n)."""
    bits = 0
    for d in days:
        bits |= 1 << d
    return bits


def bitset_to_weekdays(bits: int | None) -> frozenset[int]:
    if not bits:
        return frozenset()
    return frozenset(d for d in range(7) if bits & (1 << d))


def _dt(val: datetime | None) -> str | None:
    return val.isoformat() if val is not None else None


def _parse_datetime_optional(val) -> datetime | None:
    if isinstance(val, str) and val:
        return datetime.fromisoformat(val)
    return None


def _parse_datetime(val) -> datetime:
    parsed = _parse_datetime_optional(val)
    if parsed is None:
        raise ValueError(f"expected ISO timestamp, got {val!r}")
    return parsed


def _tags(val) -> tuple[str, ...]:
    if not val:
        return ()
    return tuple(json.loads(cast(str, val)))


def _int_optional(val) -> int | None:
    return cast(int, val) if val is not None else None


def row_to_occurrence(row: Row) -> TaskOccurrence:
    """
    Converts a raw row from the occurrences table into a TaskOccurrence.
    Expected row format: OCCURRENCE_COLS order.
    """
    return TaskOccurrence(
        id=cast(str, row[0]),
        title=cast(str, row[1]),
        created_at=_parse_datetime(row[2]),
        group_id=cast(str, row[3]) if row[3] is not None else None,
        status=TaskStatus(cast(str, row[4])),
        due_date=_parse_datetime_optional(row[5]),
        completed_at=_parse_datetime_optional(row[6]),
        completed_count=cast(int, row[7]),
        description=cast(str, row[8]) if row[8] is not None else None,
        type=TaskType(cast(str, row[9])),
        parent_id=cast(str, row[10]) if row[10] is not None else None,
        tags=_tags(row[11]),
        estimated_minutes=_int_optional(row[12]),
        last_nudge_at=_parse_datetime_optional(row[13]),
        nudge_count=cast(int, row[14]),
        nudge_threshold_days=_int_optional(row[15]),
    )


def occurrence_to_params(occ: TaskOccurrence) -> tuple[Any, ...]:
    return (
        occ.id,
        occ.title,
        _dt(occ.created_at),
        occ.group_id,
        occ.status.value,
        _dt(occ.due_date),
        _dt(occ.completed_at),
        occ.completed_count,
        occ.description,
        occ.type.value,
        occ.parent_id,
        json.dumps(list(occ.tags)),
        occ.estimated_minutes,
        _dt(occ.last_nudge_at),
        occ.nudge_count,
        occ.nudge_threshold_days,
    )


def row_to_pattern(row: Row) -> RecurrencePattern:
    return RecurrencePattern(
        group_id=cast(str, row[0]),
        kind=RecurrenceKind(cast(str, row[1])),
        interval_unit=IntervalUnit(cast(str, row[2])),
        interval_value=cast(int, row[3]),
        anchor_date=_parse_datetime_optional(row[4]),
        excluded_weekdays=bitset_to_weekdays(cast(int | None, row[5])),
        day_of_month=_int_optional(row[6]),
        end_date=_parse_datetime_optional(row[7]),
        max_occurrence_count=_int_optional(row[8]),
        occurrence_count=cast(int, row[9]),
        next_due_date=_parse_datetime_optional(row[10]),
        last_generated_at=_parse_datetime_optional(row[11]),
    )


def pattern_to_params(p: RecurrencePattern) -> tuple[Any, ...]:
    return (
        p.group_id,
        p.kind.value,
        p.interval_unit.value,
        p.interval_value,
        _dt(p.anchor_date),
        weekdays_to_bitset(p.excluded_weekdays),
        p.day_of_month,
        _dt(p.end_date),
        p.max_occurrence_count,
        p.occurrence_count,
        _dt(p.next_due_date),
        _dt(p.last_generated_at),
    )


def pattern_to_dict(p: RecurrencePattern) -> dict[str, Any]:
    """Serialized form of a pattern: enum values, ISO timestamps, weekday bitset."""
    return dict(zip([c.strip() for c in PATTERN_COLS.split(",")], pattern_to_params(p)))


def dict_to_pattern(data: dict[str, Any]) -> RecurrencePattern:
    return row_to_pattern(tuple(data.get(c.strip()) for c in PATTERN_COLS.split(",")))


def row_to_template(row: Row) -> OccurrenceTemplate:
    habit = None
    if row[7] is not None or row[8] is not None:
        habit = HabitConfig(
            schedule_days=bitset_to_weekdays(cast(int | None, row[7])),
            grace_period_days=cast(int, row[8]) if row[8] is not None else 0,
        )
    return OccurrenceTemplate(
        group_id=cast(str, row[0]),
        title=cast(str, row[1]),
        description=cast(str, row[2]) if row[2] is not None else None,
        type=TaskType(cast(str, row[3])),
        parent_id=cast(str, row[4]) if row[4] is not None else None,
        tags=_tags(row[5]),
        estimated_minutes=_int_optional(row[6]),
        habit=habit,
    )


def template_to_params(t: OccurrenceTemplate) -> tuple[Any, ...]:
    return (
        t.group_id,
        t.title,
        t.description,
        t.type.value,
        t.parent_id,
        json.dumps(list(t.tags)),
        t.estimated_minutes,
        weekdays_to_bitset(t.habit.schedule_days) if t.habit else None,
        t.habit.grace_period_days if t.habit else None,
    )


def row_to_completion(row: Row) -> CompletionRecord:
    return CompletionRecord(
        id=cast(str, row[0]),
        group_id=cast(str, row[1]) if row[1] is not None else None,
        occurrence_id=cast(str, row[2]),
        completed_at=_parse_datetime(row[3]),
        was_late=bool(row[4]),
        was_retroactive=bool(row[5]),
    )


def completion_to_params(c: CompletionRecord) -> tuple[Any, ...]:
    return (
        c.id,
        c.group_id,
        c.occurrence_id,
        _dt(c.completed_at),
        int(c.was_late),
        int(c.was_retroactive),
    )
