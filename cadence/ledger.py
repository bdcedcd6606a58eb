"""Append-only completion history per recurrence group.

Records are never updated or deleted, so anything derived from them
(streaks in particular) can always be recomputed from history alone.
"""

from collections import defaultdict
from collections.abc import Iterable
from datetime import date
from typing import Protocol

from .core.errors import ConflictError
from .core.models import CompletionRecord

__all__ = [
    "CompletionLedger",
    "InMemoryLedger",
    "completion_days",
    "newest_first",
]


class CompletionLedger(Protocol):
    def append(self, record: CompletionRecord) -> None: ...

    def query(self, group_id: str) -> list[CompletionRecord]:
        """Records for `group_id`, newest `completed_at` first."""
        ...


def newest_first(records: Iterable[CompletionRecord]) -> list[CompletionRecord]:
    return sorted(records, key=lambda r: (r.completed_at, r.id), reverse=True)


def completion_days(records: Iterable[CompletionRecord]) -> list[date]:
    """Distinct calendar days with at least one completion, ascending."""
    return sorted({r.completed_at.date() for r in records})


class InMemoryLedger:
    def __init__(self, records: Iterable[CompletionRecord] = ()):
        self._records: dict[str, list[CompletionRecord]] = defaultdict(list)
        self._ids: set[str] = set()
        for record in records:
            self.append(record)

    def append(self, record: CompletionRecord) -> None:
        if record.id in self._ids:
            raise ConflictError(f"completion '{record.id}' already recorded")
        self._ids.add(record.id)
        self._records[record.group_id or record.occurrence_id].append(record)

    def query(self, group_id: str) -> list[CompletionRecord]:
        return newest_first(self._records.get(group_id, []))

    def __len__(self) -> int:
        return len(self._ids)
