"""Persistence port the engine depends on.

The engine reads through these methods and hands back a `WriteSet`; it never
writes anything itself. Implementations must commit a write-set atomically and
serialize completions per occurrence id.
"""

from typing import Protocol

from .core.models import (
    CompletionRecord,
    OccurrenceTemplate,
    RecurrencePattern,
    TaskOccurrence,
    WriteSet,
)


class OccurrenceStore(Protocol):
    def load_occurrence(self, occurrence_id: str) -> TaskOccurrence | None: ...

    def load_pattern(self, group_id: str) -> RecurrencePattern | None: ...

    def load_template(self, group_id: str) -> OccurrenceTemplate | None: ...

    def load_completion_records(self, group_id: str) -> list[CompletionRecord]: ...

    def apply(self, write_set: WriteSet) -> None:
        """Commit occurrence update, ledger append, new occurrence and pattern together.

        Raises AlreadyCompletedError if the occurrence was completed concurrently,
        PersistenceError for storage failures. Nothing is committed in either case.
        """
        ...

    def add_occurrence(self, occurrence: TaskOccurrence) -> None: ...

    def update_occurrence(self, occurrence: TaskOccurrence) -> None:
        """Persist status and nudge fields, only while the stored row is still active.

        Raises AlreadyCompletedError or InvalidTransitionError when the row has
        moved to a terminal status since it was loaded.
        """
        ...


class SomedayStore(Protocol):
    def list_someday(self) -> list[TaskOccurrence]: ...

    def load_occurrence(self, occurrence_id: str) -> TaskOccurrence | None: ...

    def update_occurrence(self, occurrence: TaskOccurrence) -> None: ...
