"""SQLite implementation of the persistence port and the completion ledger."""

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from . import db
from .core.errors import (
    AlreadyCompletedError,
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    PersistenceError,
)
from .core.models import (
    ACTIVE_STATUSES,
    CompletionRecord,
    OccurrenceTemplate,
    RecurrencePattern,
    TaskOccurrence,
    TaskStatus,
    TaskType,
    WriteSet,
)
from .lib.converters import (
    COMPLETION_COLS,
    OCCURRENCE_COLS,
    PATTERN_COLS,
    TEMPLATE_COLS,
    completion_to_params,
    occurrence_to_params,
    pattern_to_params,
    row_to_completion,
    row_to_occurrence,
    row_to_pattern,
    row_to_template,
    template_to_params,
)

__all__ = ["SqliteStore"]

logger = logging.getLogger(__name__)


def _placeholders(cols: str) -> str:
    return ", ".join("?" * len(cols.split(",")))


@contextmanager
def _storage_errors(action: str) -> Iterator[None]:
    try:
        yield
    except sqlite3.Error as e:
        logger.error("%s failed: %s", action, e)
        raise PersistenceError(f"{action} failed: {e}") from e


class SqliteStore:
    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path

    # ── reads ────────────────────────────────────────────────────────────────

    def load_occurrence(self, occurrence_id: str) -> TaskOccurrence | None:
        with _storage_errors("load occurrence"), db.get_db(self.db_path) as conn:
            row = conn.execute(
                f"SELECT {OCCURRENCE_COLS} FROM occurrences WHERE id = ?",  # noqa: S608
                (occurrence_id,),
            ).fetchone()
        return row_to_occurrence(row) if row else None

    def load_pattern(self, group_id: str) -> RecurrencePattern | None:
        with _storage_errors("load pattern"), db.get_db(self.db_path) as conn:
            row = conn.execute(
                f"SELECT {PATTERN_COLS} FROM patterns WHERE group_id = ?",  # noqa: S608
                (group_id,),
            ).fetchone()
        return row_to_pattern(row) if row else None

    def load_template(self, group_id: str) -> OccurrenceTemplate | None:
        with _storage_errors("load template"), db.get_db(self.db_path) as conn:
            row = conn.execute(
                f"SELECT {TEMPLATE_COLS} FROM templates WHERE group_id = ?",  # noqa: S608
                (group_id,),
            ).fetchone()
        return row_to_template(row) if row else None

    def load_completion_records(self, group_id: str) -> list[CompletionRecord]:
        with _storage_errors("load completions"), db.get_db(self.db_path) as conn:
            rows = conn.execute(
                f"SELECT {COMPLETION_COLS} FROM completions WHERE group_id = ? "  # noqa: S608
                "ORDER BY completed_at DESC, id DESC",
                (group_id,),
            ).fetchall()
        return [row_to_completion(row) for row in rows]

    def list_group_occurrences(self, group_id: str) -> list[TaskOccurrence]:
        with _storage_errors("list occurrences"), db.get_db(self.db_path) as conn:
            rows = conn.execute(
                f"SELECT {OCCURRENCE_COLS} FROM occurrences WHERE group_id = ? "  # noqa: S608
                "ORDER BY created_at, due_date",
                (group_id,),
            ).fetchall()
        return [row_to_occurrence(row) for row in rows]

    def list_someday(self) -> list[TaskOccurrence]:
        with _storage_errors("list someday tasks"), db.get_db(self.db_path) as conn:
            rows = conn.execute(
                f"SELECT {OCCURRENCE_COLS} FROM occurrences "  # noqa: S608
                "WHERE type = ? AND status NOT IN (?, ?) ORDER BY created_at",
                (TaskType.SOMEDAY.value, TaskStatus.COMPLETED.value, TaskStatus.ARCHIVED.value),
            ).fetchall()
        return [row_to_occurrence(row) for row in rows]

    # ── ledger ───────────────────────────────────────────────────────────────

    def query(self, group_id: str) -> list[CompletionRecord]:
        return self.load_completion_records(group_id)

    def append(self, record: CompletionRecord) -> None:
        with _storage_errors("append completion"), db.transaction(self.db_path) as conn:
            self._insert_completion(conn, record)

    # ── writes ───────────────────────────────────────────────────────────────

    def create_group(
        self,
        template: OccurrenceTemplate,
        pattern: RecurrencePattern,
        first: TaskOccurrence,
    ) -> None:
        """Persist a new recurrence group with its first occurrence."""
        with _storage_errors("create group"), db.transaction(self.db_path) as conn:
            try:
                conn.execute(
                    f"INSERT INTO templates ({TEMPLATE_COLS}) VALUES ({_placeholders(TEMPLATE_COLS)})",  # noqa: S608
                    template_to_params(template),
                )
            except sqlite3.IntegrityError as e:
                raise ConflictError(f"group '{template.group_id}' already exists") from e
            conn.execute(
                f"INSERT INTO patterns ({PATTERN_COLS}) VALUES ({_placeholders(PATTERN_COLS)})",  # noqa: S608
                pattern_to_params(pattern),
            )
            conn.execute(
                f"INSERT INTO occurrences ({OCCURRENCE_COLS}) VALUES ({_placeholders(OCCURRENCE_COLS)})",  # noqa: S608
                occurrence_to_params(first),
            )
        logger.debug("created group %s with occurrence %s", template.group_id, first.id)

    def add_occurrence(self, occurrence: TaskOccurrence) -> None:
        with _storage_errors("add occurrence"), db.transaction(self.db_path) as conn:
            try:
                conn.execute(
                    f"INSERT INTO occurrences ({OCCURRENCE_COLS}) "  # noqa: S608
                    f"VALUES ({_placeholders(OCCURRENCE_COLS)})",
                    occurrence_to_params(occurrence),
                )
            except sqlite3.IntegrityError as e:
                raise ConflictError(f"occurrence '{occurrence.id}' already exists") from e

    def update_occurrence(self, occurrence: TaskOccurrence) -> None:
        """Write status and nudge fields of an occurrence that is still active.

        A concurrent completion or archive wins: the row is left untouched and
        the matching StateError is raised.
        """
        active = sorted(s.value for s in ACTIVE_STATUSES)
        with _storage_errors("update occurrence"), db.transaction(self.db_path) as conn:
            cursor = conn.execute(
                "UPDATE occurrences SET status = ?, last_nudge_at = ?, nudge_count = ? "
                f"WHERE id = ? AND status IN ({_placeholders(','.join(active))})",  # noqa: S608
                (
                    occurrence.status.value,
                    occurrence.last_nudge_at.isoformat() if occurrence.last_nudge_at else None,
                    occurrence.nudge_count,
                    occurrence.id,
                    *active,
                ),
            )
            if cursor.rowcount == 0:
                row = conn.execute(
                    "SELECT status FROM occurrences WHERE id = ?", (occurrence.id,)
                ).fetchone()
                if row is None:
                    raise NotFoundError(f"no occurrence '{occurrence.id}'")
                if row[0] == TaskStatus.COMPLETED.value:
                    raise AlreadyCompletedError(occurrence.id)
                raise InvalidTransitionError(occurrence.id, row[0], occurrence.status.value)

    def apply(self, write_set: WriteSet) -> None:
        occ = write_set.occurrence
        with _storage_errors("apply completion"), db.transaction(self.db_path) as conn:
            cursor = conn.execute(
                "UPDATE occurrences SET status = ?, completed_at = ?, completed_count = ? "
                "WHERE id = ? AND status != ?",
                (
                    occ.status.value,
                    occ.completed_at.isoformat() if occ.completed_at else None,
                    occ.completed_count,
                    occ.id,
                    TaskStatus.COMPLETED.value,
                ),
            )
            if cursor.rowcount == 0:
                exists = conn.execute(
                    "SELECT 1 FROM occurrences WHERE id = ?", (occ.id,)
                ).fetchone()
                if not exists:
                    raise NotFoundError(f"no occurrence '{occ.id}'")
                raise AlreadyCompletedError(occ.id)

            self._insert_completion(conn, write_set.completion)

            if write_set.new_occurrence is not None:
                try:
                    conn.execute(
                        f"INSERT INTO occurrences ({OCCURRENCE_COLS}) "  # noqa: S608
                        f"VALUES ({_placeholders(OCCURRENCE_COLS)})",
                        occurrence_to_params(write_set.new_occurrence),
                    )
                except sqlite3.IntegrityError as e:
                    raise ConflictError(
                        f"occurrence '{write_set.new_occurrence.id}' already generated"
                    ) from e

            if write_set.pattern is not None:
                p = write_set.pattern
                conn.execute(
                    "UPDATE patterns SET occurrence_count = ?, next_due_date = ?, "
                    "last_generated_at = ? WHERE group_id = ?",
                    (
                        p.occurrence_count,
                        p.next_due_date.isoformat() if p.next_due_date else None,
                        p.last_generated_at.isoformat() if p.last_generated_at else None,
                        p.group_id,
                    ),
                )
        logger.debug(
            "committed completion of %s (spawned %s)",
            occ.id,
            write_set.new_occurrence.id if write_set.new_occurrence else None,
        )

    @staticmethod
    def _insert_completion(conn: sqlite3.Connection, record: CompletionRecord) -> None:
        try:
            conn.execute(
                f"INSERT INTO completions ({COMPLETION_COLS}) VALUES ({_placeholders(COMPLETION_COLS)})",  # noqa: S608
                completion_to_params(record),
            )
        except sqlite3.IntegrityError as e:
            raise AlreadyCompletedError(record.occurrence_id) from e
