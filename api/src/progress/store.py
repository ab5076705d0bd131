"""Cassandra-backed progress store.

Exposes the three primitives the progression rules rely on:
- upsert by (user, chapter): each write statement names only the columns it
  owns, so a quiz result never clobbers the metadata blob and vice versa
- select by filter: one user's records, or every record of a chapter
- insert-append: the quiz attempt log

Writes are last-writer-wins per (user, chapter). There is no version check;
two concurrent saves of the same blob race and the later one wins.
Driver errors are not caught here and reach the caller.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

import structlog

from src.utils import dumps_json

from .models import ProgressRecord, QuizAttempt


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = structlog.get_logger(__name__)


class CassandraProgressStore:
    """Progress records and quiz attempts stored in Cassandra."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        # Reads
        self._get_record = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.user_progress
            WHERE user_id = ? AND chapter_id = ?
        """)
        self._list_user_records = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.user_progress WHERE user_id = ?
        """)
        self._list_chapter_records = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.user_progress WHERE chapter_id = ?
        """)

        # Column-scoped upserts
        self._upsert_quiz_pass = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.user_progress
            (user_id, chapter_id, module_id, completed, score, attempts, completed_at)
            VALUES (?, ?, ?, true, ?, ?, ?)
        """)
        self._upsert_quiz_failure = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.user_progress
            (user_id, chapter_id, module_id, completed, score, attempts)
            VALUES (?, ?, ?, false, ?, ?)
        """)
        self._upsert_completion = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.user_progress
            (user_id, chapter_id, module_id, completed, score, completed_at)
            VALUES (?, ?, ?, true, ?, ?)
        """)
        self._upsert_unlock = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.user_progress
            (user_id, chapter_id, module_id, unlocked_at)
            VALUES (?, ?, ?, ?)
        """)
        self._upsert_metadata = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.user_progress
            (user_id, chapter_id, module_id, metadata)
            VALUES (?, ?, ?, ?)
        """)
        self._reset_attempts = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.user_progress
            (user_id, chapter_id, module_id, completed, score, attempts, completed_at)
            VALUES (?, ?, ?, false, null, 0, null)
        """)

        # Attempt log
        self._insert_attempt = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.quiz_attempts
            (user_id, chapter_id, attempt_number, answers, score, passed, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """)
        self._list_attempts = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.quiz_attempts
            WHERE user_id = ? AND chapter_id = ?
        """)
        self._latest_attempt = self.session.prepare(f"""
            SELECT attempt_number FROM {self.keyspace}.quiz_attempts
            WHERE user_id = ? AND chapter_id = ? LIMIT 1
        """)

    # ==========================================================================
    # Reads
    # ==========================================================================

    async def get_record(self, user_id: UUID, chapter_id: int) -> ProgressRecord | None:
        result = await self.session.aexecute(self._get_record, [user_id, chapter_id])
        row = result.one()
        return ProgressRecord.from_row(row) if row else None

    async def list_records(self, user_id: UUID) -> list[ProgressRecord]:
        """All of a student's records, ordered by chapter."""
        result = await self.session.aexecute(self._list_user_records, [user_id])
        return [ProgressRecord.from_row(row) for row in result]

    async def list_chapter_records(self, chapter_id: int) -> list[ProgressRecord]:
        """Every student's record for one chapter."""
        result = await self.session.aexecute(self._list_chapter_records, [chapter_id])
        return [ProgressRecord.from_row(row) for row in result]

    # ==========================================================================
    # Upserts
    # ==========================================================================

    async def record_quiz_outcome(
        self,
        user_id: UUID,
        chapter_id: int,
        module_id: int,
        score: int,
        attempts: int,
        passed: bool,
        at: datetime,
    ) -> None:
        """Store a counted quiz attempt on the chapter record."""
        if passed:
            await self.session.aexecute(
                self._upsert_quiz_pass,
                [user_id, chapter_id, module_id, score, attempts, at],
            )
        else:
            await self.session.aexecute(
                self._upsert_quiz_failure,
                [user_id, chapter_id, module_id, score, attempts],
            )

    async def mark_completed(
        self,
        user_id: UUID,
        chapter_id: int,
        module_id: int,
        score: int,
        at: datetime,
    ) -> None:
        """Mark a chapter completed without touching attempts or metadata."""
        await self.session.aexecute(
            self._upsert_completion,
            [user_id, chapter_id, module_id, score, at],
        )

    async def mark_unlocked(
        self,
        user_id: UUID,
        chapter_id: int,
        module_id: int,
        at: datetime,
    ) -> None:
        await self.session.aexecute(
            self._upsert_unlock,
            [user_id, chapter_id, module_id, at],
        )

    async def save_metadata(
        self,
        user_id: UUID,
        chapter_id: int,
        module_id: int,
        metadata: dict[str, Any],
    ) -> None:
        """Replace the whole metadata blob of a record."""
        await self.session.aexecute(
            self._upsert_metadata,
            [user_id, chapter_id, module_id, dumps_json(metadata)],
        )

    async def reset_attempts(
        self,
        user_id: UUID,
        chapter_id: int,
        module_id: int,
    ) -> None:
        """Zero attempts, clear score and completion. Metadata is kept."""
        await self.session.aexecute(
            self._reset_attempts,
            [user_id, chapter_id, module_id],
        )

    # ==========================================================================
    # Attempt log
    # ==========================================================================

    async def append_attempt(self, attempt: QuizAttempt) -> None:
        await self.session.aexecute(
            self._insert_attempt,
            [
                attempt.user_id,
                attempt.chapter_id,
                attempt.attempt_number,
                dumps_json(attempt.answers),
                attempt.score,
                attempt.passed,
                attempt.created_at,
            ],
        )

    async def latest_attempt_number(self, user_id: UUID, chapter_id: int) -> int:
        """Highest logged attempt number, 0 when none were logged."""
        result = await self.session.aexecute(
            self._latest_attempt, [user_id, chapter_id]
        )
        row = result.one()
        return row.attempt_number if row else 0

    async def list_attempts(self, user_id: UUID, chapter_id: int) -> list[QuizAttempt]:
        """Attempt log of one chapter, newest first."""
        result = await self.session.aexecute(self._list_attempts, [user_id, chapter_id])
        return [QuizAttempt.from_row(row) for row in result]
