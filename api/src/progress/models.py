"""Database models for student progress.

Cassandra table definitions for:
- user_progress: one record per (user, chapter) with completion, score,
  attempt counter, unlock stamp and the activity metadata blob
- quiz_attempts: append-only log of quiz submissions

Records are never deleted. Administrative resets zero the attempt counter,
score and completion flag instead.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from src.utils import ensure_utc_aware, loads_json, utc_now


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

# Partitioned by user so a student's whole progress is one read.
# metadata holds {"step": int, "responses": {...}} as JSON text.
USER_PROGRESS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.user_progress (
    user_id UUID,
    chapter_id INT,
    module_id INT,
    completed BOOLEAN,
    score INT,
    attempts INT,
    completed_at TIMESTAMP,
    unlocked_at TIMESTAMP,
    metadata TEXT,
    PRIMARY KEY ((user_id), chapter_id)
) WITH CLUSTERING ORDER BY (chapter_id ASC)
"""

# Review queue: every student's record for an activity chapter
USER_PROGRESS_CHAPTER_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS user_progress_chapter_idx
ON {keyspace}.user_progress (chapter_id)
"""

# Newest attempt first so the next attempt number is a LIMIT 1 read
QUIZ_ATTEMPTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.quiz_attempts (
    user_id UUID,
    chapter_id INT,
    attempt_number INT,
    answers TEXT,
    score INT,
    passed BOOLEAN,
    created_at TIMESTAMP,
    PRIMARY KEY ((user_id, chapter_id), attempt_number)
) WITH CLUSTERING ORDER BY (attempt_number DESC)
"""

PROGRESS_TABLES_CQL = [
    USER_PROGRESS_TABLE_CQL,
    USER_PROGRESS_CHAPTER_INDEX_CQL,
    QUIZ_ATTEMPTS_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class ProgressRecord:
    """Progress of one user on one chapter.

    Attributes:
        user_id: Student UUID
        chapter_id: Chapter identifier
        module_id: Parent module identifier
        completed: Chapter passed (quiz) or marked complete (review/override)
        score: Last recorded percentage, None until graded
        attempts: Quiz attempts counted since the last reset
        completed_at: When the chapter was completed
        unlocked_at: When the chapter was unlocked by its predecessor
        metadata: Activity blob ``{"step": int, "responses": {...}}`` or None
    """

    def __init__(
        self,
        user_id: UUID,
        chapter_id: int,
        module_id: int,
        completed: bool = False,
        score: int | None = None,
        attempts: int = 0,
        completed_at: datetime | None = None,
        unlocked_at: datetime | None = None,
        metadata: dict[str, Any] | None = None,
    ):
        self.user_id = user_id
        self.chapter_id = chapter_id
        self.module_id = module_id
        self.completed = completed
        self.score = score
        self.attempts = attempts
        self.completed_at = ensure_utc_aware(completed_at)
        self.unlocked_at = ensure_utc_aware(unlocked_at)
        self.metadata = metadata

    @property
    def responses(self) -> dict[str, Any]:
        """Responses of the metadata blob (empty when nothing was saved)."""
        if not self.metadata:
            return {}
        responses = self.metadata.get("responses")
        return responses if isinstance(responses, dict) else {}

    @classmethod
    def from_row(cls, row: Any) -> "ProgressRecord":
        """Create ProgressRecord instance from Cassandra row."""
        return cls(
            user_id=row.user_id,
            chapter_id=row.chapter_id,
            module_id=row.module_id,
            completed=bool(row.completed),
            score=row.score,
            attempts=row.attempts or 0,
            completed_at=row.completed_at,
            unlocked_at=row.unlocked_at,
            metadata=loads_json(row.metadata),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "chapter_id": self.chapter_id,
            "module_id": self.module_id,
            "completed": self.completed,
            "score": self.score,
            "attempts": self.attempts,
            "completed_at": self.completed_at,
            "unlocked_at": self.unlocked_at,
            "metadata": self.metadata,
        }

    def __repr__(self) -> str:
        state = "completed" if self.completed else f"attempts={self.attempts}"
        return f"<ProgressRecord user={self.user_id} chapter={self.chapter_id} {state}>"


class QuizAttempt:
    """One logged quiz submission."""

    def __init__(
        self,
        user_id: UUID,
        chapter_id: int,
        attempt_number: int,
        answers: dict[str, int],
        score: int,
        passed: bool,
        created_at: datetime | None = None,
    ):
        self.user_id = user_id
        self.chapter_id = chapter_id
        self.attempt_number = attempt_number
        self.answers = answers
        self.score = score
        self.passed = passed
        self.created_at = ensure_utc_aware(created_at) or utc_now()

    @classmethod
    def from_row(cls, row: Any) -> "QuizAttempt":
        return cls(
            user_id=row.user_id,
            chapter_id=row.chapter_id,
            attempt_number=row.attempt_number,
            answers=loads_json(row.answers, default={}),
            score=row.score or 0,
            passed=bool(row.passed),
            created_at=row.created_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "chapter_id": self.chapter_id,
            "attempt_number": self.attempt_number,
            "answers": self.answers,
            "score": self.score,
            "passed": self.passed,
            "created_at": self.created_at,
        }

    def __repr__(self) -> str:
        return (
            f"<QuizAttempt user={self.user_id} chapter={self.chapter_id} "
            f"#{self.attempt_number} {self.score}%>"
        )
