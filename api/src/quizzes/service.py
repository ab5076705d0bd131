"""Quiz submission service.

Business logic for:
- Grading a chapter quiz against its answer key
- Enforcing the attempt limit (reset only by an administrator)
- Logging counted attempts and updating the chapter record
- Unlocking the next chapter of the module on a pass
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from src.curriculum.models import DEFAULT_REQUIRED_SCORE, Chapter
from src.curriculum.registry import ProgramRegistry
from src.progress.models import ProgressRecord, QuizAttempt
from src.utils import utc_now

from .grading import QuizError, QuizGrade, grade


if TYPE_CHECKING:
    from src.curriculum.service import CurriculumService
    from src.progress.store import CassandraProgressStore

logger = structlog.get_logger(__name__)


class AttemptsExhaustedError(QuizError):
    """Attempt budget used up; an administrator must reset the chapter."""

    def __init__(
        self,
        message: str = "No attempts remaining. Ask an administrator for a reset",
    ):
        super().__init__(message, "attempts_exhausted")


@dataclass(frozen=True)
class QuizSubmissionResult:
    """Outcome of a submission.

    ``recorded`` is False when the chapter was already completed: the
    submission is graded and accepted but neither logged nor counted.
    """

    accepted: bool
    attempts_remaining: int
    score: int
    passed: bool
    completed: bool
    recorded: bool
    attempt_number: int | None = None
    unlocked_chapter_id: int | None = None


class QuizService:
    """Service for chapter quizzes."""

    def __init__(
        self,
        store: "CassandraProgressStore",
        curriculum: "CurriculumService",
        registry: ProgramRegistry,
        max_attempts: int = 2,
        default_required_score: int = DEFAULT_REQUIRED_SCORE,
    ):
        self.store = store
        self.curriculum = curriculum
        self.registry = registry
        self.max_attempts = max_attempts
        self.default_required_score = default_required_score

    async def required_score(self, chapter: Chapter) -> int:
        """Pass threshold: registry override, else the module's own threshold."""
        module = await self.curriculum.get_module(chapter.module_id)
        base = module.required_score if module else self.default_required_score
        return self.registry.required_score_for(chapter.module_id, base)

    def attempts_remaining(self, record: ProgressRecord | None) -> int:
        used = record.attempts if record else 0
        return max(self.max_attempts - used, 0)

    async def grade_and_submit(
        self,
        user_id: UUID,
        chapter_id: int,
        answers: Mapping[str, int],
    ) -> tuple[QuizGrade, QuizSubmissionResult]:
        """Validate and score ``answers`` against the key, then submit.

        Raises:
            ChapterNotFoundError: If the chapter does not exist
            QuizValidationError: If answers are incomplete or malformed
            AttemptsExhaustedError: If no attempts remain
        """
        chapter = await self.curriculum.require_chapter(chapter_id)
        questions = await self.curriculum.list_questions(chapter_id)
        quiz_grade = grade(questions, answers, await self.required_score(chapter))

        result = await self.submit_attempt(
            user_id=user_id,
            chapter=chapter,
            answers=dict(answers),
            score=quiz_grade.score,
            passed=quiz_grade.passed,
        )
        return quiz_grade, result

    async def submit_attempt(
        self,
        user_id: UUID,
        chapter: Chapter,
        answers: dict[str, int],
        score: int,
        passed: bool,
    ) -> QuizSubmissionResult:
        """Record an already graded submission.

        Raises:
            AttemptsExhaustedError: If the record is not completed and the
                attempt limit is used up
        """
        record = await self.store.get_record(user_id, chapter.chapter_id)

        if record is not None and record.completed:
            # Never downgrade a completed chapter or count extra attempts
            logger.info(
                "quiz_resubmitted_after_completion",
                chapter_id=chapter.chapter_id,
                score=score,
            )
            return QuizSubmissionResult(
                accepted=True,
                attempts_remaining=self.attempts_remaining(record),
                score=score,
                passed=passed,
                completed=True,
                recorded=False,
            )

        attempts = record.attempts if record else 0
        if attempts >= self.max_attempts:
            logger.warning(
                "quiz_attempts_exhausted",
                chapter_id=chapter.chapter_id,
                attempts=attempts,
            )
            raise AttemptsExhaustedError

        now = utc_now()
        attempt_number = (
            await self.store.latest_attempt_number(user_id, chapter.chapter_id) + 1
        )
        await self.store.append_attempt(
            QuizAttempt(
                user_id=user_id,
                chapter_id=chapter.chapter_id,
                attempt_number=attempt_number,
                answers=answers,
                score=score,
                passed=passed,
                created_at=now,
            )
        )

        attempts += 1
        await self.store.record_quiz_outcome(
            user_id=user_id,
            chapter_id=chapter.chapter_id,
            module_id=chapter.module_id,
            score=score,
            attempts=attempts,
            passed=passed,
            at=now,
        )

        unlocked_chapter_id = None
        if passed:
            unlocked_chapter_id = await self._unlock_next_chapter(user_id, chapter)

        logger.info(
            "quiz_attempt_recorded",
            chapter_id=chapter.chapter_id,
            attempt_number=attempt_number,
            score=score,
            passed=passed,
            unlocked_chapter_id=unlocked_chapter_id,
        )

        return QuizSubmissionResult(
            accepted=True,
            attempts_remaining=max(self.max_attempts - attempts, 0),
            score=score,
            passed=passed,
            completed=passed,
            recorded=True,
            attempt_number=attempt_number,
            unlocked_chapter_id=unlocked_chapter_id,
        )

    async def _unlock_next_chapter(self, user_id: UUID, chapter: Chapter) -> int | None:
        """Stamp ``unlocked_at`` on the next chapter of the same module."""
        next_chapter = await self.curriculum.get_next_chapter(chapter)
        if next_chapter is None:
            return None

        existing = await self.store.get_record(user_id, next_chapter.chapter_id)
        if existing is None or existing.unlocked_at is None:
            await self.store.mark_unlocked(
                user_id=user_id,
                chapter_id=next_chapter.chapter_id,
                module_id=next_chapter.module_id,
                at=utc_now(),
            )
        return next_chapter.chapter_id

    async def chapter_status(
        self, user_id: UUID, chapter_id: int
    ) -> tuple[Chapter, ProgressRecord | None]:
        chapter = await self.curriculum.require_chapter(chapter_id)
        return chapter, await self.store.get_record(user_id, chapter_id)

    async def list_attempts(self, user_id: UUID, chapter_id: int) -> list[QuizAttempt]:
        return await self.store.list_attempts(user_id, chapter_id)
