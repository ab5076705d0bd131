"""Admin review workflow.

Business logic for:
- Listing activity submissions and the student overview
- Grading a submitted activity (passed/failed with score and feedback)
- Rolling a submission back to pending, keeping every response
- Overrides: forced unlock, attempt reset, conditional access grant
- Advisory AI score suggestions

Grading a submission as passed completes the module's gate chapter, which is
what unlocks the next module. Overrides bypass the submission state machine;
each one needs an explicit confirmation and leaves an audit entry.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Any
from uuid import UUID

import structlog

from src.activities.status import (
    REVIEW_OUTCOMES,
    ActivityError,
    InvalidTransitionError,
    SubmissionStatus,
    check_transition,
    read_status,
    status_section,
    with_status,
)
from src.auth.schemas import Principal
from src.curriculum.registry import ModuleEntry, ProgramRegistry
from src.profiles.models import Profile
from src.progress.models import ProgressRecord
from src.progression.evaluator import (
    CONDITIONAL_ACCESS_KEY,
    ProgressionSnapshot,
    evaluate,
)
from src.utils import utc_now

from .models import AuditAction, AuditEntry
from .suggestions import Submission, SubmissionScorer, SuggestionError


if TYPE_CHECKING:
    from src.curriculum.service import CurriculumService
    from src.profiles.service import ProfileService
    from src.progress.store import CassandraProgressStore

    from .audit import CassandraAuditLog

logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class ReviewError(Exception):
    """Base review error."""

    def __init__(self, message: str, code: str = "review_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class ConfirmationRequiredError(ReviewError):
    def __init__(self, action: AuditAction):
        super().__init__(
            f"The {action.value} override must be confirmed explicitly",
            "confirmation_required",
        )
        self.action = action


class ReviewModuleNotFoundError(ReviewError):
    def __init__(self, message: str = "Module is not registered"):
        super().__init__(message, "module_not_found")


class SubmissionNotFoundError(ReviewError):
    def __init__(self, message: str = "No activity saved for this module"):
        super().__init__(message, "submission_not_found")


class ProgressNotFoundError(ReviewError):
    def __init__(self, message: str = "No progress recorded for this chapter"):
        super().__init__(message, "progress_not_found")


class ForcedUnlockUnavailableError(ReviewError):
    def __init__(self, message: str = "Module has too few chapters to unlock"):
        super().__init__(message, "forced_unlock_unavailable")


class NoActivityChapterError(ReviewError):
    def __init__(self, message: str = "Module has no activity record"):
        super().__init__(message, "no_activity_chapter")


# ==============================================================================
# Result Types
# ==============================================================================


@dataclass(frozen=True)
class SubmissionView:
    """One student's activity record for a module, as shown to reviewers."""

    user_id: UUID
    email: str | None
    full_name: str | None
    module: ModuleEntry
    chapter_id: int
    status: SubmissionStatus
    step: int
    responses: dict[str, Any]

    @property
    def review(self) -> dict[str, Any]:
        """The status sub-object (status, score, feedback, timestamps)."""
        return status_section(self.responses, self.module.status_key)


@dataclass(frozen=True)
class StudentOverview:
    profile: Profile
    records: list[ProgressRecord]
    snapshot: ProgressionSnapshot
    average_score: int
    audit: list[AuditEntry] = field(default_factory=list)

    @property
    def completion_percent(self) -> int:
        return self.snapshot.completion_percent

    @property
    def completed_chapters(self) -> int:
        return sum(1 for r in self.records if r.completed)

    @property
    def last_completed_at(self) -> datetime | None:
        stamps = [r.completed_at for r in self.records if r.completed_at]
        return max(stamps) if stamps else None


@dataclass(frozen=True)
class SuggestionOutcome:
    available: bool
    score: int | None = None
    feedback: str | None = None


def average_score(records: list[ProgressRecord]) -> int:
    """Mean score over all records, ungraded records counting as 0."""
    if not records:
        return 0
    total = Decimal(sum(r.score or 0 for r in records))
    return int((total / len(records)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


# ==============================================================================
# Review Service
# ==============================================================================


class ReviewService:
    """Service for administrator review and overrides."""

    def __init__(
        self,
        store: "CassandraProgressStore",
        profiles: "ProfileService",
        registry: ProgramRegistry,
        audit_log: "CassandraAuditLog",
        curriculum: "CurriculumService",
        scorer: SubmissionScorer | None = None,
        forced_unlock_score: int = 100,
    ):
        self.store = store
        self.profiles = profiles
        self.registry = registry
        self.audit_log = audit_log
        self.curriculum = curriculum
        self.scorer = scorer
        self.forced_unlock_score = forced_unlock_score

    # ==========================================================================
    # Listings
    # ==========================================================================

    async def list_submissions(
        self,
        status: SubmissionStatus | None = None,
        module_id: int | None = None,
    ) -> list[SubmissionView]:
        """Saved activities across all students, in program order.

        Records whose stored status cannot be parsed are skipped and logged.
        """
        names = {p.user_id: p for p in await self.profiles.list_profiles()}
        views: list[SubmissionView] = []

        for entry in self.registry.modules:
            if entry.record_chapter_id is None:
                continue
            if module_id is not None and entry.module_id != module_id:
                continue

            records = await self.store.list_chapter_records(entry.record_chapter_id)
            for record in records:
                if record.metadata is None:
                    continue
                try:
                    current = read_status(record.metadata, entry.status_key)
                except ActivityError as e:
                    logger.warning(
                        "submission_status_unreadable",
                        student_id=str(record.user_id),
                        chapter_id=record.chapter_id,
                        error=e.message,
                    )
                    continue
                if status is not None and current != status:
                    continue

                profile = names.get(record.user_id)
                views.append(
                    SubmissionView(
                        user_id=record.user_id,
                        email=profile.email if profile else None,
                        full_name=profile.full_name if profile else None,
                        module=entry,
                        chapter_id=record.chapter_id,
                        status=current,
                        step=record.metadata.get("step", 0),
                        responses=record.responses,
                    )
                )
        return views

    async def students_overview(self, search: str | None = None) -> list[StudentOverview]:
        """Every student with progress, completion and average score.

        One progress read per student; cohorts are small.
        """
        overviews = []
        for profile in await self.profiles.list_students(search):
            overviews.append(await self._overview(profile))
        return overviews

    async def student_detail(self, user_id: UUID) -> StudentOverview:
        """Overview of one student including the audit trail.

        Raises:
            ProfileNotFoundError: If the student has no profile
        """
        profile = await self.profiles.require_profile(user_id)
        return await self._overview(profile, with_audit=True)

    async def list_audit(self, user_id: UUID, limit: int = 50) -> list[AuditEntry]:
        return await self.audit_log.list_entries(user_id, limit)

    # ==========================================================================
    # Grading
    # ==========================================================================

    async def grade_submission(
        self,
        actor: Principal,
        user_id: UUID,
        module_id: int,
        status: SubmissionStatus,
        score: int,
        feedback: str | None = None,
    ) -> SubmissionView:
        """Commit a review outcome for a submitted activity.

        Writes status, score, feedback and reviewed_at into the status
        sub-object. A pass also completes the module's gate chapter.

        Raises:
            ReviewModuleNotFoundError: Module is not registered
            SubmissionNotFoundError: Student saved nothing for this module
            InvalidTransitionError: Submission is not in ``submitted``, or
                ``status`` is not passed/failed
        """
        entry = self._require_entry(module_id)
        record = await self._require_submission(user_id, entry)

        current = read_status(record.metadata, entry.status_key)
        if status not in REVIEW_OUTCOMES:
            raise InvalidTransitionError(current, status)
        check_transition(current, status)

        now = utc_now()
        metadata = with_status(
            record.metadata,
            entry.status_key,
            status,
            score=score,
            feedback=feedback,
            reviewed_at=now.isoformat(),
        )
        await self.store.save_metadata(user_id, record.chapter_id, module_id, metadata)

        if status == SubmissionStatus.PASSED and entry.gate_chapter_id is not None:
            await self.store.mark_completed(
                user_id, entry.gate_chapter_id, module_id, score, now
            )

        await self.audit_log.record(
            AuditEntry(
                user_id=user_id,
                actor_id=actor.id,
                action=AuditAction.GRADE,
                module_id=module_id,
                chapter_id=record.chapter_id,
                details={"status": status.value, "score": score},
                created_at=now,
            )
        )
        logger.info(
            "submission_graded",
            student_id=str(user_id),
            module_id=module_id,
            status=status.value,
            score=score,
        )
        return self._view(entry, record, metadata, status)

    async def rollback_submission(
        self, actor: Principal, user_id: UUID, module_id: int
    ) -> SubmissionView:
        """Return a submission to pending so the student can resubmit.

        Every response field is kept. The gate chapter's ``completed`` flag
        is not touched.

        Raises:
            InvalidTransitionError: Submission is already pending
        """
        entry = self._require_entry(module_id)
        record = await self._require_submission(user_id, entry)

        current = read_status(record.metadata, entry.status_key)
        check_transition(current, SubmissionStatus.PENDING)

        metadata = with_status(record.metadata, entry.status_key, SubmissionStatus.PENDING)
        await self.store.save_metadata(user_id, record.chapter_id, module_id, metadata)

        await self.audit_log.record(
            AuditEntry(
                user_id=user_id,
                actor_id=actor.id,
                action=AuditAction.ROLLBACK,
                module_id=module_id,
                chapter_id=record.chapter_id,
                details={"from_status": current.value},
            )
        )
        logger.info(
            "submission_rolled_back",
            student_id=str(user_id),
            module_id=module_id,
            from_status=current.value,
        )
        return self._view(entry, record, metadata, SubmissionStatus.PENDING)

    async def suggest_grade(self, user_id: UUID, module_id: int) -> SuggestionOutcome:
        """Ask the configured scorer for an advisory score. Nothing is stored."""
        entry = self._require_entry(module_id)
        record = await self._require_submission(user_id, entry)

        if self.scorer is None:
            return SuggestionOutcome(available=False)

        try:
            suggestion = await self.scorer.suggest(
                Submission(
                    module_slug=entry.slug,
                    module_title=entry.title,
                    responses=record.responses,
                )
            )
        except SuggestionError as e:
            logger.warning(
                "grade_suggestion_unavailable",
                student_id=str(user_id),
                module_id=module_id,
                error=str(e),
            )
            return SuggestionOutcome(available=False)

        return SuggestionOutcome(
            available=True, score=suggestion.score, feedback=suggestion.feedback
        )

    # ==========================================================================
    # Overrides
    # ==========================================================================

    async def force_unlock(
        self, actor: Principal, user_id: UUID, module_id: int, confirm: bool
    ) -> list[int]:
        """Complete the chapters the module's rule needs, with the override score.

        Gate modules get their gate chapter completed. Modules counted by
        completed chapters get their first incomplete chapters completed, in
        order, until the count is met. Activity responses and quiz answers
        are left as they are. Returns the completed chapter ids.

        Raises:
            ForcedUnlockUnavailableError: Module has too few chapters
        """
        self._require_confirmation(AuditAction.FORCED_UNLOCK, confirm)
        entry = self._require_entry(module_id)
        if entry.gate_chapter_id is not None:
            chapter_ids = [entry.gate_chapter_id]
        else:
            chapter_ids = await self._chapters_short_of_rule(user_id, entry)

        now = utc_now()
        for chapter_id in chapter_ids:
            await self.store.mark_completed(
                user_id, chapter_id, module_id, self.forced_unlock_score, now
            )
        await self.audit_log.record(
            AuditEntry(
                user_id=user_id,
                actor_id=actor.id,
                action=AuditAction.FORCED_UNLOCK,
                module_id=module_id,
                chapter_id=entry.gate_chapter_id,
                details={"score": self.forced_unlock_score, "chapter_ids": chapter_ids},
            )
        )
        return chapter_ids

    async def reset_attempts(
        self, actor: Principal, user_id: UUID, chapter_id: int, confirm: bool
    ) -> ProgressRecord:
        """Zero attempts and clear score and completion on a chapter.

        Raises:
            ConfirmationRequiredError: ``confirm`` is false
            ProgressNotFoundError: Student has no record for the chapter
        """
        self._require_confirmation(AuditAction.ATTEMPT_RESET, confirm)
        record = await self.store.get_record(user_id, chapter_id)
        if record is None:
            raise ProgressNotFoundError

        await self.store.reset_attempts(user_id, chapter_id, record.module_id)
        await self.audit_log.record(
            AuditEntry(
                user_id=user_id,
                actor_id=actor.id,
                action=AuditAction.ATTEMPT_RESET,
                module_id=record.module_id,
                chapter_id=chapter_id,
                details={"previous_attempts": record.attempts, "score": record.score},
            )
        )

        record.attempts = 0
        record.score = None
        record.completed = False
        record.completed_at = None
        return record

    async def grant_conditional_access(
        self, actor: Principal, user_id: UUID, module_id: int, confirm: bool
    ) -> dict[str, Any]:
        """Let the student continue past a failed module, flagged conditional."""
        self._require_confirmation(AuditAction.CONDITIONAL_ACCESS, confirm)
        entry = self._require_entry(module_id)
        chapter_id = entry.record_chapter_id
        if chapter_id is None:
            raise NoActivityChapterError

        record = await self.store.get_record(user_id, chapter_id)
        metadata = dict(record.metadata) if record and record.metadata else {"step": 0}
        metadata["responses"] = {
            **(metadata.get("responses") or {}),
            CONDITIONAL_ACCESS_KEY: True,
        }
        await self.store.save_metadata(user_id, chapter_id, module_id, metadata)

        await self.audit_log.record(
            AuditEntry(
                user_id=user_id,
                actor_id=actor.id,
                action=AuditAction.CONDITIONAL_ACCESS,
                module_id=module_id,
                chapter_id=chapter_id,
            )
        )
        return metadata

    # ==========================================================================
    # Helpers
    # ==========================================================================

    @staticmethod
    def _require_confirmation(action: AuditAction, confirm: bool) -> None:
        if not confirm:
            raise ConfirmationRequiredError(action)

    def _require_entry(self, module_id: int) -> ModuleEntry:
        entry = self.registry.get(module_id)
        if entry is None:
            raise ReviewModuleNotFoundError
        return entry

    async def _chapters_short_of_rule(
        self, user_id: UUID, entry: ModuleEntry
    ) -> list[int]:
        records = await self.store.list_records(user_id)
        done = {
            r.chapter_id for r in records if r.module_id == entry.module_id and r.completed
        }
        missing = entry.completion_rule.min_completed - len(done)
        if missing <= 0:
            return []

        chapters = await self.curriculum.list_chapters(entry.module_id)
        pending = [c.chapter_id for c in chapters if c.chapter_id not in done]
        if len(pending) < missing:
            raise ForcedUnlockUnavailableError
        return pending[:missing]

    async def _require_submission(
        self, user_id: UUID, entry: ModuleEntry
    ) -> ProgressRecord:
        if entry.record_chapter_id is None:
            raise NoActivityChapterError
        record = await self.store.get_record(user_id, entry.record_chapter_id)
        if record is None or record.metadata is None:
            raise SubmissionNotFoundError
        return record

    async def _overview(
        self, profile: Profile, with_audit: bool = False
    ) -> StudentOverview:
        records = await self.store.list_records(profile.user_id)
        audit = await self.audit_log.list_entries(profile.user_id) if with_audit else []
        return StudentOverview(
            profile=profile,
            records=records,
            snapshot=evaluate(self.registry, records),
            average_score=average_score(records),
            audit=audit,
        )

    @staticmethod
    def _view(
        entry: ModuleEntry,
        record: ProgressRecord,
        metadata: dict[str, Any],
        status: SubmissionStatus,
    ) -> SubmissionView:
        return SubmissionView(
            user_id=record.user_id,
            email=None,
            full_name=None,
            module=entry,
            chapter_id=record.chapter_id,
            status=status,
            step=metadata.get("step", 0),
            responses=metadata.get("responses", {}),
        )
