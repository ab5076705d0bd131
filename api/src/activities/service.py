"""Multi-step activity recorder.

Business logic for:
- Autosaving a student's draft (whole-blob replacement, last write wins)
- Restoring exactly the last saved step and responses
- Submitting an activity for review
- Refusing student edits once a submission is under or past review
- Resolving the module a chapter belongs to from the curriculum

Clients debounce autosaves; the recorder never batches or merges. Fields
carried over from the stored blob are the administrator-owned ones: the
conditional access flag and the submission and review fields of the status
section. Students cannot set or clear them.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any
from uuid import UUID

import structlog

from src.curriculum.registry import ModuleEntry, ProgramRegistry
from src.progression.evaluator import CONDITIONAL_ACCESS_KEY
from src.utils import utc_now

from .status import (
    READ_ONLY_STATUSES,
    REVIEW_FIELDS,
    REVIEW_OUTCOMES,
    ActivityError,
    SubmissionStatus,
    check_transition,
    parse_status,
    read_status,
    status_section,
    with_status,
)


if TYPE_CHECKING:
    from src.curriculum.service import CurriculumService
    from src.progress.store import CassandraProgressStore

logger = structlog.get_logger(__name__)


class ActivityLockedError(ActivityError):
    def __init__(
        self,
        message: str = "This activity was submitted and can no longer be edited",
    ):
        super().__init__(message, "activity_locked")


class ActivityStatusError(ActivityError):
    """Student tried to write a field only administrators may set."""

    def __init__(self, message: str):
        super().__init__(message, "status_forbidden")


class ActivityNotFoundError(ActivityError):
    def __init__(self, message: str = "No saved activity to submit"):
        super().__init__(message, "activity_not_found")


class ActivityModuleMismatchError(ActivityError):
    def __init__(self, message: str = "Chapter does not belong to this module"):
        super().__init__(message, "module_mismatch")


class ActivityChapterNotFoundError(ActivityError):
    def __init__(self, message: str = "Chapter not found"):
        super().__init__(message, "chapter_not_found")


@dataclass(frozen=True)
class ActivitySaveResult:
    saved: bool
    metadata: dict[str, Any]
    status: SubmissionStatus | None


class ActivityService:
    """Service for multi-step activity drafts and submissions."""

    def __init__(
        self,
        store: "CassandraProgressStore",
        registry: ProgramRegistry,
        curriculum: "CurriculumService",
    ):
        self.store = store
        self.registry = registry
        self.curriculum = curriculum

    async def resolve_module(self, chapter_id: int, module_id: int) -> int:
        """Module that owns ``chapter_id``, checked against the client's claim.

        Raises:
            ActivityChapterNotFoundError: chapter does not exist
            ActivityModuleMismatchError: chapter belongs to another module
        """
        chapter = await self.curriculum.get_chapter(chapter_id)
        if chapter is None:
            raise ActivityChapterNotFoundError

        entry = self.registry.by_record_chapter(chapter_id)
        if chapter.module_id != module_id or (
            entry is not None and entry.module_id != module_id
        ):
            raise ActivityModuleMismatchError
        return chapter.module_id

    async def get_activity_progress(
        self, user_id: UUID, chapter_id: int
    ) -> dict[str, Any] | None:
        """Last saved ``{step, responses}`` exactly as stored, or None."""
        record = await self.store.get_record(user_id, chapter_id)
        if record is None or record.metadata is None:
            return None
        return {
            "step": record.metadata.get("step", 0),
            "responses": record.metadata.get("responses", {}),
        }

    async def save_activity_progress(
        self,
        user_id: UUID,
        module_id: int,
        chapter_id: int,
        step: int,
        responses: dict[str, Any],
    ) -> ActivitySaveResult:
        """Replace the stored blob with ``{step, responses}``.

        A save carrying ``status: submitted`` in the module's status section
        is a submission and gets ``submitted_at`` stamped. Saving a blob equal
        to the stored one performs no write.

        Raises:
            ActivityChapterNotFoundError: chapter does not exist
            ActivityModuleMismatchError: chapter belongs to another module
            ActivityLockedError: stored status is submitted, passed or failed
            ActivityStatusError: blob sets passed/failed or conditional access
            ActivityValidationError: status value or section is malformed
        """
        module_id = await self.resolve_module(chapter_id, module_id)
        entry = self.registry.by_record_chapter(chapter_id)

        record = await self.store.get_record(user_id, chapter_id)
        stored = record.metadata if record else None
        metadata: dict[str, Any] = {"step": step, "responses": dict(responses)}

        self._carry_conditional_access(stored, metadata)

        status = None
        if entry is not None:
            status = self._check_student_status(entry, stored, metadata)
            self._carry_review_fields(entry, stored, metadata)
            if status == SubmissionStatus.SUBMITTED:
                metadata = self._stamp_submission(entry, metadata)

        if stored == metadata:
            return ActivitySaveResult(saved=False, metadata=metadata, status=status)

        await self.store.save_metadata(user_id, chapter_id, module_id, metadata)

        if status == SubmissionStatus.SUBMITTED:
            logger.info("activity_submitted", module_id=module_id, chapter_id=chapter_id)
        else:
            logger.debug("activity_saved", chapter_id=chapter_id, step=step)

        return ActivitySaveResult(saved=True, metadata=metadata, status=status)

    async def submit_activity(
        self, user_id: UUID, entry: ModuleEntry
    ) -> ActivitySaveResult:
        """Move the module's saved activity from pending to submitted.

        Raises:
            ActivityNotFoundError: nothing was saved yet
            InvalidTransitionError: activity is not pending
        """
        chapter_id = entry.record_chapter_id
        record = (
            await self.store.get_record(user_id, chapter_id)
            if chapter_id is not None
            else None
        )
        if record is None or record.metadata is None:
            raise ActivityNotFoundError

        current = read_status(record.metadata, entry.status_key)
        check_transition(current, SubmissionStatus.SUBMITTED)

        metadata = self._stamp_submission(
            entry,
            with_status(record.metadata, entry.status_key, SubmissionStatus.SUBMITTED),
        )
        await self.store.save_metadata(user_id, chapter_id, entry.module_id, metadata)
        logger.info("activity_submitted", module_id=entry.module_id, chapter_id=chapter_id)

        return ActivitySaveResult(
            saved=True, metadata=metadata, status=SubmissionStatus.SUBMITTED
        )

    # ==========================================================================
    # Helpers
    # ==========================================================================

    @staticmethod
    def _carry_conditional_access(
        stored: dict[str, Any] | None, metadata: dict[str, Any]
    ) -> None:
        stored_flag = ((stored or {}).get("responses") or {}).get(CONDITIONAL_ACCESS_KEY)
        responses = metadata["responses"]

        if CONDITIONAL_ACCESS_KEY in responses and bool(
            responses[CONDITIONAL_ACCESS_KEY]
        ) != bool(stored_flag):
            msg = "Conditional access is granted by administrators only"
            raise ActivityStatusError(msg)

        if stored_flag is None:
            responses.pop(CONDITIONAL_ACCESS_KEY, None)
        else:
            responses[CONDITIONAL_ACCESS_KEY] = stored_flag

    @staticmethod
    def _check_student_status(
        entry: ModuleEntry,
        stored: dict[str, Any] | None,
        metadata: dict[str, Any],
    ) -> SubmissionStatus:
        current = read_status(stored, entry.status_key)
        if current in READ_ONLY_STATUSES:
            raise ActivityLockedError

        target = parse_status(
            status_section(metadata["responses"], entry.status_key).get("status")
        )
        if target in REVIEW_OUTCOMES:
            msg = "Only administrators can mark a submission passed or failed"
            raise ActivityStatusError(msg)
        return target

    @staticmethod
    def _carry_review_fields(
        entry: ModuleEntry,
        stored: dict[str, Any] | None,
        metadata: dict[str, Any],
    ) -> None:
        stored_section = status_section(
            (stored or {}).get("responses") or {}, entry.status_key
        )
        kept = {k: stored_section[k] for k in REVIEW_FIELDS if k in stored_section}
        section = status_section(metadata["responses"], entry.status_key)
        if not section and not kept:
            return

        section = {k: v for k, v in section.items() if k not in REVIEW_FIELDS}
        metadata["responses"][entry.status_key] = section | kept

    @staticmethod
    def _stamp_submission(
        entry: ModuleEntry, metadata: dict[str, Any]
    ) -> dict[str, Any]:
        return with_status(
            metadata,
            entry.status_key,
            SubmissionStatus.SUBMITTED,
            submitted_at=utc_now().isoformat(),
        )
