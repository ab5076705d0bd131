"""Pydantic schemas for the admin review console."""

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, Field

from src.activities.status import ActivityError, SubmissionStatus, read_status
from src.curriculum.registry import ProgramRegistry
from src.profiles.schemas import ProfileResponse
from src.progression.schemas import ChapterProgressResponse, ModuleStateResponse

from .models import AuditEntry
from .service import StudentOverview, SubmissionView, SuggestionOutcome


# ==============================================================================
# Requests
# ==============================================================================


class GradeSubmissionRequest(BaseModel):
    status: Literal["passed", "failed"]
    score: int = Field(..., ge=0, le=100)
    feedback: str | None = Field(default=None, max_length=5000)


class OverrideRequest(BaseModel):
    """Body of every override. ``confirm`` must be true to execute."""

    confirm: bool = False


# ==============================================================================
# Responses
# ==============================================================================


class SubmissionResponse(BaseModel):
    user_id: UUID
    email: str | None = None
    full_name: str | None = None
    module_id: int
    module_slug: str
    chapter_id: int
    status: SubmissionStatus
    step: int
    score: int | None = None
    feedback: str | None = None
    submitted_at: str | None = None
    reviewed_at: str | None = None
    responses: dict[str, Any]

    @classmethod
    def from_view(cls, view: SubmissionView) -> "SubmissionResponse":
        review = view.review
        return cls(
            user_id=view.user_id,
            email=view.email,
            full_name=view.full_name,
            module_id=view.module.module_id,
            module_slug=view.module.slug,
            chapter_id=view.chapter_id,
            status=view.status,
            step=view.step,
            score=review.get("score"),
            feedback=review.get("feedback"),
            submitted_at=review.get("submitted_at"),
            reviewed_at=review.get("reviewed_at"),
            responses=view.responses,
        )


class SuggestionResponse(BaseModel):
    """Advisory score. ``available`` is false when no scorer answered."""

    available: bool
    score: int | None = None
    feedback: str | None = None

    @classmethod
    def from_outcome(cls, outcome: SuggestionOutcome) -> "SuggestionResponse":
        return cls(
            available=outcome.available,
            score=outcome.score,
            feedback=outcome.feedback,
        )


class ForcedUnlockResponse(BaseModel):
    user_id: UUID
    module_id: int
    chapter_ids: list[int]
    score: int


class ConditionalAccessResponse(BaseModel):
    user_id: UUID
    module_id: int
    conditional_access: bool = True


class AuditEntryResponse(BaseModel):
    audit_id: UUID
    actor_id: UUID
    action: str
    module_id: int | None
    chapter_id: int | None
    details: dict[str, Any]
    created_at: datetime

    @classmethod
    def from_entity(cls, entity: AuditEntry) -> "AuditEntryResponse":
        return cls(
            audit_id=entity.audit_id,
            actor_id=entity.actor_id,
            action=entity.action.value,
            module_id=entity.module_id,
            chapter_id=entity.chapter_id,
            details=entity.details,
            created_at=entity.created_at,
        )


class ActivitySummaryResponse(BaseModel):
    module_id: int
    module_slug: str
    chapter_id: int
    status: SubmissionStatus | None
    step: int
    responses: dict[str, Any]


class StudentSummaryResponse(BaseModel):
    profile: ProfileResponse
    completion_percent: int = Field(ge=0, le=100)
    completed_chapters: int
    average_score: int
    last_completed_at: datetime | None
    program_status: str

    @classmethod
    def from_overview(cls, overview: StudentOverview) -> "StudentSummaryResponse":
        return cls(
            profile=ProfileResponse.from_entity(overview.profile),
            completion_percent=overview.completion_percent,
            completed_chapters=overview.completed_chapters,
            average_score=overview.average_score,
            last_completed_at=overview.last_completed_at,
            program_status=overview.snapshot.program_status.value,
        )


class StudentDetailResponse(StudentSummaryResponse):
    modules: list[ModuleStateResponse]
    chapters: list[ChapterProgressResponse]
    activities: list[ActivitySummaryResponse]
    audit: list[AuditEntryResponse]

    @classmethod
    def build(
        cls, overview: StudentOverview, registry: ProgramRegistry
    ) -> "StudentDetailResponse":
        summary = StudentSummaryResponse.from_overview(overview)
        by_chapter = {r.chapter_id: r for r in overview.records}

        activities = []
        for entry in registry.modules:
            record = by_chapter.get(entry.record_chapter_id)
            if record is None or record.metadata is None:
                continue
            try:
                status = read_status(record.metadata, entry.status_key)
            except ActivityError:
                status = None
            activities.append(
                ActivitySummaryResponse(
                    module_id=entry.module_id,
                    module_slug=entry.slug,
                    chapter_id=record.chapter_id,
                    status=status,
                    step=record.metadata.get("step", 0),
                    responses=record.responses,
                )
            )

        return cls(
            **summary.model_dump(),
            modules=[ModuleStateResponse.from_state(m) for m in overview.snapshot.modules],
            chapters=[ChapterProgressResponse.from_record(r) for r in overview.records],
            activities=activities,
            audit=[AuditEntryResponse.from_entity(a) for a in overview.audit],
        )
