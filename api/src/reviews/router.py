"""Admin review and student overview endpoints."""

from uuid import UUID

from fastapi import APIRouter, Query

from src.activities.dependencies import handle_activity_error
from src.activities.status import ActivityError, SubmissionStatus
from src.auth.dependencies import AdminUser
from src.curriculum.dependencies import ProgramRegistryDep
from src.profiles.dependencies import handle_profile_error
from src.profiles.service import ProfileError
from src.progression.schemas import ChapterProgressResponse

from .dependencies import ReviewServiceDep, handle_review_error
from .schemas import (
    ConditionalAccessResponse,
    ForcedUnlockResponse,
    GradeSubmissionRequest,
    OverrideRequest,
    StudentDetailResponse,
    StudentSummaryResponse,
    SubmissionResponse,
    SuggestionResponse,
)
from .service import ReviewError


router = APIRouter(prefix="/v1/admin/reviews", tags=["admin-reviews"])
students_router = APIRouter(prefix="/v1/admin/students", tags=["admin-students"])


# ==============================================================================
# Submissions
# ==============================================================================


@router.get(
    "/submissions",
    response_model=list[SubmissionResponse],
    summary="List activity submissions (admin only)",
)
async def list_submissions(
    admin: AdminUser,
    review_service: ReviewServiceDep,
    status: SubmissionStatus | None = Query(default=None),
    module_id: int | None = Query(default=None),
) -> list[SubmissionResponse]:
    views = await review_service.list_submissions(status=status, module_id=module_id)
    return [SubmissionResponse.from_view(v) for v in views]


@router.post(
    "/students/{user_id}/modules/{module_id}/grade",
    response_model=SubmissionResponse,
    summary="Grade a submitted activity (admin only)",
)
async def grade_submission(
    user_id: UUID,
    module_id: int,
    data: GradeSubmissionRequest,
    admin: AdminUser,
    review_service: ReviewServiceDep,
) -> SubmissionResponse:
    """Mark a submitted activity passed or failed.

    Passing completes the module's gate chapter and so unlocks the next
    module for the student.
    """
    try:
        view = await review_service.grade_submission(
            actor=admin,
            user_id=user_id,
            module_id=module_id,
            status=SubmissionStatus(data.status),
            score=data.score,
            feedback=data.feedback,
        )
    except ReviewError as e:
        raise handle_review_error(e) from e
    except ActivityError as e:
        raise handle_activity_error(e) from e
    return SubmissionResponse.from_view(view)


@router.post(
    "/students/{user_id}/modules/{module_id}/rollback",
    response_model=SubmissionResponse,
    summary="Return a submission to pending (admin only)",
)
async def rollback_submission(
    user_id: UUID,
    module_id: int,
    admin: AdminUser,
    review_service: ReviewServiceDep,
) -> SubmissionResponse:
    """Allow resubmission. Responses are kept; only the status changes."""
    try:
        view = await review_service.rollback_submission(admin, user_id, module_id)
    except ReviewError as e:
        raise handle_review_error(e) from e
    except ActivityError as e:
        raise handle_activity_error(e) from e
    return SubmissionResponse.from_view(view)


@router.post(
    "/students/{user_id}/modules/{module_id}/suggestion",
    response_model=SuggestionResponse,
    summary="Ask the AI scorer for an advisory grade (admin only)",
)
async def suggest_grade(
    user_id: UUID,
    module_id: int,
    admin: AdminUser,
    review_service: ReviewServiceDep,
) -> SuggestionResponse:
    try:
        outcome = await review_service.suggest_grade(user_id, module_id)
    except ReviewError as e:
        raise handle_review_error(e) from e
    return SuggestionResponse.from_outcome(outcome)


# ==============================================================================
# Overrides
# ==============================================================================


@router.post(
    "/students/{user_id}/modules/{module_id}/force-unlock",
    response_model=ForcedUnlockResponse,
    summary="Force-complete the chapters that unlock the next module (admin only)",
)
async def force_unlock(
    user_id: UUID,
    module_id: int,
    data: OverrideRequest,
    admin: AdminUser,
    review_service: ReviewServiceDep,
) -> ForcedUnlockResponse:
    try:
        chapter_ids = await review_service.force_unlock(
            admin, user_id, module_id, confirm=data.confirm
        )
    except ReviewError as e:
        raise handle_review_error(e) from e
    return ForcedUnlockResponse(
        user_id=user_id,
        module_id=module_id,
        chapter_ids=chapter_ids,
        score=review_service.forced_unlock_score,
    )


@router.post(
    "/students/{user_id}/modules/{module_id}/conditional-access",
    response_model=ConditionalAccessResponse,
    summary="Grant conditional access past a module (admin only)",
)
async def grant_conditional_access(
    user_id: UUID,
    module_id: int,
    data: OverrideRequest,
    admin: AdminUser,
    review_service: ReviewServiceDep,
) -> ConditionalAccessResponse:
    try:
        await review_service.grant_conditional_access(
            admin, user_id, module_id, confirm=data.confirm
        )
    except ReviewError as e:
        raise handle_review_error(e) from e
    return ConditionalAccessResponse(user_id=user_id, module_id=module_id)


@router.post(
    "/students/{user_id}/chapters/{chapter_id}/reset-attempts",
    response_model=ChapterProgressResponse,
    summary="Reset a chapter's quiz attempts (admin only)",
)
async def reset_attempts(
    user_id: UUID,
    chapter_id: int,
    data: OverrideRequest,
    admin: AdminUser,
    review_service: ReviewServiceDep,
) -> ChapterProgressResponse:
    try:
        record = await review_service.reset_attempts(
            admin, user_id, chapter_id, confirm=data.confirm
        )
    except ReviewError as e:
        raise handle_review_error(e) from e
    return ChapterProgressResponse.from_record(record)


# ==============================================================================
# Student overview
# ==============================================================================


@students_router.get(
    "",
    response_model=list[StudentSummaryResponse],
    summary="List students with progress (admin only)",
)
async def list_students(
    admin: AdminUser,
    review_service: ReviewServiceDep,
    search: str | None = Query(default=None, max_length=100),
) -> list[StudentSummaryResponse]:
    overviews = await review_service.students_overview(search)
    return [StudentSummaryResponse.from_overview(o) for o in overviews]


@students_router.get(
    "/{user_id}",
    response_model=StudentDetailResponse,
    summary="Get one student's progress, activities and audit trail (admin only)",
)
async def get_student(
    user_id: UUID,
    admin: AdminUser,
    review_service: ReviewServiceDep,
    registry: ProgramRegistryDep,
) -> StudentDetailResponse:
    try:
        overview = await review_service.student_detail(user_id)
    except ProfileError as e:
        raise handle_profile_error(e) from e
    return StudentDetailResponse.build(overview, registry)
