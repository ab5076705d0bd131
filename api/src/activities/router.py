"""Activity API endpoints."""

from fastapi import APIRouter, HTTPException, status

from src.auth.dependencies import CurrentUser
from src.curriculum.dependencies import ProgramRegistryDep
from src.progression.dependencies import ProgressionServiceDep, ensure_module_unlocked

from .dependencies import ActivityServiceDep, handle_activity_error
from .schemas import ActivityProgressResponse, ActivitySaveResponse, SaveActivityRequest
from .status import ActivityError


router = APIRouter(prefix="/v1/activities", tags=["activities"])


@router.get(
    "/chapters/{chapter_id}",
    response_model=ActivityProgressResponse | None,
    summary="Restore the last saved activity draft",
)
async def get_activity(
    chapter_id: int,
    user: CurrentUser,
    activity_service: ActivityServiceDep,
) -> ActivityProgressResponse | None:
    """Return exactly the last saved step and responses, or null."""
    progress = await activity_service.get_activity_progress(user.id, chapter_id)
    if progress is None:
        return None
    return ActivityProgressResponse(**progress)


@router.put(
    "/chapters/{chapter_id}",
    response_model=ActivitySaveResponse,
    summary="Autosave an activity draft",
)
async def save_activity(
    chapter_id: int,
    data: SaveActivityRequest,
    user: CurrentUser,
    activity_service: ActivityServiceDep,
    progression_service: ProgressionServiceDep,
) -> ActivitySaveResponse:
    """Replace the stored draft with the given step and responses.

    Setting the module's status to ``submitted`` submits the activity;
    afterwards the draft is read-only until an administrator rolls it back.
    """
    try:
        module_id = await activity_service.resolve_module(chapter_id, data.module_id)
    except ActivityError as e:
        raise handle_activity_error(e) from e

    await ensure_module_unlocked(user, module_id, progression_service)

    try:
        result = await activity_service.save_activity_progress(
            user_id=user.id,
            module_id=module_id,
            chapter_id=chapter_id,
            step=data.step,
            responses=data.responses,
        )
    except ActivityError as e:
        raise handle_activity_error(e) from e

    return ActivitySaveResponse.from_result(result)


@router.post(
    "/modules/{slug}/submit",
    response_model=ActivitySaveResponse,
    summary="Submit a module's activity for review",
)
async def submit_activity(
    slug: str,
    user: CurrentUser,
    registry: ProgramRegistryDep,
    activity_service: ActivityServiceDep,
    progression_service: ProgressionServiceDep,
) -> ActivitySaveResponse:
    entry = registry.by_slug(slug)
    if entry is None or entry.record_chapter_id is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Module has no activity to submit",
        )
    await ensure_module_unlocked(user, entry.module_id, progression_service)

    try:
        result = await activity_service.submit_activity(user.id, entry)
    except ActivityError as e:
        raise handle_activity_error(e) from e

    return ActivitySaveResponse.from_result(result)
