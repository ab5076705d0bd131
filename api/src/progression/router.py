"""Progression API endpoints."""

from fastapi import APIRouter

from src.auth.dependencies import CurrentUser

from .dependencies import ProgressionServiceDep
from .schemas import ProgressOverviewResponse


router = APIRouter(prefix="/v1/progress", tags=["progress"])


@router.get(
    "/me",
    response_model=ProgressOverviewResponse,
    summary="Get own module gating and chapter progress",
)
async def get_my_progress(
    user: CurrentUser,
    progression_service: ProgressionServiceDep,
) -> ProgressOverviewResponse:
    """Module lock state for the caller.

    When progress cannot be loaded the response still succeeds, with every
    module after the first reported locked and ``progress_available`` false.
    """
    snapshot, records = await progression_service.overview(user.id)
    return ProgressOverviewResponse.build(snapshot, records)
