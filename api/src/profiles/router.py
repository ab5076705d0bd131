"""Profile API endpoints."""

from fastapi import APIRouter

from src.auth.dependencies import CurrentUser

from .dependencies import ProfileServiceDep
from .schemas import ProfileResponse, UpdateProfileRequest


router = APIRouter(prefix="/v1/profiles", tags=["profiles"])


@router.get("/me", response_model=ProfileResponse, summary="Get own profile")
async def get_my_profile(
    user: CurrentUser,
    profile_service: ProfileServiceDep,
) -> ProfileResponse:
    """Return the caller's profile, creating it on first visit."""
    profile = await profile_service.ensure_profile(user)
    return ProfileResponse.from_entity(profile)


@router.put("/me", response_model=ProfileResponse, summary="Update own profile")
async def update_my_profile(
    data: UpdateProfileRequest,
    user: CurrentUser,
    profile_service: ProfileServiceDep,
) -> ProfileResponse:
    profile = await profile_service.update_profile(user, data.full_name)
    return ProfileResponse.from_entity(profile)
