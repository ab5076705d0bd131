"""FastAPI dependencies for profiles."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import ProfileError, ProfileService


async def get_profile_service(request: Request) -> ProfileService:
    """Get profile service from app state."""
    service = getattr(request.app.state, "profile_service", None)
    if not service:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Profile service not available",
        )
    return service


ProfileServiceDep = Annotated[ProfileService, Depends(get_profile_service)]


def handle_profile_error(error: ProfileError) -> HTTPException:
    """Convert profile errors to HTTP exceptions."""
    status_map = {
        "profile_not_found": status.HTTP_404_NOT_FOUND,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail=error.message,
    )
