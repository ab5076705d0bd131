"""FastAPI dependencies for activities."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import ActivityService
from .status import ActivityError


async def get_activity_service(request: Request) -> ActivityService:
    """Get activity service from app state."""
    service = getattr(request.app.state, "activity_service", None)
    if not service:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Activity service not available",
        )
    return service


ActivityServiceDep = Annotated[ActivityService, Depends(get_activity_service)]


def handle_activity_error(error: ActivityError) -> HTTPException:
    """Convert activity errors to HTTP exceptions."""
    status_map = {
        "activity_locked": status.HTTP_409_CONFLICT,
        "invalid_transition": status.HTTP_409_CONFLICT,
        "status_forbidden": status.HTTP_403_FORBIDDEN,
        "activity_not_found": status.HTTP_404_NOT_FOUND,
        "chapter_not_found": status.HTTP_404_NOT_FOUND,
        "module_mismatch": status.HTTP_422_UNPROCESSABLE_ENTITY,
        "invalid_status": status.HTTP_422_UNPROCESSABLE_ENTITY,
        "invalid_status_section": status.HTTP_422_UNPROCESSABLE_ENTITY,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail=error.message,
    )
