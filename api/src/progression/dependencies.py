"""FastAPI dependencies for progression and module gating."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status

from src.auth.permissions import UserRole, has_permission
from src.auth.schemas import Principal

from .service import ProgressionError, ProgressionService


async def get_progression_service(request: Request) -> ProgressionService:
    """Get progression service from app state."""
    service = getattr(request.app.state, "progression_service", None)
    if not service:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Progression service not available",
        )
    return service


ProgressionServiceDep = Annotated[ProgressionService, Depends(get_progression_service)]


def handle_progression_error(error: ProgressionError) -> HTTPException:
    """Convert progression errors to HTTP exceptions."""
    status_map = {
        "module_locked": status.HTTP_403_FORBIDDEN,
        "progress_unavailable": status.HTTP_503_SERVICE_UNAVAILABLE,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail=error.message,
    )


async def ensure_module_unlocked(
    user: Principal,
    module_id: int,
    progression_service: ProgressionService,
) -> None:
    """Reject student access to a locked module. Staff are never gated."""
    if has_permission(user.role, UserRole.INSTRUCTOR):
        return
    try:
        await progression_service.assert_module_unlocked(UUID(str(user.id)), module_id)
    except ProgressionError as e:
        raise handle_progression_error(e) from e
