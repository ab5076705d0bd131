"""FastAPI dependencies for the review console."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import ReviewError, ReviewService


async def get_review_service(request: Request) -> ReviewService:
    """Get review service from app state."""
    service = getattr(request.app.state, "review_service", None)
    if not service:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Review service not available",
        )
    return service


ReviewServiceDep = Annotated[ReviewService, Depends(get_review_service)]


def handle_review_error(error: ReviewError) -> HTTPException:
    """Convert review errors to HTTP exceptions.

    Unconfirmed overrides map to 428 Precondition Required.
    """
    status_map = {
        "confirmation_required": status.HTTP_428_PRECONDITION_REQUIRED,
        "module_not_found": status.HTTP_404_NOT_FOUND,
        "submission_not_found": status.HTTP_404_NOT_FOUND,
        "progress_not_found": status.HTTP_404_NOT_FOUND,
        "forced_unlock_unavailable": status.HTTP_422_UNPROCESSABLE_ENTITY,
        "no_activity_chapter": status.HTTP_422_UNPROCESSABLE_ENTITY,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail=error.message,
    )
