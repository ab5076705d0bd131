"""FastAPI dependencies for messages."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import MessageError, MessageService


async def get_message_service(request: Request) -> MessageService:
    """Get message service from app state."""
    service = getattr(request.app.state, "message_service", None)
    if not service:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Message service not available",
        )
    return service


MessageServiceDep = Annotated[MessageService, Depends(get_message_service)]


def handle_message_error(error: MessageError) -> HTTPException:
    """Convert message errors to HTTP exceptions."""
    status_map = {
        "message_not_found": status.HTTP_404_NOT_FOUND,
        "invalid_message": status.HTTP_422_UNPROCESSABLE_ENTITY,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail=error.message,
    )
