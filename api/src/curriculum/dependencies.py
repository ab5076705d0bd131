"""FastAPI dependencies for the curriculum and program registry."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .registry import ProgramRegistry
from .service import CurriculumError, CurriculumService


async def get_curriculum_service(request: Request) -> CurriculumService:
    """Get curriculum service from app state."""
    service = getattr(request.app.state, "curriculum_service", None)
    if not service:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Curriculum service not available",
        )
    return service


async def get_program_registry(request: Request) -> ProgramRegistry:
    """Program registry loaded at application start."""
    return request.app.state.program_registry


CurriculumServiceDep = Annotated[CurriculumService, Depends(get_curriculum_service)]
ProgramRegistryDep = Annotated[ProgramRegistry, Depends(get_program_registry)]


def handle_curriculum_error(error: CurriculumError) -> HTTPException:
    """Convert curriculum errors to HTTP exceptions."""
    status_map = {
        "module_not_found": status.HTTP_404_NOT_FOUND,
        "chapter_not_found": status.HTTP_404_NOT_FOUND,
        "invalid_question": status.HTTP_422_UNPROCESSABLE_ENTITY,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail=error.message,
    )
