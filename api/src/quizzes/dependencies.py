"""FastAPI dependencies for quizzes."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .grading import QuizError
from .service import QuizService


async def get_quiz_service(request: Request) -> QuizService:
    """Get quiz service from app state."""
    service = getattr(request.app.state, "quiz_service", None)
    if not service:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Quiz service not available",
        )
    return service


QuizServiceDep = Annotated[QuizService, Depends(get_quiz_service)]


def handle_quiz_error(error: QuizError) -> HTTPException:
    """Convert quiz errors to HTTP exceptions.

    Validation errors map to 422 and policy errors to 409.
    """
    status_map = {
        "invalid_answers": status.HTTP_422_UNPROCESSABLE_ENTITY,
        "quiz_has_no_questions": status.HTTP_422_UNPROCESSABLE_ENTITY,
        "unknown_question": status.HTTP_422_UNPROCESSABLE_ENTITY,
        "incomplete_answers": status.HTTP_422_UNPROCESSABLE_ENTITY,
        "option_out_of_range": status.HTTP_422_UNPROCESSABLE_ENTITY,
        "attempts_exhausted": status.HTTP_409_CONFLICT,
    }
    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_400_BAD_REQUEST),
        detail=error.message,
    )
