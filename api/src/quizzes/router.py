"""Quiz API endpoints."""

from fastapi import APIRouter

from src.auth.dependencies import CurrentUser
from src.curriculum.dependencies import handle_curriculum_error
from src.curriculum.models import Chapter
from src.curriculum.service import CurriculumError
from src.progression.dependencies import ProgressionServiceDep, ensure_module_unlocked

from .dependencies import QuizServiceDep, handle_quiz_error
from .grading import QuizError
from .schemas import (
    QuizAttemptResponse,
    QuizStatusResponse,
    QuizSubmissionResponse,
    SubmitQuizRequest,
)
from .service import QuizService


router = APIRouter(prefix="/v1/quizzes", tags=["quizzes"])


async def _load_chapter(quiz_service: QuizService, chapter_id: int) -> Chapter:
    try:
        return await quiz_service.curriculum.require_chapter(chapter_id)
    except CurriculumError as e:
        raise handle_curriculum_error(e) from e


@router.post(
    "/chapters/{chapter_id}/attempts",
    response_model=QuizSubmissionResponse,
    summary="Submit a chapter quiz",
)
async def submit_quiz(
    chapter_id: int,
    data: SubmitQuizRequest,
    user: CurrentUser,
    quiz_service: QuizServiceDep,
    progression_service: ProgressionServiceDep,
) -> QuizSubmissionResponse:
    """Grade the answers and count the attempt.

    Every question must be answered. A passing score completes the chapter
    and unlocks the next one; two failures exhaust the chapter until an
    administrator resets it.
    """
    chapter = await _load_chapter(quiz_service, chapter_id)
    await ensure_module_unlocked(user, chapter.module_id, progression_service)

    try:
        quiz_grade, result = await quiz_service.grade_and_submit(
            user_id=user.id,
            chapter_id=chapter_id,
            answers=data.answers,
        )
    except QuizError as e:
        raise handle_quiz_error(e) from e
    except CurriculumError as e:
        raise handle_curriculum_error(e) from e

    return QuizSubmissionResponse.build(
        quiz_grade, result, await quiz_service.required_score(chapter)
    )


@router.get(
    "/chapters/{chapter_id}/status",
    response_model=QuizStatusResponse,
    summary="Get own quiz status for a chapter",
)
async def get_quiz_status(
    chapter_id: int,
    user: CurrentUser,
    quiz_service: QuizServiceDep,
) -> QuizStatusResponse:
    try:
        chapter, record = await quiz_service.chapter_status(user.id, chapter_id)
    except CurriculumError as e:
        raise handle_curriculum_error(e) from e

    return QuizStatusResponse(
        chapter_id=chapter.chapter_id,
        module_id=chapter.module_id,
        completed=bool(record and record.completed),
        score=record.score if record else None,
        attempts=record.attempts if record else 0,
        attempts_remaining=quiz_service.attempts_remaining(record),
        max_attempts=quiz_service.max_attempts,
        required_score=await quiz_service.required_score(chapter),
    )


@router.get(
    "/chapters/{chapter_id}/attempts",
    response_model=list[QuizAttemptResponse],
    summary="List own quiz attempts for a chapter",
)
async def list_quiz_attempts(
    chapter_id: int,
    user: CurrentUser,
    quiz_service: QuizServiceDep,
) -> list[QuizAttemptResponse]:
    attempts = await quiz_service.list_attempts(user.id, chapter_id)
    return [QuizAttemptResponse.from_entity(a) for a in attempts]
