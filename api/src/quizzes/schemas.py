"""Pydantic schemas for quiz submissions."""

from datetime import datetime

from pydantic import BaseModel, Field

from src.progress.models import QuizAttempt

from .grading import QuizGrade
from .service import QuizSubmissionResult


class SubmitQuizRequest(BaseModel):
    """Chosen option index per question id."""

    answers: dict[str, int] = Field(..., description="question_id -> option index")


class QuizSubmissionResponse(BaseModel):
    accepted: bool
    score: int = Field(ge=0, le=100)
    passed: bool
    correct: int
    total: int
    required_score: int
    attempts_remaining: int
    completed: bool
    recorded: bool = Field(description="False when the chapter was already completed")
    attempt_number: int | None = None
    unlocked_chapter_id: int | None = None

    @classmethod
    def build(
        cls,
        quiz_grade: QuizGrade,
        result: QuizSubmissionResult,
        required_score: int,
    ) -> "QuizSubmissionResponse":
        return cls(
            accepted=result.accepted,
            score=result.score,
            passed=result.passed,
            correct=quiz_grade.correct,
            total=quiz_grade.total,
            required_score=required_score,
            attempts_remaining=result.attempts_remaining,
            completed=result.completed,
            recorded=result.recorded,
            attempt_number=result.attempt_number,
            unlocked_chapter_id=result.unlocked_chapter_id,
        )


class QuizStatusResponse(BaseModel):
    chapter_id: int
    module_id: int
    completed: bool
    score: int | None
    attempts: int
    attempts_remaining: int
    max_attempts: int
    required_score: int


class QuizAttemptResponse(BaseModel):
    attempt_number: int
    answers: dict[str, int]
    score: int
    passed: bool
    created_at: datetime

    @classmethod
    def from_entity(cls, entity: QuizAttempt) -> "QuizAttemptResponse":
        return cls(
            attempt_number=entity.attempt_number,
            answers=entity.answers,
            score=entity.score,
            passed=entity.passed,
            created_at=entity.created_at,
        )
