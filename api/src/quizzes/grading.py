"""Quiz scoring against an answer key.

Pure functions, no I/O. A score is the percentage of correct answers rounded
half up (3 of 8 correct is 37.5%, scored 38).
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from src.curriculum.models import Question


class QuizError(Exception):
    """Base quiz error."""

    def __init__(self, message: str, code: str = "quiz_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class QuizValidationError(QuizError):
    """Submitted answers do not fit the chapter's questions."""

    def __init__(self, message: str, code: str = "invalid_answers"):
        super().__init__(message, code)


@dataclass(frozen=True)
class QuizGrade:
    correct: int
    total: int
    score: int
    passed: bool


def percentage(correct: int, total: int) -> int:
    """round(100 * correct / total), halves rounded up."""
    if total <= 0:
        msg = "total must be positive"
        raise ValueError(msg)
    exact = Decimal(100 * correct) / Decimal(total)
    return int(exact.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def is_passing(score: int, required_score: int) -> bool:
    return score >= required_score


def validate_answers(
    questions: Sequence[Question],
    answers: Mapping[str, int],
) -> None:
    """Reject incomplete or malformed answer sets before anything is written.

    Raises:
        QuizValidationError: ``quiz_has_no_questions``, ``unknown_question``,
            ``incomplete_answers`` or ``option_out_of_range``
    """
    if not questions:
        raise QuizValidationError("This chapter has no quiz", "quiz_has_no_questions")

    by_id = {str(q.question_id): q for q in questions}

    unknown = sorted(set(answers) - set(by_id))
    if unknown:
        raise QuizValidationError(
            f"Unknown question ids: {', '.join(unknown)}", "unknown_question"
        )

    missing = len(by_id) - len(answers)
    if missing:
        raise QuizValidationError(
            f"Please answer all questions ({missing} unanswered)",
            "incomplete_answers",
        )

    for question_id, option in answers.items():
        if not 0 <= option < len(by_id[question_id].options):
            raise QuizValidationError(
                f"Option {option} is not valid for question {question_id}",
                "option_out_of_range",
            )


def grade(
    questions: Sequence[Question],
    answers: Mapping[str, int],
    required_score: int,
) -> QuizGrade:
    """Validate and score an answer set."""
    validate_answers(questions, answers)
    correct = sum(
        1 for q in questions if answers[str(q.question_id)] == q.correct_option
    )
    score = percentage(correct, len(questions))
    return QuizGrade(
        correct=correct,
        total=len(questions),
        score=score,
        passed=is_passing(score, required_score),
    )
