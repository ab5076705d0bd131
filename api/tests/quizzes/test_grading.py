"""Tests for quiz scoring."""

from uuid import uuid4

import pytest

from src.curriculum.models import Question
from src.quizzes.grading import (
    QuizValidationError,
    grade,
    is_passing,
    percentage,
    validate_answers,
)


def make_questions(correct_options: list[int]) -> list[Question]:
    return [
        Question(
            question_id=uuid4(),
            chapter_id=1,
            position=i,
            prompt=f"Q{i}",
            options=["a", "b", "c", "d"],
            correct_option=c,
        )
        for i, c in enumerate(correct_options)
    ]


class TestPercentage:
    @pytest.mark.parametrize(
        "correct,total,expected",
        [
            (3, 4, 75),
            (0, 4, 0),
            (4, 4, 100),
            (1, 3, 33),
            (2, 3, 67),
            (3, 8, 38),  # 37.5 rounds half up
            (1, 8, 13),  # 12.5 rounds half up
        ],
    )
    def test_rounds_half_up(self, correct: int, total: int, expected: int) -> None:
        assert percentage(correct, total) == expected

    def test_zero_total_is_rejected(self) -> None:
        with pytest.raises(ValueError):
            percentage(0, 0)


class TestPassRule:
    def test_threshold_is_inclusive(self) -> None:
        assert is_passing(75, 75) is True
        assert is_passing(74, 75) is False


class TestValidateAnswers:
    def test_no_questions(self) -> None:
        with pytest.raises(QuizValidationError) as exc_info:
            validate_answers([], {})
        assert exc_info.value.code == "quiz_has_no_questions"

    def test_incomplete_answers_are_rejected(self) -> None:
        questions = make_questions([0, 1, 2])
        answers = {str(questions[0].question_id): 0}
        with pytest.raises(QuizValidationError) as exc_info:
            validate_answers(questions, answers)
        assert exc_info.value.code == "incomplete_answers"
        assert "2 unanswered" in exc_info.value.message

    def test_unknown_question(self) -> None:
        questions = make_questions([0])
        with pytest.raises(QuizValidationError) as exc_info:
            validate_answers(questions, {"not-a-question": 0})
        assert exc_info.value.code == "unknown_question"

    def test_option_out_of_range(self) -> None:
        questions = make_questions([0])
        with pytest.raises(QuizValidationError) as exc_info:
            validate_answers(questions, {str(questions[0].question_id): 4})
        assert exc_info.value.code == "option_out_of_range"


class TestGrade:
    def test_three_of_four_passes_at_75(self) -> None:
        questions = make_questions([0, 1, 2, 3])
        answers = {str(q.question_id): q.correct_option for q in questions}
        answers[str(questions[3].question_id)] = 0

        result = grade(questions, answers, required_score=75)

        assert result.correct == 3
        assert result.total == 4
        assert result.score == 75
        assert result.passed is True

    def test_below_threshold_fails(self) -> None:
        questions = make_questions([0, 1, 2, 3])
        answers = {str(q.question_id): 3 for q in questions}

        result = grade(questions, answers, required_score=75)

        assert result.score == 25
        assert result.passed is False
