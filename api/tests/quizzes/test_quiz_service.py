"""Tests for quiz submission, attempt limit and chapter unlock."""

from uuid import UUID

import pytest

from src.auth.schemas import Principal
from src.quizzes.grading import QuizValidationError
from src.quizzes.service import AttemptsExhaustedError, QuizService


def answers_with(questions, correct: int) -> dict[str, int]:
    """Answer the first ``correct`` questions right and the rest wrong."""
    answers = {}
    for index, question in enumerate(questions):
        right = question.correct_option
        answers[str(question.question_id)] = right if index < correct else (right + 1) % 4
    return answers


@pytest.fixture
def questions(curriculum):
    return curriculum.questions[1]


class TestSubmitQuiz:
    @pytest.mark.asyncio
    async def test_three_of_four_passes_and_unlocks_next_chapter(
        self, quiz_service: QuizService, store, student: Principal, questions
    ) -> None:
        grade, result = await quiz_service.grade_and_submit(
            student.id, 1, answers_with(questions, 3)
        )

        assert grade.score == 75
        assert result.passed is True
        assert result.completed is True
        assert result.attempt_number == 1
        assert result.unlocked_chapter_id == 2

        record = store.records[(student.id, 1)]
        assert record.completed is True
        assert record.score == 75
        assert record.attempts == 1
        assert store.records[(student.id, 2)].unlocked_at is not None

    @pytest.mark.asyncio
    async def test_third_attempt_after_two_failures_is_rejected(
        self, quiz_service: QuizService, store, student: Principal, questions
    ) -> None:
        first = await quiz_service.grade_and_submit(student.id, 1, answers_with(questions, 1))
        second = await quiz_service.grade_and_submit(student.id, 1, answers_with(questions, 2))

        assert first[1].attempts_remaining == 1
        assert second[1].attempts_remaining == 0

        with pytest.raises(AttemptsExhaustedError):
            await quiz_service.grade_and_submit(student.id, 1, answers_with(questions, 4))

        record = store.records[(student.id, 1)]
        assert record.attempts == 2
        assert record.completed is False
        assert len(store.attempts[(student.id, 1)]) == 2

    @pytest.mark.asyncio
    async def test_reset_restores_attempts_and_attempt_numbers_keep_growing(
        self, quiz_service: QuizService, store, student: Principal, questions
    ) -> None:
        await quiz_service.grade_and_submit(student.id, 1, answers_with(questions, 0))
        await quiz_service.grade_and_submit(student.id, 1, answers_with(questions, 0))
        await store.reset_attempts(student.id, 1, 1)

        _, result = await quiz_service.grade_and_submit(
            student.id, 1, answers_with(questions, 4)
        )

        assert result.passed is True
        assert result.attempt_number == 3
        assert store.records[(student.id, 1)].attempts == 1

    @pytest.mark.asyncio
    async def test_resubmission_after_pass_never_downgrades(
        self, quiz_service: QuizService, store, student: Principal, questions
    ) -> None:
        await quiz_service.grade_and_submit(student.id, 1, answers_with(questions, 4))

        _, result = await quiz_service.grade_and_submit(
            student.id, 1, answers_with(questions, 0)
        )

        assert result.accepted is True
        assert result.recorded is False
        assert result.completed is True
        record = store.records[(student.id, 1)]
        assert record.completed is True
        assert record.score == 100
        assert record.attempts == 1

    @pytest.mark.asyncio
    async def test_incomplete_answers_do_not_count_an_attempt(
        self, quiz_service: QuizService, store, student: Principal, questions
    ) -> None:
        partial = {str(questions[0].question_id): 0}

        with pytest.raises(QuizValidationError):
            await quiz_service.grade_and_submit(student.id, 1, partial)

        assert (student.id, 1) not in store.records

    @pytest.mark.asyncio
    async def test_module_threshold_applies(
        self, quiz_service: QuizService, curriculum, student: Principal, questions
    ) -> None:
        curriculum.modules[1].required_score = 80

        grade, result = await quiz_service.grade_and_submit(
            student.id, 1, answers_with(questions, 3)
        )

        assert grade.score == 75
        assert result.passed is False

    @pytest.mark.asyncio
    async def test_last_chapter_pass_unlocks_nothing(
        self, quiz_service: QuizService, curriculum, student: Principal
    ) -> None:
        questions = curriculum.add_quiz(5, [1, 1])

        _, result = await quiz_service.grade_and_submit(
            student.id, 5, answers_with(questions, 2)
        )

        assert result.passed is True
        assert result.unlocked_chapter_id is None


class TestAttemptLog:
    @pytest.mark.asyncio
    async def test_attempts_listed_newest_first(
        self, quiz_service: QuizService, student: Principal, questions
    ) -> None:
        await quiz_service.grade_and_submit(student.id, 1, answers_with(questions, 1))
        await quiz_service.grade_and_submit(student.id, 1, answers_with(questions, 4))

        attempts = await quiz_service.list_attempts(student.id, 1)

        assert [a.attempt_number for a in attempts] == [2, 1]
        assert attempts[0].passed is True
        assert isinstance(attempts[0].user_id, UUID)
