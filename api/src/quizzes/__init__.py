"""Chapter quizzes: grading, attempt limit and next-chapter unlock."""

from .grading import QuizError, QuizGrade, QuizValidationError, grade, percentage


__all__ = ["QuizError", "QuizGrade", "QuizValidationError", "grade", "percentage"]
