"""Admin review workflow, overrides and AI grading suggestions."""

from .models import REVIEWS_TABLES_CQL, AuditAction, AuditEntry
from .suggestions import OpenAIScorer, ScoreSuggestion, Submission, SubmissionScorer


__all__ = [
    "REVIEWS_TABLES_CQL",
    "AuditAction",
    "AuditEntry",
    "OpenAIScorer",
    "ScoreSuggestion",
    "Submission",
    "SubmissionScorer",
]
