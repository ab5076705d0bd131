"""Multi-step activities: draft autosave, restore and submission status."""

from .status import ActivityError, InvalidTransitionError, SubmissionStatus


__all__ = ["ActivityError", "InvalidTransitionError", "SubmissionStatus"]
