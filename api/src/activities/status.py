"""Submission status of a multi-step activity.

The status lives in the activity metadata blob at
``responses[<status_key>]["status"]``. Allowed moves::

    pending --student submit--> submitted
    submitted --review--> passed | failed
    submitted | passed | failed --rollback--> pending

Rollback keeps every response field; only the status changes.
"""

import copy
from enum import Enum
from typing import Any


class SubmissionStatus(str, Enum):
    PENDING = "pending"
    SUBMITTED = "submitted"
    PASSED = "passed"
    FAILED = "failed"


# Student edits are refused in these states until a rollback
READ_ONLY_STATUSES = frozenset(
    {SubmissionStatus.SUBMITTED, SubmissionStatus.PASSED, SubmissionStatus.FAILED}
)
REVIEW_OUTCOMES = frozenset({SubmissionStatus.PASSED, SubmissionStatus.FAILED})

# Written into the status section by submission and review, never by students
REVIEW_FIELDS = ("submitted_at", "score", "feedback", "reviewed_at")

_TRANSITIONS: dict[SubmissionStatus, frozenset[SubmissionStatus]] = {
    SubmissionStatus.PENDING: frozenset({SubmissionStatus.SUBMITTED}),
    SubmissionStatus.SUBMITTED: frozenset(
        {SubmissionStatus.PASSED, SubmissionStatus.FAILED, SubmissionStatus.PENDING}
    ),
    SubmissionStatus.PASSED: frozenset({SubmissionStatus.PENDING}),
    SubmissionStatus.FAILED: frozenset({SubmissionStatus.PENDING}),
}


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class ActivityError(Exception):
    """Base activity error."""

    def __init__(self, message: str, code: str = "activity_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class ActivityValidationError(ActivityError):
    def __init__(self, message: str, code: str = "invalid_activity"):
        super().__init__(message, code)


class InvalidTransitionError(ActivityError):
    def __init__(self, current: SubmissionStatus, target: SubmissionStatus):
        super().__init__(
            f"Cannot move a submission from {current.value} to {target.value}",
            "invalid_transition",
        )
        self.current = current
        self.target = target


# ==============================================================================
# Helpers
# ==============================================================================


def can_transition(current: SubmissionStatus, target: SubmissionStatus) -> bool:
    return target in _TRANSITIONS[current]


def check_transition(current: SubmissionStatus, target: SubmissionStatus) -> None:
    """Raise InvalidTransitionError unless ``current -> target`` is allowed."""
    if not can_transition(current, target):
        raise InvalidTransitionError(current, target)


def parse_status(value: Any) -> SubmissionStatus:
    """Parse a stored or submitted status; a missing status means pending."""
    if value is None:
        return SubmissionStatus.PENDING
    try:
        return SubmissionStatus(value)
    except ValueError as e:
        msg = f"Unknown submission status: {value!r}"
        raise ActivityValidationError(msg, "invalid_status") from e


def status_section(responses: dict[str, Any], status_key: str) -> dict[str, Any]:
    """The sub-object carrying the status, or an empty dict when absent."""
    section = responses.get(status_key)
    if section is None:
        return {}
    if not isinstance(section, dict):
        msg = f"responses.{status_key} must be an object"
        raise ActivityValidationError(msg, "invalid_status_section")
    return section


def read_status(metadata: dict[str, Any] | None, status_key: str) -> SubmissionStatus:
    """Status stored in a metadata blob (pending when nothing was saved)."""
    if not metadata:
        return SubmissionStatus.PENDING
    responses = metadata.get("responses") or {}
    return parse_status(status_section(responses, status_key).get("status"))


def with_status(
    metadata: dict[str, Any],
    status_key: str,
    status: SubmissionStatus,
    **fields: Any,
) -> dict[str, Any]:
    """Copy of ``metadata`` with the status (and extra fields) set.

    Every other response field is carried over unchanged.
    """
    updated = copy.deepcopy(metadata)
    responses = updated.setdefault("responses", {})
    section = dict(status_section(responses, status_key))
    section["status"] = status.value
    section.update(fields)
    responses[status_key] = section
    return updated
