"""Tests for the submission status state machine."""

import pytest

from src.activities.status import (
    ActivityValidationError,
    InvalidTransitionError,
    SubmissionStatus,
    can_transition,
    check_transition,
    parse_status,
    read_status,
    with_status,
)


PENDING = SubmissionStatus.PENDING
SUBMITTED = SubmissionStatus.SUBMITTED
PASSED = SubmissionStatus.PASSED
FAILED = SubmissionStatus.FAILED


class TestTransitions:
    @pytest.mark.parametrize(
        "current,target",
        [
            (PENDING, SUBMITTED),
            (SUBMITTED, PASSED),
            (SUBMITTED, FAILED),
            (SUBMITTED, PENDING),
            (PASSED, PENDING),
            (FAILED, PENDING),
        ],
    )
    def test_allowed(self, current, target) -> None:
        assert can_transition(current, target) is True

    @pytest.mark.parametrize(
        "current,target",
        [
            (PENDING, PASSED),
            (PENDING, FAILED),
            (PENDING, PENDING),
            (PASSED, FAILED),
            (FAILED, PASSED),
            (PASSED, SUBMITTED),
        ],
    )
    def test_rejected(self, current, target) -> None:
        with pytest.raises(InvalidTransitionError) as exc_info:
            check_transition(current, target)
        assert exc_info.value.code == "invalid_transition"


class TestParsing:
    def test_missing_status_is_pending(self) -> None:
        assert parse_status(None) == PENDING
        assert read_status(None, "exam") == PENDING
        assert read_status({"step": 1, "responses": {}}, "exam") == PENDING

    def test_unknown_status(self) -> None:
        with pytest.raises(ActivityValidationError) as exc_info:
            parse_status("archived")
        assert exc_info.value.code == "invalid_status"

    def test_status_section_must_be_object(self) -> None:
        with pytest.raises(ActivityValidationError) as exc_info:
            read_status({"responses": {"exam": "submitted"}}, "exam")
        assert exc_info.value.code == "invalid_status_section"


class TestWithStatus:
    def test_keeps_every_other_field(self) -> None:
        metadata = {
            "step": 3,
            "responses": {
                "section1": {"answer": "text"},
                "exam": {"status": "submitted", "q1": "draft", "submitted_at": "t"},
            },
        }

        updated = with_status(metadata, "exam", PENDING)

        assert updated["step"] == 3
        assert updated["responses"]["section1"] == {"answer": "text"}
        assert updated["responses"]["exam"] == {
            "status": "pending",
            "q1": "draft",
            "submitted_at": "t",
        }
        # Input is not mutated
        assert metadata["responses"]["exam"]["status"] == "submitted"
