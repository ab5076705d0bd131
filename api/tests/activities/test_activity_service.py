"""Tests for activity autosave, restore and submission."""

import pytest

from src.activities.service import (
    ActivityChapterNotFoundError,
    ActivityLockedError,
    ActivityModuleMismatchError,
    ActivityNotFoundError,
    ActivityService,
    ActivityStatusError,
)
from src.activities.status import (
    ActivityValidationError,
    InvalidTransitionError,
    SubmissionStatus,
)
from src.auth.schemas import Principal
from src.progression.evaluator import evaluate
from src.utils import utc_now


# data-annotation: module 3, activity on chapter 31 under "exam"
MODULE_ID = 3
CHAPTER_ID = 31


class TestSaveAndRestore:
    @pytest.mark.asyncio
    async def test_restore_returns_exactly_what_was_saved(
        self, activity_service: ActivityService, student: Principal
    ) -> None:
        responses = {
            "section1": {"answer": "Labels must be consistent", "notes": None},
            "section2": {"items": [1, 2], "draft": {"partial": True}},
        }

        await activity_service.save_activity_progress(
            student.id, MODULE_ID, CHAPTER_ID, step=2, responses=responses
        )
        restored = await activity_service.get_activity_progress(student.id, CHAPTER_ID)

        assert restored == {"step": 2, "responses": responses}

    @pytest.mark.asyncio
    async def test_nothing_saved_returns_none(
        self, activity_service: ActivityService, student: Principal
    ) -> None:
        assert await activity_service.get_activity_progress(student.id, CHAPTER_ID) is None

    @pytest.mark.asyncio
    async def test_save_replaces_the_whole_blob(
        self, activity_service: ActivityService, student: Principal
    ) -> None:
        await activity_service.save_activity_progress(
            student.id, MODULE_ID, CHAPTER_ID, 1, {"a": 1, "b": 2}
        )
        await activity_service.save_activity_progress(
            student.id, MODULE_ID, CHAPTER_ID, 2, {"b": 3}
        )

        restored = await activity_service.get_activity_progress(student.id, CHAPTER_ID)
        assert restored == {"step": 2, "responses": {"b": 3}}

    @pytest.mark.asyncio
    async def test_identical_save_performs_no_write(
        self, activity_service: ActivityService, store, student: Principal
    ) -> None:
        responses = {"section1": {"answer": "x"}}
        first = await activity_service.save_activity_progress(
            student.id, MODULE_ID, CHAPTER_ID, 1, responses
        )
        second = await activity_service.save_activity_progress(
            student.id, MODULE_ID, CHAPTER_ID, 1, responses
        )

        assert first.saved is True
        assert second.saved is False
        assert store.metadata_writes == 1

    @pytest.mark.asyncio
    async def test_chapter_of_another_module_is_rejected(
        self, activity_service: ActivityService, student: Principal
    ) -> None:
        with pytest.raises(ActivityModuleMismatchError):
            await activity_service.save_activity_progress(
                student.id, 2, CHAPTER_ID, 0, {}
            )

    @pytest.mark.asyncio
    async def test_claimed_module_cannot_move_a_completed_chapter(
        self, activity_service: ActivityService, store, student: Principal
    ) -> None:
        # intro chapter 5 claimed for the final assessment
        await store.mark_completed(student.id, 5, 1, 100, utc_now())

        with pytest.raises(ActivityModuleMismatchError):
            await activity_service.save_activity_progress(student.id, 5, 5, 0, {})

        record = store.records[(student.id, 5)]
        assert record.module_id == 1
        assert record.metadata is None
        records = await store.list_records(student.id)
        snapshot = evaluate(activity_service.registry, records)
        assert snapshot.get(5).completed is False

    @pytest.mark.asyncio
    async def test_unknown_chapter_is_rejected(
        self, activity_service: ActivityService, store, student: Principal
    ) -> None:
        with pytest.raises(ActivityChapterNotFoundError):
            await activity_service.save_activity_progress(student.id, 1, 999, 0, {})

        assert store.records == {}

    @pytest.mark.asyncio
    async def test_malformed_status_section(
        self, activity_service: ActivityService, student: Principal
    ) -> None:
        with pytest.raises(ActivityValidationError):
            await activity_service.save_activity_progress(
                student.id, MODULE_ID, CHAPTER_ID, 0, {"exam": "submitted"}
            )


class TestSubmission:
    @pytest.mark.asyncio
    async def test_saving_submitted_status_stamps_submission(
        self, activity_service: ActivityService, store, student: Principal
    ) -> None:
        result = await activity_service.save_activity_progress(
            student.id,
            MODULE_ID,
            CHAPTER_ID,
            4,
            {"exam": {"status": "submitted", "q1": "answer"}},
        )

        assert result.status == SubmissionStatus.SUBMITTED
        exam = store.records[(student.id, CHAPTER_ID)].metadata["responses"]["exam"]
        assert exam["status"] == "submitted"
        assert exam["q1"] == "answer"
        assert "submitted_at" in exam

    @pytest.mark.asyncio
    async def test_submitted_activity_is_read_only(
        self, activity_service: ActivityService, student: Principal
    ) -> None:
        await activity_service.save_activity_progress(
            student.id, MODULE_ID, CHAPTER_ID, 4, {"exam": {"q1": "answer"}}
        )
        await activity_service.submit_activity(
            student.id, activity_service.registry.get(MODULE_ID)
        )

        with pytest.raises(ActivityLockedError):
            await activity_service.save_activity_progress(
                student.id, MODULE_ID, CHAPTER_ID, 4, {"exam": {"q1": "edited"}}
            )

    @pytest.mark.asyncio
    async def test_student_cannot_mark_passed(
        self, activity_service: ActivityService, student: Principal
    ) -> None:
        with pytest.raises(ActivityStatusError):
            await activity_service.save_activity_progress(
                student.id, MODULE_ID, CHAPTER_ID, 4, {"exam": {"status": "passed"}}
            )

    @pytest.mark.asyncio
    async def test_submit_without_draft(
        self, activity_service: ActivityService, student: Principal
    ) -> None:
        with pytest.raises(ActivityNotFoundError):
            await activity_service.submit_activity(
                student.id, activity_service.registry.get(MODULE_ID)
            )

    @pytest.mark.asyncio
    async def test_submit_twice_is_an_invalid_transition(
        self, activity_service: ActivityService, student: Principal
    ) -> None:
        entry = activity_service.registry.get(MODULE_ID)
        await activity_service.save_activity_progress(
            student.id, MODULE_ID, CHAPTER_ID, 1, {"exam": {"q1": "a"}}
        )
        await activity_service.submit_activity(student.id, entry)

        with pytest.raises(InvalidTransitionError):
            await activity_service.submit_activity(student.id, entry)


class TestConditionalAccessFlag:
    @pytest.mark.asyncio
    async def test_student_cannot_grant_it(
        self, activity_service: ActivityService, student: Principal
    ) -> None:
        with pytest.raises(ActivityStatusError):
            await activity_service.save_activity_progress(
                student.id, MODULE_ID, CHAPTER_ID, 0, {"conditional_access": True}
            )

    @pytest.mark.asyncio
    async def test_granted_flag_survives_student_saves(
        self, activity_service: ActivityService, store, student: Principal
    ) -> None:
        await store.save_metadata(
            student.id,
            CHAPTER_ID,
            MODULE_ID,
            {"step": 1, "responses": {"conditional_access": True}},
        )

        await activity_service.save_activity_progress(
            student.id, MODULE_ID, CHAPTER_ID, 2, {"exam": {"q1": "retake"}}
        )

        responses = store.records[(student.id, CHAPTER_ID)].metadata["responses"]
        assert responses["conditional_access"] is True
        assert responses["exam"] == {"q1": "retake"}


class TestReviewFields:
    @pytest.mark.asyncio
    async def test_student_cannot_write_review_fields(
        self, activity_service: ActivityService, store, student: Principal
    ) -> None:
        await activity_service.save_activity_progress(
            student.id,
            MODULE_ID,
            CHAPTER_ID,
            1,
            {"exam": {"q1": "answer", "score": 100, "feedback": "Perfect"}},
        )

        exam = store.records[(student.id, CHAPTER_ID)].metadata["responses"]["exam"]
        assert exam == {"q1": "answer"}

    @pytest.mark.asyncio
    async def test_rolled_back_review_survives_student_saves(
        self, activity_service: ActivityService, store, student: Principal
    ) -> None:
        review = {"score": 40, "feedback": "Redo section 2", "reviewed_at": "2026-01-05"}
        await store.save_metadata(
            student.id,
            CHAPTER_ID,
            MODULE_ID,
            {"step": 3, "responses": {"exam": {"status": "pending", **review}}},
        )

        await activity_service.save_activity_progress(
            student.id,
            MODULE_ID,
            CHAPTER_ID,
            3,
            {"exam": {"status": "pending", "q1": "better", "score": 95}},
        )

        exam = store.records[(student.id, CHAPTER_ID)].metadata["responses"]["exam"]
        assert exam == {"status": "pending", "q1": "better", **review}
