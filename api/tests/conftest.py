"""Shared fixtures: in-memory stores, seeded curriculum and an API client."""

import os
import tempfile


os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="konex-logs-"))
os.environ.setdefault("AUTH_SECRET_KEY", "test-secret-key-with-enough-entropy")

from datetime import datetime  # noqa: E402
from typing import Any  # noqa: E402
from uuid import UUID, uuid4  # noqa: E402

import pytest  # noqa: E402
from cassandra.cluster import NoHostAvailable  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from src.activities.service import ActivityService  # noqa: E402
from src.auth.permissions import UserRole  # noqa: E402
from src.auth.schemas import Principal  # noqa: E402
from src.auth.security import create_access_token  # noqa: E402
from src.curriculum.models import Chapter, Module, Question  # noqa: E402
from src.curriculum.registry import DEFAULT_PROGRAM, ProgramRegistry  # noqa: E402
from src.curriculum.service import ChapterNotFoundError  # noqa: E402
from src.profiles.models import Profile  # noqa: E402
from src.profiles.service import ProfileNotFoundError  # noqa: E402
from src.progress.models import ProgressRecord, QuizAttempt  # noqa: E402
from src.progression.service import ProgressionService  # noqa: E402
from src.quizzes.service import QuizService  # noqa: E402
from src.reviews.models import AuditEntry  # noqa: E402
from src.reviews.service import ReviewService  # noqa: E402
from src.reviews.suggestions import (  # noqa: E402
    ScoreSuggestion,
    Submission,
    SuggestionError,
)
from src.utils import dumps_json, loads_json  # noqa: E402


# ==============================================================================
# In-memory collaborators
# ==============================================================================


class FakeProgressStore:
    """Mirrors CassandraProgressStore with upsert-by-key semantics."""

    def __init__(self) -> None:
        self.records: dict[tuple[UUID, int], ProgressRecord] = {}
        self.attempts: dict[tuple[UUID, int], list[QuizAttempt]] = {}
        self.metadata_writes = 0
        self.unavailable = False

    def _check(self) -> None:
        if self.unavailable:
            raise NoHostAvailable("Unable to connect to any servers", {})

    def _upsert(self, user_id: UUID, chapter_id: int, module_id: int) -> ProgressRecord:
        key = (user_id, chapter_id)
        record = self.records.get(key)
        if record is None:
            record = ProgressRecord(user_id, chapter_id, module_id)
            self.records[key] = record
        record.module_id = module_id
        return record

    async def get_record(self, user_id: UUID, chapter_id: int) -> ProgressRecord | None:
        self._check()
        record = self.records.get((user_id, chapter_id))
        if record is None:
            return None
        copied = record.to_dict() | {"metadata": self._copy(record.metadata)}
        return ProgressRecord(**copied)

    async def list_records(self, user_id: UUID) -> list[ProgressRecord]:
        self._check()
        return sorted(
            (r for (uid, _), r in self.records.items() if uid == user_id),
            key=lambda r: r.chapter_id,
        )

    async def list_chapter_records(self, chapter_id: int) -> list[ProgressRecord]:
        self._check()
        return [r for (_, cid), r in self.records.items() if cid == chapter_id]

    async def record_quiz_outcome(
        self,
        user_id: UUID,
        chapter_id: int,
        module_id: int,
        score: int,
        attempts: int,
        passed: bool,
        at: datetime,
    ) -> None:
        self._check()
        record = self._upsert(user_id, chapter_id, module_id)
        record.score = score
        record.attempts = attempts
        record.completed = passed
        if passed:
            record.completed_at = at

    async def mark_completed(
        self, user_id: UUID, chapter_id: int, module_id: int, score: int, at: datetime
    ) -> None:
        self._check()
        record = self._upsert(user_id, chapter_id, module_id)
        record.completed = True
        record.score = score
        record.completed_at = at

    async def mark_unlocked(
        self, user_id: UUID, chapter_id: int, module_id: int, at: datetime
    ) -> None:
        self._check()
        self._upsert(user_id, chapter_id, module_id).unlocked_at = at

    async def save_metadata(
        self, user_id: UUID, chapter_id: int, module_id: int, metadata: dict[str, Any]
    ) -> None:
        self._check()
        self.metadata_writes += 1
        self._upsert(user_id, chapter_id, module_id).metadata = self._copy(metadata)

    async def reset_attempts(self, user_id: UUID, chapter_id: int, module_id: int) -> None:
        self._check()
        record = self._upsert(user_id, chapter_id, module_id)
        record.completed = False
        record.score = None
        record.attempts = 0
        record.completed_at = None

    async def append_attempt(self, attempt: QuizAttempt) -> None:
        self._check()
        key = (attempt.user_id, attempt.chapter_id)
        self.attempts.setdefault(key, []).insert(0, attempt)

    async def latest_attempt_number(self, user_id: UUID, chapter_id: int) -> int:
        self._check()
        log = self.attempts.get((user_id, chapter_id))
        return log[0].attempt_number if log else 0

    async def list_attempts(self, user_id: UUID, chapter_id: int) -> list[QuizAttempt]:
        self._check()
        return list(self.attempts.get((user_id, chapter_id), []))

    @staticmethod
    def _copy(metadata: dict[str, Any] | None) -> dict[str, Any] | None:
        # Same round trip as the TEXT column
        return None if metadata is None else loads_json(dumps_json(metadata))


class FakeCurriculum:
    def __init__(self) -> None:
        self.modules: dict[int, Module] = {}
        self.chapters: dict[int, Chapter] = {}
        self.questions: dict[int, list[Question]] = {}

    def add_module(self, module_id: int, slug: str, required_score: int = 75) -> Module:
        module = Module(module_id, slug, slug.title(), required_score=required_score)
        self.modules[module_id] = module
        return module

    def add_chapter(self, chapter_id: int, module_id: int, order_index: int) -> Chapter:
        chapter = Chapter(chapter_id, module_id, order_index, f"Chapter {chapter_id}")
        self.chapters[chapter_id] = chapter
        return chapter

    def add_quiz(self, chapter_id: int, correct_options: list[int]) -> list[Question]:
        questions = [
            Question(
                question_id=uuid4(),
                chapter_id=chapter_id,
                position=position,
                prompt=f"Question {position + 1}",
                options=["a", "b", "c", "d"],
                correct_option=correct,
            )
            for position, correct in enumerate(correct_options)
        ]
        self.questions[chapter_id] = questions
        return questions

    async def get_module(self, module_id: int) -> Module | None:
        return self.modules.get(module_id)

    async def list_modules(self) -> list[Module]:
        return list(self.modules.values())

    async def list_chapters(self, module_id: int) -> list[Chapter]:
        return sorted(
            (c for c in self.chapters.values() if c.module_id == module_id),
            key=lambda c: c.order_index,
        )

    async def get_chapter(self, chapter_id: int) -> Chapter | None:
        return self.chapters.get(chapter_id)

    async def require_chapter(self, chapter_id: int) -> Chapter:
        chapter = self.chapters.get(chapter_id)
        if chapter is None:
            raise ChapterNotFoundError
        return chapter

    async def get_next_chapter(self, chapter: Chapter) -> Chapter | None:
        return next(
            (
                c
                for c in self.chapters.values()
                if c.module_id == chapter.module_id
                and c.order_index == chapter.order_index + 1
            ),
            None,
        )

    async def list_questions(self, chapter_id: int) -> list[Question]:
        return list(self.questions.get(chapter_id, []))


class FakeProfileService:
    def __init__(self) -> None:
        self.profiles: dict[UUID, Profile] = {}

    def add(self, principal: Principal) -> Profile:
        profile = Profile(
            user_id=principal.id,
            email=principal.email,
            full_name=principal.full_name,
            role=principal.role,
        )
        self.profiles[principal.id] = profile
        return profile

    async def get_profile(self, user_id: UUID) -> Profile | None:
        return self.profiles.get(user_id)

    async def require_profile(self, user_id: UUID) -> Profile:
        profile = self.profiles.get(user_id)
        if profile is None:
            raise ProfileNotFoundError
        return profile

    async def list_profiles(self) -> list[Profile]:
        return list(self.profiles.values())

    async def list_students(self, search: str | None = None) -> list[Profile]:
        needle = (search or "").lower()
        return [
            p
            for p in self.profiles.values()
            if not p.is_admin
            and (needle in p.email.lower() or needle in (p.full_name or "").lower())
        ]

    async def ensure_profile(self, principal: Principal) -> Profile:
        return self.profiles.get(principal.id) or self.add(principal)


class FakeAuditLog:
    def __init__(self) -> None:
        self.entries: list[AuditEntry] = []

    async def record(self, entry: AuditEntry) -> None:
        self.entries.append(entry)

    async def list_entries(self, user_id: UUID, limit: int = 50) -> list[AuditEntry]:
        return [e for e in reversed(self.entries) if e.user_id == user_id][:limit]


class FakeScorer:
    def __init__(self, suggestion: ScoreSuggestion | None = None) -> None:
        self.suggestion = suggestion
        self.calls: list[Submission] = []

    async def suggest(self, submission: Submission) -> ScoreSuggestion:
        self.calls.append(submission)
        if self.suggestion is None:
            raise SuggestionError("Scorer API timeout")
        return self.suggestion


# ==============================================================================
# Fixtures
# ==============================================================================


@pytest.fixture
def registry() -> ProgramRegistry:
    return ProgramRegistry.model_validate(DEFAULT_PROGRAM)


@pytest.fixture
def store() -> FakeProgressStore:
    return FakeProgressStore()


@pytest.fixture
def curriculum() -> FakeCurriculum:
    """Module 1 has five chapters with a four-question quiz on chapter 1."""
    fake = FakeCurriculum()
    fake.add_module(1, "intro-to-llms")
    for index in range(5):
        fake.add_chapter(index + 1, module_id=1, order_index=index)
    fake.add_quiz(1, [0, 1, 2, 3])

    fake.add_module(2, "prompt-engineering")
    fake.add_chapter(10, module_id=2, order_index=0)
    fake.add_chapter(11, module_id=2, order_index=1)
    fake.add_module(3, "data-annotation")
    fake.add_chapter(31, module_id=3, order_index=0)
    return fake


@pytest.fixture
def profiles() -> FakeProfileService:
    return FakeProfileService()


@pytest.fixture
def audit_log() -> FakeAuditLog:
    return FakeAuditLog()


@pytest.fixture
def scorer() -> FakeScorer:
    return FakeScorer(ScoreSuggestion(score=82, feedback="Clear and well argued."))


@pytest.fixture
def student() -> Principal:
    return Principal(
        id=uuid4(), email="ana@example.com", role=UserRole.STUDENT, full_name="Ana Lima"
    )


@pytest.fixture
def admin() -> Principal:
    return Principal(
        id=uuid4(), email="lead@example.com", role=UserRole.ADMIN, full_name="Lead"
    )


@pytest.fixture
def quiz_service(store, curriculum, registry) -> QuizService:
    return QuizService(store=store, curriculum=curriculum, registry=registry)


@pytest.fixture
def activity_service(store, registry, curriculum) -> ActivityService:
    return ActivityService(store=store, registry=registry, curriculum=curriculum)


@pytest.fixture
def progression_service(store, registry) -> ProgressionService:
    return ProgressionService(store=store, registry=registry)


@pytest.fixture
def review_service(
    store, profiles, registry, audit_log, curriculum, scorer
) -> ReviewService:
    return ReviewService(
        store=store,
        profiles=profiles,
        registry=registry,
        audit_log=audit_log,
        curriculum=curriculum,
        scorer=scorer,
    )


@pytest.fixture
def failing_scorer() -> FakeScorer:
    return FakeScorer(None)


@pytest.fixture
def auth_headers():
    """Bearer header for a principal, signed like the identity provider."""

    def _headers(principal: Principal) -> dict[str, str]:
        token = create_access_token(principal.id, principal.email, role=principal.role)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def client(
    registry,
    store,
    curriculum,
    profiles,
    quiz_service,
    activity_service,
    progression_service,
    review_service,
) -> TestClient:
    """API client wired to the in-memory services. Lifespan is not run."""
    from src.main import app

    app.state.program_registry = registry
    app.state.progress_store = store
    app.state.curriculum_service = curriculum
    app.state.profile_service = profiles
    app.state.quiz_service = quiz_service
    app.state.activity_service = activity_service
    app.state.progression_service = progression_service
    app.state.review_service = review_service
    app.state.message_service = None
    return TestClient(app)
