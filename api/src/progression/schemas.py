"""Pydantic schemas for progression."""

from datetime import datetime

from pydantic import BaseModel, Field

from src.progress.models import ProgressRecord

from .evaluator import ModuleState, ProgramStatus, ProgressionSnapshot


class ModuleStateResponse(BaseModel):
    module_id: int
    slug: str
    title: str
    locked: bool
    completed: bool
    conditional: bool = Field(description="Passed via conditional access")
    completed_chapters: int

    @classmethod
    def from_state(cls, state: ModuleState) -> "ModuleStateResponse":
        return cls(
            module_id=state.module_id,
            slug=state.slug,
            title=state.title,
            locked=state.locked,
            completed=state.completed,
            conditional=state.conditional,
            completed_chapters=state.completed_chapters,
        )


class ChapterProgressResponse(BaseModel):
    chapter_id: int
    module_id: int
    completed: bool
    score: int | None
    attempts: int
    completed_at: datetime | None
    unlocked_at: datetime | None

    @classmethod
    def from_record(cls, record: ProgressRecord) -> "ChapterProgressResponse":
        return cls(
            chapter_id=record.chapter_id,
            module_id=record.module_id,
            completed=record.completed,
            score=record.score,
            attempts=record.attempts,
            completed_at=record.completed_at,
            unlocked_at=record.unlocked_at,
        )


class ProgressOverviewResponse(BaseModel):
    """Gating state of every module plus the student's chapter records."""

    modules: list[ModuleStateResponse]
    program_status: ProgramStatus
    completion_percent: int = Field(ge=0, le=100)
    progress_available: bool
    chapters: list[ChapterProgressResponse] = []

    @classmethod
    def build(
        cls,
        snapshot: ProgressionSnapshot,
        records: list[ProgressRecord] | None = None,
    ) -> "ProgressOverviewResponse":
        return cls(
            modules=[ModuleStateResponse.from_state(m) for m in snapshot.modules],
            program_status=snapshot.program_status,
            completion_percent=snapshot.completion_percent,
            progress_available=snapshot.progress_available,
            chapters=[ChapterProgressResponse.from_record(r) for r in records or []],
        )
