"""Pydantic schemas for the curriculum.

Students never receive ``correct_option`` or ``explanation``; those are only
included in the staff variant of a question.
"""

from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from .models import DEFAULT_REQUIRED_SCORE, Chapter, Module, Question
from .registry import CompletionRuleKind, ModuleEntry


# ==============================================================================
# Module Schemas
# ==============================================================================


class ModuleSummaryResponse(BaseModel):
    """Registry entry enriched with the stored module row, when present."""

    module_id: int
    slug: str
    title: str
    description: str | None = None
    required_score: int
    chapter_count: int
    gate_chapter_id: int | None
    activity_chapter_id: int | None
    completion_rule: CompletionRuleKind
    min_completed: int

    @classmethod
    def build(
        cls,
        entry: ModuleEntry,
        module: Module | None,
        default_required_score: int,
    ) -> "ModuleSummaryResponse":
        base_score = module.required_score if module else default_required_score
        return cls(
            module_id=entry.module_id,
            slug=entry.slug,
            title=module.title if module else entry.title,
            description=module.description if module else None,
            required_score=(
                entry.required_score
                if entry.required_score is not None
                else base_score
            ),
            chapter_count=entry.chapter_count,
            gate_chapter_id=entry.gate_chapter_id,
            activity_chapter_id=entry.activity_chapter_id,
            completion_rule=entry.completion_rule.kind,
            min_completed=entry.completion_rule.min_completed,
        )


class UpsertModuleRequest(BaseModel):
    slug: str = Field(..., min_length=1, max_length=80)
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    required_score: int = Field(default=DEFAULT_REQUIRED_SCORE, ge=0, le=100)
    order_index: int = Field(default=0, ge=0)


class ModuleResponse(BaseModel):
    module_id: int
    slug: str
    title: str
    description: str | None
    required_score: int
    order_index: int

    @classmethod
    def from_entity(cls, entity: Module) -> "ModuleResponse":
        return cls(**entity.to_dict())


# ==============================================================================
# Chapter Schemas
# ==============================================================================


class ChapterResponse(BaseModel):
    chapter_id: int
    module_id: int
    order_index: int
    title: str
    content: str | None = None

    @classmethod
    def from_entity(cls, entity: Chapter) -> "ChapterResponse":
        return cls(**entity.to_dict())


class UpsertChapterRequest(BaseModel):
    module_id: int
    order_index: int = Field(..., ge=0)
    title: str = Field(..., min_length=1, max_length=200)
    content: str | None = None


# ==============================================================================
# Question Schemas
# ==============================================================================


class QuestionResponse(BaseModel):
    """Question as shown to students (no answer key)."""

    question_id: UUID
    position: int
    prompt: str
    options: list[str]

    @classmethod
    def from_entity(cls, entity: Question) -> "QuestionResponse":
        return cls(
            question_id=entity.question_id,
            position=entity.position,
            prompt=entity.prompt,
            options=entity.options,
        )


class QuestionWithAnswerResponse(QuestionResponse):
    """Question with its key, for instructors and administrators."""

    correct_option: int
    explanation: str | None = None

    @classmethod
    def from_entity(cls, entity: Question) -> "QuestionWithAnswerResponse":
        return cls(
            question_id=entity.question_id,
            position=entity.position,
            prompt=entity.prompt,
            options=entity.options,
            correct_option=entity.correct_option,
            explanation=entity.explanation,
        )


class ChapterDetailResponse(ChapterResponse):
    questions: list[QuestionWithAnswerResponse | QuestionResponse] = []


class UpsertQuestionRequest(BaseModel):
    question_id: UUID | None = None
    prompt: str = Field(..., min_length=1)
    options: list[str] = Field(..., min_length=2)
    correct_option: int = Field(..., ge=0)
    explanation: str | None = None

    @model_validator(mode="after")
    def _key_within_options(self) -> "UpsertQuestionRequest":
        if self.correct_option >= len(self.options):
            msg = "correct_option must index into options"
            raise ValueError(msg)
        return self
