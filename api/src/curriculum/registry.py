"""Program registry: the ordered list of modules and their unlock rules.

Each entry names the module's gate chapter (whose completion unlocks the next
module), the chapter that holds its multi-step activity record, the key of the
status sub-object inside that record's responses, and the completion rule.
Thresholds are owner-supplied configuration; a JSON file set through
``PROGRAM_REGISTRY_PATH`` replaces the built-in program.
"""

from enum import Enum
from pathlib import Path
from typing import Any

import orjson
import structlog
from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.config.settings import Settings


logger = structlog.get_logger(__name__)


class CompletionRuleKind(str, Enum):
    """How a module counts as completed."""

    GATE_CHAPTER = "gate_chapter"  # gate chapter record completed
    MIN_COMPLETED_CHAPTERS = "min_completed_chapters"  # N completed records


class CompletionRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: CompletionRuleKind = CompletionRuleKind.GATE_CHAPTER
    min_completed: int = Field(default=1, ge=1)


class ModuleEntry(BaseModel):
    """Registry entry for one module of the program."""

    model_config = ConfigDict(frozen=True)

    module_id: int
    slug: str = Field(..., min_length=1)
    title: str
    chapter_count: int = Field(default=5, ge=1)
    gate_chapter_id: int | None = None
    activity_chapter_id: int | None = None
    status_key: str = Field(default="exam", min_length=1)
    required_score: int | None = Field(default=None, ge=0, le=100)
    completion_rule: CompletionRule = CompletionRule()

    @model_validator(mode="after")
    def _gate_rule_needs_gate_chapter(self) -> "ModuleEntry":
        if (
            self.completion_rule.kind == CompletionRuleKind.GATE_CHAPTER
            and self.gate_chapter_id is None
        ):
            msg = f"module {self.slug}: gate_chapter rule requires gate_chapter_id"
            raise ValueError(msg)
        return self

    @property
    def record_chapter_id(self) -> int | None:
        """Chapter whose progress record carries this module's metadata blob."""
        if self.activity_chapter_id is not None:
            return self.activity_chapter_id
        return self.gate_chapter_id


class ProgramRegistry(BaseModel):
    """Ordered modules of the training program."""

    model_config = ConfigDict(frozen=True)

    modules: list[ModuleEntry] = Field(..., min_length=1)

    @model_validator(mode="after")
    def _unique_identifiers(self) -> "ProgramRegistry":
        ids = [m.module_id for m in self.modules]
        slugs = [m.slug for m in self.modules]
        if len(set(ids)) != len(ids) or len(set(slugs)) != len(slugs):
            msg = "module ids and slugs must be unique"
            raise ValueError(msg)
        return self

    @property
    def total_chapters(self) -> int:
        return sum(m.chapter_count for m in self.modules)

    def get(self, module_id: int) -> ModuleEntry | None:
        return next((m for m in self.modules if m.module_id == module_id), None)

    def by_slug(self, slug: str) -> ModuleEntry | None:
        return next((m for m in self.modules if m.slug == slug), None)

    def by_record_chapter(self, chapter_id: int) -> ModuleEntry | None:
        """Entry whose activity record lives on ``chapter_id``."""
        return next(
            (m for m in self.modules if m.record_chapter_id == chapter_id), None
        )

    def position(self, module_id: int) -> int:
        """Zero-based position of a module in the program."""
        for index, entry in enumerate(self.modules):
            if entry.module_id == module_id:
                return index
        msg = f"module {module_id} is not registered"
        raise KeyError(msg)

    def required_score_for(self, module_id: int, default: int) -> int:
        """Registry threshold for a module, falling back to ``default``."""
        entry = self.get(module_id)
        if entry is None or entry.required_score is None:
            return default
        return entry.required_score


# Built-in program. The intro module keeps its "4 of 5 chapters" carve-out;
# modules with an open-ended activity gate on that activity's chapter.
DEFAULT_PROGRAM: dict[str, Any] = {
    "modules": [
        {
            "module_id": 1,
            "slug": "intro-to-llms",
            "title": "Introduction to LLMs",
            "completion_rule": {"kind": "min_completed_chapters", "min_completed": 4},
        },
        {
            "module_id": 2,
            "slug": "prompt-engineering",
            "title": "Prompt Engineering",
            "gate_chapter_id": 11,
            "activity_chapter_id": 11,
            "status_key": "quiz",
        },
        {
            "module_id": 3,
            "slug": "data-annotation",
            "title": "Data Annotation",
            "gate_chapter_id": 31,
            "activity_chapter_id": 31,
            "status_key": "exam",
        },
        {
            "module_id": 6,
            "slug": "model-evaluation",
            "title": "Model Evaluation",
            "gate_chapter_id": 21,
            "activity_chapter_id": 21,
            "status_key": "section3",
        },
        {
            "module_id": 5,
            "slug": "final-assessment",
            "title": "Final Assessment",
            "completion_rule": {"kind": "min_completed_chapters", "min_completed": 1},
        },
    ]
}


def load_program_registry(settings: Settings) -> ProgramRegistry:
    """Load the registry from ``settings.program_registry_path`` or the default.

    Raises:
        pydantic.ValidationError: If the file does not describe a valid program
        OSError: If the configured file cannot be read
    """
    if not settings.program_registry_path:
        return ProgramRegistry.model_validate(DEFAULT_PROGRAM)

    path = Path(settings.program_registry_path)
    registry = ProgramRegistry.model_validate(orjson.loads(path.read_bytes()))
    logger.info(
        "program_registry_loaded",
        path=str(path),
        modules=[m.slug for m in registry.modules],
    )
    return registry
