"""Database models for the curriculum.

Cassandra table definitions for:
- Modules: ordered program units with a pass threshold
- Chapters: ordered content within a module
- Questions: fixed-choice quiz questions of a chapter

Module and chapter identifiers are small integers assigned by the content
owner; the program registry refers to them.
"""

from typing import Any
from uuid import UUID


DEFAULT_REQUIRED_SCORE = 75


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

MODULES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.modules (
    module_id INT PRIMARY KEY,
    slug TEXT,
    title TEXT,
    description TEXT,
    required_score INT,
    order_index INT
)
"""

MODULES_SLUG_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS modules_slug_idx
ON {keyspace}.modules (slug)
"""

# Chapters partitioned by module so a module's chapters come back in order
CHAPTERS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.chapters (
    module_id INT,
    order_index INT,
    chapter_id INT,
    title TEXT,
    content TEXT,
    PRIMARY KEY ((module_id), order_index)
) WITH CLUSTERING ORDER BY (order_index ASC)
"""

CHAPTERS_ID_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS chapters_chapter_id_idx
ON {keyspace}.chapters (chapter_id)
"""

QUESTIONS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.questions (
    chapter_id INT,
    position INT,
    question_id UUID,
    prompt TEXT,
    options LIST<TEXT>,
    correct_option INT,
    explanation TEXT,
    PRIMARY KEY ((chapter_id), position)
) WITH CLUSTERING ORDER BY (position ASC)
"""

CURRICULUM_TABLES_CQL = [
    MODULES_TABLE_CQL,
    MODULES_SLUG_INDEX_CQL,
    CHAPTERS_TABLE_CQL,
    CHAPTERS_ID_INDEX_CQL,
    QUESTIONS_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class Module:
    """Program unit a student completes before moving on."""

    def __init__(
        self,
        module_id: int,
        slug: str,
        title: str,
        description: str | None = None,
        required_score: int = DEFAULT_REQUIRED_SCORE,
        order_index: int = 0,
    ):
        self.module_id = module_id
        self.slug = slug
        self.title = title
        self.description = description
        self.required_score = required_score
        self.order_index = order_index

    @classmethod
    def from_row(cls, row: Any) -> "Module":
        return cls(
            module_id=row.module_id,
            slug=row.slug,
            title=row.title or row.slug,
            description=row.description,
            required_score=(
                row.required_score
                if row.required_score is not None
                else DEFAULT_REQUIRED_SCORE
            ),
            order_index=row.order_index or 0,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "module_id": self.module_id,
            "slug": self.slug,
            "title": self.title,
            "description": self.description,
            "required_score": self.required_score,
            "order_index": self.order_index,
        }

    def __repr__(self) -> str:
        return f"<Module {self.module_id} {self.slug}>"


class Chapter:
    """Ordered content unit of a module."""

    def __init__(
        self,
        chapter_id: int,
        module_id: int,
        order_index: int,
        title: str,
        content: str | None = None,
    ):
        self.chapter_id = chapter_id
        self.module_id = module_id
        self.order_index = order_index
        self.title = title
        self.content = content

    @classmethod
    def from_row(cls, row: Any) -> "Chapter":
        return cls(
            chapter_id=row.chapter_id,
            module_id=row.module_id,
            order_index=row.order_index,
            title=row.title or "",
            content=row.content,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "chapter_id": self.chapter_id,
            "module_id": self.module_id,
            "order_index": self.order_index,
            "title": self.title,
            "content": self.content,
        }

    def __repr__(self) -> str:
        return f"<Chapter {self.chapter_id} module={self.module_id} #{self.order_index}>"


class Question:
    """Fixed-choice question. ``correct_option`` indexes into ``options``."""

    def __init__(
        self,
        question_id: UUID,
        chapter_id: int,
        position: int,
        prompt: str,
        options: list[str],
        correct_option: int,
        explanation: str | None = None,
    ):
        self.question_id = question_id
        self.chapter_id = chapter_id
        self.position = position
        self.prompt = prompt
        self.options = options
        self.correct_option = correct_option
        self.explanation = explanation

    @classmethod
    def from_row(cls, row: Any) -> "Question":
        return cls(
            question_id=row.question_id,
            chapter_id=row.chapter_id,
            position=row.position,
            prompt=row.prompt or "",
            options=list(row.options or []),
            correct_option=row.correct_option,
            explanation=row.explanation,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "question_id": self.question_id,
            "chapter_id": self.chapter_id,
            "position": self.position,
            "prompt": self.prompt,
            "options": self.options,
            "correct_option": self.correct_option,
            "explanation": self.explanation,
        }

    def __repr__(self) -> str:
        return f"<Question {self.question_id} chapter={self.chapter_id}>"
