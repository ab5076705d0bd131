"""Curriculum service layer.

Reads and maintains modules, chapters and quiz questions.
"""

from typing import TYPE_CHECKING
from uuid import UUID, uuid4

import structlog

from .models import DEFAULT_REQUIRED_SCORE, Chapter, Module, Question


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class CurriculumError(Exception):
    """Base curriculum error."""

    def __init__(self, message: str, code: str = "curriculum_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class UnknownModuleError(CurriculumError):
    def __init__(self, message: str = "Module not found"):
        super().__init__(message, "module_not_found")


class ChapterNotFoundError(CurriculumError):
    def __init__(self, message: str = "Chapter not found"):
        super().__init__(message, "chapter_not_found")


class InvalidQuestionError(CurriculumError):
    def __init__(self, message: str):
        super().__init__(message, "invalid_question")


# ==============================================================================
# Curriculum Service
# ==============================================================================


class CurriculumService:
    """Service for modules, chapters and questions."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        # Modules
        self._get_module = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.modules WHERE module_id = ?
        """)
        self._get_module_by_slug = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.modules WHERE slug = ?
        """)
        self._list_modules = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.modules
        """)
        self._upsert_module = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.modules
            (module_id, slug, title, description, required_score, order_index)
            VALUES (?, ?, ?, ?, ?, ?)
        """)

        # Chapters
        self._list_chapters = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.chapters WHERE module_id = ?
        """)
        self._get_chapter_by_position = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.chapters
            WHERE module_id = ? AND order_index = ?
        """)
        self._get_chapter = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.chapters WHERE chapter_id = ?
        """)
        self._upsert_chapter = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.chapters
            (module_id, order_index, chapter_id, title, content)
            VALUES (?, ?, ?, ?, ?)
        """)

        # Questions
        self._list_questions = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.questions WHERE chapter_id = ?
        """)
        self._upsert_question = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.questions
            (chapter_id, position, question_id, prompt, options,
             correct_option, explanation)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """)

    # ==========================================================================
    # Modules
    # ==========================================================================

    async def get_module(self, module_id: int) -> Module | None:
        result = await self.session.aexecute(self._get_module, [module_id])
        row = result.one()
        return Module.from_row(row) if row else None

    async def require_module(self, module_id: int) -> Module:
        module = await self.get_module(module_id)
        if module is None:
            raise UnknownModuleError
        return module

    async def get_module_by_slug(self, slug: str) -> Module | None:
        result = await self.session.aexecute(self._get_module_by_slug, [slug])
        row = result.one()
        return Module.from_row(row) if row else None

    async def list_modules(self) -> list[Module]:
        result = await self.session.aexecute(self._list_modules)
        return sorted(
            (Module.from_row(row) for row in result), key=lambda m: m.order_index
        )

    async def upsert_module(
        self,
        module_id: int,
        slug: str,
        title: str,
        description: str | None = None,
        required_score: int = DEFAULT_REQUIRED_SCORE,
        order_index: int = 0,
    ) -> Module:
        module = Module(
            module_id=module_id,
            slug=slug,
            title=title,
            description=description,
            required_score=required_score,
            order_index=order_index,
        )
        await self.session.aexecute(
            self._upsert_module,
            [
                module.module_id,
                module.slug,
                module.title,
                module.description,
                module.required_score,
                module.order_index,
            ],
        )
        logger.info("module_saved", module_id=module_id, slug=slug)
        return module

    # ==========================================================================
    # Chapters
    # ==========================================================================

    async def list_chapters(self, module_id: int) -> list[Chapter]:
        result = await self.session.aexecute(self._list_chapters, [module_id])
        return [Chapter.from_row(row) for row in result]

    async def get_chapter(self, chapter_id: int) -> Chapter | None:
        result = await self.session.aexecute(self._get_chapter, [chapter_id])
        row = result.one()
        return Chapter.from_row(row) if row else None

    async def require_chapter(self, chapter_id: int) -> Chapter:
        chapter = await self.get_chapter(chapter_id)
        if chapter is None:
            raise ChapterNotFoundError
        return chapter

    async def get_next_chapter(self, chapter: Chapter) -> Chapter | None:
        """Chapter that follows ``chapter`` in the same module, if any."""
        result = await self.session.aexecute(
            self._get_chapter_by_position,
            [chapter.module_id, chapter.order_index + 1],
        )
        row = result.one()
        return Chapter.from_row(row) if row else None

    async def upsert_chapter(
        self,
        chapter_id: int,
        module_id: int,
        order_index: int,
        title: str,
        content: str | None = None,
    ) -> Chapter:
        await self.require_module(module_id)
        chapter = Chapter(
            chapter_id=chapter_id,
            module_id=module_id,
            order_index=order_index,
            title=title,
            content=content,
        )
        await self.session.aexecute(
            self._upsert_chapter,
            [module_id, order_index, chapter_id, title, content],
        )
        logger.info("chapter_saved", chapter_id=chapter_id, module_id=module_id)
        return chapter

    # ==========================================================================
    # Questions
    # ==========================================================================

    async def list_questions(self, chapter_id: int) -> list[Question]:
        result = await self.session.aexecute(self._list_questions, [chapter_id])
        return [Question.from_row(row) for row in result]

    async def upsert_question(
        self,
        chapter_id: int,
        position: int,
        prompt: str,
        options: list[str],
        correct_option: int,
        explanation: str | None = None,
        question_id: UUID | None = None,
    ) -> Question:
        """Create or replace the question at ``position`` of a chapter.

        Raises:
            ChapterNotFoundError: If the chapter does not exist
            InvalidQuestionError: If the answer key is out of range
        """
        await self.require_chapter(chapter_id)

        if not 0 <= correct_option < len(options):
            msg = f"correct_option {correct_option} outside {len(options)} options"
            raise InvalidQuestionError(msg)

        question = Question(
            question_id=question_id or uuid4(),
            chapter_id=chapter_id,
            position=position,
            prompt=prompt,
            options=options,
            correct_option=correct_option,
            explanation=explanation,
        )
        await self.session.aexecute(
            self._upsert_question,
            [
                question.chapter_id,
                question.position,
                question.question_id,
                question.prompt,
                question.options,
                question.correct_option,
                question.explanation,
            ],
        )
        logger.info(
            "question_saved",
            chapter_id=chapter_id,
            question_id=str(question.question_id),
        )
        return question
