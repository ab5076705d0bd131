"""Curriculum API endpoints.

Provides routes for:
- The ordered program (registry entries with module details)
- Chapters of a module and a chapter's quiz questions
- Content management for administrators
"""

from fastapi import APIRouter, HTTPException, status

from src.auth.dependencies import AdminUser, CurrentUser
from src.auth.permissions import UserRole, has_permission
from src.config import get_settings
from src.progression.dependencies import ProgressionServiceDep, ensure_module_unlocked

from .dependencies import (
    CurriculumServiceDep,
    ProgramRegistryDep,
    handle_curriculum_error,
)
from .schemas import (
    ChapterDetailResponse,
    ChapterResponse,
    ModuleResponse,
    ModuleSummaryResponse,
    QuestionResponse,
    QuestionWithAnswerResponse,
    UpsertChapterRequest,
    UpsertModuleRequest,
    UpsertQuestionRequest,
)
from .service import CurriculumError


router = APIRouter(prefix="/v1/curriculum", tags=["curriculum"])


# ==============================================================================
# Read Endpoints
# ==============================================================================


@router.get(
    "/modules",
    response_model=list[ModuleSummaryResponse],
    summary="List program modules in order",
)
async def list_modules(
    _user: CurrentUser,
    registry: ProgramRegistryDep,
    curriculum_service: CurriculumServiceDep,
) -> list[ModuleSummaryResponse]:
    stored = {m.module_id: m for m in await curriculum_service.list_modules()}
    default_score = get_settings().default_required_score
    return [
        ModuleSummaryResponse.build(entry, stored.get(entry.module_id), default_score)
        for entry in registry.modules
    ]


@router.get(
    "/modules/{slug}/chapters",
    response_model=list[ChapterResponse],
    summary="List chapters of a module",
)
async def list_module_chapters(
    slug: str,
    user: CurrentUser,
    registry: ProgramRegistryDep,
    curriculum_service: CurriculumServiceDep,
    progression_service: ProgressionServiceDep,
) -> list[ChapterResponse]:
    entry = registry.by_slug(slug)
    if entry is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Module not found"
        )

    await ensure_module_unlocked(user, entry.module_id, progression_service)

    chapters = await curriculum_service.list_chapters(entry.module_id)
    return [ChapterResponse.from_entity(c) for c in chapters]


@router.get(
    "/chapters/{chapter_id}",
    response_model=ChapterDetailResponse,
    summary="Get a chapter with its quiz questions",
)
async def get_chapter(
    chapter_id: int,
    user: CurrentUser,
    curriculum_service: CurriculumServiceDep,
    progression_service: ProgressionServiceDep,
) -> ChapterDetailResponse:
    """Answer keys are included only for instructors and administrators."""
    try:
        chapter = await curriculum_service.require_chapter(chapter_id)
    except CurriculumError as e:
        raise handle_curriculum_error(e) from e

    await ensure_module_unlocked(user, chapter.module_id, progression_service)

    questions = await curriculum_service.list_questions(chapter_id)
    if has_permission(user.role, UserRole.INSTRUCTOR):
        rendered = [QuestionWithAnswerResponse.from_entity(q) for q in questions]
    else:
        rendered = [QuestionResponse.from_entity(q) for q in questions]

    return ChapterDetailResponse(**chapter.to_dict(), questions=rendered)


# ==============================================================================
# Admin Endpoints
# ==============================================================================


@router.put(
    "/modules/{module_id}",
    response_model=ModuleResponse,
    summary="Create or replace a module",
)
async def upsert_module(
    module_id: int,
    data: UpsertModuleRequest,
    _admin: AdminUser,
    curriculum_service: CurriculumServiceDep,
) -> ModuleResponse:
    module = await curriculum_service.upsert_module(
        module_id=module_id,
        slug=data.slug,
        title=data.title,
        description=data.description,
        required_score=data.required_score,
        order_index=data.order_index,
    )
    return ModuleResponse.from_entity(module)


@router.put(
    "/chapters/{chapter_id}",
    response_model=ChapterResponse,
    summary="Create or replace a chapter",
)
async def upsert_chapter(
    chapter_id: int,
    data: UpsertChapterRequest,
    _admin: AdminUser,
    curriculum_service: CurriculumServiceDep,
) -> ChapterResponse:
    try:
        chapter = await curriculum_service.upsert_chapter(
            chapter_id=chapter_id,
            module_id=data.module_id,
            order_index=data.order_index,
            title=data.title,
            content=data.content,
        )
    except CurriculumError as e:
        raise handle_curriculum_error(e) from e
    return ChapterResponse.from_entity(chapter)


@router.put(
    "/chapters/{chapter_id}/questions/{position}",
    response_model=QuestionWithAnswerResponse,
    summary="Create or replace a quiz question",
)
async def upsert_question(
    chapter_id: int,
    position: int,
    data: UpsertQuestionRequest,
    _admin: AdminUser,
    curriculum_service: CurriculumServiceDep,
) -> QuestionWithAnswerResponse:
    try:
        question = await curriculum_service.upsert_question(
            chapter_id=chapter_id,
            position=position,
            prompt=data.prompt,
            options=data.options,
            correct_option=data.correct_option,
            explanation=data.explanation,
            question_id=data.question_id,
        )
    except CurriculumError as e:
        raise handle_curriculum_error(e) from e
    return QuestionWithAnswerResponse.from_entity(question)
