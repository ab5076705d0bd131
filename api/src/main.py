"""Konex Academy API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.activities.router import router as activities_router
from src.activities.service import ActivityService
from src.config import Settings, get_settings
from src.core.context import get_request_id
from src.core.database import init_async_cassandra, shutdown_async_cassandra
from src.core.database.errors import STORAGE_ERRORS
from src.core.logging import configure_structlog, get_logger
from src.core.middleware import RequestContextMiddleware
from src.core.redis import init_redis, shutdown_redis
from src.curriculum.registry import load_program_registry
from src.curriculum.router import router as curriculum_router
from src.curriculum.service import CurriculumService
from src.health import router as health_router
from src.messages.router import admin_router as admin_messages_router
from src.messages.router import router as messages_router
from src.messages.service import MessageService
from src.profiles.router import router as profiles_router
from src.profiles.service import ProfileService
from src.progress.store import CassandraProgressStore
from src.progression.router import router as progress_router
from src.progression.service import ProgressionService
from src.quizzes.router import router as quizzes_router
from src.quizzes.service import QuizService
from src.reviews.audit import CassandraAuditLog
from src.reviews.router import router as reviews_router
from src.reviews.router import students_router as admin_students_router
from src.reviews.service import ReviewService
from src.reviews.suggestions import build_scorer


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(settings, log_dir=Path(settings.log_dir))

logger = get_logger(__name__)


def init_services(app: FastAPI, session: Any, redis_client: Any, settings: Settings) -> None:
    """Build every Cassandra-backed service and publish it on ``app.state``."""
    keyspace = settings.cassandra_keyspace
    registry = app.state.program_registry

    profile_service = ProfileService(session=session, keyspace=keyspace)
    curriculum_service = CurriculumService(session=session, keyspace=keyspace)
    progress_store = CassandraProgressStore(session=session, keyspace=keyspace)

    app.state.profile_service = profile_service
    app.state.curriculum_service = curriculum_service
    app.state.progress_store = progress_store

    app.state.quiz_service = QuizService(
        store=progress_store,
        curriculum=curriculum_service,
        registry=registry,
        max_attempts=settings.max_quiz_attempts,
        default_required_score=settings.default_required_score,
    )
    app.state.activity_service = ActivityService(
        store=progress_store, registry=registry, curriculum=curriculum_service
    )
    app.state.progression_service = ProgressionService(
        store=progress_store, registry=registry
    )

    scorer = build_scorer(settings)
    app.state.review_service = ReviewService(
        store=progress_store,
        profiles=profile_service,
        registry=registry,
        audit_log=CassandraAuditLog(session=session, keyspace=keyspace),
        curriculum=curriculum_service,
        scorer=scorer,
        forced_unlock_score=settings.forced_unlock_score,
    )
    logger.info("review_service_initialized", ai_grading=scorer is not None)

    app.state.message_service = MessageService(
        session=session, keyspace=keyspace, redis=redis_client
    )
    logger.info("message_service_initialized", redis_enabled=redis_client is not None)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    # Initialize Redis (non-critical - app works without it)
    redis_client = None
    try:
        redis_client = await init_redis()
        logger.info("redis_initialized")
    except Exception as e:
        logger.warning(
            "redis_init_skipped",
            error=str(e),
            message="Running without Redis - unread counters are not cached",
        )

    # Initialize Cassandra (async)
    try:
        session = await init_async_cassandra()
        logger.info("cassandra_initialized")
        init_services(app, session, redis_client, settings)
    except Exception as e:
        logger.warning(
            "database_init_skipped",
            error=str(e),
            message="Running without database connection",
        )

    yield

    # Shutdown
    logger.info("shutting_down_application")
    await shutdown_redis()
    await shutdown_async_cassandra()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # SECURITY: Always set debug=False to prevent Starlette's ServerErrorMiddleware
    # from exposing stack traces in responses.
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Corporate training platform - API",
        debug=False,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )

    # Loaded before any request so a bad registry file stops startup
    app.state.program_registry = load_program_registry(settings)

    # Request context middleware (must be added first - outermost)
    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        max_age=settings.cors_max_age,
    )

    def _get_request_id_safe(request: Request) -> str | None:
        """Get request_id from request state or context."""
        if hasattr(request.state, "request_id"):
            return request.state.request_id
        return get_request_id()

    def _error_response(
        request: Request, status_code: int, message: str, **extra: Any
    ) -> ORJSONResponse:
        return ORJSONResponse(
            status_code=status_code,
            content={
                "error": True,
                "message": message,
                "status_code": status_code,
                "request_id": _get_request_id_safe(request),
                **extra,
            },
        )

    # Global exception handlers (security: never expose stack traces)
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        """Handle HTTP exceptions with safe error messages."""
        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
            method=request.method,
        )
        return _error_response(
            request,
            exc.status_code,
            str(exc.detail)
            if exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR
            or exc.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
            else "Internal server error",
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        """Handle validation errors with safe error messages."""
        logger.warning(
            "validation_error",
            errors=exc.errors(),
            path=request.url.path,
            method=request.method,
        )
        return _error_response(
            request,
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "Validation error",
            details=[
                {
                    "field": ".".join(str(loc) for loc in err.get("loc", [])),
                    "message": err.get("msg", "Invalid value"),
                }
                for err in exc.errors()
            ],
        )

    async def storage_exception_handler(
        request: Request, exc: Exception
    ) -> ORJSONResponse:
        """Storage failures are surfaced, never retried; clients resubmit."""
        logger.error(
            "storage_unavailable",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
        )
        return _error_response(
            request,
            status.HTTP_503_SERVICE_UNAVAILABLE,
            "Storage is temporarily unavailable. Please try again.",
        )

    for exc_type in STORAGE_ERRORS:
        app.add_exception_handler(exc_type, storage_exception_handler)

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> ORJSONResponse:
        """Catch-all handler for unhandled exceptions.

        SECURITY: Never expose stack traces or internal error details to users.
        """
        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
        )
        return _error_response(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "An unexpected error occurred. Please try again later.",
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(profiles_router)
    app.include_router(curriculum_router)
    app.include_router(progress_router)
    app.include_router(quizzes_router)
    app.include_router(activities_router)
    app.include_router(reviews_router)
    app.include_router(admin_students_router)
    app.include_router(messages_router)
    app.include_router(admin_messages_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": "Konex Academy API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


app = create_app()
