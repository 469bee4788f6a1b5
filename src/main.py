"""Inkwell API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.categories.router import router as categories_router
from src.categories.service import CategoryService
from src.comments.router import router as comments_router
from src.comments.service import CommentService
from src.config import get_settings
from src.core.cache import build_response_cache
from src.core.errors import AppError, ValidationError, error_for_status, validation_details
from src.core.logging import configure_structlog, get_logger
from src.core.middleware import ErrorEnvelopeMiddleware, RequestContextMiddleware
from src.core.redis import init_redis, shutdown_redis
from src.core.responses import error_response
from src.datastore import build_datastore
from src.health import router as health_router
from src.posts.router import router as posts_router
from src.posts.service import PostService
from src.reports.router import router as reports_router
from src.reports.service import ReportService
from src.tags.router import router as tags_router
from src.tags.service import TagService


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(settings, log_dir=Path(settings.log_dir))

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build the datastore, the response cache and every service."""
    settings = get_settings()
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    # Redis only backs the response cache (non-critical)
    redis_client = None
    if settings.cache_enabled and settings.cache_backend == "redis":
        try:
            redis_client = await init_redis()
        except Exception as e:
            logger.warning(
                "redis_init_skipped",
                error=str(e),
                message="Running with the in-process response cache",
            )

    datastore = await build_datastore(settings)
    cache = build_response_cache(settings, redis_client)

    app.state.datastore = datastore
    app.state.response_cache = cache
    app.state.post_service = PostService(datastore, cache)
    app.state.comment_service = CommentService(datastore, cache)
    app.state.tag_service = TagService(datastore, cache)
    app.state.category_service = CategoryService(datastore, cache)
    app.state.report_service = ReportService(datastore, cache)
    logger.info("services_initialized", datastore=type(datastore).__name__)

    yield

    # Shutdown
    logger.info("shutting_down_application")
    await cache.invalidate_all()
    await shutdown_redis()
    await datastore.close()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # debug stays False so Starlette never renders stack traces
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Inkwell blogging platform - API",
        debug=False,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )

    # Innermost first: errors are enveloped before request logging sees them
    app.add_middleware(ErrorEnvelopeMiddleware, expose_internal=settings.is_development)
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

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> ORJSONResponse:
        logger.warning(
            "request_error",
            path=request.url.path,
            method=request.method,
            error=exc.kind,
            error_message=exc.message,
        )
        return error_response(exc)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
            method=request.method,
        )
        return error_response(
            error_for_status(exc.status_code, str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        logger.warning(
            "validation_error",
            errors=exc.errors(),
            path=request.url.path,
            method=request.method,
        )
        return error_response(ValidationError(details=validation_details(exc.errors())))

    app.include_router(health_router)
    app.include_router(posts_router)
    app.include_router(comments_router)
    app.include_router(tags_router)
    app.include_router(categories_router)
    app.include_router(reports_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": "Inkwell API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


app = create_app()
