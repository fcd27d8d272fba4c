"""
Skill Translator FastAPI Application.

Main application entry point with route registration and lifecycle management.
"""

import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from skill_translator.api.routers import cache, health, translate
from skill_translator.core.config import Settings, get_settings
from skill_translator.core.exceptions import ErrorKind, TranslationServiceError
from skill_translator.core.logging import configure_logging, get_logger, request_id_var
from skill_translator.schemas.health import ServiceInfoResponse
from skill_translator.services.ai_providers.base import BaseAIProvider
from skill_translator.services.container import build_services
from skill_translator.workers.maintenance import start_maintenance, stop_maintenance

logger = get_logger(__name__)

SERVICE_NAME = "skill-translator"

ERROR_STATUS_CODES = {
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.PROVIDER_TRANSIENT: 502,
    ErrorKind.PROVIDER_FAILURE: 502,
    ErrorKind.TIMEOUT: 504,
    ErrorKind.CACHE_UNAVAILABLE: 503,
    ErrorKind.INTERNAL: 500,
}


def create_app(settings: Settings | None = None, provider: BaseAIProvider | None = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Settings to use (defaults to the environment)
        provider: Translation provider override, used by tests

    Returns:
        FastAPI: Configured application
    """
    settings = settings or get_settings()
    configure_logging(settings)

    # =========================================================================
    # Application Lifecycle
    # =========================================================================

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan manager.

        Handles startup and shutdown events.
        """
        logger.info("Starting skill translator...")

        if not settings.local_api_bearer:
            logger.warning("LOCAL_API_BEARER is empty, API authentication is disabled")

        services = build_services(settings, provider=provider)
        app.state.services = services

        maintenance_task = None
        if settings.cache_cleanup_enabled:
            maintenance_task = start_maintenance(services.cache, settings.cache_cleanup_hour)

        logger.info(
            f"Ready: model={services.provider.get_model_identifier(settings.openai_model)}, "
            f"version={settings.translator_version}, "
            f"max_concurrent={settings.max_concurrent_translations}"
        )

        yield

        logger.info("Shutting down skill translator...")
        await stop_maintenance(maintenance_task)
        services.close()
        logger.info("Application shutdown complete")

    # =========================================================================
    # Application Instance
    # =========================================================================

    app = FastAPI(
        title="Skill Translator API",
        description="Structure-preserving translation of SKILL.md documents",
        version=settings.translator_version,
        docs_url="/docs" if settings.enable_swagger_ui else None,
        redoc_url="/redoc" if settings.enable_swagger_ui else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # =========================================================================
    # Request Context Middleware
    # =========================================================================

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        token = request_id_var.set(request_id)
        started = time.perf_counter()
        try:
            response = await call_next(request)
            elapsed_ms = (time.perf_counter() - started) * 1000
            response.headers["X-Request-ID"] = request_id
            logger.info(
                f"{request.method} {request.url.path} -> {response.status_code} "
                f"({elapsed_ms:.1f}ms)",
                extra={"status_code": response.status_code, "duration_ms": round(elapsed_ms, 1)},
            )
            return response
        finally:
            request_id_var.reset(token)

    # =========================================================================
    # Exception Handlers
    # =========================================================================

    @app.exception_handler(TranslationServiceError)
    async def translation_error_handler(request: Request, exc: TranslationServiceError):
        status_code = ERROR_STATUS_CODES.get(exc.kind, 500)
        logger.warning(
            f"Request failed ({exc.kind.value}): {exc.message}",
            extra={"path": request.url.path, "method": request.method},
        )
        return JSONResponse(
            status_code=status_code,
            content={"detail": exc.message, "error_kind": exc.kind.value},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Global exception handler.

        Catches all unhandled exceptions and returns a proper error response.
        """
        logger.error(
            f"Unhandled exception: {exc}",
            exc_info=True,
            extra={"path": request.url.path, "method": request.method},
        )
        return JSONResponse(
            status_code=500,
            content={
                "detail": str(exc) if settings.debug else "Internal server error",
                "error_kind": ErrorKind.INTERNAL.value,
            },
        )

    # =========================================================================
    # Route Registration
    # =========================================================================

    app.include_router(health.router)
    app.include_router(translate.router)
    app.include_router(cache.router)

    @app.get("/", response_model=ServiceInfoResponse, tags=["Root"])
    async def root() -> ServiceInfoResponse:
        """Basic service information."""
        return ServiceInfoResponse(
            name=SERVICE_NAME,
            version=settings.translator_version,
            endpoints={
                "health": "GET /api/health",
                "translate": "POST /api/translate",
                "batch": "POST /api/translate/batch",
                "cache_stats": "GET /api/cache/stats",
                "cache_clear": "DELETE /api/cache?expired_only=true",
            },
        )

    return app


app = create_app()


# =============================================================================
# Development Entry Point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "skill_translator.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.auto_reload,
        log_level=settings.log_level.lower(),
    )
