"""
VaultStamp - FastAPI Application

Content-addressed file registry: per-owner catalogs, global deduplication,
perceptual-similarity search and per-owner alerts.
"""

from typing import Optional

from fastapi import FastAPI
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from vaultstamp.core.config import Settings, get_settings
from vaultstamp.core.errors import setup_exception_handlers
from vaultstamp.core.logging_config import get_logger, setup_logging
from vaultstamp.core.logging_middleware import RequestLoggingMiddleware
from vaultstamp.core.rate_limit import configure_rate_limits, limiter, rate_limit_exceeded_handler
from vaultstamp.routers import alerts, files, health, registry
from vaultstamp.services.file_registry import FileRegistryService

logger = get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    file_registry: Optional[FileRegistryService] = None,
) -> FastAPI:
    """
    Build the application.

    Each call gets its own FileRegistryService unless one is passed in,
    so tests can start from an empty registry.
    """
    settings = settings or get_settings()

    setup_logging(
        level=settings.log_level,
        json_format=settings.log_json,
        log_file=settings.log_file,
    )

    app = FastAPI(
        title=settings.app_name,
        description="Content-addressed file registry with ownership verification and similarity search",
        version=settings.app_version,
        debug=settings.debug,
    )
    app.dependency_overrides[get_settings] = lambda: settings

    app.state.settings = settings
    app.state.file_registry = file_registry or FileRegistryService.from_settings(settings)

    configure_rate_limits(settings)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    setup_exception_handlers(app)

    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(health.router, tags=["Health"])
    app.include_router(files.router, prefix="/api/files", tags=["Files"])
    app.include_router(registry.router, prefix="/api", tags=["Registry"])
    app.include_router(alerts.router, prefix="/api/alerts", tags=["Alerts"])

    @app.get("/")
    async def root():
        return {"name": settings.app_name, "version": settings.app_version, "status": "ok"}

    logger.info(
        "%s %s started (security_mode=%s, persistent=%s)",
        settings.app_name,
        settings.app_version,
        settings.security_mode,
        bool(settings.data_dir),
    )
    return app


app = create_app()
