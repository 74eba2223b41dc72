"""
SecuryFlex Location API Entry Point

Main application initialization with:
- Lifespan management (startup/shutdown)
- CORS configuration
- Error handling middleware
- Router registration
- Periodic purge of expired guard location records
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from securyflex import __version__
from securyflex.api.middleware.error_handler import ErrorHandlerMiddleware, register_exception_handlers
from securyflex.api.v1.router import api_router
from securyflex.config import Settings, get_settings
from securyflex.config.logging_config import configure_logging, get_logger
from securyflex.infrastructure.database.connection import DatabaseManager
from securyflex.infrastructure.geolocation.reported import DeviceRegistry
from securyflex.infrastructure.metrics import metrics_router, update_system_info
from securyflex.services.location.factory import create_location_service
from securyflex.services.location.guard_location_service import GuardLocationService

logger = get_logger(__name__)


async def _purge_loop(service: GuardLocationService, interval_seconds: float) -> None:
    """Delete expired guard location records until cancelled."""
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await service.purge_expired_records()
        except Exception as e:
            logger.error("Expired record purge failed", error=str(e))


def _build_lifespan(settings: Settings):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """
        Application lifespan manager.

        Handles startup and shutdown of all services.
        """
        logger.info(
            "Starting SecuryFlex location API",
            env=settings.env,
            version=__version__,
            storage_backend=settings.storage_backend,
        )

        db: Optional[DatabaseManager] = None
        service: Optional[GuardLocationService] = None
        purge_task: Optional[asyncio.Task] = None
        registry = DeviceRegistry(max_report_age_seconds=settings.tracking.poll_interval_seconds)

        try:
            if settings.storage_backend == "database":
                db = DatabaseManager(settings)
                await db.initialize()
                if settings.database.async_url.startswith("sqlite"):
                    # Local databases have no migration step
                    await db.create_all()
                logger.info("Database connection initialized")

            service = create_location_service(settings, registry, db)
            app.state.settings = settings
            app.state.device_registry = registry
            app.state.location_service = service

            update_system_info(settings.env, settings.storage_backend, __version__)

            purge_task = asyncio.create_task(
                _purge_loop(service, settings.tracking.purge_interval_seconds),
                name="guard-location-purge",
            )

            yield

        finally:
            logger.info("Shutting down SecuryFlex location API")

            if purge_task is not None:
                purge_task.cancel()
                await asyncio.gather(purge_task, return_exceptions=True)

            if service is not None:
                await service.close()
            registry.close()

            if db is not None:
                await db.close()

            app.state.location_service = None
            logger.info("SecuryFlex location API shutdown complete")

    return lifespan


def create_application(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        settings: Application settings (default: loaded from environment)

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title="SecuryFlex Location API",
        description="Privacy-compliant guard location tracking and proximity engine",
        version=__version__,
        docs_url="/docs" if not settings.is_production() else None,
        redoc_url="/redoc" if not settings.is_production() else None,
        lifespan=_build_lifespan(settings),
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Add error handling middleware
    app.add_middleware(ErrorHandlerMiddleware)
    register_exception_handlers(app)

    # Register API routers
    app.include_router(
        api_router,
        prefix=f"/api/{settings.api_version}",
    )
    if settings.metrics_enabled:
        app.include_router(metrics_router)

    # Root endpoint
    @app.get("/", include_in_schema=False)
    async def root() -> dict:
        """Root endpoint - basic info."""
        return {
            "name": "SecuryFlex Location API",
            "version": __version__,
            "status": "operational",
        }

    return app


# Create application instance
app = create_application()


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run(
        "securyflex.main:app",
        host="0.0.0.0",
        port=8000,
        reload=_settings.env == "development",
        log_level=_settings.log_level.lower(),
    )
