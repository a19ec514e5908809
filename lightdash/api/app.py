"""FastAPI application factory for Lightdash.

Creates and configures the FastAPI app with CORS, domain error rendering
and all route modules registered.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from pydantic import ValidationError

from ..core.errors import LightdashError, error_handler

logger = logging.getLogger(__name__)


def create_app(
    project_service,
    access_service,
    explore_cache,
    site_url: str = "http://localhost:8080",
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        project_service: ProjectService instance
        access_service: ProjectAccessService instance
        explore_cache: ExploreCache instance
        site_url: Public URL of the frontend, allowed by CORS

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="Lightdash API",
        description="Project data layer: access control, previews and explores",
        version="0.1.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            site_url,
            "http://localhost:3000",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Store shared dependencies on app state
    app.state.project_service = project_service
    app.state.access_service = access_service
    app.state.explore_cache = explore_cache

    @app.exception_handler(LightdashError)
    async def lightdash_error_handler(request: Request, exc: LightdashError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.name}: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"status": "error", "error": exc.to_dict()},
        )

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return await lightdash_error_handler(request, error_handler(exc))

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception(f"{request.method} {request.url.path} raised {exc.__class__.__name__}")
        return await lightdash_error_handler(request, error_handler(exc))

    # Register routers
    from .routes.projects import router as projects_router

    app.include_router(projects_router, prefix="/api/v1")

    @app.get("/api/health")
    async def health_check():
        return {"status": "ok", "service": "lightdash"}

    logger.info("FastAPI app created with all routes registered")
    return app
