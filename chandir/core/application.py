"""Application factory for creating and configuring the FastAPI application.

This module provides a factory function to create a properly configured FastAPI application
with all necessary middleware, exception handlers, and routers registered.
"""

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from chandir.adapters.api.v1 import api_router
from chandir.adapters.api.v1.health import router as health_router
from chandir.core.config.settings import settings
from chandir.core.handlers import register_exception_handlers
from chandir.core.lifecycle import create_lifespan_manager
from chandir.core.middleware import configure_middleware


def create_application() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        FastAPI: The configured FastAPI application instance
    """
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        description="Channel directory: ranked listings, likes and admin weight controls.",
        docs_url=None if settings.is_production else "/docs",
        redoc_url=None,
        openapi_url=None if settings.is_production else "/openapi.json",
        lifespan=create_lifespan_manager(),
        default_response_class=JSONResponse,
    )
    app.state.container = None

    configure_middleware(app)
    register_exception_handlers(app)

    app.include_router(health_router, prefix="/health", tags=["health"])
    app.include_router(api_router, prefix="/api/v1")

    return app
