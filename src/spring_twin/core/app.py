"""
FastAPI application configuration module
Responsible for creating and configuring FastAPI application instance
"""

from typing import Optional

from fastapi import FastAPI

from spring_twin.config.settings import Settings, settings as default_settings

from .container import ServiceContainer
from .exception_handlers import setup_exception_handlers
from .lifespan import lifespan
from .middleware import setup_middleware
from .routes import setup_routes


def create_app(settings: Optional[Settings] = None, container: Optional[ServiceContainer] = None) -> FastAPI:
    """create FastAPI application instance"""
    settings = settings or default_settings
    container = container or ServiceContainer(settings)

    app = FastAPI(
        title=settings.app_name,
        description="Structural graph of Spring service codebases: classes, methods, endpoints and dependencies",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )
    app.state.container = container

    setup_middleware(app, settings)
    setup_exception_handlers(app, debug=settings.debug)
    setup_routes(app)

    @app.get("/")
    async def root():
        """root path interface"""
        return {
            "message": "Welcome to Spring Twin",
            "version": settings.app_version,
            "docs": "/docs" if settings.debug else "Documentation disabled in production",
            "health": "/api/v1/health",
        }

    return app
