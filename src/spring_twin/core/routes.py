"""
Route configuration module
"""

from fastapi import FastAPI

from spring_twin.api.analysis_routes import router as analysis_router
from spring_twin.api.architecture_routes import router as architecture_router
from spring_twin.api.health_routes import router as health_router
from spring_twin.api.project_routes import router as project_router
from spring_twin.api.report_routes import router as report_router
from spring_twin.api.tool_routes import router as tool_router


def setup_routes(app: FastAPI) -> None:
    """set application routes"""
    app.include_router(health_router, prefix="/api/v1", tags=["General"])
    app.include_router(project_router, prefix="/api/v1", tags=["Projects"])
    app.include_router(analysis_router, prefix="/api/v1", tags=["Analysis"])
    app.include_router(architecture_router, prefix="/api/v1", tags=["Architecture"])
    app.include_router(report_router, prefix="/api/v1", tags=["Reports"])
    app.include_router(tool_router, prefix="/api/v1", tags=["Tools"])
