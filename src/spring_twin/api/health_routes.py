"""
Health and system information routes
"""

import sys

from fastapi import APIRouter, Depends

from spring_twin import get_features, get_version
from spring_twin.core.container import ServiceContainer

from .deps import get_container

router = APIRouter()


@router.get("/health")
async def health_check(container: ServiceContainer = Depends(get_container)):
    """health check interface"""
    return {
        "status": "healthy",
        "version": get_version(),
        "services": {
            "projects": len(container.registry.list_projects()),
            "graphs": container.graph_store.versions(),
            "active_jobs": container.coordinator.leases.active(),
            "neo4j_mirror": container.mirror is not None,
        },
    }


@router.get("/info")
async def system_info(container: ServiceContainer = Depends(get_container)):
    """system information interface"""
    settings = container.settings
    return {
        "app_name": settings.app_name,
        "version": get_version(),
        "python_version": sys.version,
        "debug_mode": settings.debug,
        "analysis": {
            "source_roots": settings.source_roots,
            "max_concurrent_jobs": settings.max_concurrent_jobs,
            "extraction_workers": settings.extraction_workers,
            "job_timeout_seconds": settings.job_timeout_seconds,
            "warning_rate_threshold": settings.warning_rate_threshold,
        },
        "features": get_features(),
        "report_cache": container.report_cache.stats(),
        "tools": [tool.name for tool in container.gateway.tools()],
    }
