"""
Report routes; bodies are the cached rendered report, byte for byte
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from spring_twin.core.container import ServiceContainer
from spring_twin.report.report_builder import RenderedReport

from .deps import get_container

router = APIRouter(prefix="/projects/{project_id}/reports")


def _respond(report: RenderedReport) -> Response:
    return Response(
        content=report.content,
        media_type=report.media_type,
        headers={"X-Graph-Version": str(report.version)},
    )


@router.get("/dependencies/{class_id}")
async def dependency_report(
    project_id: str,
    class_id: str,
    max_depth: Optional[int] = Query(None, ge=1),
    container: ServiceContainer = Depends(get_container),
):
    container.registry.get_project(project_id)
    return _respond(container.reports.dependency_report(project_id, class_id, max_depth))


@router.get("/classes/{class_id}")
async def explain_class(project_id: str, class_id: str, container: ServiceContainer = Depends(get_container)):
    container.registry.get_project(project_id)
    return _respond(container.reports.explain_class(project_id, class_id))


@router.get("/methods/{method_id:path}")
async def explain_method(project_id: str, method_id: str, container: ServiceContainer = Depends(get_container)):
    container.registry.get_project(project_id)
    return _respond(container.reports.explain_method(project_id, method_id))


@router.get("/endpoints/{endpoint_id:path}")
async def explain_endpoint(project_id: str, endpoint_id: str, container: ServiceContainer = Depends(get_container)):
    container.registry.get_project(project_id)
    return _respond(container.reports.explain_endpoint(project_id, endpoint_id))


@router.get("/context")
async def export_context(
    project_id: str,
    package: Optional[str] = Query(None),
    container: ServiceContainer = Depends(get_container),
):
    """Markdown architecture context for LLM prompts"""
    container.registry.get_project(project_id)
    return _respond(container.reports.export_context(project_id, package))
