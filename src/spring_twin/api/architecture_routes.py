"""
Read-only routes over the committed architecture graph
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from spring_twin.core.container import ServiceContainer

from .deps import get_container

router = APIRouter(prefix="/projects/{project_id}")


@router.get("/classes")
async def list_classes(
    project_id: str,
    package: Optional[str] = Query(None, description="Package pattern"),
    label: Optional[str] = Query(None, description="Role label"),
    container: ServiceContainer = Depends(get_container),
):
    container.registry.get_project(project_id)
    nodes = container.queries.list_classes(project_id, package, label)
    return {"classes": [node.to_dict() for node in nodes], "total": len(nodes)}


@router.get("/methods")
async def list_methods(
    project_id: str,
    package: Optional[str] = Query(None, description="Package pattern"),
    class_id: Optional[str] = Query(None, description="Owning class id"),
    container: ServiceContainer = Depends(get_container),
):
    container.registry.get_project(project_id)
    nodes = container.queries.list_methods(project_id, package, class_id)
    return {"methods": [node.to_dict() for node in nodes], "total": len(nodes)}


@router.get("/endpoints")
async def list_endpoints(
    project_id: str,
    package: Optional[str] = Query(None, description="Package pattern"),
    http_method: Optional[str] = Query(None, description="HTTP method"),
    container: ServiceContainer = Depends(get_container),
):
    container.registry.get_project(project_id)
    nodes = container.queries.list_endpoints(project_id, package, http_method)
    return {"endpoints": [node.to_dict() for node in nodes], "total": len(nodes)}


@router.get("/graph/summary")
async def graph_summary(project_id: str, container: ServiceContainer = Depends(get_container)):
    container.registry.get_project(project_id)
    return container.queries.graph_summary(project_id)


@router.get("/graph")
async def graph_snapshot(project_id: str, container: ServiceContainer = Depends(get_container)):
    """the full committed snapshot: nodes and edges keyed by id, tagged with version"""
    container.registry.get_project(project_id)
    return container.graph_store.current(project_id).to_dict()
