"""
Project registry routes
"""

from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from spring_twin.core.container import ServiceContainer

from .deps import get_container

router = APIRouter(prefix="/projects")


class CreateProjectRequest(BaseModel):
    name: str = Field(..., min_length=1)
    root_path: str = Field(..., min_length=1)
    include_packages: List[str] = Field(default_factory=list)
    exclude_packages: List[str] = Field(default_factory=list)
    project_id: Optional[str] = None


class UpdatePackagesRequest(BaseModel):
    include_packages: List[str] = Field(default_factory=list)
    exclude_packages: List[str] = Field(default_factory=list)


@router.post("", status_code=201)
async def create_project(request: CreateProjectRequest, container: ServiceContainer = Depends(get_container)):
    """register a project"""
    project = container.registry.create_project(
        request.name,
        request.root_path,
        include_packages=request.include_packages,
        exclude_packages=request.exclude_packages,
        project_id=request.project_id,
    )
    return project.to_dict()


@router.get("")
async def list_projects(container: ServiceContainer = Depends(get_container)):
    projects = container.registry.list_projects()
    return {"projects": [project.to_dict() for project in projects], "total": len(projects)}


@router.get("/{project_id}")
async def get_project(project_id: str, container: ServiceContainer = Depends(get_container)):
    project = container.registry.get_project(project_id)
    active = container.coordinator.active_job(project_id)
    return {
        **project.to_dict(),
        "graph_version": container.graph_store.current(project_id).version,
        "active_job_id": active.id if active else None,
    }


@router.put("/{project_id}/packages")
async def update_packages(
    project_id: str,
    request: UpdatePackagesRequest,
    container: ServiceContainer = Depends(get_container),
):
    """replace the include/exclude package patterns"""
    project = container.registry.update_packages(project_id, request.include_packages, request.exclude_packages)
    return project.to_dict()


@router.delete("/{project_id}")
async def delete_project(project_id: str, container: ServiceContainer = Depends(get_container)):
    """remove a project and its committed graph"""
    await container.coordinator.delete_project(project_id)
    container.report_cache.invalidate_project(project_id)
    return {"project_id": project_id, "deleted": True}
