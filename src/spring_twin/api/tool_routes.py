"""
Tool gateway over HTTP: manifest and calls
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends

from spring_twin.core.container import ServiceContainer

from .deps import get_container

router = APIRouter(prefix="/tools")


@router.get("")
async def list_tools(container: ServiceContainer = Depends(get_container)):
    return {"tools": container.gateway.manifest()}


@router.post("/{name}")
async def call_tool(
    name: str,
    arguments: Optional[Dict[str, Any]] = Body(default=None),
    container: ServiceContainer = Depends(get_container),
):
    """call a tool; failures are returned as a typed error payload"""
    response = await container.gateway.call(name, arguments)
    return response.model_dump()
