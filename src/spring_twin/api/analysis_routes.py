"""
Analysis job routes: trigger, status, cancel and Server-Sent Events
"""

import json
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse
from loguru import logger
from pydantic import BaseModel

from spring_twin.core.container import ServiceContainer

from .deps import get_container

router = APIRouter()


class TriggerAnalysisRequest(BaseModel):
    include_packages: Optional[List[str]] = None
    exclude_packages: Optional[List[str]] = None


@router.post("/projects/{project_id}/analysis", status_code=202)
async def trigger_analysis(
    project_id: str,
    request: Optional[TriggerAnalysisRequest] = None,
    container: ServiceContainer = Depends(get_container),
):
    """queue an analysis run for the project"""
    request = request or TriggerAnalysisRequest()
    job_id = await container.coordinator.trigger_analysis(
        project_id, request.include_packages, request.exclude_packages
    )
    return {"job_id": job_id}


@router.get("/analysis/jobs")
async def list_jobs(
    project_id: Optional[str] = Query(None),
    container: ServiceContainer = Depends(get_container),
):
    jobs = container.coordinator.list_jobs(project_id)
    return {"jobs": [job.to_dict() for job in jobs], "total": len(jobs)}


@router.get("/analysis/jobs/{job_id}")
async def get_job(job_id: str, container: ServiceContainer = Depends(get_container)):
    """job record including state, progress, error and warnings"""
    return container.coordinator.get_job(job_id).to_dict()


@router.get("/analysis/jobs/{job_id}/status")
async def get_job_status(job_id: str, container: ServiceContainer = Depends(get_container)):
    return container.coordinator.get_job_status(job_id)


@router.post("/analysis/jobs/{job_id}/cancel")
async def cancel_job(job_id: str, container: ServiceContainer = Depends(get_container)):
    job = await container.coordinator.cancel_job(job_id)
    return {"job_id": job.id, "acknowledged": True, **job.status()}


@router.get("/analysis/jobs/{job_id}/events")
async def stream_job_events(job_id: str, request: Request, container: ServiceContainer = Depends(get_container)):
    """
    Stream job progress via Server-Sent Events

    The stream ends after the job's terminal event.
    """
    events = container.coordinator.subscribe(job_id)

    async def event_generator():
        logger.info(f"Starting SSE stream for job {job_id}")
        try:
            async for event in events:
                if await request.is_disconnected():
                    logger.info(f"Client disconnected from SSE stream for job {job_id}")
                    break
                kind = "completed" if event.terminal else "progress"
                yield f"event: {kind}\ndata: {json.dumps(event.to_dict())}\n\n"
        finally:
            await events.aclose()
            logger.info(f"SSE stream ended for job {job_id}")

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )
