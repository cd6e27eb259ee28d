"""
One-shot command line analysis: register a project, run one job, print the result.
"""

import asyncio
import json
import sys
from pathlib import Path
from typing import List, Optional

from loguru import logger

from spring_twin.config.settings import settings
from spring_twin.core.container import ServiceContainer
from spring_twin.core.logging import setup_logging
from spring_twin.errors import NotFoundError, SpringTwinError


async def analyze_once(
    container: ServiceContainer,
    root_path: str,
    *,
    project_id: Optional[str] = None,
    include_packages: Optional[List[str]] = None,
    exclude_packages: Optional[List[str]] = None,
) -> dict:
    """Run a single analysis and return the terminal job record."""
    project_id = project_id or Path(root_path).resolve().name
    try:
        container.registry.get_project(project_id)
    except NotFoundError:
        container.registry.create_project(project_id, root_path, project_id=project_id)

    job_id = await container.coordinator.trigger_analysis(project_id, include_packages, exclude_packages)
    job = await container.coordinator.wait_for(job_id)
    return job.to_dict()


async def _run(root_path: str, **kwargs) -> dict:
    container = ServiceContainer(settings)
    await container.startup()
    try:
        return await analyze_once(container, root_path, **kwargs)
    finally:
        await container.shutdown()


def main(root_path: str, **kwargs) -> int:
    setup_logging(settings, stream=sys.stderr)
    try:
        record = asyncio.run(_run(root_path, **kwargs))
    except SpringTwinError as e:
        logger.error(f"{e.kind}: {e.message}")
        return 2
    print(json.dumps(record, indent=2, sort_keys=True))
    return 0 if record["state"] == "Completed" else 1
