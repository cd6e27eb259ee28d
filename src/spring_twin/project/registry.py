"""Registry of analysed projects, persisted as one JSON document."""

from __future__ import annotations

import datetime as dt
import json
import re
import threading
import uuid
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from loguru import logger

from spring_twin.analysis.package_filter import PackageFilter
from spring_twin.architecture.persistence import atomic_write_text, dump_canonical
from spring_twin.errors import ConfigurationError, ConflictError, NotFoundError

from .models import Project

_PROJECT_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]{0,63}$")


def _validate_root(root_path: str) -> str:
    if not root_path or not str(root_path).strip():
        raise ConfigurationError("Project root path is required")
    path = Path(root_path).expanduser()
    if not path.is_dir():
        raise ConfigurationError(f"Project root is not an existing directory: {root_path}", details={"root": root_path})
    return str(path.resolve())


class ProjectRegistry:
    """Thread-safe project table; writes go straight to ``projects.json``."""

    def __init__(self, storage_path: Optional[Path] = None) -> None:
        self.storage_path = Path(storage_path) if storage_path else None
        self._projects: Dict[str, Project] = {}
        self._lock = threading.Lock()

    def load(self) -> int:
        if not self.storage_path or not self.storage_path.exists():
            return 0
        try:
            data = json.loads(self.storage_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.error("Failed to load project registry {}: {}", self.storage_path, exc)
            return 0
        with self._lock:
            for item in data.get("projects", []):
                project = Project.from_dict(item)
                self._projects[project.id] = project
        logger.info("Loaded {} project(s) from {}", len(self._projects), self.storage_path)
        return len(self._projects)

    def _save_locked(self) -> None:
        if not self.storage_path:
            return
        payload = {"projects": [self._projects[key].to_dict() for key in sorted(self._projects)]}
        atomic_write_text(self.storage_path, dump_canonical(payload))

    def create_project(
        self,
        name: str,
        root_path: str,
        *,
        include_packages: Iterable[str] = (),
        exclude_packages: Iterable[str] = (),
        project_id: Optional[str] = None,
    ) -> Project:
        if not name or not name.strip():
            raise ConfigurationError("Project name is required")
        resolved_root = _validate_root(root_path)
        include, exclude = list(include_packages), list(exclude_packages)
        PackageFilter(include, exclude)

        project_id = project_id or uuid.uuid4().hex[:12]
        if not _PROJECT_ID_RE.match(project_id):
            raise ConfigurationError(f"Invalid project id: {project_id}")

        project = Project(
            id=project_id,
            name=name.strip(),
            root_path=resolved_root,
            include_packages=include,
            exclude_packages=exclude,
            created_at=dt.datetime.now(dt.timezone.utc),
        )
        with self._lock:
            if project_id in self._projects:
                raise ConflictError(f"Project already exists: {project_id}")
            self._projects[project_id] = project
            self._save_locked()
        logger.info("Registered project {} ({}) at {}", project.id, project.name, project.root_path)
        return project

    def get_project(self, project_id: str) -> Project:
        project = self._projects.get(project_id)
        if project is None:
            raise NotFoundError(f"Project not found: {project_id}")
        return project

    def list_projects(self) -> List[Project]:
        return sorted(self._projects.values(), key=lambda p: (p.name, p.id))

    def update_packages(
        self,
        project_id: str,
        include_packages: Iterable[str],
        exclude_packages: Iterable[str],
    ) -> Project:
        include, exclude = list(include_packages), list(exclude_packages)
        PackageFilter(include, exclude)
        with self._lock:
            project = self.get_project(project_id).with_packages(include, exclude)
            self._projects[project_id] = project
            self._save_locked()
        return project

    def delete_project(self, project_id: str) -> None:
        with self._lock:
            self.get_project(project_id)
            del self._projects[project_id]
            self._save_locked()
        logger.info("Removed project {}", project_id)


__all__ = ["ProjectRegistry"]
