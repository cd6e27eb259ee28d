"""File-backed persistence for committed graph snapshots."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Iterator

from loguru import logger

from .models import GraphSnapshot


def dump_canonical(payload) -> str:
    """Canonical JSON: sorted keys, fixed separators, trailing newline."""
    return json.dumps(payload, sort_keys=True, ensure_ascii=False, indent=2) + "\n"


def atomic_write_text(path: Path, content: str) -> None:
    """Write ``content`` to ``path`` via a temp file and ``os.replace``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


class JsonSnapshotRepository:
    """Stores one current snapshot per project as ``<project_id>.json``."""

    def __init__(self, directory: Path) -> None:
        self.directory = Path(directory)

    def _path_for(self, project_id: str) -> Path:
        return self.directory / f"{project_id}.json"

    def load_all(self) -> Iterator[GraphSnapshot]:
        if not self.directory.exists():
            return
        for path in sorted(self.directory.glob("*.json")):
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
                yield GraphSnapshot.from_dict(data)
            except (OSError, ValueError, KeyError) as exc:
                logger.error("Failed to load graph snapshot {}: {}", path, exc)

    def save(self, snapshot: GraphSnapshot) -> None:
        atomic_write_text(self._path_for(snapshot.project_id), dump_canonical(snapshot.to_dict()))

    def delete(self, project_id: str) -> None:
        path = self._path_for(project_id)
        if path.exists():
            path.unlink()


__all__ = ["JsonSnapshotRepository", "atomic_write_text", "dump_canonical"]
