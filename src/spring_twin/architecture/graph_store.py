"""Versioned, copy-on-commit store for per-project architecture graphs."""

from __future__ import annotations

import asyncio
import datetime as dt
import threading
from collections import Counter
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Protocol

from loguru import logger

from spring_twin.errors import GraphIntegrityError

from .models import EDGE_ENDPOINT_TYPES, EdgeType, GraphCandidate, GraphSnapshot


class SnapshotRepository(Protocol):
    def load_all(self) -> Iterable[GraphSnapshot]: ...

    def save(self, snapshot: GraphSnapshot) -> None: ...

    def delete(self, project_id: str) -> None: ...


@dataclass
class NodeDiff:
    inserted: List[str] = field(default_factory=list)
    updated: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.inserted or self.updated or self.deleted)

    def counts(self) -> Dict[str, int]:
        return {
            "inserted": len(self.inserted),
            "updated": len(self.updated),
            "deleted": len(self.deleted),
        }


@dataclass
class CommitResult:
    """Outcome of a commit: what changed and which version is now visible."""

    project_id: str
    version: int
    previous_version: int
    classes: NodeDiff
    methods: NodeDiff
    endpoints: NodeDiff
    edges_added: int
    edges_removed: int

    @property
    def changed(self) -> bool:
        return (
            self.classes.changed
            or self.methods.changed
            or self.endpoints.changed
            or bool(self.edges_added or self.edges_removed)
        )

    def to_dict(self) -> Dict[str, object]:
        return {
            "project_id": self.project_id,
            "version": self.version,
            "previous_version": self.previous_version,
            "changed": self.changed,
            "classes": self.classes.counts(),
            "methods": self.methods.counts(),
            "endpoints": self.endpoints.counts(),
            "edges_added": self.edges_added,
            "edges_removed": self.edges_removed,
        }


def validate_candidate(candidate: GraphCandidate) -> None:
    """Raise GraphIntegrityError for duplicate ids or dangling edge endpoints."""

    problems: List[str] = []

    for label, nodes in (
        ("class", candidate.classes),
        ("method", candidate.methods),
        ("endpoint", candidate.endpoints),
    ):
        duplicates = sorted(node_id for node_id, count in Counter(n.id for n in nodes).items() if count > 1)
        for node_id in duplicates:
            problems.append(f"duplicate {label} id: {node_id}")

    ids_by_type = {
        "class": {node.id for node in candidate.classes},
        "method": {node.id for node in candidate.methods},
        "endpoint": {node.id for node in candidate.endpoints},
    }

    for method in candidate.methods:
        if method.class_id not in ids_by_type["class"]:
            problems.append(f"method {method.id} references missing class {method.class_id}")
    for endpoint in candidate.endpoints:
        if endpoint.method_id not in ids_by_type["method"]:
            problems.append(f"endpoint {endpoint.id} references missing method {endpoint.method_id}")

    contains_per_method: Counter = Counter()
    exposes_per_endpoint: Counter = Counter()
    for edge in candidate.edges:
        source_type, target_type = EDGE_ENDPOINT_TYPES[edge.type]
        if edge.source not in ids_by_type[source_type]:
            problems.append(f"{edge.type.value} edge has dangling source {edge.source}")
        if edge.target not in ids_by_type[target_type]:
            problems.append(f"{edge.type.value} edge has dangling target {edge.target}")
        if edge.type is EdgeType.CONTAINS:
            contains_per_method[edge.target] += 1
        elif edge.type is EdgeType.EXPOSES:
            exposes_per_endpoint[edge.target] += 1

    for method in candidate.methods:
        if contains_per_method[method.id] != 1:
            problems.append(f"method {method.id} must belong to exactly one class")
    for endpoint in candidate.endpoints:
        if exposes_per_endpoint[endpoint.id] != 1:
            problems.append(f"endpoint {endpoint.id} must map to exactly one method")

    if problems:
        shown = problems[:20]
        raise GraphIntegrityError(
            f"Graph integrity check failed: {problems[0]}",
            details={"violations": shown, "total_violations": len(problems)},
        )


def _diff_nodes(old: Dict, new: Dict) -> NodeDiff:
    diff = NodeDiff()
    diff.inserted = sorted(set(new) - set(old))
    diff.deleted = sorted(set(old) - set(new))
    diff.updated = sorted(node_id for node_id in set(old) & set(new) if old[node_id] != new[node_id])
    return diff


class GraphStore:
    """Holds exactly one committed graph version per project.

    ``current`` is a plain reference read and never blocks. ``commit`` is
    serialized per project; the validate/diff/persist/swap sequence runs
    without awaiting once the project lock is held, so a cancelled caller
    cannot leave a half-applied graph behind.
    """

    def __init__(
        self,
        repository: Optional[SnapshotRepository] = None,
        *,
        clock: Callable[[], dt.datetime] = lambda: dt.datetime.now(dt.timezone.utc),
    ) -> None:
        self._repository = repository
        self._clock = clock
        self._snapshots: Dict[str, GraphSnapshot] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._locks_guard = threading.Lock()

    def load(self) -> int:
        """Restore persisted snapshots; returns how many were loaded."""
        if not self._repository:
            return 0
        loaded = 0
        for snapshot in self._repository.load_all():
            self._snapshots[snapshot.project_id] = snapshot
            loaded += 1
        logger.info("Restored {} committed graph snapshot(s)", loaded)
        return loaded

    def current(self, project_id: str) -> GraphSnapshot:
        snapshot = self._snapshots.get(project_id)
        if snapshot is None:
            return GraphSnapshot.empty(project_id)
        return snapshot

    def versions(self) -> Dict[str, int]:
        return {project_id: snap.version for project_id, snap in self._snapshots.items()}

    def _lock_for(self, project_id: str) -> asyncio.Lock:
        with self._locks_guard:
            lock = self._locks.get(project_id)
            if lock is None:
                lock = asyncio.Lock()
                self._locks[project_id] = lock
            return lock

    async def commit(self, project_id: str, candidate: GraphCandidate) -> CommitResult:
        async with self._lock_for(project_id):
            return self._commit_locked(project_id, candidate)

    def _commit_locked(self, project_id: str, candidate: GraphCandidate) -> CommitResult:
        validate_candidate(candidate)

        previous = self.current(project_id)
        staged = GraphSnapshot.build(project_id, previous.version, previous.committed_at, candidate)

        old_edges = {edge.key: edge for edge in previous.edges}
        new_edges = {edge.key: edge for edge in staged.edges}
        result = CommitResult(
            project_id=project_id,
            version=previous.version,
            previous_version=previous.version,
            classes=_diff_nodes(dict(previous.classes), dict(staged.classes)),
            methods=_diff_nodes(dict(previous.methods), dict(staged.methods)),
            endpoints=_diff_nodes(dict(previous.endpoints), dict(staged.endpoints)),
            edges_added=sum(1 for key, edge in new_edges.items() if old_edges.get(key) != edge),
            edges_removed=sum(1 for key in old_edges if key not in new_edges),
        )

        if not result.changed and project_id in self._snapshots:
            logger.info("Commit for project {} is a no-op; version {} stays visible", project_id, previous.version)
            return result

        snapshot = GraphSnapshot.build(project_id, previous.version + 1, self._clock(), candidate)
        if self._repository:
            self._repository.save(snapshot)
        self._snapshots[project_id] = snapshot
        result.version = snapshot.version

        logger.info(
            "Committed graph v{} for project {}: classes={} methods={} endpoints={} edges +{}/-{}",
            snapshot.version,
            project_id,
            result.classes.counts(),
            result.methods.counts(),
            result.endpoints.counts(),
            result.edges_added,
            result.edges_removed,
        )
        return result

    async def drop(self, project_id: str) -> None:
        async with self._lock_for(project_id):
            self._snapshots.pop(project_id, None)
            if self._repository:
                self._repository.delete(project_id)
            logger.info("Dropped graph for project {}", project_id)


__all__ = [
    "GraphStore",
    "CommitResult",
    "NodeDiff",
    "SnapshotRepository",
    "validate_candidate",
]
