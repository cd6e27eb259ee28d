"""Read-only queries over the last committed graph of a project."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Set, Tuple

from spring_twin.analysis.package_filter import pattern_matches
from spring_twin.architecture.graph_store import GraphStore
from spring_twin.architecture.models import (
    ClassNode,
    EdgeType,
    EndpointNode,
    GraphSnapshot,
    MethodNode,
)
from spring_twin.errors import ConfigurationError, NotFoundError


@dataclass
class DependencyReport:
    project_id: str
    version: int
    root: str
    direct: List[str] = field(default_factory=list)
    transitive: List[str] = field(default_factory=list)
    cycles: List[List[str]] = field(default_factory=list)
    depth_limited: bool = False
    max_depth: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "project_id": self.project_id,
            "version": self.version,
            "root": self.root,
            "direct": list(self.direct),
            "transitive": list(self.transitive),
            "cycles": [list(cycle) for cycle in self.cycles],
            "depth_limited": self.depth_limited,
            "max_depth": self.max_depth,
        }


def canonical_cycle(members: List[str]) -> Tuple[str, ...]:
    """Rotate a cycle to start at its smallest id and close it on that id."""
    start = members.index(min(members))
    rotated = members[start:] + members[:start]
    return tuple(rotated + [rotated[0]])


def walk_dependencies(
    adjacency: Dict[str, List[str]],
    root: str,
    max_depth: Optional[int] = None,
) -> Tuple[Set[str], Set[Tuple[str, ...]], bool]:
    """Depth-first walk with a visited set; back edges are reported as cycles.

    Returns (reached ids excluding root, cycles, whether the depth limit cut
    the walk short). Terminates on any graph since each node is entered once.
    """
    visited = {root}
    path = [root]
    on_path = {root}
    stack: List[Iterator[str]] = [iter(adjacency.get(root, ()))]
    cycles: Set[Tuple[str, ...]] = set()
    depth_limited = False

    while stack:
        descended = False
        for target in stack[-1]:
            if target in on_path:
                cycles.add(canonical_cycle(path[path.index(target):]))
                continue
            if target in visited:
                continue
            visited.add(target)
            if max_depth is not None and len(path) >= max_depth:
                if adjacency.get(target):
                    depth_limited = True
                continue
            path.append(target)
            on_path.add(target)
            stack.append(iter(adjacency.get(target, ())))
            descended = True
            break
        if not descended:
            stack.pop()
            on_path.discard(path.pop())

    visited.discard(root)
    return visited, cycles, depth_limited


class QueryService:
    """Every call reads one snapshot reference and never waits on a running job."""

    def __init__(self, graph_store: GraphStore) -> None:
        self.graph_store = graph_store

    def snapshot(self, project_id: str) -> GraphSnapshot:
        return self.graph_store.current(project_id)

    # listings

    def list_classes(
        self,
        project_id: str,
        package: Optional[str] = None,
        label: Optional[str] = None,
    ) -> List[ClassNode]:
        snapshot = self.snapshot(project_id)
        return [
            node
            for node in snapshot.classes.values()
            if _in_package(node.package_name, package) and (label is None or label in node.labels)
        ]

    def list_methods(
        self,
        project_id: str,
        package: Optional[str] = None,
        class_id: Optional[str] = None,
    ) -> List[MethodNode]:
        snapshot = self.snapshot(project_id)
        if class_id is not None and class_id not in snapshot.classes:
            raise NotFoundError(f"Class not found: {class_id}", details={"class_id": class_id})
        result = []
        for method in snapshot.methods.values():
            if class_id is not None and method.class_id != class_id:
                continue
            owner = snapshot.classes[method.class_id]
            if _in_package(owner.package_name, package):
                result.append(method)
        return result

    def list_endpoints(
        self,
        project_id: str,
        package: Optional[str] = None,
        http_method: Optional[str] = None,
    ) -> List[EndpointNode]:
        snapshot = self.snapshot(project_id)
        wanted_method = http_method.upper() if http_method else None
        result = []
        for endpoint in snapshot.endpoints.values():
            if wanted_method and endpoint.http_method != wanted_method:
                continue
            owner = snapshot.classes[snapshot.methods[endpoint.method_id].class_id]
            if _in_package(owner.package_name, package):
                result.append(endpoint)
        return sorted(result, key=lambda e: (e.path, e.http_method, e.id))

    # lookups

    def get_class(self, project_id: str, class_id: str) -> ClassNode:
        node = self.snapshot(project_id).classes.get(class_id)
        if node is None:
            raise NotFoundError(f"Class not found: {class_id}", details={"class_id": class_id})
        return node

    def get_method(self, project_id: str, method_id: str) -> MethodNode:
        node = self.snapshot(project_id).methods.get(method_id)
        if node is None:
            raise NotFoundError(f"Method not found: {method_id}", details={"method_id": method_id})
        return node

    def get_endpoint(self, project_id: str, endpoint_id: str) -> EndpointNode:
        node = self.snapshot(project_id).endpoints.get(endpoint_id)
        if node is None:
            raise NotFoundError(f"Endpoint not found: {endpoint_id}", details={"endpoint_id": endpoint_id})
        return node

    # reports

    def get_dependency_report(
        self,
        project_id: str,
        class_id: str,
        max_depth: Optional[int] = None,
        snapshot: Optional[GraphSnapshot] = None,
    ) -> DependencyReport:
        if max_depth is not None and max_depth < 1:
            raise ConfigurationError("max_depth must be at least 1", details={"max_depth": max_depth})
        snapshot = snapshot or self.snapshot(project_id)
        if class_id not in snapshot.classes:
            raise NotFoundError(f"Class not found: {class_id}", details={"class_id": class_id})

        adjacency = snapshot.adjacency(EdgeType.DEPENDS_ON)
        reached, cycles, depth_limited = walk_dependencies(adjacency, class_id, max_depth)
        return DependencyReport(
            project_id=project_id,
            version=snapshot.version,
            root=class_id,
            direct=sorted(set(adjacency.get(class_id, ())) - {class_id}),
            transitive=sorted(reached),
            cycles=[list(cycle) for cycle in sorted(cycles)],
            depth_limited=depth_limited,
            max_depth=max_depth,
        )

    def graph_summary(self, project_id: str) -> Dict[str, Any]:
        snapshot = self.snapshot(project_id)
        labels: Dict[str, int] = {}
        for node in snapshot.classes.values():
            for label in node.labels:
                labels[label] = labels.get(label, 0) + 1
        http_methods: Dict[str, int] = {}
        for endpoint in snapshot.endpoints.values():
            http_methods[endpoint.http_method] = http_methods.get(endpoint.http_method, 0) + 1
        edges: Dict[str, int] = {edge_type.value: 0 for edge_type in EdgeType}
        for edge in snapshot.edges:
            edges[edge.type.value] += 1
        return {
            "project_id": project_id,
            "version": snapshot.version,
            "committed_at": snapshot.committed_at.isoformat() if snapshot.committed_at else None,
            **snapshot.stats(),
            "packages": len({node.package_name for node in snapshot.classes.values()}),
            "labels": dict(sorted(labels.items())),
            "http_methods": dict(sorted(http_methods.items())),
            "edge_types": edges,
        }


def _in_package(package_name: str, package: Optional[str]) -> bool:
    if not package:
        return True
    return pattern_matches(package, package_name)


__all__ = ["DependencyReport", "QueryService", "canonical_cycle", "walk_dependencies"]
