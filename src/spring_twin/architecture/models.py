"""Graph data model: class, method and endpoint nodes plus id-pair edges."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple


class EdgeType(str, Enum):
    CONTAINS = "CONTAINS"
    EXPOSES = "EXPOSES"
    DEPENDS_ON = "DEPENDS_ON"
    CALLS = "CALLS"


# (source node type, target node type) for every edge kind
EDGE_ENDPOINT_TYPES: Dict[EdgeType, Tuple[str, str]] = {
    EdgeType.CONTAINS: ("class", "method"),
    EdgeType.EXPOSES: ("method", "endpoint"),
    EdgeType.DEPENDS_ON: ("class", "class"),
    EdgeType.CALLS: ("method", "method"),
}


@dataclass(frozen=True)
class ClassNode:
    id: str
    name: str
    full_name: str
    package_name: str
    labels: FrozenSet[str] = frozenset()
    modifiers: FrozenSet[str] = frozenset()
    kind: str = "class"
    source_path: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "fullName": self.full_name,
            "packageName": self.package_name,
            "labels": sorted(self.labels),
            "modifiers": sorted(self.modifiers),
            "kind": self.kind,
            "sourcePath": self.source_path,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ClassNode":
        return cls(
            id=data["id"],
            name=data["name"],
            full_name=data["fullName"],
            package_name=data["packageName"],
            labels=frozenset(data.get("labels", ())),
            modifiers=frozenset(data.get("modifiers", ())),
            kind=data.get("kind", "class"),
            source_path=data.get("sourcePath"),
        )


@dataclass(frozen=True)
class MethodNode:
    id: str
    name: str
    signature: str
    return_type: str
    class_id: str
    modifiers: FrozenSet[str] = frozenset()
    parameters: str = ""
    line: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "signature": self.signature,
            "returnType": self.return_type,
            "classId": self.class_id,
            "modifiers": sorted(self.modifiers),
            "parameters": self.parameters,
            "line": self.line,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MethodNode":
        return cls(
            id=data["id"],
            name=data["name"],
            signature=data["signature"],
            return_type=data["returnType"],
            class_id=data["classId"],
            modifiers=frozenset(data.get("modifiers", ())),
            parameters=data.get("parameters", ""),
            line=data.get("line", 0),
        )


@dataclass(frozen=True)
class EndpointNode:
    id: str
    path: str
    http_method: str
    produces: str
    consumes: str
    method_id: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "path": self.path,
            "httpMethod": self.http_method,
            "produces": self.produces,
            "consumes": self.consumes,
            "methodId": self.method_id,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "EndpointNode":
        return cls(
            id=data["id"],
            path=data["path"],
            http_method=data["httpMethod"],
            produces=data["produces"],
            consumes=data["consumes"],
            method_id=data["methodId"],
        )


@dataclass(frozen=True)
class Edge:
    type: EdgeType
    source: str
    target: str
    field_name: Optional[str] = None
    injection_type: Optional[str] = None
    line_number: Optional[int] = None

    @property
    def key(self) -> Tuple[str, str, str]:
        return (self.type.value, self.source, self.target)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "type": self.type.value,
            "source": self.source,
            "target": self.target,
        }
        if self.field_name is not None:
            payload["fieldName"] = self.field_name
        if self.injection_type is not None:
            payload["injectionType"] = self.injection_type
        if self.line_number is not None:
            payload["lineNumber"] = self.line_number
        return payload

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Edge":
        return cls(
            type=EdgeType(data["type"]),
            source=data["source"],
            target=data["target"],
            field_name=data.get("fieldName"),
            injection_type=data.get("injectionType"),
            line_number=data.get("lineNumber"),
        )


def method_id_for(class_id: str, signature: str) -> str:
    """Composite method key; keeps overloads apart."""
    return f"{class_id}#{signature}"


def endpoint_id_for(method_id: str, http_method: str, path: str) -> str:
    return f"{http_method} {path} -> {method_id}"


@dataclass
class GraphCandidate:
    """Mutable graph assembled during a run, validated on commit."""

    classes: List[ClassNode] = field(default_factory=list)
    methods: List[MethodNode] = field(default_factory=list)
    endpoints: List[EndpointNode] = field(default_factory=list)
    edges: List[Edge] = field(default_factory=list)

    def add_class(self, node: ClassNode) -> None:
        self.classes.append(node)

    def add_method(self, node: MethodNode) -> None:
        self.methods.append(node)
        self.edges.append(Edge(EdgeType.CONTAINS, node.class_id, node.id))

    def add_endpoint(self, node: EndpointNode) -> None:
        self.endpoints.append(node)
        self.edges.append(Edge(EdgeType.EXPOSES, node.method_id, node.id))

    def add_edge(self, edge: Edge) -> None:
        self.edges.append(edge)


def _sorted_edges(edges: Iterable[Edge]) -> Tuple[Edge, ...]:
    unique: Dict[Tuple[str, str, str], Edge] = {}
    for edge in edges:
        unique.setdefault(edge.key, edge)
    return tuple(unique[key] for key in sorted(unique))


@dataclass(frozen=True)
class GraphSnapshot:
    """One committed, immutable graph version of a project.

    Readers hold a reference to a snapshot; commits build a new one and swap
    the reference, so a snapshot never changes after it is published.
    """

    project_id: str
    version: int = 0
    committed_at: Optional[dt.datetime] = None
    classes: Mapping[str, ClassNode] = field(default_factory=dict)
    methods: Mapping[str, MethodNode] = field(default_factory=dict)
    endpoints: Mapping[str, EndpointNode] = field(default_factory=dict)
    edges: Tuple[Edge, ...] = ()

    @classmethod
    def empty(cls, project_id: str) -> "GraphSnapshot":
        return cls(project_id=project_id)

    @classmethod
    def build(
        cls,
        project_id: str,
        version: int,
        committed_at: Optional[dt.datetime],
        candidate: GraphCandidate,
    ) -> "GraphSnapshot":
        return cls(
            project_id=project_id,
            version=version,
            committed_at=committed_at,
            classes={node.id: node for node in sorted(candidate.classes, key=lambda n: n.id)},
            methods={node.id: node for node in sorted(candidate.methods, key=lambda n: n.id)},
            endpoints={node.id: node for node in sorted(candidate.endpoints, key=lambda n: n.id)},
            edges=_sorted_edges(candidate.edges),
        )

    def edges_of(self, edge_type: EdgeType) -> List[Edge]:
        return [edge for edge in self.edges if edge.type is edge_type]

    def adjacency(self, edge_type: EdgeType) -> Dict[str, List[str]]:
        graph: Dict[str, List[str]] = {}
        for edge in self.edges_of(edge_type):
            graph.setdefault(edge.source, []).append(edge.target)
        for targets in graph.values():
            targets.sort()
        return graph

    def reverse_adjacency(self, edge_type: EdgeType) -> Dict[str, List[str]]:
        graph: Dict[str, List[str]] = {}
        for edge in self.edges_of(edge_type):
            graph.setdefault(edge.target, []).append(edge.source)
        for sources in graph.values():
            sources.sort()
        return graph

    def content_dict(self) -> Dict[str, Any]:
        """Nodes and edges only; equal for equal graphs regardless of version."""
        return {
            "classes": [node.to_dict() for node in self.classes.values()],
            "methods": [node.to_dict() for node in self.methods.values()],
            "endpoints": [node.to_dict() for node in self.endpoints.values()],
            "edges": [edge.to_dict() for edge in self.edges],
        }

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "projectId": self.project_id,
            "version": self.version,
            "committedAt": self.committed_at.isoformat() if self.committed_at else None,
        }
        payload.update(self.content_dict())
        return payload

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "GraphSnapshot":
        committed_at = data.get("committedAt")
        candidate = GraphCandidate(
            classes=[ClassNode.from_dict(item) for item in data.get("classes", [])],
            methods=[MethodNode.from_dict(item) for item in data.get("methods", [])],
            endpoints=[EndpointNode.from_dict(item) for item in data.get("endpoints", [])],
            edges=[Edge.from_dict(item) for item in data.get("edges", [])],
        )
        return cls.build(
            data["projectId"],
            int(data.get("version", 0)),
            dt.datetime.fromisoformat(committed_at) if committed_at else None,
            candidate,
        )

    def as_candidate(self) -> GraphCandidate:
        return GraphCandidate(
            classes=list(self.classes.values()),
            methods=list(self.methods.values()),
            endpoints=list(self.endpoints.values()),
            edges=list(self.edges),
        )

    def stats(self) -> Dict[str, int]:
        return {
            "classes": len(self.classes),
            "methods": len(self.methods),
            "endpoints": len(self.endpoints),
            "edges": len(self.edges),
        }


__all__ = [
    "EdgeType",
    "EDGE_ENDPOINT_TYPES",
    "ClassNode",
    "MethodNode",
    "EndpointNode",
    "Edge",
    "GraphCandidate",
    "GraphSnapshot",
    "method_id_for",
    "endpoint_id_for",
]
