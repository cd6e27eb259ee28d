"""Architecture graph: node/edge model, versioned store and persistence."""

from .models import (
    ClassNode,
    Edge,
    EdgeType,
    EndpointNode,
    GraphCandidate,
    GraphSnapshot,
    MethodNode,
    endpoint_id_for,
    method_id_for,
)
from .graph_store import CommitResult, GraphStore, NodeDiff, validate_candidate
from .persistence import JsonSnapshotRepository, dump_canonical

__all__ = [
    "ClassNode",
    "Edge",
    "EdgeType",
    "EndpointNode",
    "GraphCandidate",
    "GraphSnapshot",
    "MethodNode",
    "endpoint_id_for",
    "method_id_for",
    "CommitResult",
    "GraphStore",
    "NodeDiff",
    "validate_candidate",
    "JsonSnapshotRepository",
    "dump_canonical",
]
