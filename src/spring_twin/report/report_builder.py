"""
Deterministic report composition over committed graph snapshots.

Every report is rendered from a single snapshot reference, so the output is
a pure function of (graph version, parameters) and can be cached safely.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from loguru import logger

from spring_twin.architecture.models import EdgeType, GraphSnapshot
from spring_twin.architecture.persistence import dump_canonical
from spring_twin.errors import NotFoundError

from .cache import ReportCache, make_key
from .query_service import QueryService, _in_package

JSON_MEDIA_TYPE = "application/json"
MARKDOWN_MEDIA_TYPE = "text/markdown"

# how far explain_endpoint follows CALLS edges from the handler method
MAX_CALL_DEPTH = 5


@dataclass(frozen=True)
class RenderedReport:
    report: str
    project_id: str
    version: int
    media_type: str
    content: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "report": self.report,
            "project_id": self.project_id,
            "version": self.version,
            "media_type": self.media_type,
            "content": self.content,
        }


class ReportBuilder:
    """Explain reports, dependency reports and LLM context export"""

    def __init__(self, queries: QueryService, cache: Optional[ReportCache] = None) -> None:
        self.queries = queries
        self.cache = cache if cache is not None else ReportCache()

    def _render(
        self,
        project_id: str,
        report: str,
        params: Dict[str, Any],
        build: Callable[[GraphSnapshot], Tuple[str, str]],
    ) -> RenderedReport:
        snapshot = self.queries.snapshot(project_id)
        key = make_key(project_id, snapshot.version, report, params)
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        content, media_type = build(snapshot)
        rendered = RenderedReport(report, project_id, snapshot.version, media_type, content)
        self.cache.set(key, rendered)
        logger.debug(f"Rendered {report} report for project {project_id} at v{snapshot.version}")
        return rendered

    # JSON reports

    def dependency_report(self, project_id: str, class_id: str, max_depth: Optional[int] = None) -> RenderedReport:
        def build(snapshot: GraphSnapshot):
            report = self.queries.get_dependency_report(project_id, class_id, max_depth, snapshot=snapshot)
            return dump_canonical(report.to_dict()), JSON_MEDIA_TYPE

        return self._render(project_id, "dependencies", {"class_id": class_id, "max_depth": max_depth}, build)

    def explain_class(self, project_id: str, class_id: str) -> RenderedReport:
        def build(snapshot: GraphSnapshot):
            node = snapshot.classes.get(class_id)
            if node is None:
                raise NotFoundError(f"Class not found: {class_id}", details={"class_id": class_id})
            methods = [m for m in snapshot.methods.values() if m.class_id == class_id]
            method_ids = {m.id for m in methods}
            endpoints = [e for e in snapshot.endpoints.values() if e.method_id in method_ids]
            payload = {
                "report": "class",
                "project_id": project_id,
                "version": snapshot.version,
                "class": node.to_dict(),
                "methods": [m.to_dict() for m in methods],
                "endpoints": [e.to_dict() for e in endpoints],
                "dependencies": _injection_edges(snapshot, source=class_id),
                "dependents": _injection_edges(snapshot, target=class_id),
            }
            return dump_canonical(payload), JSON_MEDIA_TYPE

        return self._render(project_id, "explain_class", {"class_id": class_id}, build)

    def explain_method(self, project_id: str, method_id: str) -> RenderedReport:
        def build(snapshot: GraphSnapshot):
            method = snapshot.methods.get(method_id)
            if method is None:
                raise NotFoundError(f"Method not found: {method_id}", details={"method_id": method_id})
            owner = snapshot.classes[method.class_id]
            calls = snapshot.edges_of(EdgeType.CALLS)
            payload = {
                "report": "method",
                "project_id": project_id,
                "version": snapshot.version,
                "method": method.to_dict(),
                "class": _class_brief(owner),
                "endpoints": [
                    e.to_dict() for e in snapshot.endpoints.values() if e.method_id == method_id
                ],
                "calls": [
                    {"methodId": edge.target, "lineNumber": edge.line_number}
                    for edge in calls
                    if edge.source == method_id
                ],
                "called_by": [
                    {"methodId": edge.source, "lineNumber": edge.line_number}
                    for edge in calls
                    if edge.target == method_id
                ],
            }
            return dump_canonical(payload), JSON_MEDIA_TYPE

        return self._render(project_id, "explain_method", {"method_id": method_id}, build)

    def explain_endpoint(self, project_id: str, endpoint_id: str) -> RenderedReport:
        def build(snapshot: GraphSnapshot):
            endpoint = snapshot.endpoints.get(endpoint_id)
            if endpoint is None:
                raise NotFoundError(f"Endpoint not found: {endpoint_id}", details={"endpoint_id": endpoint_id})
            method = snapshot.methods[endpoint.method_id]
            owner = snapshot.classes[method.class_id]
            payload = {
                "report": "endpoint",
                "project_id": project_id,
                "version": snapshot.version,
                "endpoint": endpoint.to_dict(),
                "handler": method.to_dict(),
                "controller": _class_brief(owner),
                "call_chain": _call_chain(snapshot, method.id),
                "dependencies": _injection_edges(snapshot, source=owner.id),
            }
            return dump_canonical(payload), JSON_MEDIA_TYPE

        return self._render(project_id, "explain_endpoint", {"endpoint_id": endpoint_id}, build)

    # Markdown export

    def export_context(self, project_id: str, package: Optional[str] = None) -> RenderedReport:
        """Markdown summary of the architecture, sized for an LLM prompt."""

        def build(snapshot: GraphSnapshot):
            return _context_markdown(snapshot, package), MARKDOWN_MEDIA_TYPE

        return self._render(project_id, "context", {"package": package}, build)


def _class_brief(node) -> Dict[str, Any]:
    return {"id": node.id, "name": node.name, "packageName": node.package_name, "labels": sorted(node.labels)}


def _injection_edges(snapshot: GraphSnapshot, source: Optional[str] = None, target: Optional[str] = None) -> List[Dict[str, Any]]:
    rows = []
    for edge in snapshot.edges_of(EdgeType.DEPENDS_ON):
        if source is not None and edge.source != source:
            continue
        if target is not None and edge.target != target:
            continue
        rows.append(
            {
                "classId": edge.target if source is not None else edge.source,
                "fieldName": edge.field_name,
                "injectionType": edge.injection_type,
            }
        )
    return rows


def _call_chain(snapshot: GraphSnapshot, start: str) -> List[Dict[str, Any]]:
    """Breadth-first over CALLS, each method listed once at its shallowest depth."""
    adjacency = snapshot.adjacency(EdgeType.CALLS)
    seen = {start}
    chain = []
    queue = deque([(start, 0)])
    while queue:
        method_id, depth = queue.popleft()
        if depth >= MAX_CALL_DEPTH:
            continue
        for callee in adjacency.get(method_id, ()):
            if callee in seen:
                continue
            seen.add(callee)
            chain.append({"methodId": callee, "calledFrom": method_id, "depth": depth + 1})
            queue.append((callee, depth + 1))
    return chain


def _cell(value: Any) -> str:
    return str(value).replace("|", "\\|")


def _context_markdown(snapshot: GraphSnapshot, package: Optional[str]) -> str:
    classes = [node for node in snapshot.classes.values() if _in_package(node.package_name, package)]
    class_ids = {node.id for node in classes}
    methods_by_class: Dict[str, List] = {}
    for method in snapshot.methods.values():
        if method.class_id in class_ids:
            methods_by_class.setdefault(method.class_id, []).append(method)
    endpoints = sorted(
        (e for e in snapshot.endpoints.values() if snapshot.methods[e.method_id].class_id in class_ids),
        key=lambda e: (e.path, e.http_method, e.id),
    )
    dependencies = snapshot.adjacency(EdgeType.DEPENDS_ON)

    lines = [f"# Architecture context: {snapshot.project_id}", ""]
    committed = snapshot.committed_at.isoformat() if snapshot.committed_at else "never"
    lines.append(f"Graph version {snapshot.version}, committed {committed}.")
    if package:
        lines.append(f"Scope: package `{package}`.")
    lines += [
        "",
        "## Summary",
        "",
        f"- Classes: {len(classes)}",
        f"- Methods: {sum(len(v) for v in methods_by_class.values())}",
        f"- Endpoints: {len(endpoints)}",
        "",
    ]

    if endpoints:
        lines += ["## Endpoints", "", "| Method | Path | Handler | Produces | Consumes |", "|---|---|---|---|---|"]
        for endpoint in endpoints:
            lines.append(
                f"| {endpoint.http_method} | {_cell(endpoint.path)} | `{_cell(endpoint.method_id)}` "
                f"| {_cell(endpoint.produces)} | {_cell(endpoint.consumes)} |"
            )
        lines.append("")

    by_package: Dict[str, List] = {}
    for node in classes:
        by_package.setdefault(node.package_name, []).append(node)
    if by_package:
        lines += ["## Classes", ""]
    for package_name in sorted(by_package):
        lines += [f"### {package_name or '(default package)'}", ""]
        for node in sorted(by_package[package_name], key=lambda n: n.id):
            labels = f" [{', '.join(sorted(node.labels))}]" if node.labels else ""
            lines.append(f"- `{node.name}` ({node.kind}){labels}")
            deps = dependencies.get(node.id)
            if deps:
                lines.append(f"  - depends on: {', '.join(f'`{d}`' for d in deps)}")
            methods = sorted(methods_by_class.get(node.id, []), key=lambda m: m.id)
            if methods:
                lines.append(
                    f"  - methods: {', '.join(f'`{m.return_type} {m.signature}`' for m in methods)}"
                )
        lines.append("")

    return "\n".join(lines).rstrip("\n") + "\n"


__all__ = ["ReportBuilder", "RenderedReport", "JSON_MEDIA_TYPE", "MARKDOWN_MEDIA_TYPE"]
