"""
Tests for read-only queries and deterministic reports
"""

import json

import pytest
import pytest_asyncio

from spring_twin.architecture.graph_store import GraphStore
from spring_twin.architecture.models import (
    ClassNode,
    Edge,
    EdgeType,
    EndpointNode,
    GraphCandidate,
    MethodNode,
)
from spring_twin.errors import ConfigurationError, NotFoundError
from spring_twin.report.cache import ReportCache
from spring_twin.report.query_service import QueryService, canonical_cycle, walk_dependencies
from spring_twin.report.report_builder import ReportBuilder


def cls(class_id, labels=()):
    package, _, name = class_id.rpartition(".")
    return ClassNode(id=class_id, name=name, full_name=class_id, package_name=package, labels=frozenset(labels))


def build_candidate():
    candidate = GraphCandidate()
    for node in (
        cls("com.acme.web.A", {"controller", "rest_controller"}),
        cls("com.acme.core.B", {"service"}),
        cls("com.acme.core.C", {"repository"}),
        cls("org.other.D"),
    ):
        candidate.add_class(node)
    handler = MethodNode(
        id="com.acme.web.A#get(Long)",
        name="get",
        signature="get(Long)",
        return_type="String",
        class_id="com.acme.web.A",
        modifiers=frozenset({"public"}),
    )
    load = MethodNode(id="com.acme.core.B#load(Long)", name="load", signature="load(Long)", return_type="String", class_id="com.acme.core.B")
    fetch = MethodNode(id="com.acme.core.C#fetch()", name="fetch", signature="fetch()", return_type="String", class_id="com.acme.core.C")
    for method in (handler, load, fetch):
        candidate.add_method(method)
    candidate.add_endpoint(
        EndpointNode(
            id="GET /a/{id} -> com.acme.web.A#get(Long)",
            path="/a/{id}",
            http_method="GET",
            produces="application/json",
            consumes="application/json",
            method_id=handler.id,
        )
    )
    candidate.add_edge(Edge(EdgeType.DEPENDS_ON, "com.acme.web.A", "com.acme.core.B", "b", "field"))
    candidate.add_edge(Edge(EdgeType.DEPENDS_ON, "com.acme.core.B", "com.acme.web.A", "a", "constructor"))
    candidate.add_edge(Edge(EdgeType.DEPENDS_ON, "com.acme.core.B", "com.acme.core.C", "c", "field"))
    candidate.add_edge(Edge(EdgeType.CALLS, handler.id, load.id, line_number=12))
    candidate.add_edge(Edge(EdgeType.CALLS, load.id, fetch.id, line_number=20))
    return candidate


@pytest_asyncio.fixture
async def store():
    graph_store = GraphStore()
    await graph_store.commit("p", build_candidate())
    return graph_store


@pytest.mark.unit
class TestDependencyWalk:
    def test_mutual_dependency_terminates_and_reports_cycle(self):
        reached, cycles, limited = walk_dependencies({"A": ["B"], "B": ["A"]}, "A")
        assert reached == {"B"}
        assert cycles == {("A", "B", "A")}
        assert not limited

    def test_self_loop_is_a_cycle(self):
        _, cycles, _ = walk_dependencies({"A": ["A"]}, "A")
        assert cycles == {("A", "A")}

    def test_depth_limit(self):
        adjacency = {"A": ["B"], "B": ["C"], "C": ["D"]}
        reached, _, limited = walk_dependencies(adjacency, "A", max_depth=2)
        assert reached == {"B", "C"}
        assert limited

    def test_canonical_cycle_rotation(self):
        assert canonical_cycle(["C", "A", "B"]) == ("A", "B", "C", "A")


@pytest.mark.unit
class TestQueryService:
    @pytest.mark.asyncio
    async def test_list_classes_by_package_and_label(self, store):
        queries = QueryService(store)
        assert [c.id for c in queries.list_classes("p", package="com.acme.core")] == [
            "com.acme.core.B",
            "com.acme.core.C",
        ]
        assert [c.id for c in queries.list_classes("p", label="controller")] == ["com.acme.web.A"]
        assert len(queries.list_classes("p")) == 4

    @pytest.mark.asyncio
    async def test_list_methods_and_endpoints(self, store):
        queries = QueryService(store)
        assert [m.id for m in queries.list_methods("p", class_id="com.acme.core.B")] == ["com.acme.core.B#load(Long)"]
        assert [m.id for m in queries.list_methods("p", package="com.acme.web")] == ["com.acme.web.A#get(Long)"]
        assert len(queries.list_endpoints("p", http_method="get")) == 1
        assert queries.list_endpoints("p", http_method="POST") == []
        with pytest.raises(NotFoundError):
            queries.list_methods("p", class_id="nope")

    @pytest.mark.asyncio
    async def test_dependency_report_with_cycle(self, store):
        report = QueryService(store).get_dependency_report("p", "com.acme.web.A")
        assert report.direct == ["com.acme.core.B"]
        assert report.transitive == ["com.acme.core.B", "com.acme.core.C"]
        assert report.cycles == [["com.acme.core.B", "com.acme.web.A", "com.acme.core.B"]]
        assert report.version == 1

    @pytest.mark.asyncio
    async def test_dependency_report_errors(self, store):
        queries = QueryService(store)
        with pytest.raises(NotFoundError):
            queries.get_dependency_report("p", "missing.Class")
        with pytest.raises(ConfigurationError):
            queries.get_dependency_report("p", "com.acme.web.A", max_depth=0)

    @pytest.mark.asyncio
    async def test_graph_summary(self, store):
        summary = QueryService(store).graph_summary("p")
        assert summary["classes"] == 4
        assert summary["endpoints"] == 1
        assert summary["edge_types"]["DEPENDS_ON"] == 3
        assert summary["labels"]["controller"] == 1


@pytest.mark.unit
class TestReportBuilder:
    @pytest.mark.asyncio
    async def test_reports_are_byte_identical_for_same_version(self, store):
        builder = ReportBuilder(QueryService(store), ReportCache(16))
        first = builder.dependency_report("p", "com.acme.web.A")
        uncached = ReportBuilder(QueryService(store), ReportCache(0)).dependency_report("p", "com.acme.web.A")
        assert first.content == uncached.content
        assert builder.dependency_report("p", "com.acme.web.A") is first
        assert builder.cache.stats()["hits"] == 1

    @pytest.mark.asyncio
    async def test_new_version_is_not_served_from_cache(self, store):
        builder = ReportBuilder(QueryService(store))
        before = builder.explain_class("p", "com.acme.core.C")
        candidate = build_candidate()
        candidate.classes[3] = cls("org.other.D", {"entity"})
        await store.commit("p", candidate)
        after = builder.explain_class("p", "com.acme.core.C")
        assert after.version == before.version + 1

    @pytest.mark.asyncio
    async def test_explain_class(self, store):
        payload = json.loads(ReportBuilder(QueryService(store)).explain_class("p", "com.acme.core.B").content)
        assert payload["class"]["id"] == "com.acme.core.B"
        assert [d["classId"] for d in payload["dependencies"]] == ["com.acme.core.C", "com.acme.web.A"]
        assert payload["dependents"] == [{"classId": "com.acme.web.A", "fieldName": "b", "injectionType": "field"}]

    @pytest.mark.asyncio
    async def test_explain_method(self, store):
        payload = json.loads(ReportBuilder(QueryService(store)).explain_method("p", "com.acme.core.B#load(Long)").content)
        assert payload["calls"] == [{"methodId": "com.acme.core.C#fetch()", "lineNumber": 20}]
        assert payload["called_by"] == [{"methodId": "com.acme.web.A#get(Long)", "lineNumber": 12}]

    @pytest.mark.asyncio
    async def test_explain_endpoint_follows_call_chain(self, store):
        report = ReportBuilder(QueryService(store)).explain_endpoint("p", "GET /a/{id} -> com.acme.web.A#get(Long)")
        payload = json.loads(report.content)
        assert payload["controller"]["id"] == "com.acme.web.A"
        assert [step["methodId"] for step in payload["call_chain"]] == [
            "com.acme.core.B#load(Long)",
            "com.acme.core.C#fetch()",
        ]

    @pytest.mark.asyncio
    async def test_explain_unknown_ids(self, store):
        builder = ReportBuilder(QueryService(store))
        with pytest.raises(NotFoundError):
            builder.explain_method("p", "x#y()")
        with pytest.raises(NotFoundError):
            builder.explain_endpoint("p", "GET /nope -> x#y()")

    @pytest.mark.asyncio
    async def test_export_context_markdown(self, store):
        report = ReportBuilder(QueryService(store)).export_context("p")
        assert report.media_type == "text/markdown"
        assert report.content.startswith("# Architecture context: p\n")
        assert "| GET | /a/{id} | `com.acme.web.A#get(Long)` | application/json | application/json |" in report.content
        assert "### com.acme.core" in report.content

        scoped = ReportBuilder(QueryService(store)).export_context("p", package="com.acme.core")
        assert "org.other" not in scoped.content
        assert "## Endpoints" not in scoped.content
