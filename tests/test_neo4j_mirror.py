"""
Tests for the Neo4j mirror record layout (no database required)
"""

import pytest

from spring_twin.architecture.models import ClassNode, Edge, EdgeType, GraphCandidate, GraphSnapshot, MethodNode
from spring_twin.architecture.neo4j_mirror import Neo4jGraphMirror, create_mirror
from spring_twin.config.settings import Settings


def snapshot():
    candidate = GraphCandidate()
    candidate.add_class(ClassNode("p.A", "A", "p.A", "p"))
    candidate.add_class(ClassNode("p.B", "B", "p.B", "p"))
    candidate.add_method(MethodNode("p.A#run()", "run", "run()", "void", "p.A"))
    candidate.add_edge(Edge(EdgeType.DEPENDS_ON, "p.A", "p.B", "b", "field"))
    return GraphSnapshot.build("shop", 3, None, candidate)


@pytest.mark.unit
class TestNeo4jMirror:
    def test_records_are_scoped_by_project(self):
        records = Neo4jGraphMirror.build_records(snapshot())
        assert [row["key"] for row in records["classes"]] == ["shop::p.A", "shop::p.B"]
        assert records["classes"][0]["props"]["project_id"] == "shop"
        assert records["classes"][0]["props"]["version"] == 3
        assert records["methods"][0]["key"] == "shop::p.A#run()"

    def test_relationship_properties(self):
        records = Neo4jGraphMirror.build_records(snapshot())
        assert records["DEPENDS_ON"] == [
            {"start": "shop::p.A", "end": "shop::p.B", "props": {"fieldName": "b", "injectionType": "field"}}
        ]
        assert records["CONTAINS"] == [{"start": "shop::p.A", "end": "shop::p.A#run()", "props": {}}]
        assert records["CALLS"] == []

    def test_disabled_by_default(self, tmp_path):
        assert create_mirror(Settings(data_dir=tmp_path)) is None

    def test_enabled_builds_mirror(self, tmp_path):
        mirror = create_mirror(Settings(data_dir=tmp_path, neo4j_enabled=True, neo4j_uri="bolt://db:7687"))
        assert isinstance(mirror, Neo4jGraphMirror)
        assert mirror.uri == "bolt://db:7687"

    @pytest.mark.asyncio
    async def test_unconnected_mirror_is_a_no_op(self):
        mirror = Neo4jGraphMirror("bolt://localhost:7687", "neo4j", "password")
        await mirror.drop_project("shop")
        await mirror.close()
