"""
Tests for the versioned graph store and its persistence
"""

import json

import pytest

from spring_twin.architecture.graph_store import GraphStore, validate_candidate
from spring_twin.architecture.models import (
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
from spring_twin.architecture.persistence import JsonSnapshotRepository
from spring_twin.errors import GraphIntegrityError


def make_candidate(extra_method: bool = False) -> GraphCandidate:
    candidate = GraphCandidate()
    for name in ("A", "B"):
        candidate.add_class(
            ClassNode(id=f"p.{name}", name=name, full_name=f"p.{name}", package_name="p", labels=frozenset({"service"}))
        )
    run = MethodNode(
        id=method_id_for("p.A", "run()"), name="run", signature="run()", return_type="void", class_id="p.A"
    )
    candidate.add_method(run)
    if extra_method:
        candidate.add_method(
            MethodNode(
                id=method_id_for("p.B", "stop()"), name="stop", signature="stop()", return_type="void", class_id="p.B"
            )
        )
    candidate.add_endpoint(
        EndpointNode(
            id=endpoint_id_for(run.id, "GET", "/run"),
            path="/run",
            http_method="GET",
            produces="application/json",
            consumes="application/json",
            method_id=run.id,
        )
    )
    candidate.add_edge(Edge(EdgeType.DEPENDS_ON, "p.A", "p.B", field_name="b", injection_type="field"))
    candidate.add_edge(Edge(EdgeType.DEPENDS_ON, "p.B", "p.A", field_name="a", injection_type="constructor"))
    return candidate


@pytest.mark.unit
class TestValidateCandidate:
    def test_valid_candidate_passes(self):
        validate_candidate(make_candidate())

    def test_dangling_edge_is_rejected(self):
        candidate = make_candidate()
        candidate.add_edge(Edge(EdgeType.DEPENDS_ON, "p.A", "p.Missing"))
        with pytest.raises(GraphIntegrityError) as exc_info:
            validate_candidate(candidate)
        assert any("p.Missing" in v for v in exc_info.value.details["violations"])

    def test_duplicate_ids_are_rejected(self):
        candidate = make_candidate()
        candidate.add_class(ClassNode(id="p.A", name="A", full_name="p.A", package_name="p"))
        with pytest.raises(GraphIntegrityError):
            validate_candidate(candidate)

    def test_endpoint_must_resolve_to_a_method(self):
        candidate = make_candidate()
        candidate.add_endpoint(
            EndpointNode(
                id="GET /ghost -> p.A#ghost()",
                path="/ghost",
                http_method="GET",
                produces="application/json",
                consumes="application/json",
                method_id="p.A#ghost()",
            )
        )
        with pytest.raises(GraphIntegrityError):
            validate_candidate(candidate)


@pytest.mark.unit
class TestGraphStore:
    @pytest.mark.asyncio
    async def test_unknown_project_reads_empty_graph(self):
        snapshot = GraphStore().current("nope")
        assert snapshot.version == 0
        assert snapshot.stats() == {"classes": 0, "methods": 0, "endpoints": 0, "edges": 0}

    @pytest.mark.asyncio
    async def test_commit_bumps_version(self):
        store = GraphStore()
        result = await store.commit("p", make_candidate())
        assert result.version == 1
        assert result.classes.inserted == ["p.A", "p.B"]
        assert store.current("p").version == 1

    @pytest.mark.asyncio
    async def test_unchanged_commit_is_a_no_op(self):
        store = GraphStore()
        await store.commit("p", make_candidate())
        before = store.current("p")
        result = await store.commit("p", make_candidate())
        assert not result.changed
        assert result.version == 1
        assert store.current("p") is before

    @pytest.mark.asyncio
    async def test_reconciles_insert_update_delete(self):
        store = GraphStore()
        await store.commit("p", make_candidate(extra_method=True))
        candidate = make_candidate()
        candidate.classes[1] = ClassNode(id="p.B", name="B", full_name="p.B", package_name="p", labels=frozenset())
        result = await store.commit("p", candidate)
        assert result.version == 2
        assert result.classes.updated == ["p.B"]
        assert result.methods.deleted == ["p.B#stop()"]

    @pytest.mark.asyncio
    async def test_failed_commit_keeps_prior_graph(self):
        store = GraphStore()
        await store.commit("p", make_candidate())
        before = store.current("p")
        broken = make_candidate(extra_method=True)
        broken.add_edge(Edge(EdgeType.CALLS, "p.A#run()", "p.C#gone()"))
        with pytest.raises(GraphIntegrityError):
            await store.commit("p", broken)
        assert store.current("p") is before
        assert store.current("p").version == 1

    @pytest.mark.asyncio
    async def test_readers_keep_their_snapshot(self):
        store = GraphStore()
        await store.commit("p", make_candidate())
        held = store.current("p")
        await store.commit("p", make_candidate(extra_method=True))
        assert held.version == 1
        assert "p.B#stop()" not in held.methods
        assert store.current("p").version == 2

    @pytest.mark.asyncio
    async def test_drop_removes_graph(self, tmp_path):
        repository = JsonSnapshotRepository(tmp_path)
        store = GraphStore(repository)
        await store.commit("p", make_candidate())
        await store.drop("p")
        assert store.current("p").version == 0
        assert not (tmp_path / "p.json").exists()


@pytest.mark.unit
class TestPersistence:
    @pytest.mark.asyncio
    async def test_snapshots_survive_restart(self, tmp_path):
        store = GraphStore(JsonSnapshotRepository(tmp_path))
        await store.commit("p", make_candidate())
        committed = store.current("p")

        restored = GraphStore(JsonSnapshotRepository(tmp_path))
        assert restored.load() == 1
        assert restored.current("p").to_dict() == committed.to_dict()

    @pytest.mark.asyncio
    async def test_snapshot_file_is_canonical(self, tmp_path):
        store = GraphStore(JsonSnapshotRepository(tmp_path))
        await store.commit("p", make_candidate())
        text = (tmp_path / "p.json").read_text(encoding="utf-8")
        payload = json.loads(text)
        assert payload["version"] == 1
        assert text == json.dumps(payload, sort_keys=True, ensure_ascii=False, indent=2) + "\n"

    def test_snapshot_round_trip(self):
        snapshot = GraphSnapshot.build("p", 3, None, make_candidate())
        assert GraphSnapshot.from_dict(snapshot.to_dict()) == snapshot
