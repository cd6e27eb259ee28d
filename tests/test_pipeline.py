"""
Tests for the scan -> extract -> assemble pipeline
"""

import threading

import pytest

from spring_twin.analysis import AnalysisPipeline, CancellationToken, EntityExtractor, PackageFilter, SourceScanner
from spring_twin.architecture.graph_store import validate_candidate
from spring_twin.architecture.models import EdgeType
from spring_twin.errors import AnalysisCancelledError, ExtractionError

from conftest import (
    CONTROLLER,
    LEGACY_JOB,
    ORDER,
    ORDER_REPOSITORY,
    ORDER_SERVICE,
    PRICING_SERVICE,
    write_sources,
)


def run_pipeline(root, package_filter=None, **kwargs):
    pipeline = AnalysisPipeline(SourceScanner(root, package_filter), EntityExtractor(), **kwargs)
    return pipeline.run(CancellationToken())


@pytest.mark.unit
class TestAnalysisPipeline:
    def test_builds_valid_candidate(self, sample_project):
        outcome = run_pipeline(sample_project)
        candidate = outcome.candidate
        validate_candidate(candidate)

        assert {c.id for c in candidate.classes} == {
            CONTROLLER,
            ORDER_SERVICE,
            PRICING_SERVICE,
            ORDER_REPOSITORY,
            ORDER,
            LEGACY_JOB,
        }
        assert len(candidate.endpoints) == 4
        assert outcome.units_total == outcome.units_processed == 6
        assert outcome.warnings == []

    def test_depends_on_edges_are_resolved_and_cyclic(self, sample_project):
        candidate = run_pipeline(sample_project).candidate
        depends = {
            (e.source, e.target, e.field_name, e.injection_type)
            for e in candidate.edges
            if e.type is EdgeType.DEPENDS_ON
        }
        assert depends == {
            (CONTROLLER, ORDER_SERVICE, "orderService", "constructor"),
            (ORDER_SERVICE, ORDER_REPOSITORY, "repository", "field"),
            (ORDER_SERVICE, PRICING_SERVICE, "pricing", "field"),
            (PRICING_SERVICE, ORDER_SERVICE, "orderService", "constructor"),
        }

    def test_calls_edges_pick_first_overload(self, sample_project):
        candidate = run_pipeline(sample_project).candidate
        calls = {(e.source, e.target) for e in candidate.edges if e.type is EdgeType.CALLS}
        assert (f"{CONTROLLER}#get(Long)", f"{ORDER_SERVICE}#find(Long)") in calls
        assert (f"{CONTROLLER}#create(Order)", f"{ORDER_SERVICE}#save(Order)") in calls
        assert (f"{ORDER_SERVICE}#save(Order,boolean)", f"{PRICING_SERVICE}#reprice(Order)") in calls
        assert (f"{PRICING_SERVICE}#reprice(Order)", f"{ORDER_SERVICE}#find(Long)") in calls

    def test_worker_count_does_not_change_result(self, sample_project):
        single = run_pipeline(sample_project, workers=1).candidate
        parallel = run_pipeline(sample_project, workers=4).candidate
        assert sorted(e.key for e in single.edges) == sorted(e.key for e in parallel.edges)
        assert sorted(m.id for m in single.methods) == sorted(m.id for m in parallel.methods)

    def test_package_filter_is_applied(self, sample_project):
        outcome = run_pipeline(sample_project, PackageFilter(exclude_packages=["com.acme.shop.internal"]))
        assert LEGACY_JOB not in {c.id for c in outcome.candidate.classes}

    def test_reports_total_and_units(self, sample_project):
        seen = {"total": None, "units": 0}
        lock = threading.Lock()

        def on_unit():
            with lock:
                seen["units"] += 1

        pipeline = AnalysisPipeline(SourceScanner(sample_project), EntityExtractor())
        pipeline.run(CancellationToken(), on_total=lambda n: seen.update(total=n), on_unit=on_unit)
        assert seen == {"total": 6, "units": 6}

    def test_cancelled_token_stops_the_run(self, sample_project):
        token = CancellationToken()
        token.cancel("stop")
        pipeline = AnalysisPipeline(SourceScanner(sample_project), EntityExtractor())
        with pytest.raises(AnalysisCancelledError):
            pipeline.run(token)


@pytest.mark.unit
class TestWarningThreshold:
    @pytest.fixture
    def half_broken(self, tmp_path):
        return write_sources(
            tmp_path,
            {
                "a/Good.java": "package a;\npublic class Good { void ok() { } }\n",
                "a/Broken.java": "package a;\npublic class Broken { void x( { }\n",
            },
        )

    def test_malformed_units_are_warnings(self, half_broken):
        outcome = run_pipeline(half_broken, warning_rate_threshold=0.5)
        assert [w.path for w in outcome.warnings] == ["src/main/java/a/Broken.java"]
        assert [c.id for c in outcome.candidate.classes] == ["a.Good"]

    def test_threshold_exceeded_fails_with_extraction_error(self, half_broken):
        with pytest.raises(ExtractionError) as exc_info:
            run_pipeline(half_broken, warning_rate_threshold=0.25)
        assert exc_info.value.details["warnings"][0]["file"] == "src/main/java/a/Broken.java"

    def test_skipped_files_are_reported_without_counting_as_failures(self, tmp_path):
        root = write_sources(
            tmp_path,
            {
                "a/Good.java": "package a;\npublic class Good { }\n",
                "a/Huge.java": "package a;\npublic class Huge { }\n" + "//" + "x" * 3000 + "\n",
            },
        )
        pipeline = AnalysisPipeline(SourceScanner(root, max_file_size_kb=1), EntityExtractor(), warning_rate_threshold=0.0)
        outcome = pipeline.run(CancellationToken())
        assert [w.path for w in outcome.warnings] == ["src/main/java/a/Huge.java"]
        assert outcome.summary()["units_skipped"] == 1
        assert outcome.summary()["units_failed"] == 0
