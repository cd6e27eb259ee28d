"""Scanner -> Extractor -> candidate graph, with cooperative cancellation."""

from __future__ import annotations

import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Set

from loguru import logger

from spring_twin.architecture.models import Edge, EdgeType, GraphCandidate
from spring_twin.errors import AnalysisCancelledError, ExtractionError

from .entity_extractor import EntityExtractor, ExtractionResult
from .source_scanner import SourceScanner


class CancellationToken:
    """Flag checked by pipeline stages between compilation units."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self.reason: Optional[str] = None

    def cancel(self, reason: str = "Cancellation requested") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise AnalysisCancelledError(self.reason or "Cancellation requested")


@dataclass
class UnitWarning:
    path: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"file": self.path, "error": self.message}


@dataclass
class AnalysisOutcome:
    """Candidate graph plus run statistics, ready for commit."""

    candidate: GraphCandidate
    units_total: int
    units_processed: int
    warnings: List[UnitWarning] = field(default_factory=list)
    duration_seconds: float = 0.0
    unresolved_dependencies: int = 0
    units_skipped: int = 0

    def summary(self) -> Dict[str, object]:
        return {
            "units_total": self.units_total,
            "units_processed": self.units_processed,
            "units_failed": len(self.warnings) - self.units_skipped,
            "units_skipped": self.units_skipped,
            "classes": len(self.candidate.classes),
            "methods": len(self.candidate.methods),
            "endpoints": len(self.candidate.endpoints),
            "unresolved_dependencies": self.unresolved_dependencies,
            "duration_seconds": round(self.duration_seconds, 3),
        }


class TypeResolver:
    """Resolve source-level type names to class ids (fully qualified names)."""

    def __init__(self, class_ids: Iterable[str]) -> None:
        self.class_ids: Set[str] = set(class_ids)

    @staticmethod
    def base_name(type_name: str) -> str:
        base = type_name.split("<", 1)[0]
        base = base.replace("...", "").replace("[]", "")
        return base.strip()

    def resolve(self, type_name: str, result: ExtractionResult) -> Optional[str]:
        base = self.base_name(type_name)
        if not base:
            return None
        if base in self.class_ids:
            return base
        head, _, rest = base.partition(".")
        explicit = {
            imp.name.rsplit(".", 1)[-1]: imp.name
            for imp in result.imports
            if not imp.wildcard and not imp.static
        }
        candidates: List[str] = []
        if head in explicit:
            candidates.append(f"{explicit[head]}.{rest}" if rest else explicit[head])
        package = result.unit.package_name
        candidates.append(f"{package}.{base}" if package else base)
        candidates.extend(f"{imp.name}.{base}" for imp in result.imports if imp.wildcard and not imp.static)
        for candidate in candidates:
            if candidate in self.class_ids:
                return candidate
        return None


def assemble_candidate(results: Iterable[ExtractionResult]) -> tuple[GraphCandidate, int]:
    """Build the candidate graph from per-unit results, independent of order.

    Returns the candidate and the number of dependency references that did
    not resolve to a project class (library types, generics, primitives).
    """

    ordered = sorted(
        (r for r in results if not r.failed and r.class_node is not None),
        key=lambda r: r.unit.relative_path,
    )
    candidate = GraphCandidate()
    for result in ordered:
        candidate.add_class(result.class_node)
        for method in sorted(result.methods, key=lambda m: m.id):
            candidate.add_method(method)
        for endpoint in sorted(result.endpoints, key=lambda e: e.id):
            candidate.add_endpoint(endpoint)

    resolver = TypeResolver(node.id for node in candidate.classes)
    methods_by_class: Dict[str, Dict[str, List[str]]] = {}
    for method in candidate.methods:
        methods_by_class.setdefault(method.class_id, {}).setdefault(method.name, []).append(method.id)
    for by_name in methods_by_class.values():
        for ids in by_name.values():
            ids.sort()

    dependency_edges: Dict[tuple, Edge] = {}
    call_edges: Dict[tuple, Edge] = {}
    unresolved = 0
    for result in ordered:
        source_id = result.class_node.id
        for ref in sorted(result.dependencies, key=lambda d: (d.field_name, d.injection_type, d.type_name)):
            target_id = resolver.resolve(ref.type_name, result)
            if target_id is None:
                unresolved += 1
                continue
            if target_id == source_id:
                continue
            edge = Edge(
                EdgeType.DEPENDS_ON,
                source_id,
                target_id,
                field_name=ref.field_name,
                injection_type=ref.injection_type,
            )
            dependency_edges.setdefault(edge.key, edge)

        for call in sorted(result.calls, key=lambda c: (c.caller_id, c.line, c.method_name)):
            receiver_id = resolver.resolve(call.receiver_type, result)
            if receiver_id is None:
                continue
            callees = methods_by_class.get(receiver_id, {}).get(call.method_name)
            if not callees:
                continue
            edge = Edge(EdgeType.CALLS, call.caller_id, callees[0], line_number=call.line)
            call_edges.setdefault(edge.key, edge)

    for key in sorted(dependency_edges):
        candidate.add_edge(dependency_edges[key])
    for key in sorted(call_edges):
        candidate.add_edge(call_edges[key])
    return candidate, unresolved


class AnalysisPipeline:
    """Runs extraction over every unit the scanner yields.

    Units are extracted in parallel on a thread pool; results are aggregated
    and resolved only after all units are done, so unit order never affects
    the resulting graph. The cancellation token is checked before each unit
    is submitted and after each completes.
    """

    def __init__(
        self,
        scanner: SourceScanner,
        extractor: EntityExtractor,
        *,
        workers: int = 4,
        warning_rate_threshold: float = 0.25,
    ) -> None:
        self.scanner = scanner
        self.extractor = extractor
        self.workers = max(1, workers)
        self.warning_rate_threshold = warning_rate_threshold

    def run(
        self,
        token: CancellationToken,
        *,
        on_total: Optional[Callable[[int], None]] = None,
        on_unit: Optional[Callable[[], None]] = None,
    ) -> AnalysisOutcome:
        start = time.perf_counter()
        units = self.scanner.scan()
        total = units.count()
        token.raise_if_cancelled()
        if on_total:
            on_total(total)
        logger.info("Discovered {} compilation unit(s) under {}", total, self.scanner.root)

        results: List[ExtractionResult] = []

        def collect(done: Iterable[Future]) -> None:
            for future in done:
                results.append(future.result())
                if on_unit:
                    on_unit()

        pending: Set[Future] = set()
        with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="extract") as pool:
            try:
                for unit in units:
                    token.raise_if_cancelled()
                    pending.add(pool.submit(self.extractor.extract, unit))
                    if len(pending) >= self.workers * 2:
                        done, pending = wait(pending, return_when=FIRST_COMPLETED)
                        collect(done)
                while pending:
                    token.raise_if_cancelled()
                    done, pending = wait(pending, timeout=0.2, return_when=FIRST_COMPLETED)
                    collect(done)
                token.raise_if_cancelled()
            except AnalysisCancelledError:
                for future in pending:
                    future.cancel()
                logger.info("Analysis cancelled after {} of {} unit(s)", len(results), total)
                raise

        warnings = [UnitWarning(r.unit.relative_path, r.error) for r in results if r.failed]
        warnings.sort(key=lambda w: w.path)
        processed = len(results)
        if processed and len(warnings) / processed > self.warning_rate_threshold:
            raise ExtractionError(
                f"{len(warnings)} of {processed} unit(s) failed extraction, "
                f"above the {self.warning_rate_threshold:.0%} threshold",
                details={"warnings": [w.to_dict() for w in warnings[:20]]},
            )

        skipped = [UnitWarning(path, message) for path, message in self.scanner.skipped.items()]
        warnings = sorted(warnings + skipped, key=lambda w: w.path)

        candidate, unresolved = assemble_candidate(results)
        outcome = AnalysisOutcome(
            candidate=candidate,
            units_total=total,
            units_processed=processed,
            warnings=warnings,
            duration_seconds=time.perf_counter() - start,
            unresolved_dependencies=unresolved,
            units_skipped=len(skipped),
        )
        logger.info("Extraction finished: {}", outcome.summary())
        return outcome


__all__ = [
    "AnalysisPipeline",
    "AnalysisOutcome",
    "CancellationToken",
    "TypeResolver",
    "UnitWarning",
    "assemble_candidate",
]
