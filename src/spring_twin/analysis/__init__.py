"""Source scanning and entity extraction for Spring service projects."""

from .package_filter import PackageFilter, pattern_matches
from .source_scanner import CompilationUnit, SourceScanner, UnitSequence
from .entity_extractor import EntityExtractor, ExtractionResult
from .pipeline import (
    AnalysisOutcome,
    AnalysisPipeline,
    CancellationToken,
    UnitWarning,
    assemble_candidate,
)

__all__ = [
    "PackageFilter",
    "pattern_matches",
    "CompilationUnit",
    "SourceScanner",
    "UnitSequence",
    "EntityExtractor",
    "ExtractionResult",
    "AnalysisOutcome",
    "AnalysisPipeline",
    "CancellationToken",
    "UnitWarning",
    "assemble_candidate",
]
