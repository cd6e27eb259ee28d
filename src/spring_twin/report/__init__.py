"""Read-only queries and deterministic reports over committed graphs."""

from .cache import ReportCache, make_key
from .query_service import DependencyReport, QueryService, canonical_cycle, walk_dependencies
from .report_builder import JSON_MEDIA_TYPE, MARKDOWN_MEDIA_TYPE, RenderedReport, ReportBuilder

__all__ = [
    "DependencyReport",
    "JSON_MEDIA_TYPE",
    "MARKDOWN_MEDIA_TYPE",
    "QueryService",
    "RenderedReport",
    "ReportBuilder",
    "ReportCache",
    "canonical_cycle",
    "make_key",
    "walk_dependencies",
]
