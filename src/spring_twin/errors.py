"""
Error taxonomy shared by the analysis pipeline, the job coordinator and the
read surfaces.

Every error carries a ``kind`` (the name recorded on job records) and a
stable external ``code`` used by the HTTP layer and the tool gateway.
"""

from typing import Any, Dict, Optional


class SpringTwinError(Exception):
    """Base class for all domain errors."""

    kind = "SpringTwinError"
    code = "INTERNAL_ERROR"
    http_status = 500

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "error": self.code,
            "kind": self.kind,
            "message": self.message,
        }
        if self.details:
            payload["details"] = self.details
        return payload


class ConfigurationError(SpringTwinError):
    """Invalid project root or package filters. Raised before a job exists."""

    kind = "ConfigurationError"
    code = "CONFIGURATION_ERROR"
    http_status = 400


class ConflictError(SpringTwinError):
    """A non-terminal job already holds the project lease."""

    kind = "ConflictError"
    code = "CONFLICT"
    http_status = 409


class GraphIntegrityError(SpringTwinError):
    """A candidate graph references missing nodes or repeats node ids."""

    kind = "GraphIntegrityError"
    code = "GRAPH_INTEGRITY_ERROR"
    http_status = 500


class AnalysisTimeoutError(SpringTwinError):
    kind = "TimeoutError"
    code = "TIMEOUT"
    http_status = 504


class AnalysisCancelledError(SpringTwinError):
    """User-requested stop. Not a failure."""

    kind = "CancelledError"
    code = "CANCELLED"
    http_status = 409


class ExtractionError(SpringTwinError):
    """Unit-level parse failure, or too many of them in one run."""

    kind = "ExtractionError"
    code = "EXTRACTION_ERROR"
    http_status = 422


class NotFoundError(SpringTwinError):
    kind = "NotFoundError"
    code = "NOT_FOUND"
    http_status = 404


class InvalidTransitionError(SpringTwinError):
    """Job state change not allowed by the lifecycle."""

    kind = "InvalidTransitionError"
    code = "INVALID_TRANSITION"
    http_status = 409


__all__ = [
    "SpringTwinError",
    "ConfigurationError",
    "ConflictError",
    "GraphIntegrityError",
    "AnalysisTimeoutError",
    "AnalysisCancelledError",
    "ExtractionError",
    "NotFoundError",
    "InvalidTransitionError",
]
