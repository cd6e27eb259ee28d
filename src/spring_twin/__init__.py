"""
Spring Twin - structural model of Spring service codebases.

Scans a Spring-style project, builds a graph of classes, methods and HTTP
endpoints, and serves it to the web UI and to MCP tool-calling clients.
"""

from spring_twin.__version__ import (
    __version__,
    __version_info__,
    get_version,
    get_features,
    FEATURES,
)

__all__ = [
    "__version__",
    "__version_info__",
    "get_version",
    "get_features",
    "FEATURES",
]
