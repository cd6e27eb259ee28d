"""Version information for Spring Twin."""

__version__ = "0.3.0"
__version_info__ = tuple(int(i) for i in __version__.split("."))

# Feature flags based on version
FEATURES = {
    "architecture_graph": True,    # Available since 0.1.0
    "explain_reports": True,       # Available since 0.2.0
    "mcp_gateway": True,           # Available since 0.2.0
    "neo4j_mirror": True,          # Available since 0.3.0
}


def get_version() -> str:
    """Get the current version string."""
    return __version__


def get_features() -> dict:
    """Get available features for this version."""
    return FEATURES.copy()
