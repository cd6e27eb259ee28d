"""HTTP routers of the analysis service."""
