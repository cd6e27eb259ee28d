"""Application wiring: service container, logging and the FastAPI app."""
