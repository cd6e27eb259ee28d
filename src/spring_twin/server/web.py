"""
Web server entry point for Spring Twin (REST API + SSE).
"""

import uvicorn
from loguru import logger

from spring_twin.config.settings import settings
from spring_twin.config.validation import validate_data_dir, validate_neo4j_connection
from spring_twin.core.app import create_app
from spring_twin.core.logging import setup_logging


def start_server() -> None:
    """start the FastAPI application with uvicorn"""
    setup_logging(settings)
    if not validate_data_dir(settings):
        raise SystemExit(1)
    if settings.neo4j_enabled and not validate_neo4j_connection(settings):
        logger.warning("Neo4j is enabled but unreachable; committed graphs will not be mirrored")

    logger.info("=" * 70)
    logger.info(f"REST API: http://{settings.host}:{settings.port}/api/v1/")
    logger.info(f"Data directory: {settings.data_dir}")
    logger.info("=" * 70)

    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level="debug" if settings.debug else "info",
        access_log=settings.debug,
    )


def main() -> int:
    try:
        start_server()
    except KeyboardInterrupt:
        logger.info("Service interrupted by user")
    return 0


if __name__ == "__main__":
    main()
