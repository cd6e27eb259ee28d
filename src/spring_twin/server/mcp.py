"""
MCP server entry point for Spring Twin.
"""

import asyncio
import sys
from pathlib import Path

from loguru import logger

from spring_twin.config.settings import settings
from spring_twin.core.container import ServiceContainer
from spring_twin.core.logging import setup_logging


async def run() -> None:
    from spring_twin.gateway.server import serve_stdio

    container = ServiceContainer(settings)
    await container.startup()
    try:
        await serve_stdio(container.gateway)
    finally:
        await container.shutdown()


def main() -> int:
    """Main entry point for MCP server"""
    # stdout carries the protocol; logs go to stderr
    setup_logging(settings, stream=sys.stderr)
    try:
        logger.info(f"Working directory: {Path.cwd()}")
        asyncio.run(run())
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
    except Exception as e:
        logger.exception(f"Server failed to start: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
