"""
Application lifecycle management module
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    """application lifecycle management"""
    container = app.state.container
    logger.info("Starting Spring Twin analysis service...")
    try:
        await container.startup()
        yield
    except Exception as e:
        logger.error(f"Service initialization failed: {e}")
        raise
    finally:
        await container.shutdown()
