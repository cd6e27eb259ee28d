"""
Validation functions for configuration settings.

This module provides functions to validate the data directory and the
optional Neo4j connection.
"""

from typing import Optional

from loguru import logger

from spring_twin.config.settings import Settings, settings as default_settings


def validate_neo4j_connection(settings: Optional[Settings] = None) -> bool:
    """Validate Neo4j connection parameters"""
    settings = settings or default_settings
    try:
        from neo4j import GraphDatabase
        driver = GraphDatabase.driver(
            settings.neo4j_uri,
            auth=(settings.neo4j_username, settings.neo4j_password)
        )
        with driver.session(database=settings.neo4j_database) as session:
            session.run("RETURN 1")
        driver.close()
        return True
    except Exception as e:
        logger.error(f"Neo4j connection failed: {e}")
        return False


def validate_data_dir(settings: Optional[Settings] = None) -> bool:
    """Ensure the data directory exists and is writable"""
    settings = settings or default_settings
    try:
        settings.graphs_dir.mkdir(parents=True, exist_ok=True)
        probe = settings.data_dir / ".write-probe"
        probe.write_text("ok", encoding="utf-8")
        probe.unlink()
        return True
    except OSError as e:
        logger.error(f"Data directory {settings.data_dir} is not writable: {e}")
        return False
