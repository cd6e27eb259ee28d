"""
Configuration module for Spring Twin.

This module exports all configuration-related objects and functions.
"""

from spring_twin.config.settings import Settings, settings
from spring_twin.config.validation import (
    validate_neo4j_connection,
    validate_data_dir,
)

__all__ = [
    # Settings
    "Settings",
    "settings",
    # Validation functions
    "validate_neo4j_connection",
    "validate_data_dir",
]
