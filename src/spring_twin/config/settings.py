"""
Configuration settings for Spring Twin.

This module defines all application settings using Pydantic Settings.
Settings can be configured via environment variables or .env file.
"""

from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Using a plain dict for model_config to avoid ConfigDict typing/overload issues
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "populate_by_name": True,
    }

    # Application Settings
    app_name: str = "Spring Twin"
    app_version: str = "0.3.0"
    debug: bool = Field(default=False, alias="DEBUG")

    # Server Settings
    host: str = Field(default="0.0.0.0", description="Host", alias="HOST")
    port: int = Field(default=8123, description="Port", alias="PORT")
    cors_origins: List[str] = Field(default=["*"], description="Allowed CORS origins", alias="CORS_ORIGINS")

    # Storage
    data_dir: Path = Field(default=Path("data"), description="Directory for graph snapshots and project registry", alias="DATA_DIR")

    # Scanner Settings
    source_roots: List[str] = Field(
        default=["src/main/java"],
        description="Source roots searched under a project root",
        alias="SOURCE_ROOTS",
    )
    max_file_size_kb: int = Field(default=512, description="Maximum compilation unit size", alias="MAX_FILE_SIZE_KB")

    # Analysis Job Settings
    max_concurrent_jobs: int = Field(default=2, description="Analysis runs executed at once", alias="MAX_CONCURRENT_JOBS")
    extraction_workers: int = Field(default=4, description="Parallel extraction threads per run", alias="EXTRACTION_WORKERS")
    job_timeout_seconds: float = Field(default=600.0, description="Per-job timeout in seconds", alias="JOB_TIMEOUT_SECONDS")
    warning_rate_threshold: float = Field(
        default=0.25,
        description="Fraction of units allowed to fail extraction before the run fails",
        alias="WARNING_RATE_THRESHOLD",
    )
    progress_min_interval_seconds: float = Field(
        default=0.25,
        description="Minimum interval between progress events",
        alias="PROGRESS_MIN_INTERVAL_SECONDS",
    )
    job_history_limit: int = Field(default=20, description="Terminal jobs retained per project", alias="JOB_HISTORY_LIMIT")

    # Extraction conventions
    default_produces: str = Field(default="application/json", alias="DEFAULT_PRODUCES")
    default_consumes: str = Field(default="application/json", alias="DEFAULT_CONSUMES")

    # Reports
    report_cache_size: int = Field(default=256, description="Cached report entries", alias="REPORT_CACHE_SIZE")

    # MCP Settings
    mcp_allow_write_tools: bool = Field(
        default=False,
        description="Expose trigger/cancel analysis tools to MCP clients",
        alias="MCP_ALLOW_WRITE_TOOLS",
    )

    # Neo4j Graph Database (optional mirror of committed graphs)
    neo4j_enabled: bool = Field(default=False, description="Mirror committed graphs into Neo4j", alias="NEO4J_ENABLED")
    neo4j_uri: str = Field(default="bolt://localhost:7687", description="Neo4j connection URI", alias="NEO4J_URI")
    neo4j_username: str = Field(default="neo4j", description="Neo4j username", alias="NEO4J_USER")
    neo4j_password: str = Field(default="password", description="Neo4j password", alias="NEO4J_PASSWORD")
    neo4j_database: str = Field(default="neo4j", description="Neo4j database name", alias="NEO4J_DATABASE")

    # Logging
    log_file: Optional[str] = Field(default=None, description="Optional log file path", alias="LOG_FILE")

    @field_validator("warning_rate_threshold")
    @classmethod
    def validate_warning_rate(cls, value: float) -> float:
        if not 0.0 <= value <= 1.0:
            raise ValueError("warning_rate_threshold must be between 0 and 1")
        return value

    @field_validator("max_concurrent_jobs", "extraction_workers", "job_history_limit", "report_cache_size")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("value must be at least 1")
        return value

    @property
    def graphs_dir(self) -> Path:
        return self.data_dir / "graphs"

    @property
    def projects_file(self) -> Path:
        return self.data_dir / "projects.json"


settings = Settings()
