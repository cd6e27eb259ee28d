"""Wiring of the service graph from settings."""

from typing import Optional

from loguru import logger

from spring_twin.architecture.graph_store import GraphStore
from spring_twin.architecture.neo4j_mirror import Neo4jGraphMirror, create_mirror
from spring_twin.architecture.persistence import JsonSnapshotRepository
from spring_twin.config.settings import Settings
from spring_twin.gateway.gateway import ToolGateway
from spring_twin.jobs.coordinator import JobCoordinator
from spring_twin.project.registry import ProjectRegistry
from spring_twin.report.cache import ReportCache
from spring_twin.report.query_service import QueryService
from spring_twin.report.report_builder import ReportBuilder


class ServiceContainer:
    """Owns every long-lived service of one process."""

    def __init__(self, settings: Settings, *, allow_write_tools: Optional[bool] = None) -> None:
        self.settings = settings
        self.registry = ProjectRegistry(settings.projects_file)
        self.graph_store = GraphStore(JsonSnapshotRepository(settings.graphs_dir))
        self.mirror: Optional[Neo4jGraphMirror] = create_mirror(settings)
        self.coordinator = JobCoordinator.from_settings(settings, self.registry, self.graph_store, self.mirror)
        self.queries = QueryService(self.graph_store)
        self.report_cache = ReportCache(settings.report_cache_size)
        self.reports = ReportBuilder(self.queries, self.report_cache)
        self.gateway = ToolGateway(
            self.queries,
            self.reports,
            self.coordinator,
            registry=self.registry,
            allow_write=settings.mcp_allow_write_tools if allow_write_tools is None else allow_write_tools,
        )
        self._started = False

    async def startup(self) -> None:
        """initialize all services"""
        if self._started:
            return
        logger.info("Loading project registry...")
        self.registry.load()
        logger.info("Restoring committed graphs...")
        self.graph_store.load()

        if self.mirror is not None:
            logger.info("Connecting Neo4j mirror...")
            if not await self.mirror.connect():
                logger.warning("Neo4j mirror unavailable - committed graphs will not be mirrored")
                self.mirror = None
                self.coordinator.mirror = None

        await self.coordinator.start()
        self._started = True
        logger.info("Services initialized successfully")

    async def shutdown(self) -> None:
        """clean up all services"""
        logger.info("Shutting down services...")
        try:
            await self.coordinator.stop()
            if self.mirror is not None:
                await self.mirror.close()
            logger.info("Services shut down successfully")
        except Exception as e:
            logger.error(f"Error during shutdown: {e}")
        finally:
            self._started = False


__all__ = ["ServiceContainer"]
