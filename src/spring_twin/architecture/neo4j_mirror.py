"""Mirror committed graph snapshots into Neo4j."""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional

from loguru import logger
from neo4j import GraphDatabase, basic_auth

from .models import EdgeType, GraphSnapshot

SCHEMA_STATEMENTS = [
    "CREATE CONSTRAINT class_id IF NOT EXISTS FOR (n:Class) REQUIRE n.id IS UNIQUE",
    "CREATE CONSTRAINT method_id IF NOT EXISTS FOR (n:Method) REQUIRE n.id IS UNIQUE",
    "CREATE CONSTRAINT endpoint_id IF NOT EXISTS FOR (n:Endpoint) REQUIRE n.id IS UNIQUE",
    "CREATE INDEX class_project IF NOT EXISTS FOR (n:Class) ON (n.project_id)",
    "CREATE INDEX class_package IF NOT EXISTS FOR (n:Class) ON (n.packageName)",
    "CREATE INDEX endpoint_path IF NOT EXISTS FOR (n:Endpoint) ON (n.path)",
]

RELATIONSHIP_LABELS = {
    EdgeType.CONTAINS: ("Class", "Method"),
    EdgeType.EXPOSES: ("Method", "Endpoint"),
    EdgeType.DEPENDS_ON: ("Class", "Class"),
    EdgeType.CALLS: ("Method", "Method"),
}


def _scoped(project_id: str, node_id: str) -> str:
    return f"{project_id}::{node_id}"


class Neo4jGraphMirror:
    """Replaces a project's subgraph in Neo4j with a committed snapshot."""

    def __init__(self, uri: str, username: str, password: str, database: str = "neo4j") -> None:
        self.uri = uri
        self.username = username
        self.password = password
        self.database = database
        self.driver = None
        self._connected = False

    async def connect(self) -> bool:
        """connect to Neo4j database"""
        try:
            self.driver = GraphDatabase.driver(self.uri, auth=basic_auth(self.username, self.password))
            await asyncio.to_thread(self._verify_and_setup_schema)
            self._connected = True
            logger.info(f"Successfully connected to Neo4j at {self.uri}")
            return True
        except Exception as e:
            logger.error(f"Failed to connect to Neo4j: {e}")
            return False

    def _verify_and_setup_schema(self) -> None:
        with self.driver.session(database=self.database) as session:
            session.run("RETURN 1 as test").single()
            for statement in SCHEMA_STATEMENTS:
                try:
                    session.run(statement)
                except Exception as e:
                    if "already exists" not in str(e).lower():
                        logger.warning(f"Failed to apply schema statement: {e}")
        logger.info("Neo4j schema setup completed")

    async def close(self) -> None:
        if self.driver:
            await asyncio.to_thread(self.driver.close)
            self.driver = None
            self._connected = False

    async def write_snapshot(self, snapshot: GraphSnapshot) -> None:
        """Write ``snapshot`` in one transaction; raises on failure."""
        if not self._connected:
            raise RuntimeError("Neo4j mirror is not connected")
        await asyncio.to_thread(self._write_snapshot_sync, snapshot)
        logger.info(
            "Mirrored graph v{} of project {} into Neo4j",
            snapshot.version,
            snapshot.project_id,
        )

    def _write_snapshot_sync(self, snapshot: GraphSnapshot) -> None:
        with self.driver.session(database=self.database) as session:
            session.execute_write(self._replace_project_graph, snapshot)

    @staticmethod
    def build_records(snapshot: GraphSnapshot) -> Dict[str, List[Dict[str, Any]]]:
        project_id = snapshot.project_id
        classes = [
            {
                "key": _scoped(project_id, node.id),
                "props": {**node.to_dict(), "project_id": project_id, "version": snapshot.version},
            }
            for node in snapshot.classes.values()
        ]
        methods = [
            {
                "key": _scoped(project_id, node.id),
                "props": {**node.to_dict(), "project_id": project_id, "version": snapshot.version},
            }
            for node in snapshot.methods.values()
        ]
        endpoints = [
            {
                "key": _scoped(project_id, node.id),
                "props": {**node.to_dict(), "project_id": project_id, "version": snapshot.version},
            }
            for node in snapshot.endpoints.values()
        ]
        relationships: Dict[str, List[Dict[str, Any]]] = {edge_type.value: [] for edge_type in EdgeType}
        for edge in snapshot.edges:
            props = {k: v for k, v in edge.to_dict().items() if k not in ("type", "source", "target")}
            relationships[edge.type.value].append(
                {
                    "start": _scoped(project_id, edge.source),
                    "end": _scoped(project_id, edge.target),
                    "props": props,
                }
            )
        return {"classes": classes, "methods": methods, "endpoints": endpoints, **relationships}

    @classmethod
    def _replace_project_graph(cls, tx, snapshot: GraphSnapshot) -> None:
        records = cls.build_records(snapshot)
        tx.run(
            "MATCH (n {project_id: $project_id}) WHERE n:Class OR n:Method OR n:Endpoint DETACH DELETE n",
            project_id=snapshot.project_id,
        )
        for label, key in (("Class", "classes"), ("Method", "methods"), ("Endpoint", "endpoints")):
            if records[key]:
                tx.run(
                    f"""
                    UNWIND $rows AS row
                    MERGE (n:{label} {{id: row.key}})
                    SET n += row.props, n.id = row.key, n.updated_at = timestamp()
                    """,
                    rows=records[key],
                )
        for edge_type, (start_label, end_label) in RELATIONSHIP_LABELS.items():
            rows = records[edge_type.value]
            if not rows:
                continue
            tx.run(
                f"""
                UNWIND $rows AS row
                MATCH (a:{start_label} {{id: row.start}})
                MATCH (b:{end_label} {{id: row.end}})
                MERGE (a)-[r:{edge_type.value}]->(b)
                SET r += row.props
                """,
                rows=rows,
            )

    async def drop_project(self, project_id: str) -> None:
        if not self._connected:
            return
        await asyncio.to_thread(self._drop_project_sync, project_id)

    def _drop_project_sync(self, project_id: str) -> None:
        with self.driver.session(database=self.database) as session:
            session.run(
                "MATCH (n {project_id: $project_id}) WHERE n:Class OR n:Method OR n:Endpoint DETACH DELETE n",
                project_id=project_id,
            )


def create_mirror(settings) -> Optional[Neo4jGraphMirror]:
    if not settings.neo4j_enabled:
        return None
    return Neo4jGraphMirror(
        settings.neo4j_uri,
        settings.neo4j_username,
        settings.neo4j_password,
        settings.neo4j_database,
    )


__all__ = ["Neo4jGraphMirror", "create_mirror"]
