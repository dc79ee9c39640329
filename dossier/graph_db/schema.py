"""Neo4j constraints and indexes for the profile store."""

from __future__ import annotations

from neo4j.exceptions import Neo4jError

from dossier.graph_db.connection import Neo4jConnection
from dossier.utils.logging import get_logger

logger = get_logger(__name__)

CONSTRAINTS = [
    "CREATE CONSTRAINT profile_id IF NOT EXISTS FOR (p:Profile) REQUIRE p.id IS UNIQUE",
    "CREATE CONSTRAINT source_id IF NOT EXISTS FOR (s:Source) REQUIRE s.id IS UNIQUE",
]

INDEXES = [
    "CREATE INDEX profile_created_at IF NOT EXISTS FOR (p:Profile) ON (p.created_at)",
    "CREATE INDEX profile_name IF NOT EXISTS FOR (p:Profile) ON (p.name)",
]


async def init_schema(conn: Neo4jConnection) -> None:
    """Create all constraints and indexes on the Neo4j database."""
    for stmt in [*CONSTRAINTS, *INDEXES]:
        try:
            await conn.execute_write(stmt)
        except Neo4jError as exc:
            logger.warning("schema_statement_skipped", statement=stmt, error=str(exc))

    logger.info("neo4j_schema_initialized")
