"""Shared FastAPI dependency injection."""

from __future__ import annotations

import redis.asyncio as aioredis

from dossier.graph_db.connection import Neo4jConnection
from dossier.services.profile_service import ProfileService
from dossier.services.session_registry import SessionRegistry

_neo4j_conn: Neo4jConnection | None = None
_redis: aioredis.Redis | None = None
_sessions: SessionRegistry | None = None
_profile_service: ProfileService | None = None


def set_neo4j_conn(conn: Neo4jConnection | None) -> None:
    global _neo4j_conn
    _neo4j_conn = conn


def set_redis(client: aioredis.Redis | None) -> None:
    global _redis
    _redis = client


def set_sessions(registry: SessionRegistry | None) -> None:
    global _sessions
    _sessions = registry


def set_profile_service(service: ProfileService | None) -> None:
    global _profile_service
    _profile_service = service


def get_neo4j() -> Neo4jConnection:
    if _neo4j_conn is None:
        raise RuntimeError("Neo4j not initialized")
    return _neo4j_conn


def get_redis() -> aioredis.Redis | None:
    return _redis


def get_sessions() -> SessionRegistry:
    if _sessions is None:
        raise RuntimeError("Session registry not initialized")
    return _sessions


def get_profile_service() -> ProfileService:
    if _profile_service is None:
        raise RuntimeError("Profile service not initialized")
    return _profile_service
