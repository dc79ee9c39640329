"""Health and readiness probe endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from neo4j.exceptions import DriverError, Neo4jError
from redis.exceptions import RedisError

from dossier.api.dependencies import get_neo4j, get_redis
from dossier.graph_db.connection import Neo4jConnection

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict:
    return {"status": "healthy"}


@router.get("/ready")
async def ready(neo4j: Neo4jConnection = Depends(get_neo4j)) -> dict:
    checks: dict[str, bool | str] = {}
    try:
        checks["neo4j"] = await neo4j.health_check()
    except (Neo4jError, DriverError, RuntimeError) as exc:
        checks["neo4j"] = False
        checks["neo4j_error"] = str(exc)

    redis = get_redis()
    if redis is None:
        checks["redis"] = False
    else:
        try:
            checks["redis"] = bool(await redis.ping())
        except RedisError as exc:
            checks["redis"] = False
            checks["redis_error"] = str(exc)

    if checks["neo4j"] and checks["redis"]:
        status = "ready"
    elif checks["neo4j"]:
        status = "degraded"
    else:
        status = "not_ready"
    return {"status": status, **checks}
