"""Durable mirror of live search sessions.

Redis is the production store; the in-memory store backs tests and local
runs without Redis. Storage problems are logged and never fail a run.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

import redis.asyncio as aioredis
from pydantic import ValidationError
from redis.exceptions import RedisError

from dossier.models.schemas import LiveSearchSession
from dossier.utils.logging import get_logger

logger = get_logger(__name__)

_SESSION_KEY = "dossier:session:{}"


class SessionStore(ABC):
    @abstractmethod
    async def save(self, session: LiveSearchSession) -> None: ...

    @abstractmethod
    async def load(self, session_id: str) -> LiveSearchSession | None: ...

    @abstractmethod
    async def load_all(self) -> list[LiveSearchSession]: ...

    @abstractmethod
    async def delete(self, session_id: str) -> None: ...

    async def purge_older_than(self, cutoff: datetime) -> int:
        """Delete sessions whose last update is before ``cutoff``. Returns the count removed."""
        removed = 0
        for session in await self.load_all():
            if session.last_update < cutoff:
                await self.delete(session.session_id)
                removed += 1
        return removed

    async def close(self) -> None:
        return None


class InMemorySessionStore(SessionStore):
    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    async def save(self, session: LiveSearchSession) -> None:
        self._data[session.session_id] = session.model_dump_json()

    async def load(self, session_id: str) -> LiveSearchSession | None:
        raw = self._data.get(session_id)
        return LiveSearchSession.model_validate_json(raw) if raw else None

    async def load_all(self) -> list[LiveSearchSession]:
        return [LiveSearchSession.model_validate_json(raw) for raw in self._data.values()]

    async def delete(self, session_id: str) -> None:
        self._data.pop(session_id, None)


class RedisSessionStore(SessionStore):
    """Sessions as JSON strings under ``dossier:session:{id}``, expiring after the retention window."""

    def __init__(self, client: aioredis.Redis, ttl_seconds: int) -> None:
        self._client = client
        self._ttl = ttl_seconds

    @classmethod
    def from_url(cls, redis_url: str, ttl_seconds: int) -> RedisSessionStore:
        return cls(aioredis.from_url(redis_url, decode_responses=True), ttl_seconds)

    async def save(self, session: LiveSearchSession) -> None:
        try:
            await self._client.set(_SESSION_KEY.format(session.session_id), session.model_dump_json(), ex=self._ttl)
        except RedisError as exc:
            logger.warning("redis_session_write_failed", session_id=session.session_id, error=str(exc))

    async def load(self, session_id: str) -> LiveSearchSession | None:
        try:
            raw = await self._client.get(_SESSION_KEY.format(session_id))
        except RedisError as exc:
            logger.warning("redis_session_read_failed", session_id=session_id, error=str(exc))
            return None
        return self._decode(raw, session_id)

    async def load_all(self) -> list[LiveSearchSession]:
        sessions: list[LiveSearchSession] = []
        try:
            async for key in self._client.scan_iter(match=_SESSION_KEY.format("*")):
                raw = await self._client.get(key)
                session = self._decode(raw, key)
                if session is not None:
                    sessions.append(session)
        except RedisError as exc:
            logger.warning("redis_session_scan_failed", error=str(exc))
        return sessions

    async def delete(self, session_id: str) -> None:
        try:
            await self._client.delete(_SESSION_KEY.format(session_id))
        except RedisError as exc:
            logger.warning("redis_session_delete_failed", session_id=session_id, error=str(exc))

    async def close(self) -> None:
        await self._client.aclose()

    @staticmethod
    def _decode(raw: str | None, key: str) -> LiveSearchSession | None:
        if not raw:
            return None
        try:
            return LiveSearchSession.model_validate_json(raw)
        except ValidationError as exc:
            logger.warning("redis_session_corrupt", key=key, error=str(exc))
            return None
