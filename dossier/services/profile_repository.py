"""Neo4j-backed profile store: save, load_all, load_by_id, delete.

A profile is one ``(:Profile)`` node. Its sources are ``(:Source)`` nodes
linked by ``[:HAS_SOURCE]`` and carry a ``position`` so they load in the
order they were saved. Nested models are stored as JSON strings.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from neo4j.exceptions import DriverError, Neo4jError
from pydantic import TypeAdapter

from dossier.graph_db import queries
from dossier.graph_db.connection import Neo4jConnection
from dossier.models.schemas import GeneratedContext, Profile, SearchLog, Source, utcnow
from dossier.utils.exceptions import ProfileNotFoundError, ProfileStoreError
from dossier.utils.logging import get_logger

logger = get_logger(__name__)

_SEARCH_LOGS = TypeAdapter(list[SearchLog])


def profile_to_params(profile: Profile) -> dict[str, Any]:
    props = {
        "id": profile.id,
        "name": profile.name,
        "aliases": list(profile.aliases),
        "profile_summary": profile.profile_summary,
        "hard_context": profile.hard_context,
        "soft_context": profile.soft_context,
        "generated_context": profile.generated_context.model_dump_json(),
        "search_logs": _SEARCH_LOGS.dump_json(profile.search_logs).decode(),
        "created_at": profile.created_at.isoformat() if profile.created_at else None,
    }
    sources = [
        {**source.model_dump(mode="json"), "position": position}
        for position, source in enumerate(profile.sources)
    ]
    return {"props": props, "sources": sources}


def profile_from_record(record: dict[str, Any]) -> Profile:
    props = record["profile"]
    return Profile(
        id=props["id"],
        name=props["name"],
        aliases=list(props.get("aliases") or []),
        profile_summary=props.get("profile_summary") or "",
        sources=[Source.model_validate(source) for source in record.get("sources") or []],
        hard_context=props.get("hard_context") or "",
        soft_context=props.get("soft_context") or "",
        generated_context=GeneratedContext.model_validate_json(props.get("generated_context") or "{}"),
        search_logs=_SEARCH_LOGS.validate_json(props.get("search_logs") or "[]"),
        created_at=datetime.fromisoformat(props["created_at"]) if props.get("created_at") else None,
    )


class ProfileRepository:
    def __init__(self, conn: Neo4jConnection) -> None:
        self._conn = conn

    async def save(self, profile: Profile) -> Profile:
        """Persist a new profile; returns it with ``id`` and ``created_at`` assigned."""
        stored = profile.model_copy(
            update={"id": profile.id or str(uuid.uuid4()), "created_at": profile.created_at or utcnow()}
        )
        try:
            await self._conn.execute_write(queries.CREATE_PROFILE, **profile_to_params(stored))
        except (Neo4jError, DriverError) as exc:
            raise ProfileStoreError(f"Failed to save profile for {profile.name}: {exc}") from exc
        logger.info("profile_saved", profile_id=stored.id, name=stored.name, sources=len(stored.sources))
        return stored

    async def load_all(self) -> list[Profile]:
        """Every profile, newest first."""
        try:
            records = await self._conn.execute_read(queries.LIST_PROFILES)
        except (Neo4jError, DriverError) as exc:
            raise ProfileStoreError(f"Failed to list profiles: {exc}") from exc
        return [profile_from_record(record) for record in records]

    async def load_by_id(self, profile_id: str) -> Profile:
        try:
            records = await self._conn.execute_read(queries.GET_PROFILE, id=profile_id)
        except (Neo4jError, DriverError) as exc:
            raise ProfileStoreError(f"Failed to load profile {profile_id}: {exc}") from exc
        if not records:
            raise ProfileNotFoundError(f"Profile {profile_id} not found")
        return profile_from_record(records[0])

    async def delete(self, profile_id: str) -> None:
        try:
            records = await self._conn.execute_write(queries.DELETE_PROFILE, id=profile_id)
        except (Neo4jError, DriverError) as exc:
            raise ProfileStoreError(f"Failed to delete profile {profile_id}: {exc}") from exc
        if not records:
            raise ProfileNotFoundError(f"Profile {profile_id} not found")
        logger.info("profile_deleted", profile_id=profile_id)
