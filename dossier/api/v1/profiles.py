"""Profile API endpoints: create (batch or live), read, delete, sessions and SSE streaming."""

from __future__ import annotations

import asyncio
import json

from fastapi import APIRouter, Depends, Response
from pydantic import ValidationError
from sse_starlette.sse import EventSourceResponse

from dossier.api.dependencies import get_profile_service, get_sessions
from dossier.api.v1.schemas.profiles import (
    CreateProfilesRequest,
    CreateProfilesResponse,
    LiveSearchStarted,
    ProfileDeleted,
    SessionStatus,
    SessionStopped,
    SubjectError,
)
from dossier.config import get_settings
from dossier.models.schemas import Profile, Subject
from dossier.services.profile_service import ProfileService
from dossier.services.session_registry import SessionRegistry
from dossier.utils.exceptions import InvalidSubjectError, SessionNotFoundError
from dossier.utils.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/profiles", tags=["profiles"])


def _to_subjects(request: CreateProfilesRequest) -> list[Subject]:
    if not request.subjects:
        raise InvalidSubjectError("At least one subject is required")
    subjects: list[Subject] = []
    for item in request.subjects:
        try:
            subjects.append(
                Subject(name=item.name, hard_context=item.hard_context, soft_context=item.soft_context)
            )
        except ValidationError as exc:
            raise InvalidSubjectError(
                f"Invalid subject {item.name!r}: a first and last name are required"
            ) from exc
    return subjects


@router.post("/create", response_model=None)
async def create_profiles(
    request: CreateProfilesRequest,
    response: Response,
    service: ProfileService = Depends(get_profile_service),
) -> CreateProfilesResponse | LiveSearchStarted:
    """Create profiles.

    Without ``sessionId`` every subject is processed in turn and the call
    returns when all are done. With ``sessionId`` exactly one subject is
    searched in the background; follow it on ``/create/stream/{sessionId}``.
    """
    subjects = _to_subjects(request)

    if request.session_id:
        if len(subjects) != 1:
            raise InvalidSubjectError("A live session takes exactly one subject")
        await service.start_live(subjects[0], request.session_id, request.mode)
        response.status_code = 202
        logger.info("live_search_started", session_id=request.session_id, subject=subjects[0].name)
        return LiveSearchStarted(session_id=request.session_id)

    profiles, errors = await service.create_profiles(subjects, request.mode)
    return CreateProfilesResponse(profiles=profiles, errors=[SubjectError(**e) for e in errors])


@router.get("", response_model=list[Profile])
async def list_profiles(service: ProfileService = Depends(get_profile_service)) -> list[Profile]:
    return await service.repository.load_all()


@router.get("/sessions", response_model=list[SessionStatus])
async def list_sessions(sessions: SessionRegistry = Depends(get_sessions)) -> list[SessionStatus]:
    return [
        SessionStatus(**session.model_dump(), source=source)
        for session, source in await sessions.list_sessions()
    ]


@router.get("/sessions/{session_id}", response_model=SessionStatus)
async def get_session(session_id: str, sessions: SessionRegistry = Depends(get_sessions)) -> SessionStatus:
    found = await sessions.get_status(session_id)
    if found is None:
        raise SessionNotFoundError(f"Session {session_id} not found")
    session, source = found
    return SessionStatus(**session.model_dump(), source=source)


@router.post("/sessions/{session_id}/recover", response_model=SessionStatus)
async def recover_session(session_id: str, sessions: SessionRegistry = Depends(get_sessions)) -> SessionStatus:
    """Reactivate an unfinished session; its stream resumes from the current state."""
    session = await sessions.recover(session_id)
    if session is None:
        raise SessionNotFoundError(f"Session {session_id} not found or already complete")
    return SessionStatus(**session.model_dump(), source="memory")


@router.post("/sessions/{session_id}/stop", response_model=SessionStopped)
async def stop_session(session_id: str, sessions: SessionRegistry = Depends(get_sessions)) -> SessionStopped:
    if not await sessions.stop(session_id):
        raise SessionNotFoundError(f"Session {session_id} not found")
    return SessionStopped(session_id=session_id)


@router.get("/create/stream/{session_id}")
async def stream_session(
    session_id: str,
    sessions: SessionRegistry = Depends(get_sessions),
) -> EventSourceResponse:
    """SSE endpoint.

    Sends a ``connected`` snapshot first, then ``progress``, ``error`` and
    ``complete`` events as they happen, ``ping`` on idle, and ``done`` once the
    session's topic closes.
    """
    heartbeat = get_settings().SSE_HEARTBEAT_SECONDS

    async def event_generator():
        queue = sessions.subscribe(session_id)
        found = await sessions.get_status(session_id)
        if found is None:
            yield {"event": "error", "data": json.dumps({"error": "not_found", "session_id": session_id})}
            return

        session, _ = found
        yield {"event": "connected", "data": session.model_dump_json()}
        if queue is None:
            yield {"event": "done", "data": json.dumps({"session_id": session_id, "is_complete": session.is_complete})}
            return

        try:
            while True:
                try:
                    event = await asyncio.wait_for(queue.get(), timeout=heartbeat)
                except asyncio.TimeoutError:
                    yield {"event": "ping", "data": ""}
                    continue

                if event is None:
                    yield {"event": "done", "data": json.dumps({"session_id": session_id})}
                    return

                event_type, data = event
                yield {"event": event_type, "data": json.dumps(data)}
        finally:
            sessions.unsubscribe(session_id, queue)

    return EventSourceResponse(event_generator())


@router.get("/{profile_id}", response_model=Profile)
async def get_profile(profile_id: str, service: ProfileService = Depends(get_profile_service)) -> Profile:
    return await service.repository.load_by_id(profile_id)


@router.delete("/{profile_id}", response_model=ProfileDeleted)
async def delete_profile(profile_id: str, service: ProfileService = Depends(get_profile_service)) -> ProfileDeleted:
    await service.repository.delete(profile_id)
    return ProfileDeleted(id=profile_id)
