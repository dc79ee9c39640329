"""Live search sessions: progress bookkeeping, durable mirroring and pub/sub delivery.

One ``SessionRegistry`` is created per application (or per test) and injected
where needed. Each session owns a ``Topic``; the SSE endpoint subscribes to it.
Every mutation of a session record happens synchronously before the first
``await`` so interleaved events for the same session cannot lose updates.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from typing import Any, Literal

from dossier.config import Settings
from dossier.models.schemas import (
    LiveSearchSession,
    PartialProfile,
    Profile,
    ProgressPhase,
    ProgressStatus,
    ProgressUpdate,
    SearchLog,
    utcnow,
)
from dossier.services.session_store import SessionStore
from dossier.utils.exceptions import InvalidSubjectError
from dossier.utils.logging import get_logger

logger = get_logger(__name__)

SessionSource = Literal["memory", "storage"]

PHASE_BASE: dict[str, float] = {"starting": 0.0, "linkedin": 0.0, "github": 25.0, "website": 50.0, "general": 75.0}
PHASE_SHARE = 25.0
STATUS_WEIGHT: dict[str, float] = {
    "starting": 0.0,
    "searching": 0.3,
    "validating": 0.6,
    "completed": 1.0,
    "failed": 0.0,
}


def compute_progress(
    phase: str,
    status: str,
    round_number: int | None = None,
    total_rounds: int | None = None,
) -> float:
    """Percentage for one event: phase base plus the status weight within the phase's share."""
    if phase == "complete":
        return 100.0
    weight = STATUS_WEIGHT.get(status, 0.0)
    if phase == "round" and round_number and total_rounds:
        share = 100.0 / total_rounds
        return min(100.0, (round_number - 1) * share + weight * share)
    if phase not in PHASE_BASE:
        return 0.0
    return PHASE_BASE[phase] + weight * PHASE_SHARE


class Topic:
    """Fan-out of events to any number of subscriber queues. ``None`` marks the end of the stream."""

    def __init__(self) -> None:
        self._subscribers: set[asyncio.Queue] = set()
        self.closed = False

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue()
        if self.closed:
            queue.put_nowait(None)
        else:
            self._subscribers.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        self._subscribers.discard(queue)

    def publish(self, event: tuple[str, dict[str, Any]]) -> int:
        if self.closed:
            return 0
        for queue in self._subscribers:
            queue.put_nowait(event)
        return len(self._subscribers)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        for queue in self._subscribers:
            queue.put_nowait(None)
        self._subscribers.clear()


class SessionRegistry:
    def __init__(self, store: SessionStore, settings: Settings) -> None:
        self._store = store
        self._settings = settings
        self._sessions: dict[str, LiveSearchSession] = {}
        self._topics: dict[str, Topic] = {}
        self._pending: set[asyncio.Task] = set()

    # ── Lifecycle ──

    async def start(self, session_id: str, subject_name: str) -> LiveSearchSession:
        if session_id in self._sessions:
            raise InvalidSubjectError(f"Session {session_id} already exists")
        session = LiveSearchSession(
            session_id=session_id,
            subject_name=subject_name,
            partial_profile=PartialProfile(name=subject_name),
        )
        self._sessions[session_id] = session
        self._topics[session_id] = Topic()
        snapshot = session.model_copy(deep=True)
        logger.info("session_started", session_id=session_id, subject=subject_name)
        await self._store.save(snapshot)
        return snapshot

    async def record_progress(
        self,
        session_id: str,
        *,
        phase: ProgressPhase,
        status: ProgressStatus,
        message: str = "",
        search_log: SearchLog | None = None,
        round_number: int | None = None,
        total_rounds: int | None = None,
    ) -> ProgressUpdate | None:
        """Apply one orchestrator event. Persisted always, published only while the session is active."""
        session = self._sessions.get(session_id)
        if session is None:
            logger.warning("progress_for_unknown_session", session_id=session_id, phase=phase)
            return None

        session.progress = max(session.progress, compute_progress(phase, status, round_number, total_rounds))
        session.current_phase = phase
        session.last_update = utcnow()
        if status == "failed" and message:
            session.errors.append(message)
        if search_log is not None:
            if session.partial_profile is None:
                session.partial_profile = PartialProfile(name=session.subject_name)
            session.partial_profile.search_logs.append(search_log)

        update = ProgressUpdate(
            session_id=session_id,
            subject_name=session.subject_name,
            phase=phase,
            status=status,
            message=message,
            progress=session.progress,
            round_number=round_number,
            total_rounds=total_rounds,
            search_log=search_log,
        )
        snapshot = session.model_copy(deep=True)
        if session.is_active:
            event = "error" if status == "failed" else "progress"
            self._publish(session_id, event, update.model_dump(mode="json"))
        await self._store.save(snapshot)
        return update

    async def complete(self, session_id: str, profile: Profile) -> None:
        """Terminal success: persist the finished profile and close the topic after the grace period."""
        session = self._sessions.get(session_id)
        if session is None:
            logger.warning("complete_for_unknown_session", session_id=session_id)
            return
        was_active = session.is_active
        session.is_active = False
        session.is_complete = True
        session.current_phase = "complete"
        session.progress = 100.0
        session.last_update = utcnow()
        session.final_profile = profile
        snapshot = session.model_copy(deep=True)
        if was_active:
            self._publish(
                session_id,
                "complete",
                {
                    "session_id": session_id,
                    "progress": 100.0,
                    "profile": profile.model_dump(mode="json"),
                },
            )
        logger.info("session_completed", session_id=session_id, profile_id=profile.id)
        await self._store.save(snapshot)
        self._close_later(session_id)

    async def fail(self, session_id: str, message: str) -> None:
        """Terminal failure: one fatal error event, then the topic closes."""
        session = self._sessions.get(session_id)
        if session is None:
            logger.warning("fail_for_unknown_session", session_id=session_id)
            return
        was_active = session.is_active
        session.is_active = False
        session.current_phase = "error"
        session.last_update = utcnow()
        if not session.errors or session.errors[-1] != message:
            session.errors.append(message)
        snapshot = session.model_copy(deep=True)
        if was_active:
            self._publish(
                session_id,
                "error",
                {"session_id": session_id, "message": message, "fatal": True, "progress": session.progress},
            )
        logger.error("session_failed", session_id=session_id, error=message)
        await self._store.save(snapshot)
        self._close_later(session_id)

    async def stop(self, session_id: str) -> bool:
        """Detach live delivery. The run keeps going and its results are still persisted."""
        session = self._sessions.get(session_id)
        if session is None:
            return False
        session.is_active = False
        session.last_update = utcnow()
        snapshot = session.model_copy(deep=True)
        topic = self._topics.get(session_id)
        if topic is not None:
            topic.close()
        logger.info("session_stopped", session_id=session_id)
        await self._store.save(snapshot)
        return True

    async def recover(self, session_id: str) -> LiveSearchSession | None:
        """Reactivate an unfinished session. Complete or unknown sessions return None."""
        session = self._sessions.get(session_id)
        if session is None:
            stored = await self._store.load(session_id)
            if stored is None:
                return None
            session = self._sessions.setdefault(session_id, stored)
        if session.is_complete:
            return None

        session.is_active = True
        session.last_update = utcnow()
        topic = self._topics.get(session_id)
        if topic is None or topic.closed:
            self._topics[session_id] = Topic()
        snapshot = session.model_copy(deep=True)
        logger.info("session_recovered", session_id=session_id, progress=session.progress)
        await self._store.save(snapshot)
        return snapshot

    # ── Queries ──

    def get(self, session_id: str) -> LiveSearchSession | None:
        session = self._sessions.get(session_id)
        return session.model_copy(deep=True) if session else None

    async def get_status(self, session_id: str) -> tuple[LiveSearchSession, SessionSource] | None:
        if session_id in self._sessions:
            return self._sessions[session_id].model_copy(deep=True), "memory"
        stored = await self._store.load(session_id)
        if stored is None:
            return None
        return stored, "storage"

    async def list_sessions(self) -> list[tuple[LiveSearchSession, SessionSource]]:
        """Memory and storage sessions, memory winning on conflict, newest first."""
        merged: dict[str, tuple[LiveSearchSession, SessionSource]] = {
            session.session_id: (session, "storage") for session in await self._store.load_all()
        }
        for session_id, session in self._sessions.items():
            merged[session_id] = (session.model_copy(deep=True), "memory")
        return sorted(merged.values(), key=lambda item: item[0].start_time, reverse=True)

    # ── Subscriptions ──

    def subscribe(self, session_id: str) -> asyncio.Queue | None:
        topic = self._topics.get(session_id)
        return topic.subscribe() if topic is not None else None

    def unsubscribe(self, session_id: str, queue: asyncio.Queue) -> None:
        topic = self._topics.get(session_id)
        if topic is not None:
            topic.unsubscribe(queue)

    # ── Housekeeping ──

    async def sweep(self, now: datetime | None = None) -> int:
        """Drop idle in-memory sessions and purge old persisted ones. Returns the number removed."""
        now = now or utcnow()
        memory_cutoff = now - timedelta(seconds=self._settings.SESSION_MEMORY_RETENTION_SECONDS)
        stale = [sid for sid, s in self._sessions.items() if s.last_update < memory_cutoff]
        for session_id in stale:
            self._sessions.pop(session_id, None)
            topic = self._topics.pop(session_id, None)
            if topic is not None:
                topic.close()
        persisted_cutoff = now - timedelta(seconds=self._settings.SESSION_PERSISTED_RETENTION_SECONDS)
        purged = await self._store.purge_older_than(persisted_cutoff)
        if stale or purged:
            logger.info("sessions_swept", memory=len(stale), storage=purged)
        return len(stale) + purged

    async def run_sweeper(self) -> None:
        """Periodic sweep loop, run as a background task for the application's lifetime."""
        while True:
            await asyncio.sleep(self._settings.SESSION_SWEEP_INTERVAL_SECONDS)
            try:
                await self.sweep()
            except Exception as exc:
                logger.warning("session_sweep_failed", error=str(exc))

    async def close(self) -> None:
        for task in list(self._pending):
            task.cancel()
        for topic in self._topics.values():
            topic.close()
        await self._store.close()

    def _publish(self, session_id: str, event: str, data: dict[str, Any]) -> None:
        topic = self._topics.get(session_id)
        if topic is None:
            return
        delivered = topic.publish((event, data))
        logger.debug("session_event_published", session_id=session_id, event_type=event, subscribers=delivered)

    def _close_later(self, session_id: str) -> None:
        task = asyncio.create_task(self._close_after_grace(session_id))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _close_after_grace(self, session_id: str) -> None:
        await asyncio.sleep(self._settings.SESSION_COMPLETION_GRACE_SECONDS)
        topic = self._topics.get(session_id)
        if topic is not None:
            topic.close()
