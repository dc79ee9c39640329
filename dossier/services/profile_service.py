"""Search run lifecycle: run the phase graph, assemble, persist, report progress."""

from __future__ import annotations

import asyncio
from typing import Any

from dossier.agent.graph import SearchDependencies, compile_search_graph
from dossier.config import Settings
from dossier.models.schemas import (
    GeneratedContext,
    Profile,
    ProfileCreationLog,
    SearchMode,
    Subject,
)
from dossier.services.profile_assembler import ProfileAssembler
from dossier.services.profile_repository import ProfileRepository
from dossier.services.session_registry import SessionRegistry
from dossier.utils.exceptions import SearchPhaseError
from dossier.utils.logging import get_logger

logger = get_logger(__name__)


class ProfileService:
    """Runs one subject at a time through the phase graph and stores the result."""

    def __init__(
        self,
        settings: Settings,
        deps: SearchDependencies,
        assembler: ProfileAssembler,
        repository: ProfileRepository,
        sessions: SessionRegistry,
    ) -> None:
        self._settings = settings
        self._deps = deps
        self._assembler = assembler
        self._repository = repository
        self._sessions = sessions
        self._graphs: dict[str, Any] = {}
        self._live_tasks: set[asyncio.Task] = set()

    @property
    def repository(self) -> ProfileRepository:
        return self._repository

    def _graph(self, mode: SearchMode) -> Any:
        if mode not in self._graphs:
            self._graphs[mode] = compile_search_graph(self._deps, mode)
        return self._graphs[mode]

    async def run_search(
        self,
        subject: Subject,
        mode: SearchMode | None = None,
        session_id: str | None = None,
    ) -> ProfileCreationLog:
        """Drive the graph to a terminal state.

        Raises ``SearchPhaseError`` carrying the partial log when the run ends in ``error``.
        """
        mode = mode or self._settings.SEARCH_MODE
        initial: dict[str, Any] = {
            "subject": subject,
            "mode": mode,
            "session_id": session_id,
            "generated_context": GeneratedContext(),
            "processed_results": [],
            "search_logs": [],
            "errors": [],
            "current_phase": "starting",
            "round": 0,
            "total_rounds": self._settings.REVAMPED_MIN_ROUNDS,
            "error": None,
            "final_sources": [],
        }
        logger.info("search_run_started", subject=subject.name, mode=mode, session_id=session_id)
        if session_id:
            await self._sessions.record_progress(
                session_id, phase="starting", status="starting", message=f"Starting search for {subject.name}"
            )

        final_state = initial
        async for stream_mode, chunk in self._graph(mode).astream(initial, stream_mode=["custom", "values"]):
            if stream_mode == "custom":
                await self._forward(session_id, chunk)
            else:
                final_state = chunk

        log = ProfileCreationLog(
            subject_name=subject.name,
            hard_context=subject.hard_context,
            soft_context=subject.soft_context,
            generated_context=final_state["generated_context"],
            search_logs=final_state.get("search_logs", []),
            final_sources=final_state.get("final_sources", []),
        )
        if final_state.get("error"):
            raise SearchPhaseError(final_state["error"], partial_log=log)

        logger.info(
            "search_run_finished",
            subject=subject.name,
            mode=mode,
            search_logs=len(log.search_logs),
            final_sources=len(log.final_sources),
        )
        return log

    async def create_profile(
        self,
        subject: Subject,
        mode: SearchMode | None = None,
        session_id: str | None = None,
    ) -> Profile:
        """Search, assemble and persist one profile. A live session is completed or failed accordingly."""
        try:
            log = await self.run_search(subject, mode, session_id)
            profile = await self._repository.save(await self._assembler.assemble(log))
        except Exception as exc:
            if session_id:
                await self._sessions.fail(session_id, str(exc))
            raise
        if session_id:
            await self._sessions.complete(session_id, profile)
        return profile

    async def create_profiles(
        self,
        subjects: list[Subject],
        mode: SearchMode | None = None,
    ) -> tuple[list[Profile], list[dict[str, Any]]]:
        """Subjects run sequentially; a failing subject is reported and the rest still run."""
        profiles: list[Profile] = []
        errors: list[dict[str, Any]] = []
        for subject in subjects:
            try:
                profiles.append(await self.create_profile(subject, mode))
            except Exception as exc:
                logger.error("profile_creation_failed", subject=subject.name, error=str(exc))
                entry: dict[str, Any] = {"subject": subject.name, "error": str(exc), "search_logs": []}
                if isinstance(exc, SearchPhaseError) and exc.partial_log is not None:
                    entry["search_logs"] = exc.partial_log.search_logs
                errors.append(entry)
        return profiles, errors

    async def start_live(self, subject: Subject, session_id: str, mode: SearchMode | None = None) -> None:
        """Register the session and run the search as a background task."""
        await self._sessions.start(session_id, subject.name)
        task = asyncio.create_task(self._run_live(subject, session_id, mode))
        self._live_tasks.add(task)
        task.add_done_callback(self._live_tasks.discard)

    async def _run_live(self, subject: Subject, session_id: str, mode: SearchMode | None) -> None:
        try:
            await self.create_profile(subject, mode, session_id)
        except Exception as exc:
            logger.error("live_search_failed", session_id=session_id, subject=subject.name, error=str(exc))

    async def _forward(self, session_id: str | None, event: dict[str, Any]) -> None:
        if not session_id:
            return
        await self._sessions.record_progress(
            session_id,
            phase=event["phase"],
            status=event["status"],
            message=event.get("message", ""),
            search_log=event.get("search_log"),
            round_number=event.get("round"),
            total_rounds=event.get("rounds"),
        )

    async def close(self) -> None:
        for task in list(self._live_tasks):
            task.cancel()
