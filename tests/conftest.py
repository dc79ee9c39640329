"""Shared test fixtures."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from dossier.models.schemas import CandidateDocument, Subject


@pytest.fixture(autouse=True)
def _env_setup(monkeypatch):
    """Set required environment variables for tests."""
    monkeypatch.setenv("OPENROUTER_API_KEY", "test-key")
    monkeypatch.setenv("TAVILY_API_KEY", "test-tavily-key")
    monkeypatch.setenv("NEO4J_URI", "bolt://localhost:7687")
    monkeypatch.setenv("NEO4J_USER", "neo4j")
    monkeypatch.setenv("NEO4J_PASSWORD", "test")
    monkeypatch.setenv("REDIS_URL", "redis://localhost:6379/0")
    monkeypatch.setenv("LANGSMITH_API_KEY", "")
    monkeypatch.setenv("LANGCHAIN_TRACING_V2", "false")


@pytest.fixture
def settings():
    """Settings with every delay zeroed so tests never sleep."""
    from dossier.config import Settings

    return Settings(
        OPENROUTER_API_KEY="test-key",
        TAVILY_API_KEY="test-tavily-key",
        LANGSMITH_API_KEY="",
        LANGCHAIN_TRACING_V2=False,
        SEARCH_ATTEMPT_DELAY_SECONDS=0,
        VALIDATION_BATCH_DELAY_SECONDS=0,
        GENERAL_QUERY_DELAY_SECONDS=0,
        QUERY_OPTIMIZE_DELAY_SECONDS=0,
        REVAMPED_ROUND_DELAY_SECONDS=0,
        FETCH_POLITENESS_DELAY_SECONDS=0,
        SESSION_COMPLETION_GRACE_SECONDS=0,
        SSE_HEARTBEAT_SECONDS=0.05,
    )


class FakeSearchBackend:
    """Answers queries from a substring → documents table and records every call."""

    def __init__(self) -> None:
        self.responses: dict[str, list[CandidateDocument]] = {}
        self.errors: dict[str, Exception] = {}
        self.hooks: dict[str, AsyncMock] = {}
        self.calls: list[dict] = []

    async def search(self, query, *, result_count, include_domains=None):
        self.calls.append({"query": query, "result_count": result_count, "include_domains": include_domains})
        for key, hook in self.hooks.items():
            if key in query:
                await hook(query)
        for key, exc in self.errors.items():
            if key in query:
                raise exc
        for key, docs in self.responses.items():
            if key in query:
                return list(docs)
        return []


@pytest.fixture
def fake_backend() -> FakeSearchBackend:
    return FakeSearchBackend()


@pytest.fixture
def fake_fetcher():
    fetcher = MagicMock()
    fetcher.fetch = AsyncMock(return_value="")
    return fetcher


@pytest.fixture
def mock_router():
    """ModelRouter stand-in; set ``complete.side_effect`` or ``return_value`` per test."""
    router = MagicMock()
    router.complete = AsyncMock(return_value="{}")
    return router


def llm_replies(**by_task):
    """Build a ``complete`` side effect that answers by task name with JSON."""

    async def _complete(task, system_prompt, user_prompt):
        reply = by_task.get(task)
        if callable(reply):
            reply = reply(user_prompt)
        if reply is None:
            return "{}"
        return reply if isinstance(reply, str) else json.dumps(reply)

    return _complete


@pytest.fixture
def replies():
    return llm_replies


@pytest.fixture
def subject() -> Subject:
    return Subject(name="Jane Doe", hard_context="Data Scientist at Acme", soft_context="Lives in Berlin")


@pytest.fixture
def session_registry(settings):
    from dossier.services.session_registry import SessionRegistry
    from dossier.services.session_store import InMemorySessionStore

    return SessionRegistry(InMemorySessionStore(), settings)
