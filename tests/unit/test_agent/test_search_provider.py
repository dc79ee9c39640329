"""Unit tests for the platform-aware search adapter."""

from __future__ import annotations

import pytest

from dossier.agent.tools.search_provider import SearchProvider
from dossier.models.schemas import CandidateDocument, Platform
from dossier.utils.exceptions import SearchError


def _doc(url, score=0.5):
    return CandidateDocument(url=url, title="Jane Doe", text="Jane Doe", score=score)


@pytest.mark.asyncio
async def test_linkedin_stops_once_target_met(fake_backend, settings):
    settings.LINKEDIN_TARGET_PROFILES = 2
    fake_backend.responses["site:linkedin.com/in/"] = [
        _doc("https://www.linkedin.com/in/jane-doe", 0.9),
        _doc("https://www.linkedin.com/in/janedoe2", 0.7),
    ]
    provider = SearchProvider(fake_backend, settings)

    results = await provider.search("Jane Doe", Platform.LINKEDIN)

    assert len(fake_backend.calls) == 1
    assert fake_backend.calls[0]["include_domains"] == ["linkedin.com"]
    assert [d.url for d in results] == ["https://www.linkedin.com/in/jane-doe", "https://www.linkedin.com/in/janedoe2"]


@pytest.mark.asyncio
async def test_linkedin_broadens_then_falls_back(fake_backend, settings):
    fake_backend.responses["site:linkedin.com"] = [
        _doc("https://www.linkedin.com/in/jane-doe", 0.4),
        _doc("https://www.linkedin.com/company/acme", 0.9),
        _doc("https://example.com/not-linkedin", 0.9),
        _doc("https://www.linkedin.com/in/other-jane", 0.8),
    ]
    provider = SearchProvider(fake_backend, settings)

    results = await provider.search("Jane Doe", Platform.LINKEDIN)

    # three scoped attempts plus the broad fallback, since the target of 5 is never met
    assert len(fake_backend.calls) == 4
    assert fake_backend.calls[-1]["query"] == "Jane Doe site:linkedin.com"
    assert fake_backend.calls[-1]["result_count"] == 20
    # only profile URLs, deduplicated across attempts, best score first
    assert [d.url for d in results] == [
        "https://www.linkedin.com/in/other-jane",
        "https://www.linkedin.com/in/jane-doe",
    ]


@pytest.mark.asyncio
async def test_failed_attempt_is_treated_as_zero_hits(fake_backend, settings):
    fake_backend.errors["site:github.com"] = SearchError("timeout")
    fake_backend.responses["github"] = [_doc("https://github.com/janedoe")]
    provider = SearchProvider(fake_backend, settings)

    results = await provider.search("Jane Doe", Platform.GITHUB)

    assert [c["query"] for c in fake_backend.calls] == ["Jane Doe site:github.com", "Jane Doe github"]
    assert [d.url for d in results] == ["https://github.com/janedoe"]


@pytest.mark.asyncio
async def test_zero_results_is_an_empty_list(fake_backend, settings):
    provider = SearchProvider(fake_backend, settings)
    assert await provider.search("Jane Doe", Platform.WEBSITE) == []
    assert len(fake_backend.calls) == 2


@pytest.mark.asyncio
async def test_unexpected_backend_errors_escape(fake_backend, settings):
    fake_backend.errors["Jane"] = RuntimeError("backend crashed")
    provider = SearchProvider(fake_backend, settings)

    with pytest.raises(RuntimeError):
        await provider.search("Jane Doe education", Platform.GENERAL)


@pytest.mark.asyncio
async def test_general_runs_query_verbatim(fake_backend, settings):
    fake_backend.responses["education"] = [_doc("https://uni.edu/jane")]
    provider = SearchProvider(fake_backend, settings)

    results = await provider.search("Jane Doe education", Platform.GENERAL)

    assert fake_backend.calls == [
        {"query": "Jane Doe education", "result_count": settings.MAX_RESULTS_PER_QUERY, "include_domains": None}
    ]
    assert len(results) == 1


@pytest.mark.asyncio
async def test_search_many_dedupes_across_queries(fake_backend, settings):
    fake_backend.responses["Jane"] = [_doc("https://a.com"), _doc("https://b.com")]
    provider = SearchProvider(fake_backend, settings)

    results = await provider.search_many(["Jane Doe", "Jane Doe Acme"], result_count=20)

    assert [d.url for d in results] == ["https://a.com", "https://b.com"]
    assert all(c["result_count"] == 20 for c in fake_backend.calls)
