"""Integration tests: the compiled phase graph driven through ProfileService.

Only the search backend, page fetches, model replies and the Neo4j repository
are faked; graph routing, validation, selection and session bookkeeping are real.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from dossier.agent.graph import SearchDependencies, compile_search_graph
from dossier.models.schemas import CandidateDocument, Subject
from dossier.services.profile_assembler import ProfileAssembler
from dossier.services.profile_service import ProfileService
from dossier.utils.exceptions import SearchPhaseError

LINKEDIN = CandidateDocument(
    url="https://www.linkedin.com/in/janedoe",
    title="Jane Doe - Data Scientist - Acme",
    text="Jane Doe. Data Scientist at Acme. Berlin, Germany.",
    score=0.9,
)
GITHUB = CandidateDocument(url="https://github.com/janedoe", title="janedoe (Jane Doe)", text="Jane Doe ML tooling")
TALK = CandidateDocument(url="https://confs.io/jane", title="Talks", text="Talk by Jane Doe of Acme")
STRANGER = CandidateDocument(url="https://www.linkedin.com/in/jane-doe-nyc", title="Jane Doe - Chef", text="NYC chef")

VERDICTS = {
    LINKEDIN.url: 8,
    GITHUB.url: 7,
    TALK.url: 9,
}


def _validator_reply(prompt: str) -> dict:
    for url, score in VERDICTS.items():
        if url in prompt:
            return {
                "relevancyScore": score,
                "isLikelyMatch": True,
                "confidence": "high",
                "samePersonElements": ["Acme"],
            }
    return {"relevancyScore": 2, "isLikelyMatch": False, "confidence": "low", "differentPersonElements": ["Location"]}


@pytest.fixture
def legacy_replies(replies):
    return replies(
        validator=_validator_reply,
        summarizer={"summary": "Jane Doe is a data scientist at Acme."},
        query_generator={"queries": [{"query": "Jane Doe Acme conference talk", "target": "mentions"}]},
        profile_writer={"aliases": ["janedoe"], "profileSummary": "Jane Doe is a Berlin-based data scientist at Acme."},
    )


@pytest.fixture
def populated_backend(fake_backend):
    fake_backend.responses["site:linkedin.com"] = [LINKEDIN, STRANGER]
    fake_backend.responses["site:github.com"] = [GITHUB]
    fake_backend.responses["conference talk"] = [TALK]
    return fake_backend


@pytest.fixture
def repository():
    repo = MagicMock()

    async def _save(profile):
        return profile.model_copy(update={"id": "profile-1"})

    repo.save = AsyncMock(side_effect=_save)
    return repo


@pytest.fixture
def service(settings, mock_router, populated_backend, fake_fetcher, repository, session_registry, legacy_replies):
    mock_router.complete = AsyncMock(side_effect=legacy_replies)
    deps = SearchDependencies.build(settings, mock_router, populated_backend, fetcher=fake_fetcher)
    assembler = ProfileAssembler(router=mock_router, settings=settings)
    return ProfileService(settings, deps, assembler, repository, session_registry)


def test_graphs_compile_for_both_modes(settings, mock_router, fake_backend, fake_fetcher):
    deps = SearchDependencies.build(settings, mock_router, fake_backend, fetcher=fake_fetcher)

    legacy = compile_search_graph(deps, "legacy")
    revamped = compile_search_graph(deps, "revamped")

    assert {"linkedin", "github", "website", "general", "finalize", "error"} <= set(legacy.get_graph().nodes)
    assert {"revamped_round", "finalize", "error"} <= set(revamped.get_graph().nodes)


@pytest.mark.asyncio
async def test_legacy_run_builds_context_phase_by_phase(service, subject):
    log = await service.run_search(subject, mode="legacy")

    assert [entry.phase for entry in log.search_logs] == ["LinkedIn", "GitHub", "Website", "General: mentions"]
    linkedin, github, website, general = log.search_logs
    assert linkedin.selected_url == LINKEDIN.url
    assert linkedin.results_found == 2
    assert github.selected_url == GITHUB.url
    # No website hits; the run still reaches the general phase.
    assert website.results_found == 0
    assert general.selected_url == TALK.url

    context = log.generated_context
    assert context.linkedin_data == "Jane Doe is a data scientist at Acme."
    assert context.github_data == "Jane Doe is a data scientist at Acme."
    assert context.website_data is None
    assert context.additional_findings == ["From mentions: Talk by Jane Doe of Acme"]

    assert [s.url for s in log.final_sources] == [TALK.url, LINKEDIN.url, GITHUB.url]


@pytest.mark.asyncio
async def test_empty_linkedin_does_not_stop_the_run(service, subject, populated_backend):
    populated_backend.responses.pop("site:linkedin.com")

    log = await service.run_search(subject, mode="legacy")

    assert log.search_logs[0].phase == "LinkedIn"
    assert log.search_logs[0].results_found == 0
    assert log.generated_context.linkedin_data is None
    assert log.search_logs[1].selected_url == GITHUB.url


@pytest.mark.asyncio
async def test_backend_failure_ends_run_with_partial_log(service, subject, populated_backend):
    populated_backend.errors["site:github.com"] = RuntimeError("provider unavailable")

    with pytest.raises(SearchPhaseError) as excinfo:
        await service.run_search(subject, mode="legacy")

    assert str(excinfo.value) == "GitHub search failed: provider unavailable"
    partial = excinfo.value.partial_log
    assert [entry.phase for entry in partial.search_logs] == ["LinkedIn"]
    assert partial.generated_context.linkedin_data == "Jane Doe is a data scientist at Acme."
    assert not any("personal website" in call["query"] for call in populated_backend.calls)


@pytest.mark.asyncio
async def test_create_profile_persists_assembled_profile(service, subject, repository):
    profile = await service.create_profile(subject, mode="legacy")

    assert profile.id == "profile-1"
    assert profile.profile_summary == "Jane Doe is a Berlin-based data scientist at Acme."
    assert profile.aliases == ["janedoe"]
    assert len(profile.sources) == 3
    repository.save.assert_awaited_once()


@pytest.mark.asyncio
async def test_batch_reports_failing_subject_and_continues(service, subject, populated_backend):
    populated_backend.errors["John Roe"] = RuntimeError("provider unavailable")

    profiles, errors = await service.create_profiles([Subject(name="John Roe"), subject], mode="legacy")

    assert [p.name for p in profiles] == ["Jane Doe"]
    assert errors == [
        {"subject": "John Roe", "error": "LinkedIn search failed: provider unavailable", "search_logs": []}
    ]


@pytest.mark.asyncio
async def test_batch_error_keeps_logs_of_completed_phases(service, subject, populated_backend):
    populated_backend.errors["site:github.com"] = RuntimeError("provider unavailable")

    profiles, errors = await service.create_profiles([subject], mode="legacy")

    assert profiles == []
    assert errors[0]["error"] == "GitHub search failed: provider unavailable"
    assert [entry.phase for entry in errors[0]["search_logs"]] == ["LinkedIn"]


@pytest.mark.asyncio
async def test_live_session_tracks_progress_and_completes(service, subject, session_registry):
    await session_registry.start("live-1", subject.name)
    queue = session_registry.subscribe("live-1")

    await service.create_profile(subject, mode="legacy", session_id="live-1")

    events = []
    while not queue.empty():
        events.append(queue.get_nowait())
    kinds = [event[0] for event in events if event is not None]
    assert kinds[-1] == "complete"
    progresses = [data["progress"] for kind, data in (e for e in events if e is not None) if kind == "progress"]
    assert progresses == sorted(progresses)

    session = session_registry.get("live-1")
    assert session.is_complete is True
    assert session.progress == 100.0
    assert session.final_profile.id == "profile-1"
    assert [entry.phase for entry in session.partial_profile.search_logs] == [
        "LinkedIn",
        "GitHub",
        "Website",
        "General: mentions",
    ]


@pytest.mark.asyncio
async def test_stopped_session_still_completes_in_background(service, subject, session_registry, populated_backend):
    await session_registry.start("live-2", subject.name)
    queue = session_registry.subscribe("live-2")

    async def _stop(query):
        await session_registry.stop("live-2")

    populated_backend.hooks["site:github.com"] = AsyncMock(side_effect=_stop)

    profile = await service.create_profile(subject, mode="legacy", session_id="live-2")

    session = session_registry.get("live-2")
    assert session.is_active is False
    assert session.is_complete is True
    assert session.final_profile.id == profile.id
    assert "Website" in [entry.phase for entry in session.final_profile.search_logs]
    assert "Website" in [entry.phase for entry in session.partial_profile.search_logs]

    received = []
    while not queue.empty():
        received.append(queue.get_nowait())
    assert received[-1] is None
    assert all(event is None or event[1]["phase"] in {"starting", "linkedin", "github"} for event in received)


@pytest.mark.asyncio
async def test_live_failure_marks_session_failed(service, subject, session_registry, populated_backend):
    populated_backend.errors["personal website"] = RuntimeError("provider unavailable")
    await session_registry.start("live-3", subject.name)

    with pytest.raises(SearchPhaseError):
        await service.create_profile(subject, mode="legacy", session_id="live-3")

    session = session_registry.get("live-3")
    assert session.is_active is False
    assert session.is_complete is False
    assert session.current_phase == "error"
    assert session.errors == ["Website search failed: provider unavailable"]
    assert session.progress == pytest.approx(57.5)


@pytest.mark.asyncio
async def test_revamped_run_rounds_then_summary(settings, mock_router, fake_backend, fake_fetcher, subject, replies):
    page = CandidateDocument(
        url="https://janedoe.dev",
        title="Jane Doe",
        text="Jane Doe is a data scientist at Acme in Berlin. " * 3,
        summary="Personal site of Jane Doe, data scientist at Acme, Berlin.",
    )
    other = CandidateDocument(url="https://example.org/jdoe", text="J. Doe, plumber")
    fake_backend.responses["Jane Doe"] = [page, other]
    mock_router.complete = AsyncMock(
        side_effect=replies(
            context_matcher={"match": True},
            point_extractor={"points": ["- Works at Acme", "- Lives in Berlin", "- Data scientist"]},
        )
    )
    deps = SearchDependencies.build(settings, mock_router, fake_backend, fetcher=fake_fetcher)
    service = ProfileService(settings, deps, MagicMock(), MagicMock(), MagicMock())

    log = await service.run_search(subject, mode="revamped")

    rounds = settings.REVAMPED_MIN_ROUNDS
    assert [entry.phase for entry in log.search_logs] == [f"Round {n}" for n in range(1, rounds + 1)] + ["Summary"]
    first = log.search_logs[0]
    assert first.search_round == 1
    assert first.total_rounds == rounds
    assert [v.url for v in first.validated_results] == [page.url]
    assert all(not entry.validated_results for entry in log.search_logs[1:rounds])

    [source] = log.final_sources
    assert source.url == page.url
    assert source.same_person_elements == ["Works at Acme", "Lives in Berlin", "Data scientist"]
    assert log.generated_context.additional_findings[0].startswith("COMPREHENSIVE CONTEXT SUMMARY")
    later_queries = [call["query"] for call in fake_backend.calls if "Works at Acme" in call["query"]]
    assert later_queries
