"""Unit tests for the source validator."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock

import pytest

from dossier.agent.validator import SourceValidator, name_check
from dossier.models.schemas import CandidateDocument, GeneratedContext, Platform
from dossier.utils.exceptions import LLMError


def _verdict(score, *, match=True, confidence="high"):
    return json.dumps({
        "relevancyScore": score,
        "isLikelyMatch": match,
        "confidence": confidence,
        "reasoning": "test",
        "samePersonElements": ["Works at Acme"],
        "differentPersonElements": [],
    })


@pytest.fixture
def validator(mock_router, settings):
    return SourceValidator(router=mock_router, settings=settings)


@pytest.mark.asyncio
async def test_name_precheck_short_circuits_without_llm(validator, mock_router, subject):
    doc = CandidateDocument(url="https://example.com/page", text="no relevant content here")

    result = await validator.validate(doc, subject, GeneratedContext())

    assert result.relevancy_score == 1
    assert result.is_likely_match is False
    assert result.confidence == "low"
    assert result.different_person_elements == [
        'First name "jane" not found',
        'Last name "doe" not found',
    ]
    mock_router.complete.assert_not_called()


def test_linkedin_profile_accepts_either_token(subject):
    doc = CandidateDocument(url="https://www.linkedin.com/in/jd", title="Jane - Data Scientist", text="")
    assert name_check(doc, subject.parsed_name, "profile", Platform.LINKEDIN) == []


def test_other_profiles_need_last_name(subject):
    doc = CandidateDocument(url="https://github.com/jane", title="Jane", text="Jane's repositories")
    assert name_check(doc, subject.parsed_name, "profile", Platform.GITHUB) == ['Last name "doe" not found']


def test_non_profiles_need_both_tokens(subject):
    doc = CandidateDocument(url="https://example.com/x", text="An article quoting Dr. Doe")
    assert name_check(doc, subject.parsed_name, "other", Platform.GENERAL) == ['First name "jane" not found']


@pytest.mark.asyncio
@pytest.mark.parametrize(("raw_score", "expected"), [(14, 10), (-3, 1), (7.6, 8), (0, 1)])
async def test_scores_are_clamped_integers(validator, mock_router, subject, raw_score, expected):
    mock_router.complete = AsyncMock(return_value=_verdict(raw_score))
    doc = CandidateDocument(url="https://example.com/jane", text="Jane Doe, data scientist at Acme")

    result = await validator.validate(doc, subject, GeneratedContext())

    assert result.relevancy_score == expected
    assert isinstance(result.relevancy_score, int)


@pytest.mark.asyncio
async def test_reply_wrapped_in_prose_is_parsed(validator, mock_router, subject):
    mock_router.complete = AsyncMock(return_value=f"Here you go:\n{_verdict(8)}\nThanks")
    doc = CandidateDocument(url="https://example.com/jane", text="Jane Doe, data scientist at Acme")

    result = await validator.validate(doc, subject, GeneratedContext())

    assert result.relevancy_score == 8
    assert result.is_likely_match is True
    assert result.same_person_elements == ["Works at Acme"]
    assert result.category == "other"


@pytest.mark.asyncio
async def test_unparseable_reply_is_fail_safe(validator, mock_router, subject):
    mock_router.complete = AsyncMock(return_value="I think this is probably her?")
    doc = CandidateDocument(url="https://example.com/jane", text="Jane Doe, data scientist at Acme")

    result = await validator.validate(doc, subject, GeneratedContext())

    assert result.relevancy_score == 1
    assert result.is_likely_match is False
    assert result.confidence == "low"


@pytest.mark.asyncio
async def test_model_outage_is_fail_safe(validator, mock_router, subject):
    mock_router.complete = AsyncMock(side_effect=LLMError("all models failed"))
    doc = CandidateDocument(url="https://example.com/jane", text="Jane Doe, data scientist at Acme")

    result = await validator.validate(doc, subject, GeneratedContext())

    assert result.is_likely_match is False
    assert result.relevancy_score == 1


@pytest.mark.asyncio
async def test_unexpected_error_is_fail_safe(validator, mock_router, subject):
    mock_router.complete = AsyncMock(side_effect=RuntimeError("socket closed"))
    doc = CandidateDocument(url="https://example.com/jane", text="Jane Doe, data scientist at Acme")

    result = await validator.validate(doc, subject, GeneratedContext())

    assert result.is_likely_match is False
    assert "socket closed" in result.reasoning


@pytest.mark.asyncio
async def test_prompt_carries_generated_context(validator, mock_router, subject):
    mock_router.complete = AsyncMock(return_value=_verdict(6))
    ctx = GeneratedContext(linkedin_data="Senior data scientist at Acme since 2019")
    doc = CandidateDocument(url="https://example.com/jane", text="Jane Doe " + "x" * 5000)

    await validator.validate(doc, subject, ctx)

    task, _, prompt = mock_router.complete.call_args.args
    assert task == "validator"
    assert "Senior data scientist at Acme since 2019" in prompt
    assert "x" * 2000 not in prompt


@pytest.mark.asyncio
async def test_validate_batch_preserves_order(validator, mock_router, subject, settings):
    scores = {"https://a.com": 3, "https://b.com": 9, "https://c.com": 6, "https://d.com": 7}

    async def complete(task, system_prompt, user_prompt):
        url = next(u for u in scores if u in user_prompt)
        return _verdict(scores[url])

    mock_router.complete = AsyncMock(side_effect=complete)
    docs = [CandidateDocument(url=url, text="Jane Doe at Acme") for url in scores]

    results = await validator.validate_batch(docs, subject, GeneratedContext())

    assert [r.url for r in results] == list(scores)
    assert [r.relevancy_score for r in results] == [3, 9, 6, 7]
    assert mock_router.complete.await_count == 4
