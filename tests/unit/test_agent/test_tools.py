"""Unit tests for the Tavily search backend and the page fetcher."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from dossier.agent.tools.tavily_search import TavilySearchBackend
from dossier.agent.tools.web_scrape import ContentFetcher
from dossier.utils.exceptions import ScrapingError, SearchError
from dossier.utils.rate_limiter import TokenBucketRateLimiter


@pytest.fixture
def tavily_tool():
    tool = MagicMock()
    tool.ainvoke = AsyncMock(
        return_value={
            "results": [
                {
                    "url": "https://www.linkedin.com/in/janedoe",
                    "title": "Jane Doe - Acme",
                    "content": "Data Scientist at Acme",
                    "raw_content": "Jane Doe. Data Scientist at Acme. Berlin.",
                    "score": 0.93,
                },
                {"url": "https://janedoe.dev", "title": None, "content": "Personal site", "raw_content": None},
                {"title": "no url"},
            ]
        }
    )
    return tool


@pytest.mark.asyncio
async def test_tavily_hits_map_to_documents(settings, tavily_tool):
    with patch("dossier.agent.tools.tavily_search.TavilySearch", return_value=tavily_tool) as MockTavily:
        backend = TavilySearchBackend(settings, limiter=TokenBucketRateLimiter(rate=100, capacity=100))
        docs = await backend.search("Jane Doe site:linkedin.com/in/", result_count=50, include_domains=["linkedin.com"])

    assert MockTavily.call_args.kwargs["max_results"] == 20
    tavily_tool.ainvoke.assert_awaited_once_with(
        {"query": "Jane Doe site:linkedin.com/in/", "include_domains": ["linkedin.com"]}
    )
    assert [d.url for d in docs] == ["https://www.linkedin.com/in/janedoe", "https://janedoe.dev"]
    assert docs[0].text == "Jane Doe. Data Scientist at Acme. Berlin."
    assert docs[0].summary == "Data Scientist at Acme"
    assert docs[0].score == 0.93
    assert docs[1].title == ""
    assert docs[1].text == "Personal site"


@pytest.mark.asyncio
async def test_tavily_reuses_tool_per_result_count(settings, tavily_tool):
    with patch("dossier.agent.tools.tavily_search.TavilySearch", return_value=tavily_tool) as MockTavily:
        backend = TavilySearchBackend(settings, limiter=TokenBucketRateLimiter(rate=100, capacity=100))
        await backend.search("a", result_count=10)
        await backend.search("b", result_count=10)
        await backend.search("c", result_count=20)

    assert MockTavily.call_count == 2
    assert tavily_tool.ainvoke.call_args.args[0] == {"query": "c"}


@pytest.mark.asyncio
async def test_tavily_no_results_and_errors(settings, tavily_tool):
    with patch("dossier.agent.tools.tavily_search.TavilySearch", return_value=tavily_tool):
        backend = TavilySearchBackend(settings, limiter=TokenBucketRateLimiter(rate=100, capacity=100))

        tavily_tool.ainvoke = AsyncMock(return_value="No search results found for 'zzz'")
        assert await backend.search("zzz", result_count=10) == []

        tavily_tool.ainvoke = AsyncMock(return_value={"error": "quota exceeded"})
        with pytest.raises(SearchError, match="quota exceeded"):
            await backend.search("Jane Doe", result_count=10)


@pytest.mark.asyncio
async def test_fetch_normalizes_and_caps_content(settings):
    fetcher = ContentFetcher(settings)
    long_text = "Jane   Doe\n\nworks at Acme. " * 500

    with patch.object(fetcher, "_fetch_with_retries", AsyncMock(return_value=long_text)):
        text = await fetcher.fetch("https://acme.com/team")

    assert text.startswith("Jane Doe works at Acme.")
    assert len(text) == settings.FETCH_MAX_CHARS


@pytest.mark.asyncio
async def test_fetch_failure_is_empty_string(settings):
    fetcher = ContentFetcher(settings)

    with patch.object(fetcher, "_fetch_with_retries", AsyncMock(side_effect=ScrapingError("HTTP 999"))):
        assert await fetcher.fetch("https://www.linkedin.com/in/janedoe") == ""


def test_extract_text_falls_back_to_main_content(settings):
    html = (
        "<html><head><script>var x = 1;</script></head><body>"
        "<nav>Home | About</nav><main><h1>Jane Doe</h1><p>Data scientist.</p></main>"
        "<footer>(c) 2024</footer></body></html>"
    )

    text = ContentFetcher(settings)._extract_text(html, "https://janedoe.dev")

    assert text == "Jane Doe Data scientist."
