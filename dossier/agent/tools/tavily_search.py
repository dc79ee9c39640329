"""Tavily-backed implementation of the search backend contract."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from langchain_tavily import TavilySearch

from dossier.models.schemas import CandidateDocument
from dossier.utils.exceptions import SearchError
from dossier.utils.logging import get_logger
from dossier.utils.rate_limiter import TokenBucketRateLimiter
from dossier.utils.retry import async_retry

if TYPE_CHECKING:
    from dossier.config import Settings

logger = get_logger(__name__)

# Tavily rejects max_results above this.
_TAVILY_MAX_RESULTS = 20


class TavilySearchBackend:
    """Runs one query against Tavily and maps hits to CandidateDocuments.

    One TavilySearch tool is built per result count, since ``max_results`` is
    fixed at construction time. Raw page content is requested so validators
    see more than the search snippet; the snippet is kept as ``summary``.
    """

    def __init__(self, settings: Settings, limiter: TokenBucketRateLimiter | None = None) -> None:
        self._settings = settings
        self._limiter = limiter or TokenBucketRateLimiter.per_minute(settings.RATE_LIMIT_SEARCHES_PER_MIN)
        self._tools: dict[int, TavilySearch] = {}

    def _tool(self, result_count: int) -> TavilySearch:
        count = max(1, min(result_count, _TAVILY_MAX_RESULTS))
        if count not in self._tools:
            self._tools[count] = TavilySearch(
                max_results=count,
                search_depth="advanced",
                topic="general",
                include_raw_content=True,
                include_images=False,
                tavily_api_key=self._settings.TAVILY_API_KEY,
            )
        return self._tools[count]

    async def search(
        self,
        query: str,
        *,
        result_count: int,
        include_domains: list[str] | None = None,
    ) -> list[CandidateDocument]:
        """Raises SearchError on timeouts and provider errors. Zero hits is an empty list."""
        tool = self._tool(result_count)
        payload: dict[str, Any] = {"query": query}
        if include_domains:
            payload["include_domains"] = include_domains

        await self._limiter.acquire()
        try:
            response = await self._invoke(tool, payload)
        except asyncio.TimeoutError as exc:
            raise SearchError(f"Search timed out after {self._settings.SEARCH_TIMEOUT_SECONDS}s: {query}") from exc

        if isinstance(response, str):
            # langchain-tavily reports "no results" as a handled ToolException string.
            logger.debug("tavily_no_results", query=query, detail=response[:200])
            return []
        if not isinstance(response, dict):
            raise SearchError(f"Unexpected Tavily response type {type(response).__name__}")
        if response.get("error"):
            raise SearchError(f"Tavily error: {response['error']}")

        return [
            CandidateDocument(
                url=hit["url"],
                title=hit.get("title") or "",
                text=hit.get("raw_content") or hit.get("content") or "",
                summary=hit.get("content") or "",
                score=hit.get("score"),
            )
            for hit in response.get("results", [])
            if hit.get("url")
        ]

    @async_retry(max_attempts=2, base_delay=1.0, retryable_exceptions=(asyncio.TimeoutError, ConnectionError))
    async def _invoke(self, tool: TavilySearch, payload: dict[str, Any]) -> Any:
        return await asyncio.wait_for(tool.ainvoke(payload), timeout=self._settings.SEARCH_TIMEOUT_SECONDS)
