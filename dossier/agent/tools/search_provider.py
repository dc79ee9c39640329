"""Platform-aware search adapter.

Each platform has a plan: a list of progressively broader query attempts,
an optional domain scope per attempt, and a result-count target. Attempts
stop as soon as the target is met. Hits are deduplicated by URL across the
attempts of one call.

A failed backend query (``SearchError``) is logged and treated as zero hits.
Any other exception from the backend escapes to the caller, which ends the
phase.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol

from dossier.agent.categorize import is_linkedin_profile, is_linkedin_url
from dossier.config import Settings
from dossier.models.schemas import CandidateDocument, Platform
from dossier.utils.exceptions import SearchError
from dossier.utils.logging import get_logger

logger = get_logger(__name__)


class SearchBackend(Protocol):
    async def search(
        self,
        query: str,
        *,
        result_count: int,
        include_domains: list[str] | None = None,
    ) -> list[CandidateDocument]: ...


@dataclass(frozen=True)
class SearchAttempt:
    template: str
    include_domains: tuple[str, ...] = ()
    result_count: int | None = None

    def render(self, term: str) -> str:
        return self.template.format(term=term)


@dataclass(frozen=True)
class PlatformPlan:
    attempts: tuple[SearchAttempt, ...]
    target_count: int = 1
    # Hits outside the platform are dropped as they arrive.
    keep: Callable[[str], bool] = field(default=lambda url: True)
    # Hits that count towards the target and make up the final result.
    counts: Callable[[str], bool] = field(default=lambda url: True)
    fallback: SearchAttempt | None = None


def build_plans(settings: Settings) -> dict[Platform, PlatformPlan]:
    linkedin_scope = ("linkedin.com",)
    return {
        Platform.LINKEDIN: PlatformPlan(
            attempts=(
                SearchAttempt("{term} site:linkedin.com/in/", linkedin_scope),
                SearchAttempt('"{term}" site:linkedin.com/in/', linkedin_scope),
                SearchAttempt("{term} linkedin profile site:linkedin.com/in/", linkedin_scope),
            ),
            target_count=settings.LINKEDIN_TARGET_PROFILES,
            keep=is_linkedin_url,
            counts=is_linkedin_profile,
            fallback=SearchAttempt("{term} site:linkedin.com", linkedin_scope, result_count=20),
        ),
        Platform.GITHUB: PlatformPlan(
            attempts=(
                SearchAttempt("{term} site:github.com", ("github.com",)),
                SearchAttempt("{term} github"),
            ),
            target_count=3,
        ),
        Platform.WEBSITE: PlatformPlan(
            attempts=(
                SearchAttempt("{term} personal website OR portfolio"),
                SearchAttempt('"{term}" blog OR about'),
            ),
            target_count=3,
        ),
        Platform.GENERAL: PlatformPlan(attempts=(SearchAttempt("{term}"),)),
    }


class SearchProvider:
    """Search adapter used by every phase."""

    def __init__(
        self,
        backend: SearchBackend,
        settings: Settings,
        plans: dict[Platform, PlatformPlan] | None = None,
    ) -> None:
        self._backend = backend
        self._settings = settings
        self._plans = plans or build_plans(settings)

    async def search(self, query: str, platform: Platform = Platform.GENERAL) -> list[CandidateDocument]:
        """Run the platform plan for ``query`` (a subject name, or a free query for GENERAL)."""
        plan = self._plans[platform]
        collected: list[CandidateDocument] = []
        seen: set[str] = set()

        for index, attempt in enumerate(plan.attempts):
            if index:
                await asyncio.sleep(self._settings.SEARCH_ATTEMPT_DELAY_SECONDS)
            await self._run_attempt(attempt, query, plan, collected, seen, platform)
            if self._counted(collected, plan) >= plan.target_count:
                break

        if plan.fallback is not None and self._counted(collected, plan) < plan.target_count:
            await self._run_attempt(plan.fallback, query, plan, collected, seen, platform)

        results = [doc for doc in collected if plan.counts(doc.url)]
        if plan.fallback is not None:
            results.sort(key=lambda d: -(d.score or 0.0))
            results = results[: plan.target_count]

        logger.info(
            "platform_search_finished",
            platform=platform.value,
            query=query,
            results=len(results),
        )
        return results

    async def search_many(self, queries: list[str], *, result_count: int) -> list[CandidateDocument]:
        """Unscoped queries run one after another, hits deduplicated by URL across all of them."""
        collected: list[CandidateDocument] = []
        seen: set[str] = set()
        for index, query in enumerate(queries):
            if index:
                await asyncio.sleep(self._settings.SEARCH_ATTEMPT_DELAY_SECONDS)
            attempt = SearchAttempt("{term}", result_count=result_count)
            await self._run_attempt(attempt, query, self._plans[Platform.GENERAL], collected, seen, Platform.GENERAL)
        return collected

    @staticmethod
    def _counted(docs: list[CandidateDocument], plan: PlatformPlan) -> int:
        return sum(1 for doc in docs if plan.counts(doc.url))

    async def _run_attempt(
        self,
        attempt: SearchAttempt,
        term: str,
        plan: PlatformPlan,
        collected: list[CandidateDocument],
        seen: set[str],
        platform: Platform,
    ) -> None:
        query = attempt.render(term)
        try:
            hits = await self._backend.search(
                query,
                result_count=attempt.result_count or self._settings.MAX_RESULTS_PER_QUERY,
                include_domains=list(attempt.include_domains) or None,
            )
        except SearchError as exc:
            logger.warning("search_attempt_failed", platform=platform.value, query=query, error=str(exc))
            return

        for doc in hits:
            if doc.url in seen or not plan.keep(doc.url):
                continue
            seen.add(doc.url)
            collected.append(doc)
