"""Query generation for the general phase and the iterative mode."""

from __future__ import annotations

import asyncio
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from dossier.agent.base import StructuredOutputAgent
from dossier.agent.prompts.query_generator import GENERAL_QUERIES_PROMPT, QUERY_OPTIMIZER_PROMPT
from dossier.models.schemas import GeneratedContext, Subject
from dossier.utils.logging import get_logger

logger = get_logger(__name__)

QueryType = Literal["simple", "hard-context", "generated-context"]

FALLBACK_TOPICS: tuple[tuple[str, str], ...] = (
    ("education", "{name} education"),
    ("work", "{name} work experience"),
    ("publications", "{name} publications OR articles"),
    ("social", "{name} social media"),
    ("mentions", "{name} interview OR mention"),
)


class GeneratedQuery(BaseModel):
    query: str
    target: str = "general"


class _QueriesReply(BaseModel):
    queries: list[GeneratedQuery]


class RoundQuery(BaseModel):
    """One iterative-mode query, before and after the rewrite pass."""

    query: str
    type: QueryType
    priority: int
    original_query: str | None = None
    reasoning: str = ""
    search_strategy: str = ""


class _OptimizedReply(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    optimized_query: str = Field(alias="optimizedQuery")
    reasoning: str = ""
    search_strategy: str = Field(default="", alias="searchStrategy")


def fallback_queries(name: str) -> list[GeneratedQuery]:
    return [GeneratedQuery(query=template.format(name=name), target=target) for target, template in FALLBACK_TOPICS]


def round_queries(subject: Subject, context_points: list[str]) -> list[RoundQuery]:
    """Name alone, name + hard context, and name + the strongest accumulated points."""
    queries = [RoundQuery(query=subject.name, type="simple", priority=1)]
    if subject.hard_context.strip():
        queries.append(
            RoundQuery(query=f"{subject.name} {subject.hard_context.strip()}", type="hard-context", priority=2)
        )
    if context_points:
        queries.append(
            RoundQuery(
                query=f"{subject.name} {' '.join(context_points[:2])}"[:300],
                type="generated-context",
                priority=3,
            )
        )
    return queries


class QueryGenerator(StructuredOutputAgent):
    task = "query_generator"

    async def general_queries(
        self,
        subject: Subject,
        generated_context: GeneratedContext,
        count: int,
    ) -> list[GeneratedQuery]:
        """Topical queries conditioned on the context accumulated so far."""
        reply = await self._ask(
            GENERAL_QUERIES_PROMPT.format(
                count=count,
                subject_name=subject.name,
                hard_context=subject.hard_context or "None",
                soft_context=subject.soft_context or "None",
                generated_context=generated_context.render() or "None",
            ),
            _QueriesReply,
        )
        queries = [q for q in reply.value.queries if q.query.strip()] if reply.ok else []
        if not queries:
            logger.info("general_queries_fallback", subject=subject.name)
            queries = fallback_queries(subject.name)
        return queries[:count]


class QueryOptimizer(StructuredOutputAgent):
    task = "query_optimizer"

    async def optimize(self, query: RoundQuery, subject: Subject) -> RoundQuery:
        reply = await self._ask(
            QUERY_OPTIMIZER_PROMPT.format(
                subject_name=subject.name,
                hard_context=subject.hard_context or "None",
                query_type=query.type,
                query=query.query,
            ),
            _OptimizedReply,
        )
        if not reply.ok or not reply.value.optimized_query.strip():
            return query.model_copy(update={"original_query": query.query})
        return query.model_copy(
            update={
                "query": reply.value.optimized_query.strip(),
                "original_query": query.query,
                "reasoning": reply.value.reasoning,
                "search_strategy": reply.value.search_strategy,
            }
        )

    async def optimize_all(self, queries: list[RoundQuery], subject: Subject) -> list[RoundQuery]:
        optimized: list[RoundQuery] = []
        for index, query in enumerate(queries):
            if index:
                await asyncio.sleep(self._settings.QUERY_OPTIMIZE_DELAY_SECONDS)
            optimized.append(await self.optimize(query, subject))
        return optimized
