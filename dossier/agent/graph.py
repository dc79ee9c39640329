"""LangGraph phase graph definition: wires the search phases together with routing."""

from __future__ import annotations

import functools
from dataclasses import dataclass
from typing import Any

from langgraph.graph import END, START, StateGraph

from dossier.agent.edges import PHASE_ORDER, route_after_phase, route_after_round
from dossier.agent.nodes.finalize import error_node, finalize_node
from dossier.agent.nodes.general_phase import general_phase_node
from dossier.agent.nodes.platform_phase import platform_phase_node
from dossier.agent.nodes.revamped_round import revamped_round_node
from dossier.agent.query_generator import QueryGenerator, QueryOptimizer
from dossier.agent.result_processor import ResultProcessor
from dossier.agent.selector import QualifyingThresholds
from dossier.agent.state import ProfileSearchState
from dossier.agent.summarizer import ContentSummarizer
from dossier.agent.tools.search_provider import SearchBackend, SearchProvider
from dossier.agent.tools.web_scrape import ContentFetcher
from dossier.agent.validator import SourceValidator
from dossier.config import Settings
from dossier.models.model_router import ModelRouter
from dossier.models.schemas import Platform, SearchMode


@dataclass
class SearchDependencies:
    """Collaborators shared by every node of one compiled graph."""

    settings: Settings
    search: SearchProvider
    fetcher: ContentFetcher
    validator: SourceValidator
    summarizer: ContentSummarizer
    query_generator: QueryGenerator
    optimizer: QueryOptimizer
    processor: ResultProcessor
    thresholds: QualifyingThresholds

    @classmethod
    def build(
        cls,
        settings: Settings,
        router: ModelRouter,
        backend: SearchBackend,
        fetcher: ContentFetcher | None = None,
    ) -> SearchDependencies:
        llm = {"router": router, "settings": settings}
        return cls(
            settings=settings,
            search=SearchProvider(backend, settings),
            fetcher=fetcher or ContentFetcher(settings),
            validator=SourceValidator(**llm),
            summarizer=ContentSummarizer(**llm),
            query_generator=QueryGenerator(**llm),
            optimizer=QueryOptimizer(**llm),
            processor=ResultProcessor(**llm),
            thresholds=QualifyingThresholds.from_settings(settings),
        )


def build_search_graph(deps: SearchDependencies, mode: SearchMode = "legacy") -> StateGraph:
    """Build the phase StateGraph for ``mode``.

    Legacy: linkedin → github → website → general → finalize.
    Revamped: revamped_round (looped) → finalize.
    Either way a node that sets ``error`` routes to the absorbing error node.
    """
    graph = StateGraph(ProfileSearchState)
    graph.add_node("finalize", functools.partial(finalize_node, thresholds=deps.thresholds, settings=deps.settings))
    graph.add_node("error", error_node)
    graph.add_edge("finalize", END)
    graph.add_edge("error", END)

    if mode == "revamped":
        graph.add_node(
            "revamped_round",
            functools.partial(
                revamped_round_node,
                search=deps.search,
                optimizer=deps.optimizer,
                processor=deps.processor,
                settings=deps.settings,
            ),
        )
        graph.add_edge(START, "revamped_round")
        graph.add_conditional_edges(
            "revamped_round",
            route_after_round,
            {"revamped_round": "revamped_round", "finalize": "finalize", "error": "error"},
        )
        return graph

    for platform in (Platform.LINKEDIN, Platform.GITHUB, Platform.WEBSITE):
        graph.add_node(
            platform.value,
            functools.partial(
                platform_phase_node,
                platform=platform,
                search=deps.search,
                validator=deps.validator,
                summarizer=deps.summarizer,
                fetcher=deps.fetcher,
                thresholds=deps.thresholds,
            ),
        )
    graph.add_node(
        "general",
        functools.partial(
            general_phase_node,
            search=deps.search,
            validator=deps.validator,
            query_generator=deps.query_generator,
            fetcher=deps.fetcher,
            thresholds=deps.thresholds,
            settings=deps.settings,
        ),
    )

    graph.add_edge(START, PHASE_ORDER[0])
    for index, phase in enumerate(PHASE_ORDER):
        successor = PHASE_ORDER[index + 1] if index + 1 < len(PHASE_ORDER) else "finalize"
        graph.add_conditional_edges(phase, route_after_phase, {successor: successor, "error": "error"})
    return graph


def compile_search_graph(deps: SearchDependencies, mode: SearchMode = "legacy") -> Any:
    """Build and compile the phase graph."""
    return build_search_graph(deps, mode).compile()
