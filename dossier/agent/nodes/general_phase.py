"""General phase: LLM-proposed topical queries, top-K findings appended per query."""

from __future__ import annotations

import asyncio
from typing import Any

from langgraph.config import get_stream_writer

from dossier.agent.query_generator import QueryGenerator
from dossier.agent.selector import QualifyingThresholds, rank_qualifying
from dossier.agent.tools.search_provider import SearchProvider
from dossier.agent.tools.web_scrape import ContentFetcher
from dossier.agent.validator import SourceValidator
from dossier.config import Settings
from dossier.models.schemas import CandidateDocument, Platform, SearchLog
from dossier.utils.logging import get_logger

logger = get_logger(__name__)


async def general_phase_node(
    state: dict[str, Any],
    *,
    search: SearchProvider,
    validator: SourceValidator,
    query_generator: QueryGenerator,
    fetcher: ContentFetcher,
    thresholds: QualifyingThresholds,
    settings: Settings,
) -> dict[str, Any]:
    """One SearchLog per proposed query; findings only ever appended."""
    writer = get_stream_writer()
    subject = state["subject"]
    context = state["generated_context"].model_copy(deep=True)

    writer({"phase": "general", "status": "searching", "message": "Generating general search queries"})
    queries = await query_generator.general_queries(subject, context, settings.GENERAL_QUERY_COUNT)
    logger.info("general_queries_generated", subject=subject.name, count=len(queries))

    logs: list[SearchLog] = []
    for index, generated in enumerate(queries):
        if index:
            await asyncio.sleep(settings.GENERAL_QUERY_DELAY_SECONDS)

        try:
            docs = await search.search(generated.query, Platform.GENERAL)
        except Exception as exc:
            message = f"General search failed for {generated.target}: {exc}"
            logger.error("phase_search_failed", phase="General", query=generated.query, error=str(exc))
            writer({"phase": "general", "status": "failed", "message": message})
            return {
                "current_phase": "general",
                "search_logs": logs,
                "generated_context": context,
                "error": message,
                "errors": [message],
            }

        validated = []
        selected: list[str] = []
        added: list[str] = []
        if docs:
            writer({
                "phase": "general",
                "status": "validating",
                "message": f"Validating {len(docs)} results for {generated.target}",
            })
            validated = await validator.validate_batch(docs, subject, context, Platform.GENERAL)
            by_url = {d.url: d for d in docs}
            for winner in rank_qualifying(validated, thresholds)[: settings.GENERAL_TOP_K]:
                selected.append(winner.url)
                finding = await _finding(by_url[winner.url], generated.target, fetcher, settings.FINDING_CHARS)
                if finding:
                    context.add_finding(finding)
                    added.append(finding)

        log = SearchLog(
            phase=f"General: {generated.target}",
            query=generated.query,
            results_found=len(docs),
            validated_results=validated,
            selected_url=selected[0] if selected else None,
            context_added="\n".join(added) or None,
        )
        logs.append(log)
        writer({
            "phase": "general",
            "status": "searching" if index + 1 < len(queries) else "completed",
            "message": f"General search for {generated.target}: {len(added)} findings",
            "search_log": log,
        })

    logger.info("phase_completed", phase="General", queries=len(queries), findings=len(context.additional_findings))
    if not queries:
        writer({"phase": "general", "status": "completed", "message": "No general queries"})
    return {"current_phase": "general", "search_logs": logs, "generated_context": context}


async def _finding(doc: CandidateDocument, target: str, fetcher: ContentFetcher, max_chars: int) -> str:
    try:
        content = await fetcher.fetch(doc.url)
    except Exception as exc:
        logger.warning("finding_fetch_failed", url=doc.url, error=str(exc))
        content = ""
    content = (content or doc.text or doc.summary or "").strip()
    if not content:
        return ""
    return f"From {target}: {content[:max_chars]}"
