"""LinkedIn, GitHub and Website phases: search, validate, select, summarize."""

from __future__ import annotations

from typing import Any

from langgraph.config import get_stream_writer

from dossier.agent.selector import QualifyingThresholds, select_best
from dossier.agent.summarizer import ContentSummarizer
from dossier.agent.tools.search_provider import SearchProvider
from dossier.agent.tools.web_scrape import ContentFetcher
from dossier.agent.validator import SourceValidator
from dossier.models.schemas import CandidateDocument, Platform, SearchLog
from dossier.utils.logging import get_logger

logger = get_logger(__name__)


async def platform_phase_node(
    state: dict[str, Any],
    *,
    platform: Platform,
    search: SearchProvider,
    validator: SourceValidator,
    summarizer: ContentSummarizer,
    fetcher: ContentFetcher,
    thresholds: QualifyingThresholds,
) -> dict[str, Any]:
    """Run one platform phase and append exactly one SearchLog."""
    writer = get_stream_writer()
    phase = platform.value
    subject = state["subject"]
    writer({"phase": phase, "status": "searching", "message": f"Searching {platform.label} for {subject.name}"})

    try:
        docs = await search.search(subject.name, platform)
    except Exception as exc:
        message = f"{platform.label} search failed: {exc}"
        logger.error("phase_search_failed", phase=platform.label, error=str(exc), exc_type=type(exc).__name__)
        writer({"phase": phase, "status": "failed", "message": message})
        return {"current_phase": phase, "error": message, "errors": [message]}

    if not docs:
        log = SearchLog(phase=platform.label, query=subject.name, results_found=0)
        logger.info("phase_completed", phase=platform.label, results_found=0)
        writer({"phase": phase, "status": "completed", "message": f"No {platform.label} results", "search_log": log})
        return {"current_phase": phase, "search_logs": [log]}

    writer({"phase": phase, "status": "validating", "message": f"Validating {len(docs)} {platform.label} results"})
    context = state["generated_context"].model_copy(deep=True)
    validated = await validator.validate_batch(docs, subject, context, platform)
    winner = select_best(validated, thresholds)

    context_added: str | None = None
    if winner is not None:
        doc = next(d for d in docs if d.url == winner.url)
        context_added = await _summarize_winner(doc, subject.name, platform, fetcher, summarizer) or None
        if context_added:
            context.record_platform(platform, context_added)

    log = SearchLog(
        phase=platform.label,
        query=subject.name,
        results_found=len(docs),
        validated_results=validated,
        selected_url=winner.url if winner else None,
        context_added=context_added,
    )
    logger.info(
        "phase_completed",
        phase=platform.label,
        results_found=len(docs),
        selected_url=log.selected_url,
    )
    writer({"phase": phase, "status": "completed", "message": f"{platform.label} phase complete", "search_log": log})
    return {"current_phase": phase, "search_logs": [log], "generated_context": context}


async def _summarize_winner(
    doc: CandidateDocument,
    subject_name: str,
    platform: Platform,
    fetcher: ContentFetcher,
    summarizer: ContentSummarizer,
) -> str:
    snippet = doc.text or doc.summary or ""
    try:
        content = await fetcher.fetch(doc.url) or snippet
        return await summarizer.summarize(content, subject_name=subject_name, platform_label=platform.label)
    except Exception as exc:
        logger.warning("winner_summary_failed", url=doc.url, error=str(exc))
        return snippet[:200]
