"""Terminal nodes: final-source collection and the absorbing error state."""

from __future__ import annotations

from typing import Any

from dossier.agent.result_processor import build_context_digest, select_confident, to_validation_result
from dossier.agent.selector import QualifyingThresholds, collect_final_sources
from dossier.config import Settings
from dossier.models.schemas import SearchLog
from dossier.utils.logging import get_logger

logger = get_logger(__name__)


async def finalize_node(
    state: dict[str, Any],
    *,
    thresholds: QualifyingThresholds,
    settings: Settings,
) -> dict[str, Any]:
    """Pick the run's final sources.

    Legacy runs pool qualifying results from every SearchLog. Iterative runs
    keep processed results above the confidence threshold and fold the
    context digest into ``additional_findings``.
    """
    if state.get("mode") != "revamped":
        final_sources = collect_final_sources(state.get("search_logs", []), thresholds)
        logger.info("final_sources_collected", mode="legacy", count=len(final_sources))
        return {"current_phase": "complete", "final_sources": final_sources}

    processed = state.get("processed_results", [])
    confident = select_confident(processed, settings.REVAMPED_CONFIDENCE_THRESHOLD)
    final_sources = [to_validation_result(r) for r in confident]

    context = state["generated_context"].model_copy(deep=True)
    digest = build_context_digest(processed)
    if digest:
        context.add_finding(digest)

    summary = SearchLog(
        phase="Summary",
        query=f"{state.get('round', 0)} search rounds",
        results_found=len(processed),
        validated_results=final_sources,
        selected_url=final_sources[0].url if final_sources else None,
        context_added=digest or None,
        search_round=state.get("round", 0),
        total_rounds=state.get("total_rounds"),
    )
    logger.info("final_sources_collected", mode="revamped", processed=len(processed), count=len(final_sources))
    return {
        "current_phase": "complete",
        "final_sources": final_sources,
        "generated_context": context,
        "search_logs": [summary],
    }


async def error_node(state: dict[str, Any]) -> dict[str, Any]:
    """Absorbing state. Completed phases stay in the log; the runner reports the failure."""
    logger.error(
        "search_run_failed",
        phase=state.get("current_phase"),
        error=state.get("error"),
        completed_logs=len(state.get("search_logs", [])),
    )
    return {}
