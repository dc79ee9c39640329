"""One round of the iterative search mode."""

from __future__ import annotations

import asyncio
from typing import Any

from langgraph.config import get_stream_writer

from dossier.agent.query_generator import QueryOptimizer, round_queries
from dossier.agent.result_processor import (
    ResultProcessor,
    build_context_digest,
    to_validation_result,
    unique_points,
)
from dossier.agent.tools.search_provider import SearchProvider
from dossier.config import Settings
from dossier.models.schemas import SearchLog
from dossier.utils.logging import get_logger

logger = get_logger(__name__)


async def revamped_round_node(
    state: dict[str, Any],
    *,
    search: SearchProvider,
    optimizer: QueryOptimizer,
    processor: ResultProcessor,
    settings: Settings,
) -> dict[str, Any]:
    """Generate, optimize and run queries, then keep results that pass all three checks."""
    writer = get_stream_writer()
    subject = state["subject"]
    round_number = state.get("round", 0) + 1
    total = state.get("total_rounds", settings.REVAMPED_MIN_ROUNDS)
    progress = {"phase": "round", "round": round_number, "rounds": total}

    if round_number > 1:
        await asyncio.sleep(settings.REVAMPED_ROUND_DELAY_SECONDS)

    previous = state.get("processed_results", [])
    writer({**progress, "status": "searching", "message": f"Round {round_number}/{total}: building queries"})
    queries = await optimizer.optimize_all(round_queries(subject, unique_points(previous)), subject)

    try:
        docs = await search.search_many([q.query for q in queries], result_count=settings.REVAMPED_RESULTS_PER_QUERY)
    except Exception as exc:
        message = f"Round {round_number} search failed: {exc}"
        logger.error("round_search_failed", round=round_number, error=str(exc), exc_type=type(exc).__name__)
        writer({**progress, "status": "failed", "message": message})
        return {"current_phase": "round", "round": round_number, "error": message, "errors": [message]}

    seen = {r.document.url for r in previous}
    fresh = [d for d in docs if d.url not in seen]
    writer({**progress, "status": "validating", "message": f"Round {round_number}/{total}: checking {len(fresh)} results"})
    accepted = await processor.process(fresh, subject, build_context_digest(previous))

    new_points = unique_points(accepted)
    log = SearchLog(
        phase=f"Round {round_number}",
        query=" | ".join(q.query for q in queries),
        results_found=len(docs),
        validated_results=[to_validation_result(r) for r in accepted],
        selected_url=accepted[0].document.url if accepted else None,
        context_added="; ".join(new_points) or None,
        search_round=round_number,
        total_rounds=total,
    )
    logger.info("round_completed", round=round_number, results_found=len(docs), accepted=len(accepted))
    writer({**progress, "status": "completed", "message": f"Round {round_number}/{total} complete", "search_log": log})
    return {
        "current_phase": "round",
        "round": round_number,
        "processed_results": accepted,
        "search_logs": [log],
    }
