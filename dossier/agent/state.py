"""Search run state schema for the LangGraph phase graph."""

from __future__ import annotations

from typing import Annotated, TypedDict

from dossier.models.schemas import (
    GeneratedContext,
    ProcessedResult,
    SearchLog,
    SearchMode,
    Subject,
    ValidationResult,
)


def _merge_lists(left: list, right: list) -> list:
    """Append new items to an existing list."""
    return left + right


class ProfileSearchState(TypedDict, total=False):
    """Full state schema for one subject's search run.

    Log-like fields use Annotated reducers so node outputs are appended to
    the cumulative state. ``generated_context`` is replaced wholesale: each
    node works on a deep copy and returns the updated object.
    """

    # ── Input (set once at start) ──
    subject: Subject
    mode: SearchMode
    session_id: str | None

    # ── Accumulated context ──
    generated_context: GeneratedContext
    processed_results: Annotated[list[ProcessedResult], _merge_lists]

    # ── Logs (append-only) ──
    search_logs: Annotated[list[SearchLog], _merge_lists]
    errors: Annotated[list[str], _merge_lists]

    # ── Control ──
    current_phase: str
    round: int
    total_rounds: int
    error: str | None

    # ── Output ──
    final_sources: list[ValidationResult]
