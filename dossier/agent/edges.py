"""Transition table and conditional edge routing for the phase graph.

Legacy mode is a fixed chain; any phase that sets ``error`` moves the run to
the absorbing ``error`` node instead. Iterative mode loops one round node
until the configured minimum number of rounds has run.
"""

from __future__ import annotations

from typing import Any

PHASE_ORDER: tuple[str, ...] = ("linkedin", "github", "website", "general")

NEXT_PHASE: dict[str, str] = {
    "linkedin": "github",
    "github": "website",
    "website": "general",
    "general": "finalize",
}


def route_after_phase(state: dict[str, Any]) -> str:
    """Route a finished legacy phase to its successor, or to ``error``."""
    if state.get("error"):
        return "error"
    return NEXT_PHASE[state["current_phase"]]


def route_after_round(state: dict[str, Any]) -> str:
    """Loop the round node until ``total_rounds`` rounds have completed."""
    if state.get("error"):
        return "error"
    if state.get("round", 0) < state.get("total_rounds", 0):
        return "revamped_round"
    return "finalize"
