"""Exception hierarchy for the profiling engine."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from dossier.models.schemas import ProfileCreationLog


class DossierError(Exception):
    """Base exception for all profiling engine errors."""


class LLMError(DossierError):
    """Every model in a task's fallback chain failed."""


class SearchError(DossierError):
    """A single search backend query failed (timeout, HTTP error, provider error)."""


class SearchPhaseError(DossierError):
    """A search run ended in the error state.

    Carries whatever the run produced before the failing phase so callers
    can still inspect or persist it.
    """

    def __init__(self, message: str, partial_log: ProfileCreationLog | None = None) -> None:
        super().__init__(message)
        self.partial_log = partial_log


class ScrapingError(DossierError):
    """Content fetch failure (HTTP errors, parsing issues)."""


class InvalidSubjectError(DossierError):
    """Subject input rejected before any search was issued."""


class ProfileStoreError(DossierError):
    """Neo4j profile persistence failure."""


class ProfileNotFoundError(ProfileStoreError):
    """No stored profile with the requested id."""


class SessionNotFoundError(DossierError):
    """No live or persisted session with the requested id."""
