"""Best-candidate selection and final-source collection.

Everything here is pure: the same input list always produces the same
output, and ties keep their input order (``sorted`` is stable).
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from dossier.config import Settings
from dossier.models.schemas import SearchLog, ValidationResult
from dossier.utils.text_processing import deduplicate_by

CONFIDENCE_RANK: dict[str, int] = {"high": 3, "medium": 2, "low": 1}


@dataclass(frozen=True)
class QualifyingThresholds:
    """Minimum relevancy score per category. Profile pages get their own bar."""

    default: int = 6
    profile: int = 5

    @classmethod
    def from_settings(cls, settings: Settings) -> QualifyingThresholds:
        return cls(default=settings.QUALIFYING_SCORE, profile=settings.PROFILE_QUALIFYING_SCORE)

    def for_result(self, result: ValidationResult) -> int:
        return self.profile if result.category == "profile" else self.default


DEFAULT_THRESHOLDS = QualifyingThresholds()


def qualifies(result: ValidationResult, thresholds: QualifyingThresholds = DEFAULT_THRESHOLDS) -> bool:
    return result.is_likely_match and result.relevancy_score >= thresholds.for_result(result)


def _rank_key(result: ValidationResult) -> tuple[int, int, int, int]:
    return (
        0 if result.category == "profile" else 1,
        -result.relevancy_score,
        -CONFIDENCE_RANK.get(result.confidence, 0),
        -result.evidence_count,
    )


def rank_qualifying(
    results: Iterable[ValidationResult],
    thresholds: QualifyingThresholds = DEFAULT_THRESHOLDS,
) -> list[ValidationResult]:
    """Qualifying results, best first: profile shape, score, confidence tier, evidence."""
    return sorted((r for r in results if qualifies(r, thresholds)), key=_rank_key)


def select_best(
    results: Sequence[ValidationResult],
    thresholds: QualifyingThresholds = DEFAULT_THRESHOLDS,
) -> ValidationResult | None:
    """The winning source for one phase, or None when nothing qualifies."""
    ranked = rank_qualifying(results, thresholds)
    return ranked[0] if ranked else None


def collect_final_sources(
    search_logs: Iterable[SearchLog],
    thresholds: QualifyingThresholds = DEFAULT_THRESHOLDS,
) -> list[ValidationResult]:
    """Qualifying results across every phase, unique by URL, score descending."""
    pool = [
        result
        for log in search_logs
        for result in log.validated_results
        if qualifies(result, thresholds)
    ]
    by_score = sorted(pool, key=lambda r: -r.relevancy_score)
    return deduplicate_by(by_score, key=lambda r: r.url)
