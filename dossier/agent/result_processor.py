"""Three-stage pipeline used by the iterative search mode.

1. name check: every name word longer than two characters appears in the text
2. context match: strict yes/no from the model
3. point extraction: three factual points linking the text to the subject

Results that pass all three get a confidence score in [0, 1].
"""

from __future__ import annotations

from collections.abc import Sequence

from pydantic import BaseModel

from dossier.agent.base import StructuredOutputAgent
from dossier.agent.categorize import classify_url
from dossier.agent.prompts.result_processor import (
    CONTEXT_MATCH_PROMPT,
    CONTEXT_MATCH_SYSTEM_PROMPT,
    POINT_EXTRACTION_PROMPT,
)
from dossier.models.schemas import CandidateDocument, ConfidenceTier, ProcessedResult, Subject, ValidationResult
from dossier.utils.logging import get_logger
from dossier.utils.text_processing import deduplicate_by, has_name_match, truncate_content

logger = get_logger(__name__)

POINTS_PER_RESULT = 3


class _MatchReply(BaseModel):
    match: bool


class _PointsReply(BaseModel):
    points: list[str]


def calculate_confidence(doc: CandidateDocument, point_count: int) -> float:
    """Provider score, text and summary sufficiency, and point count, capped at 1.0."""
    score = min(max(doc.score or 0.0, 0.0), 1.0)
    confidence = score * 0.3
    if doc.text and len(doc.text) > 100:
        confidence += 0.2
    if doc.summary and len(doc.summary) > 50:
        confidence += 0.2
    confidence += min(point_count * 0.1, 0.3)
    return min(confidence, 1.0)


def unique_points(results: Sequence[ProcessedResult]) -> list[str]:
    return deduplicate_by((p for r in results for p in r.context_points), key=lambda p: p)


def build_context_digest(results: Sequence[ProcessedResult]) -> str:
    """Readable digest of everything accumulated so far; '' when nothing passed."""
    if not results:
        return ""
    lines = [f"COMPREHENSIVE CONTEXT SUMMARY ({len(results)} sources analyzed):", "", "KEY FINDINGS:"]
    lines.extend(f"{i}. {point}" for i, point in enumerate(unique_points(results), start=1))
    lines.extend(["", "DETAILED SOURCE BREAKDOWN:"])
    for i, result in enumerate(results, start=1):
        lines.append(f"\nSource {i}: {result.document.url}")
        lines.append(f"Confidence: {result.confidence * 100:.1f}%")
        lines.append("Context Points:")
        lines.extend(f"  • {point}" for point in result.context_points)
    return "\n".join(lines)


def confidence_tier(confidence: float) -> ConfidenceTier:
    if confidence > 0.8:
        return "high"
    if confidence > 0.6:
        return "medium"
    return "low"


def to_validation_result(result: ProcessedResult) -> ValidationResult:
    """Express a pipeline result in the shape the rest of the system stores."""
    return ValidationResult(
        url=result.document.url,
        relevancy_score=max(1, min(10, round(result.confidence * 10))),
        is_likely_match=True,
        confidence=confidence_tier(result.confidence),
        reasoning=f"Passed name, context and point extraction checks (confidence {result.confidence:.2f})",
        same_person_elements=list(result.context_points),
        category=classify_url(result.document.url),
    )


def select_confident(results: Sequence[ProcessedResult], threshold: float) -> list[ProcessedResult]:
    """Results above ``threshold``, unique by URL, confidence descending."""
    ranked = sorted((r for r in results if r.confidence > threshold), key=lambda r: -r.confidence)
    return deduplicate_by(ranked, key=lambda r: r.document.url)


class ResultProcessor(StructuredOutputAgent):
    """Runs candidates through the three stages; per-candidate failures are skipped."""

    task = "context_matcher"

    async def process(
        self,
        docs: Sequence[CandidateDocument],
        subject: Subject,
        context_digest: str,
    ) -> list[ProcessedResult]:
        processed: list[ProcessedResult] = []
        name_matches = context_matches = 0

        for doc in docs:
            try:
                text = doc.text or ""
                if not has_name_match(text, subject.name):
                    continue
                name_matches += 1

                if not await self._context_match(doc, subject, context_digest):
                    continue
                context_matches += 1

                points = await self._extract_points(doc, subject, context_digest)
                if not points:
                    continue

                processed.append(
                    ProcessedResult(
                        document=doc,
                        context_points=points,
                        confidence=calculate_confidence(doc, len(points)),
                    )
                )
            except Exception as exc:
                logger.warning("result_processing_failed", url=doc.url, error=str(exc))

        logger.info(
            "results_processed",
            subject=subject.name,
            candidates=len(docs),
            name_matches=name_matches,
            context_matches=context_matches,
            accepted=len(processed),
        )
        return processed

    def _prompt_fields(self, doc: CandidateDocument, subject: Subject, context_digest: str) -> dict[str, str]:
        return {
            "subject_name": subject.name,
            "hard_context": subject.hard_context or "None",
            "generated_context": context_digest or "None",
            "text": truncate_content(doc.text or "", self._settings.FETCH_MAX_CHARS),
            "summary": doc.summary or "",
        }

    async def _context_match(self, doc: CandidateDocument, subject: Subject, context_digest: str) -> bool:
        reply = await self._ask(
            CONTEXT_MATCH_PROMPT.format(**self._prompt_fields(doc, subject, context_digest)),
            _MatchReply,
            system_prompt=CONTEXT_MATCH_SYSTEM_PROMPT,
            task="context_matcher",
        )
        return bool(reply.ok and reply.value.match)

    async def _extract_points(self, doc: CandidateDocument, subject: Subject, context_digest: str) -> list[str]:
        reply = await self._ask(
            POINT_EXTRACTION_PROMPT.format(**self._prompt_fields(doc, subject, context_digest)),
            _PointsReply,
            task="point_extractor",
        )
        if not reply.ok:
            return []
        points = [p.strip().lstrip("-•").strip() for p in reply.value.points]
        return [p for p in points if p][:POINTS_PER_RESULT]
