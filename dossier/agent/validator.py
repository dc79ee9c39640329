"""Source validator: name pre-check, then an LLM scoring pass.

``SourceValidator.validate`` never raises. Anything that goes wrong for a
single candidate (unparseable reply, model outage, unexpected error) comes
back as the fail-safe verdict: score 1, low confidence, not a match.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator

from dossier.agent.base import StructuredOutputAgent
from dossier.agent.categorize import classify_url
from dossier.agent.prompts.validator import VALIDATOR_PROMPT
from dossier.models.schemas import (
    CandidateDocument,
    GeneratedContext,
    Platform,
    SourceCategory,
    Subject,
    ValidationResult,
)
from dossier.utils.logging import get_logger
from dossier.utils.text_processing import ParsedName, truncate_content

logger = get_logger(__name__)


class _ValidationReply(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    relevancy_score: float = Field(alias="relevancyScore")
    is_likely_match: bool = Field(default=False, alias="isLikelyMatch")
    confidence: str = "low"
    reasoning: str = ""
    same_person_elements: list[str] = Field(default_factory=list, alias="samePersonElements")
    different_person_elements: list[str] = Field(default_factory=list, alias="differentPersonElements")

    @field_validator("confidence", mode="before")
    @classmethod
    def _tier(cls, value: object) -> str:
        tier = str(value or "").strip().lower()
        return tier if tier in {"high", "medium", "low"} else "low"


def name_check(
    doc: CandidateDocument,
    name: ParsedName,
    category: SourceCategory,
    platform: Platform,
) -> list[str]:
    """Return the reasons the document fails the name pre-check (empty list = pass).

    LinkedIn profile pages pass with either name token, other profile-shaped
    pages need the last name, everything else needs both.
    """
    haystack = f"{doc.title} {doc.text or ''}".lower()
    first, last = name.first.lower(), name.last.lower()
    has_first, has_last = first in haystack, last in haystack

    if category == "profile" and platform is Platform.LINKEDIN:
        passed = has_first or has_last
    elif category == "profile":
        passed = has_last
    else:
        passed = has_first and has_last
    if passed:
        return []

    missing: list[str] = []
    if not has_first:
        missing.append(f'First name "{first}" not found')
    if not has_last:
        missing.append(f'Last name "{last}" not found')
    return missing


class SourceValidator(StructuredOutputAgent):
    """Scores candidate documents against a subject description."""

    task = "validator"

    async def validate(
        self,
        doc: CandidateDocument,
        subject: Subject,
        generated_context: GeneratedContext,
        platform: Platform = Platform.GENERAL,
    ) -> ValidationResult:
        category = classify_url(doc.url)
        try:
            missing = name_check(doc, subject.parsed_name, category, platform)
            if missing:
                logger.debug("name_check_failed", url=doc.url, missing=missing)
                return ValidationResult.fail_safe(
                    doc.url,
                    "Name check failed: subject name not present in source",
                    category=category,
                    different_person_elements=missing,
                )

            prompt = VALIDATOR_PROMPT.format(
                subject_name=subject.name,
                hard_context=subject.hard_context or "None",
                soft_context=subject.soft_context or "None",
                generated_context=generated_context.render() or "None",
                url=doc.url,
                title=doc.title or "Untitled",
                content=truncate_content(doc.text or doc.summary or "", self._settings.VALIDATION_TEXT_CHARS)
                or "No content",
            )
            reply = await self._ask(prompt, _ValidationReply)
            if not reply.ok:
                return ValidationResult.fail_safe(doc.url, f"Validation failed: {reply.error}", category=category)

            verdict = reply.value
            return ValidationResult(
                url=doc.url,
                relevancy_score=verdict.relevancy_score,
                is_likely_match=verdict.is_likely_match,
                confidence=verdict.confidence,
                reasoning=verdict.reasoning,
                same_person_elements=verdict.same_person_elements,
                different_person_elements=verdict.different_person_elements,
                category=category,
            )
        except Exception as exc:
            logger.warning("validation_failed", url=doc.url, error=str(exc), exc_type=type(exc).__name__)
            return ValidationResult.fail_safe(doc.url, f"Validation failed: {exc}", category=category)

    async def validate_batch(
        self,
        docs: Sequence[CandidateDocument],
        subject: Subject,
        generated_context: GeneratedContext,
        platform: Platform = Platform.GENERAL,
    ) -> list[ValidationResult]:
        """Validate in fixed-size concurrent batches with a pause between batches. Input order is kept."""
        size = self._settings.VALIDATION_BATCH_SIZE
        results: list[ValidationResult] = []
        for start in range(0, len(docs), size):
            if start:
                await asyncio.sleep(self._settings.VALIDATION_BATCH_DELAY_SECONDS)
            batch = docs[start : start + size]
            results.extend(
                await asyncio.gather(
                    *(self.validate(doc, subject, generated_context, platform) for doc in batch)
                )
            )
        return results
