"""Turns a finished search log into a Profile ready to persist."""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, Field

from dossier.agent.base import StructuredOutputAgent
from dossier.agent.prompts.profile_writer import PROFILE_WRITER_PROMPT
from dossier.models.schemas import Profile, ProfileCreationLog, Source, ValidationResult
from dossier.utils.logging import get_logger
from dossier.utils.text_processing import deduplicate_by, parse_name

logger = get_logger(__name__)

ALIAS_PATTERN = re.compile(r"^[a-z]+[_\-.]?[a-z]*\d*$")
_PROMPT_SOURCES = 10


class _ProfileReply(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    aliases: list[str] = Field(default_factory=list)
    profile_summary: str = Field(default="", alias="profileSummary")


def clean_aliases(candidates: list[str], name: str) -> list[str]:
    """Lowercased handles that contain the first or last name and look like a username."""
    parsed = parse_name(name)
    first, last = parsed.first.lower(), parsed.last.lower()
    cleaned = [
        alias
        for alias in (c.strip().lower().lstrip("@") for c in candidates)
        if alias and (first in alias or last in alias) and ALIAS_PATTERN.match(alias)
    ]
    return deduplicate_by(cleaned, key=lambda a: a)


def fallback_summary(name: str, sources: list[ValidationResult]) -> str:
    evidence = deduplicate_by((e for s in sources[:3] for e in s.same_person_elements), key=lambda e: e)[:3]
    summary = f"Found {len(sources)} validated source{'s' if len(sources) != 1 else ''} for {name}."
    if evidence:
        summary += f" Strongest evidence: {'; '.join(evidence)}."
    else:
        summary += f" Top source: {sources[0].url}."
    return summary


def _render_sources(sources: list[ValidationResult]) -> str:
    lines = []
    for source in sources[:_PROMPT_SOURCES]:
        evidence = "; ".join(source.same_person_elements) or source.reasoning
        lines.append(f"- {source.url} ({source.category}, score {source.relevancy_score}/10): {evidence}")
    return "\n".join(lines)


class ProfileAssembler(StructuredOutputAgent):
    task = "profile_writer"

    async def assemble(self, log: ProfileCreationLog) -> Profile:
        sources = log.final_sources
        aliases: list[str] = []
        if not sources:
            summary = f"No reliable information found for {log.subject_name} matching the provided context."
        else:
            reply = await self._ask(
                PROFILE_WRITER_PROMPT.format(
                    subject_name=log.subject_name,
                    hard_context=log.hard_context or "None",
                    soft_context=log.soft_context or "None",
                    generated_context=log.generated_context.render() or "None",
                    sources=_render_sources(sources),
                ),
                _ProfileReply,
            )
            if reply.ok and reply.value.profile_summary.strip():
                summary = reply.value.profile_summary.strip()
                aliases = clean_aliases(reply.value.aliases, log.subject_name)
            else:
                summary = fallback_summary(log.subject_name, sources)

        logger.info("profile_assembled", subject=log.subject_name, sources=len(sources), aliases=len(aliases))
        return Profile(
            name=log.subject_name,
            aliases=aliases,
            profile_summary=summary,
            sources=[Source(**source.model_dump()) for source in sources],
            hard_context=log.hard_context,
            soft_context=log.soft_context,
            generated_context=log.generated_context,
            search_logs=log.search_logs,
        )
