"""Short factual summaries of a phase's winning source."""

from __future__ import annotations

from pydantic import BaseModel

from dossier.agent.base import StructuredOutputAgent
from dossier.agent.prompts.summarizer import SUMMARIZER_PROMPT
from dossier.utils.text_processing import truncate_content

_PROMPT_CHARS = 1500
_FALLBACK_CHARS = 200


class _SummaryReply(BaseModel):
    summary: str


class ContentSummarizer(StructuredOutputAgent):
    task = "summarizer"

    async def summarize(self, content: str, *, subject_name: str, platform_label: str) -> str:
        """1-2 sentences; on any model problem, the first 200 characters of the content."""
        if not content.strip():
            return ""
        reply = await self._ask(
            SUMMARIZER_PROMPT.format(
                platform=platform_label,
                subject_name=subject_name,
                content=truncate_content(content, _PROMPT_CHARS),
            ),
            _SummaryReply,
        )
        if reply.ok and reply.value.summary.strip():
            return reply.value.summary.strip()
        return truncate_content(content, _FALLBACK_CHARS)
