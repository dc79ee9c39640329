"""Base for LLM-backed components.

StructuredOutputAgent asks a model for one JSON object and parses it with
``parse_structured_reply``.
"""

from __future__ import annotations

from typing import Any, TypeVar

from pydantic import BaseModel

from dossier.utils.exceptions import LLMError
from dossier.utils.logging import get_logger
from dossier.utils.structured_reply import StructuredReply, parse_structured_reply

logger = get_logger(__name__)

T = TypeVar("T", bound=BaseModel)

JSON_ONLY_SYSTEM_PROMPT = "You are an OSINT analyst. Respond with ONLY valid JSON. No other text."


class StructuredOutputAgent:
    """Base for components that call ``router.complete`` and expect JSON back."""

    task: str = ""
    system_prompt: str = JSON_ONLY_SYSTEM_PROMPT

    def __init__(self, *, router: Any, settings: Any) -> None:
        self._router = router
        self._settings = settings

    async def _ask(
        self,
        user_prompt: str,
        schema: type[T],
        *,
        system_prompt: str | None = None,
        task: str | None = None,
    ) -> StructuredReply[T]:
        """One model call, parsed. Model failures come back as an error value, not an exception."""
        task = task or self.task
        try:
            raw = await self._router.complete(task, system_prompt or self.system_prompt, user_prompt)
        except LLMError as exc:
            logger.warning("llm_call_failed", task=task, error=str(exc))
            return StructuredReply.failure(str(exc))

        reply = parse_structured_reply(raw, schema)
        if not reply.ok:
            logger.warning("llm_reply_unparseable", task=task, error=reply.error, preview=(raw or "")[:200])
        return reply
