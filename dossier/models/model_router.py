"""Model router with fallback chains and LangSmith tracing."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

from langchain_core.messages import HumanMessage, SystemMessage
from langsmith import traceable

from dossier.models.llm_registry import LLMRegistry
from dossier.utils.exceptions import LLMError
from dossier.utils.logging import get_logger

if TYPE_CHECKING:
    from langchain_core.messages import BaseMessage

logger = get_logger(__name__)


def _message_text(message: object) -> str:
    content = getattr(message, "content", message)
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        # Some providers return typed content blocks.
        return "".join(
            block.get("text", "") if isinstance(block, dict) else str(block)
            for block in content
        )
    return str(content)


class ModelRouter:
    """Wraps model calls with automatic fallback and usage tracking."""

    def __init__(self, registry: LLMRegistry) -> None:
        self._registry = registry
        self._last_usage: dict[str, int] = {"tokens": 0}

    @property
    def last_usage(self) -> dict[str, int]:
        """Token data from the most recent invoke() call."""
        return dict(self._last_usage)

    @traceable(run_type="chain", name="model_router_invoke")
    async def invoke(self, task: str, messages: list[BaseMessage]) -> object:
        """Invoke the model for a task, falling back on failure.

        Raises:
            LLMError: when the primary model and every fallback failed.
        """
        primary = self._registry.get_model(task)
        fallbacks = self._registry.get_fallback_chain(task)
        all_models = [("primary", primary), *((f"fallback-{i}", fb) for i, fb in enumerate(fallbacks))]

        last_error: Exception | None = None
        for label, model in all_models:
            try:
                start = time.monotonic()
                result = await model.ainvoke(messages)
                elapsed_ms = int((time.monotonic() - start) * 1000)

                tokens = 0
                usage_meta = getattr(result, "usage_metadata", None)
                if isinstance(usage_meta, dict):
                    tokens = usage_meta.get("total_tokens", 0) or 0

                self._last_usage = {"tokens": tokens}
                self._registry.record_usage(task, tokens)

                if label != "primary":
                    logger.warning(
                        "model_fallback_used",
                        task=task,
                        label=label,
                        model=model.model_name,
                        elapsed_ms=elapsed_ms,
                    )
                else:
                    logger.debug(
                        "model_invoked",
                        task=task,
                        model=model.model_name,
                        tokens=tokens,
                        elapsed_ms=elapsed_ms,
                    )
                return result

            except Exception as exc:
                last_error = exc
                self._last_usage = {"tokens": 0}
                logger.error(
                    "model_invoke_failed",
                    task=task,
                    label=label,
                    model=model.model_name,
                    error=str(exc),
                )

        raise LLMError(f"All models failed for task '{task}': {last_error}") from last_error

    async def complete(self, task: str, system_prompt: str, user_prompt: str) -> str:
        """Plain text-in/text-out call; temperature and max tokens come from the task's ModelSpec."""
        result = await self.invoke(
            task,
            [SystemMessage(content=system_prompt), HumanMessage(content=user_prompt)],
        )
        return _message_text(result)
