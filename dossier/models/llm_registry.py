"""Task-to-model registry via OpenRouter.

Every LLM call site in the engine names a task; the task decides the model,
temperature and output token limit. All models are reached through OpenRouter's
OpenAI-compatible API.
"""

from __future__ import annotations

from dataclasses import dataclass

from langchain_openai import ChatOpenAI

from dossier.config import Settings
from dossier.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ModelSpec:
    slug: str
    temperature: float
    purpose: str
    max_tokens: int | None = None


MODEL_CONFIG: dict[str, ModelSpec] = {
    "validator": ModelSpec(
        slug="openai/gpt-4.1-mini",
        temperature=0.2,
        purpose="Score one candidate source against the subject description",
        max_tokens=800,
    ),
    "summarizer": ModelSpec(
        slug="openai/gpt-4.1-mini",
        temperature=0.3,
        purpose="One or two factual sentences about the winning source",
        max_tokens=200,
    ),
    "query_generator": ModelSpec(
        slug="openai/gpt-4.1",
        temperature=0.5,
        purpose="Topical general-phase queries conditioned on accumulated context",
        max_tokens=600,
    ),
    "query_optimizer": ModelSpec(
        slug="openai/gpt-4.1-mini",
        temperature=0.3,
        purpose="Rewrite iterative-mode queries for a web search engine",
        max_tokens=300,
    ),
    "context_matcher": ModelSpec(
        slug="google/gemini-2.5-flash",
        temperature=0.0,
        purpose="Strict yes/no check that a result matches the known context",
        max_tokens=50,
    ),
    "point_extractor": ModelSpec(
        slug="google/gemini-2.5-flash",
        temperature=0.3,
        purpose="Three factual points linking a result to the subject",
        max_tokens=400,
    ),
    "profile_writer": ModelSpec(
        slug="anthropic/claude-sonnet-4.6",
        temperature=0.2,
        purpose="Aliases and summary for the finished profile",
        max_tokens=1200,
    ),
}

FALLBACK_CHAINS: dict[str, list[str]] = {
    "anthropic/claude-sonnet-4.6": ["openai/gpt-4.1", "google/gemini-2.5-pro"],
    "openai/gpt-4.1": ["anthropic/claude-sonnet-4.6", "google/gemini-2.5-pro"],
    "openai/gpt-4.1-mini": ["google/gemini-2.5-flash", "anthropic/claude-sonnet-4.6"],
    "google/gemini-2.5-flash": ["openai/gpt-4.1-mini", "anthropic/claude-sonnet-4.6"],
}


class LLMRegistry:
    """Builds and caches one ChatOpenAI client per (slug, temperature, max_tokens)."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._models: dict[str, ChatOpenAI] = {}
        self._slug_cache: dict[str, ChatOpenAI] = {}
        self._call_stats: dict[str, dict] = {}

        for task_name, spec in MODEL_CONFIG.items():
            self._models[task_name] = self._build_model(spec)
            self._call_stats[task_name] = {"calls": 0, "tokens": 0}

    def _build_model(self, spec: ModelSpec) -> ChatOpenAI:
        cache_key = f"{spec.slug}:{spec.temperature}:{spec.max_tokens}"
        if cache_key in self._slug_cache:
            return self._slug_cache[cache_key]

        kwargs: dict = {
            "model": spec.slug,
            "openai_api_key": self._settings.OPENROUTER_API_KEY,
            "openai_api_base": self._settings.OPENROUTER_BASE_URL,
            "temperature": spec.temperature,
            "timeout": self._settings.LLM_TIMEOUT_SECONDS,
            "max_retries": 1,
            "default_headers": {
                "HTTP-Referer": "https://dossier.local",
                "X-Title": "Dossier",
            },
        }
        if spec.max_tokens is not None:
            kwargs["max_tokens"] = spec.max_tokens

        model = ChatOpenAI(**kwargs)
        self._slug_cache[cache_key] = model
        return model

    def get_model(self, task: str) -> ChatOpenAI:
        """Primary model assigned to a task."""
        if task not in self._models:
            raise KeyError(f"No model registered for task '{task}'")
        return self._models[task]

    def get_fallback_chain(self, task: str) -> list[ChatOpenAI]:
        """All fallback models for a task, in order."""
        spec = MODEL_CONFIG.get(task)
        if spec is None:
            return []
        return [
            self._build_model(
                ModelSpec(
                    slug=slug,
                    temperature=spec.temperature,
                    max_tokens=spec.max_tokens,
                    purpose=f"Fallback for {task}",
                )
            )
            for slug in FALLBACK_CHAINS.get(spec.slug, [])
        ]

    def record_usage(self, task: str, tokens: int) -> None:
        stats = self._call_stats.setdefault(task, {"calls": 0, "tokens": 0})
        stats["calls"] += 1
        stats["tokens"] += tokens

    @property
    def stats(self) -> dict[str, dict]:
        return {task: dict(values) for task, values in self._call_stats.items()}
