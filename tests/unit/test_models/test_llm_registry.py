"""Unit tests for the LLM registry."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from dossier.models.llm_registry import FALLBACK_CHAINS, MODEL_CONFIG, LLMRegistry


def test_registry_creates_all_models(settings):
    with patch("dossier.models.llm_registry.ChatOpenAI") as MockChat:
        registry = LLMRegistry(settings)

        for task in MODEL_CONFIG:
            assert registry.get_model(task) is not None
        kwargs = MockChat.call_args.kwargs
        assert kwargs["openai_api_key"] == "test-key"
        assert kwargs["openai_api_base"] == settings.OPENROUTER_BASE_URL


def test_fallback_chain_keeps_task_parameters(settings):
    with patch("dossier.models.llm_registry.ChatOpenAI", side_effect=lambda **kw: MagicMock(**kw)):
        registry = LLMRegistry(settings)

        chain = registry.get_fallback_chain("validator")
        assert registry.get_fallback_chain("validator") == chain
        assert [m.model for m in chain] == FALLBACK_CHAINS[MODEL_CONFIG["validator"].slug]
        assert all(m.temperature == MODEL_CONFIG["validator"].temperature for m in chain)


def test_registry_raises_for_unknown_task(settings):
    with patch("dossier.models.llm_registry.ChatOpenAI"):
        registry = LLMRegistry(settings)

        with pytest.raises(KeyError, match="nonexistent"):
            registry.get_model("nonexistent")
        assert registry.get_fallback_chain("nonexistent") == []


def test_registry_tracks_usage(settings):
    with patch("dossier.models.llm_registry.ChatOpenAI"):
        registry = LLMRegistry(settings)
        registry.record_usage("validator", 100)
        registry.record_usage("validator", 50)

        assert registry.stats["validator"] == {"calls": 2, "tokens": 150}
        assert registry.stats["summarizer"] == {"calls": 0, "tokens": 0}


def test_models_use_llm_timeout_not_search_timeout(settings):
    settings = settings.model_copy(update={"LLM_TIMEOUT_SECONDS": 75.0, "SEARCH_TIMEOUT_SECONDS": 5.0})
    with patch("dossier.models.llm_registry.ChatOpenAI") as MockChat:
        LLMRegistry(settings)

        assert all(call.kwargs["timeout"] == 75.0 for call in MockChat.call_args_list)
