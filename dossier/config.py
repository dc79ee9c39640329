from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # OpenRouter
    OPENROUTER_API_KEY: str
    OPENROUTER_BASE_URL: str = "https://openrouter.ai/api/v1"
    LLM_TIMEOUT_SECONDS: float = 60.0

    # Tavily
    TAVILY_API_KEY: str

    # Neo4j
    NEO4J_URI: str = "bolt://neo4j:7687"
    NEO4J_USER: str = "neo4j"
    NEO4J_PASSWORD: str = "dossier_dev"

    # Redis
    REDIS_URL: str = "redis://redis:6379/0"

    # LangSmith
    LANGSMITH_API_KEY: str = ""
    LANGSMITH_PROJECT: str = "dossier"
    LANGCHAIN_TRACING_V2: bool = True

    # Search
    MAX_RESULTS_PER_QUERY: int = 10
    REVAMPED_RESULTS_PER_QUERY: int = 20
    RATE_LIMIT_SEARCHES_PER_MIN: int = 20
    SEARCH_TIMEOUT_SECONDS: float = 30.0
    SEARCH_ATTEMPT_DELAY_SECONDS: float = 1.0
    LINKEDIN_TARGET_PROFILES: int = 5

    # Validation
    VALIDATION_BATCH_SIZE: int = Field(default=3, ge=1)
    VALIDATION_BATCH_DELAY_SECONDS: float = 1.0
    VALIDATION_TEXT_CHARS: int = 1000
    QUALIFYING_SCORE: int = Field(default=6, ge=1, le=10)
    PROFILE_QUALIFYING_SCORE: int = Field(default=5, ge=1, le=10)

    # Phases
    SEARCH_MODE: Literal["legacy", "revamped"] = "legacy"
    GENERAL_QUERY_COUNT: int = 5
    GENERAL_TOP_K: int = 2
    GENERAL_QUERY_DELAY_SECONDS: float = 1.0
    FINDING_CHARS: int = 200

    # Revamped mode
    REVAMPED_MIN_ROUNDS: int = Field(default=3, ge=1)
    REVAMPED_CONFIDENCE_THRESHOLD: float = 0.6
    QUERY_OPTIMIZE_DELAY_SECONDS: float = 0.5
    REVAMPED_ROUND_DELAY_SECONDS: float = 2.0

    # Content fetch
    FETCH_TIMEOUT_SECONDS: float = 20.0
    FETCH_MAX_CHARS: int = 5000
    FETCH_POLITENESS_DELAY_SECONDS: float = 2.0

    # Sessions
    SESSION_COMPLETION_GRACE_SECONDS: float = 5.0
    SESSION_MEMORY_RETENTION_SECONDS: int = 1800
    SESSION_PERSISTED_RETENTION_SECONDS: int = 86400
    SESSION_SWEEP_INTERVAL_SECONDS: int = 300
    SSE_HEARTBEAT_SECONDS: float = 15.0

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = Field(default="json", description="'json' for production, 'console' for dev")


def get_settings() -> Settings:
    return Settings()
