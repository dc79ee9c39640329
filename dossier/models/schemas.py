"""Pydantic models for data flowing through a search run."""

from __future__ import annotations

import math
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from dossier.utils.text_processing import ParsedName, normalize_text, parse_name

SourceCategory = Literal["profile", "post", "company", "other"]
ConfidenceTier = Literal["high", "medium", "low"]
SearchMode = Literal["legacy", "revamped"]
ProgressPhase = Literal["starting", "linkedin", "github", "website", "general", "round", "complete", "error"]
ProgressStatus = Literal["starting", "searching", "validating", "completed", "failed"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Platform(str, Enum):
    LINKEDIN = "linkedin"
    GITHUB = "github"
    WEBSITE = "website"
    GENERAL = "general"

    @property
    def label(self) -> str:
        return _PLATFORM_LABELS[self]


_PLATFORM_LABELS = {
    Platform.LINKEDIN: "LinkedIn",
    Platform.GITHUB: "GitHub",
    Platform.WEBSITE: "Website",
    Platform.GENERAL: "General",
}


# ── Input ────────────────────────────────────────────────────────────


class Subject(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    hard_context: str = ""
    soft_context: str = ""

    @field_validator("name")
    @classmethod
    def _require_first_and_last(cls, value: str) -> str:
        value = normalize_text(value)
        parse_name(value)
        return value

    @property
    def parsed_name(self) -> ParsedName:
        return parse_name(self.name)


class CandidateDocument(BaseModel):
    """One search hit as returned by the search backend."""

    url: str
    title: str = ""
    text: str | None = None
    summary: str | None = None
    score: float | None = None


# ── Validation ───────────────────────────────────────────────────────


class ValidationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str
    relevancy_score: int = Field(ge=1, le=10)
    is_likely_match: bool = False
    confidence: ConfidenceTier = "low"
    reasoning: str = ""
    same_person_elements: list[str] = Field(default_factory=list)
    different_person_elements: list[str] = Field(default_factory=list)
    category: SourceCategory = "other"

    @field_validator("relevancy_score", mode="before")
    @classmethod
    def _clamp_score(cls, value: object) -> int:
        try:
            score = float(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return 1
        if math.isnan(score):
            return 1
        return max(1, min(10, int(round(score))))

    @property
    def evidence_count(self) -> int:
        return len(self.same_person_elements)

    @classmethod
    def fail_safe(
        cls,
        url: str,
        reasoning: str,
        *,
        category: SourceCategory = "other",
        different_person_elements: list[str] | None = None,
    ) -> ValidationResult:
        """The verdict used whenever a candidate cannot be scored."""
        return cls(
            url=url,
            relevancy_score=1,
            is_likely_match=False,
            confidence="low",
            reasoning=reasoning,
            same_person_elements=[],
            different_person_elements=different_person_elements or [],
            category=category,
        )


# ── Accumulated context ─────────────────────────────────────────────


class GeneratedContext(BaseModel):
    """Facts learned during the run, phase over phase.

    Platform fields are written once per phase; ``additional_findings`` only
    ever grows.
    """

    linkedin_data: str | None = None
    github_data: str | None = None
    website_data: str | None = None
    additional_findings: list[str] = Field(default_factory=list)

    def record_platform(self, platform: Platform, summary: str) -> None:
        if platform is Platform.LINKEDIN:
            self.linkedin_data = summary
        elif platform is Platform.GITHUB:
            self.github_data = summary
        elif platform is Platform.WEBSITE:
            self.website_data = summary
        else:
            raise ValueError(f"{platform.value} has no dedicated context field")

    def add_finding(self, finding: str) -> None:
        self.additional_findings.append(finding)

    def is_empty(self) -> bool:
        return not (self.linkedin_data or self.github_data or self.website_data or self.additional_findings)

    def render(self) -> str:
        """Single-line rendering used inside prompts."""
        parts: list[str] = []
        if self.linkedin_data:
            parts.append(f"LinkedIn: {self.linkedin_data}")
        if self.github_data:
            parts.append(f"GitHub: {self.github_data}")
        if self.website_data:
            parts.append(f"Website: {self.website_data}")
        if self.additional_findings:
            parts.append(f"Additional: {'; '.join(self.additional_findings)}")
        return " | ".join(parts)


# ── Run logs ─────────────────────────────────────────────────────────


class SearchLog(BaseModel):
    phase: str
    query: str
    results_found: int = 0
    validated_results: list[ValidationResult] = Field(default_factory=list)
    selected_url: str | None = None
    context_added: str | None = None
    timestamp: datetime = Field(default_factory=utcnow)
    search_round: int | None = None
    total_rounds: int | None = None


class ProfileCreationLog(BaseModel):
    subject_name: str
    hard_context: str = ""
    soft_context: str = ""
    generated_context: GeneratedContext = Field(default_factory=GeneratedContext)
    search_logs: list[SearchLog] = Field(default_factory=list)
    final_sources: list[ValidationResult] = Field(default_factory=list)


class ProcessedResult(BaseModel):
    """A candidate that passed every stage of the iterative pipeline."""

    document: CandidateDocument
    context_points: list[str]
    confidence: float = Field(ge=0.0, le=1.0)
    processed_at: datetime = Field(default_factory=utcnow)


# ── Persisted profile ───────────────────────────────────────────────


class Source(ValidationResult):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))


class Profile(BaseModel):
    id: str | None = None
    name: str
    aliases: list[str] = Field(default_factory=list)
    profile_summary: str = ""
    sources: list[Source] = Field(default_factory=list)
    hard_context: str = ""
    soft_context: str = ""
    generated_context: GeneratedContext = Field(default_factory=GeneratedContext)
    search_logs: list[SearchLog] = Field(default_factory=list)
    created_at: datetime | None = None


# ── Live sessions ────────────────────────────────────────────────────


class ProgressUpdate(BaseModel):
    session_id: str
    subject_name: str = ""
    phase: ProgressPhase
    status: ProgressStatus
    message: str = ""
    progress: float = 0.0
    round_number: int | None = None
    total_rounds: int | None = None
    search_log: SearchLog | None = None
    timestamp: datetime = Field(default_factory=utcnow)


class PartialProfile(BaseModel):
    name: str
    search_logs: list[SearchLog] = Field(default_factory=list)


class LiveSearchSession(BaseModel):
    session_id: str
    subject_name: str
    start_time: datetime = Field(default_factory=utcnow)
    last_update: datetime = Field(default_factory=utcnow)
    current_phase: ProgressPhase = "starting"
    progress: float = Field(default=0.0, ge=0.0, le=100.0)
    errors: list[str] = Field(default_factory=list)
    is_active: bool = True
    is_complete: bool = False
    partial_profile: PartialProfile | None = None
    final_profile: Profile | None = None
