"""Request/response Pydantic models for the profiles API."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from dossier.models.schemas import LiveSearchSession, Profile, SearchLog, SearchMode


class _CamelRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SubjectIn(_CamelRequest):
    name: str = Field(..., examples=["Jane Doe"])
    hard_context: str = Field(default="", examples=["Data Scientist at Acme"])
    soft_context: str = Field(default="", examples=["Lives in Berlin"])


class CreateProfilesRequest(_CamelRequest):
    subjects: list[SubjectIn]
    session_id: str | None = None
    mode: SearchMode | None = None


class SubjectError(BaseModel):
    subject: str
    error: str
    search_logs: list[SearchLog] = Field(default_factory=list)


class CreateProfilesResponse(BaseModel):
    profiles: list[Profile] = Field(default_factory=list)
    errors: list[SubjectError] = Field(default_factory=list)


class LiveSearchStarted(BaseModel):
    session_id: str
    status: Literal["started"] = "started"


class SessionStatus(LiveSearchSession):
    source: Literal["memory", "storage"]


class SessionStopped(BaseModel):
    session_id: str
    status: Literal["stopped"] = "stopped"


class ProfileDeleted(BaseModel):
    id: str
    status: Literal["deleted"] = "deleted"
