"""Parse JSON objects out of free-text model replies.

Models are asked for a single top-level JSON object but routinely wrap it in
prose or markdown fences. ``parse_structured_reply`` tries the reply as-is,
then the widest ``{...}`` substring, and reports an error value instead of
raising so each call site can pick its own fallback.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Generic, TypeVar

from pydantic import BaseModel, ValidationError

T = TypeVar("T", bound=BaseModel)

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)
_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


@dataclass(frozen=True)
class StructuredReply(Generic[T]):
    value: T | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.value is not None

    @classmethod
    def failure(cls, error: str) -> StructuredReply[T]:
        return cls(value=None, error=error)


def _first_error(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return str(exc)
    err = errors[0]
    loc = ".".join(str(part) for part in err.get("loc", ())) or "<root>"
    return f"{loc}: {err.get('msg', 'invalid')}"


def parse_structured_reply(raw: str | None, schema: type[T]) -> StructuredReply[T]:
    """Validate ``raw`` against ``schema``, falling back to substring extraction."""
    text = _FENCE_RE.sub("", (raw or "").strip())
    if not text:
        return StructuredReply.failure("empty reply")

    try:
        return StructuredReply(value=schema.model_validate_json(text))
    except ValidationError as exc:
        error = _first_error(exc)

    match = _OBJECT_RE.search(text)
    if match is None:
        return StructuredReply.failure(f"no JSON object found ({error})")

    try:
        return StructuredReply(value=schema.model_validate_json(match.group(0)))
    except ValidationError as exc:
        return StructuredReply.failure(_first_error(exc))
