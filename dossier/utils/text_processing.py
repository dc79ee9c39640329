"""Text cleaning, name parsing, and deduplication helpers."""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from typing import Any, Callable, Iterable, TypeVar

T = TypeVar("T")


def normalize_text(text: str) -> str:
    """Normalize unicode, collapse whitespace, strip."""
    text = unicodedata.normalize("NFKC", text)
    text = re.sub(r"\s+", " ", text)
    return text.strip()


def truncate_content(text: str, max_chars: int) -> str:
    """Plain prefix cut; prompts and findings must stay within a fixed size."""
    if len(text) <= max_chars:
        return text
    return text[:max_chars]


@dataclass(frozen=True)
class ParsedName:
    first: str
    last: str
    middle: tuple[str, ...] = ()

    @property
    def tokens(self) -> tuple[str, ...]:
        return (self.first, *self.middle, self.last)


def parse_name(name: str) -> ParsedName:
    """Split a full name into first, middle and last tokens.

    Raises ValueError when fewer than two whitespace-separated tokens exist.
    """
    parts = normalize_text(name).split(" ") if name else []
    parts = [p for p in parts if p]
    if len(parts) < 2:
        raise ValueError(f"Name must contain at least a first and last name: {name!r}")
    return ParsedName(first=parts[0], last=parts[-1], middle=tuple(parts[1:-1]))


def has_name_match(text: str, name: str) -> bool:
    """True when every name word longer than two characters appears in text."""
    words = [w for w in name.lower().split() if len(w) > 2]
    lowered = text.lower()
    return all(word in lowered for word in words)


def deduplicate_by(items: Iterable[T], key: Callable[[T], Any]) -> list[T]:
    """Keep the first item for each key, preserving order. Blank keys are dropped."""
    seen: set[Any] = set()
    result: list[T] = []
    for item in items:
        k = key(item)
        if isinstance(k, str):
            k = k.strip().lower()
        if not k or k in seen:
            continue
        seen.add(k)
        result.append(item)
    return result
