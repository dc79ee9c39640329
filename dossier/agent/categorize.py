"""URL shape classification: profile, post, company, or other."""

from __future__ import annotations

from urllib.parse import urlparse

from dossier.models.schemas import SourceCategory

_GITHUB_RESERVED = frozenset({
    "about", "collections", "explore", "features", "login", "marketplace", "search",
    "settings", "site", "sponsors", "topics", "trending", "enterprise", "pricing",
})
_POST_SEGMENTS = frozenset({"blog", "blogs", "post", "posts", "article", "articles", "news", "story", "stories"})
_PROFILE_SEGMENTS = frozenset({"about", "about-me", "resume", "cv", "portfolio", "bio"})


def _host_and_segments(url: str) -> tuple[str, list[str]]:
    parsed = urlparse(url if "://" in url else f"https://{url}")
    host = parsed.netloc.lower().split(":")[0]
    if host.startswith("www."):
        host = host[4:]
    segments = [s for s in parsed.path.lower().split("/") if s]
    return host, segments


def _on(host: str, domain: str) -> bool:
    return host == domain or host.endswith(f".{domain}")


def is_linkedin_url(url: str) -> bool:
    host, _ = _host_and_segments(url)
    return _on(host, "linkedin.com")


def is_linkedin_profile(url: str) -> bool:
    host, segments = _host_and_segments(url)
    return _on(host, "linkedin.com") and len(segments) >= 2 and segments[0] == "in"


def classify_url(url: str) -> SourceCategory:
    """Tag a URL by its shape. Pure and deterministic."""
    host, segments = _host_and_segments(url)
    head = segments[0] if segments else ""

    if _on(host, "linkedin.com"):
        if head == "in" and len(segments) >= 2:
            return "profile"
        if head in {"company", "school", "showcase"}:
            return "company"
        if head in {"posts", "pulse", "feed"}:
            return "post"
        return "other"

    if host == "gist.github.com":
        return "post"
    if host == "github.com":
        if head == "orgs":
            return "company"
        if len(segments) == 1 and head not in _GITHUB_RESERVED:
            return "profile"
        return "other"

    if host in {"twitter.com", "x.com"}:
        if "status" in segments:
            return "post"
        return "profile" if len(segments) == 1 else "other"

    if _on(host, "medium.com") and head.startswith("@"):
        return "profile" if len(segments) == 1 else "post"

    if _on(host, "crunchbase.com"):
        if head == "organization":
            return "company"
        if head == "person":
            return "profile"
        return "other"

    if any(segment in _POST_SEGMENTS for segment in segments):
        return "post"
    if not segments or head in _PROFILE_SEGMENTS:
        return "profile"
    return "other"
