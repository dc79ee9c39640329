"""Best-effort page fetcher: httpx + trafilatura, BeautifulSoup as fallback."""

from __future__ import annotations

import asyncio
import random
from urllib.parse import urlparse

import httpx
import trafilatura
from bs4 import BeautifulSoup

from dossier.config import Settings
from dossier.utils.exceptions import ScrapingError
from dossier.utils.logging import get_logger
from dossier.utils.text_processing import normalize_text, truncate_content

logger = get_logger(__name__)

USER_AGENTS = [
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.4 Safari/605.1.15",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:125.0) Gecko/20100101 Firefox/125.0",
]


class ContentFetcher:
    """``fetch(url) -> str``; an empty string means "no content", never an error.

    Requests to the same domain are spaced by a politeness delay. Output is
    whitespace-normalised and capped at ``FETCH_MAX_CHARS``.
    """

    def __init__(self, settings: Settings, max_retries: int = 2) -> None:
        self._settings = settings
        self._max_retries = max_retries
        self._domain_last_request: dict[str, float] = {}

    async def fetch(self, url: str) -> str:
        try:
            text = await self._fetch_with_retries(url)
        except ScrapingError as exc:
            logger.warning("fetch_failed", url=url, error=str(exc))
            return ""
        return truncate_content(normalize_text(text), self._settings.FETCH_MAX_CHARS)

    async def _wait_for_domain(self, url: str) -> None:
        loop = asyncio.get_running_loop()
        domain = urlparse(url).netloc
        last = self._domain_last_request.get(domain)
        if last is not None:
            gap = loop.time() - last
            if gap < self._settings.FETCH_POLITENESS_DELAY_SECONDS:
                await asyncio.sleep(self._settings.FETCH_POLITENESS_DELAY_SECONDS - gap)
        self._domain_last_request[domain] = loop.time()

    async def _fetch_with_retries(self, url: str) -> str:
        await self._wait_for_domain(url)

        last_error: Exception | None = None
        for attempt in range(self._max_retries):
            try:
                async with httpx.AsyncClient(
                    timeout=self._settings.FETCH_TIMEOUT_SECONDS,
                    follow_redirects=True,
                ) as client:
                    resp = await client.get(url, headers={"User-Agent": random.choice(USER_AGENTS)})
                    resp.raise_for_status()
            except httpx.HTTPStatusError as exc:
                if exc.response.status_code in (401, 403, 404, 410, 451, 999):
                    raise ScrapingError(f"HTTP {exc.response.status_code} for {url}") from exc
                last_error = exc
            except httpx.HTTPError as exc:
                last_error = exc
            else:
                if "pdf" in resp.headers.get("content-type", ""):
                    raise ScrapingError(f"PDF content at {url} is not supported")
                text = self._extract_text(resp.text, url)
                logger.info("fetch_success", url=url, length=len(text))
                return text

            if attempt + 1 < self._max_retries:
                backoff = (2**attempt) + random.uniform(0, 1)
                logger.warning("fetch_retry", url=url, attempt=attempt + 1, backoff=round(backoff, 2))
                await asyncio.sleep(backoff)

        raise ScrapingError(f"Fetch failed after {self._max_retries} attempts: {last_error}")

    def _extract_text(self, html: str, url: str) -> str:
        text = trafilatura.extract(html, url=url, include_tables=True, include_links=False)
        if text and len(text) > 100:
            return text

        soup = BeautifulSoup(html, "html.parser")
        for tag in soup(["script", "style", "nav", "footer", "header"]):
            tag.decompose()
        main = soup.select_one("main, article, .content, #content") or soup.body or soup
        return main.get_text(separator=" ", strip=True)
