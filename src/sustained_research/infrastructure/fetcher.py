"""Content-fetching collaborator.

``ContentFetcher`` is the opaque "search for sources / fetch URL to text"
capability used by the discovery pipeline.  ``FirecrawlFetcher`` speaks to a
Firecrawl-compatible HTTP API with ``httpx``:

* ``POST {base_url}/v1/search``  ->  candidate hits for a query
* ``POST {base_url}/v1/scrape``  ->  markdown content of one URL

Rate-limit responses (HTTP 429) are retried with exponential backoff; every
other failure surfaces as :class:`FetchError`.
"""

from __future__ import annotations

import json
import logging
import time
from abc import ABC, abstractmethod
from typing import Any

import httpx

from sustained_research.domain.exceptions import FetchError
from sustained_research.domain.values import SearchHit

logger = logging.getLogger(__name__)


class ContentFetcher(ABC):
    """Finds candidate sources and retrieves their text."""

    @abstractmethod
    def search(self, term: str, limit: int = 5) -> list[SearchHit]:
        """Return up to *limit* candidate sources for *term*.

        Raises
        ------
        FetchError
            If the search backend cannot be reached or answers with an error.
        """

    @abstractmethod
    def fetch(self, url: str) -> str | None:
        """Return the text content at *url*, or ``None`` if there is none.

        Raises
        ------
        FetchError
            If the content backend cannot be reached or answers with an error.
        """


class FirecrawlFetcher(ContentFetcher):
    """HTTP fetcher for a Firecrawl-compatible API.

    Parameters
    ----------
    api_key:
        Sent as ``Authorization: Bearer``.
    base_url:
        API root, without the ``/v1`` suffix.
    timeout:
        Per-request timeout in seconds.
    max_retries:
        Retries on HTTP 429.
    base_retry_delay:
        Base delay for exponential backoff between retries.
    client:
        Optional pre-built ``httpx.Client`` (tests pass one with a
        ``MockTransport``).
    """

    def __init__(
        self,
        api_key: str = "",
        base_url: str = "https://api.firecrawl.dev",
        timeout: float = 15.0,
        max_retries: int = 2,
        base_retry_delay: float = 1.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._max_retries = max_retries
        self._base_retry_delay = base_retry_delay
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self._client = client or httpx.Client(timeout=httpx.Timeout(timeout), headers=headers)

    def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{self._base_url}{path}"
        for attempt in range(self._max_retries + 1):
            try:
                response = self._client.post(url, json=payload)
            except httpx.TimeoutException as exc:
                raise FetchError(f"request to {url} timed out: {exc}", url=url) from exc
            except httpx.HTTPError as exc:
                raise FetchError(f"request to {url} failed: {exc}", url=url) from exc

            if response.status_code == 429:
                delay = self._base_retry_delay * (2 ** attempt)
                logger.warning(
                    "FirecrawlFetcher: rate limited (attempt %d/%d), retrying in %.1fs",
                    attempt + 1,
                    self._max_retries + 1,
                    delay,
                )
                if attempt < self._max_retries:
                    time.sleep(delay)
                continue

            if response.status_code >= 400:
                raise FetchError(
                    f"HTTP {response.status_code} from {url}: {response.text[:200]}",
                    url=url,
                    details={"status_code": response.status_code},
                )

            try:
                return response.json()
            except json.JSONDecodeError as exc:
                raise FetchError(f"invalid JSON from {url}: {exc}", url=url) from exc

        raise FetchError(f"rate limit exceeded after {self._max_retries + 1} attempts", url=url)

    def search(self, term: str, limit: int = 5) -> list[SearchHit]:
        body = self._post("/v1/search", {"query": term, "limit": limit})
        hits: list[SearchHit] = []
        for item in body.get("data", [])[:limit]:
            url = item.get("url", "")
            if not url:
                continue
            metadata = item.get("metadata") or {}
            hits.append(
                SearchHit(
                    title=item.get("title") or metadata.get("title") or url,
                    url=url,
                    author=metadata.get("author", "") or "",
                    snippet=item.get("description", "") or "",
                    source_site=httpx.URL(url).host,
                )
            )
        return hits

    def fetch(self, url: str) -> str | None:
        body = self._post(
            "/v1/scrape",
            {"url": url, "formats": ["markdown"], "onlyMainContent": True},
        )
        data = body.get("data") or {}
        content = data.get("markdown") or ""
        return content or None

    def close(self) -> None:
        self._client.close()
