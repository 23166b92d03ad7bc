"""Tests for the Firecrawl HTTP fetcher, using httpx mock transports."""

from __future__ import annotations

import json
from collections.abc import Callable

import httpx
import pytest

from sustained_research.domain.exceptions import FetchError
from sustained_research.infrastructure.fetcher import FirecrawlFetcher


def _fetcher(handler: Callable[[httpx.Request], httpx.Response]) -> FirecrawlFetcher:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return FirecrawlFetcher(
        base_url="https://crawl.test/", base_retry_delay=0.0, max_retries=2, client=client
    )


class TestSearch:

    def test_parses_hits(self) -> None:
        seen: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/v1/search"
            seen.append(json.loads(request.content))
            return httpx.Response(
                200,
                json={
                    "data": [
                        {
                            "url": "https://plato.stanford.edu/entries/heidegger/",
                            "title": "Martin Heidegger",
                            "description": "Encyclopedia entry",
                            "metadata": {"author": "Michael Wheeler"},
                        },
                        {"url": "", "title": "dropped"},
                        {"url": "https://example.org/essay", "metadata": {"title": "An Essay"}},
                    ]
                },
            )

        hits = _fetcher(handler).search("Heidegger language", limit=5)

        assert seen == [{"query": "Heidegger language", "limit": 5}]
        assert [h.title for h in hits] == ["Martin Heidegger", "An Essay"]
        assert hits[0].author == "Michael Wheeler"
        assert hits[0].snippet == "Encyclopedia entry"
        assert hits[0].source_site == "plato.stanford.edu"

    def test_retries_after_rate_limit(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) == 1:
                return httpx.Response(429)
            return httpx.Response(200, json={"data": []})

        assert _fetcher(handler).search("being") == []
        assert len(calls) == 2

    def test_rate_limit_exhausted(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(429)

        with pytest.raises(FetchError, match="rate limit"):
            _fetcher(handler).search("being")
        assert len(calls) == 3

    def test_http_error(self) -> None:
        fetcher = _fetcher(lambda request: httpx.Response(500, text="boom"))
        with pytest.raises(FetchError) as exc_info:
            fetcher.search("being")
        assert exc_info.value.details["status_code"] == 500

    def test_connection_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(FetchError, match="failed"):
            _fetcher(handler).search("being")


class TestFetch:

    def test_returns_markdown(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/v1/scrape"
            body = json.loads(request.content)
            assert body["url"] == "https://example.org/essay"
            assert body["formats"] == ["markdown"]
            return httpx.Response(200, json={"data": {"markdown": "# Essay\n\nText."}})

        assert _fetcher(handler).fetch("https://example.org/essay") == "# Essay\n\nText."

    def test_empty_content_is_none(self) -> None:
        fetcher = _fetcher(lambda request: httpx.Response(200, json={"data": {}}))
        assert fetcher.fetch("https://example.org/empty") is None

    def test_invalid_json(self) -> None:
        fetcher = _fetcher(lambda request: httpx.Response(200, text="<html>"))
        with pytest.raises(FetchError, match="invalid JSON") as exc_info:
            fetcher.fetch("https://example.org/page")
        assert exc_info.value.url == "https://crawl.test/v1/scrape"
