"""Tests for publication channels."""

from __future__ import annotations

import json

import httpx
import pytest

from sustained_research.domain.enums import PublicationType
from sustained_research.domain.exceptions import SendError
from sustained_research.infrastructure.channel import LoggingChannel, WebhookChannel


class TestLoggingChannel:

    def test_send_records_document(self) -> None:
        channel = LoggingChannel()
        ref = channel.send("Language as Dwelling!", "body", PublicationType.MAJOR_ESSAY)

        assert ref == "local://publications/language-as-dwelling"
        assert len(channel.sent) == 1
        assert channel.sent[0].publication_type is PublicationType.MAJOR_ESSAY
        assert channel.sent[0].external_ref == ref

    def test_untitled(self) -> None:
        assert LoggingChannel("mem://x/").send("???", "body") == "mem://x/untitled"


class TestWebhookChannel:

    def test_posts_json_and_returns_url(self) -> None:
        received = []

        def handler(request: httpx.Request) -> httpx.Response:
            received.append(json.loads(request.content))
            return httpx.Response(200, json={"url": "https://blog.test/posts/1"})

        channel = WebhookChannel(
            "https://blog.test/hook", client=httpx.Client(transport=httpx.MockTransport(handler))
        )
        ref = channel.send("Title", "Body", PublicationType.RESEARCH_NOTE)

        assert ref == "https://blog.test/posts/1"
        assert received == [{"title": "Title", "body": "Body", "type": "research_note"}]

    def test_http_error(self) -> None:
        client = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(503)))
        channel = WebhookChannel("https://blog.test/hook", client=client)
        with pytest.raises(SendError) as exc_info:
            channel.send("Title", "Body")
        assert exc_info.value.details["status_code"] == 503
        assert exc_info.value.title == "Title"

    def test_response_without_url(self) -> None:
        client = httpx.Client(
            transport=httpx.MockTransport(lambda r: httpx.Response(200, json={"ok": True}))
        )
        channel = WebhookChannel("https://blog.test/hook", client=client)
        with pytest.raises(SendError, match="no url"):
            channel.send("Title", "Body")

    def test_non_json_response(self) -> None:
        client = httpx.Client(
            transport=httpx.MockTransport(lambda r: httpx.Response(200, text="published"))
        )
        channel = WebhookChannel("https://blog.test/hook", client=client)
        with pytest.raises(SendError):
            channel.send("Title", "Body")
