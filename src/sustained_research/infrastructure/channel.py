"""Publication channel collaborator.

``PublicationChannel.send`` hands a finished document to the outside world
and returns an external reference (usually a URL).  Two adapters:

* ``LoggingChannel``: keeps sent documents in memory and logs them; used
  when no endpoint is configured.
* ``WebhookChannel``: POSTs the document as JSON with ``httpx`` and reads
  the published URL from the response.
"""

from __future__ import annotations

import logging
import re
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

import httpx

from sustained_research.domain.enums import PublicationType
from sustained_research.domain.exceptions import SendError

logger = logging.getLogger(__name__)


class PublicationChannel(ABC):
    """Delivers formatted documents to an external audience."""

    @abstractmethod
    def send(
        self,
        title: str,
        body: str,
        publication_type: PublicationType = PublicationType.RESEARCH_NOTE,
    ) -> str:
        """Publish a document and return its external reference.

        Raises
        ------
        SendError
            If delivery fails; no publication is recorded in that case.
        """


def _slug(title: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-")[:60] or "untitled"


@dataclass(frozen=True)
class SentDocument:
    title: str
    body: str
    publication_type: PublicationType
    external_ref: str
    sent_at: float = field(default_factory=time.time)


class LoggingChannel(PublicationChannel):
    """Records documents locally instead of sending them anywhere."""

    def __init__(self, base_ref: str = "local://publications") -> None:
        self._base_ref = base_ref.rstrip("/")
        self._sent: list[SentDocument] = []
        self._lock = threading.Lock()

    def send(
        self,
        title: str,
        body: str,
        publication_type: PublicationType = PublicationType.RESEARCH_NOTE,
    ) -> str:
        ref = f"{self._base_ref}/{_slug(title)}"
        with self._lock:
            self._sent.append(SentDocument(title, body, publication_type, ref))
        logger.info("Published %s %r (%d chars) -> %s",
                    publication_type.value, title, len(body), ref)
        return ref

    @property
    def sent(self) -> list[SentDocument]:
        with self._lock:
            return list(self._sent)


class WebhookChannel(PublicationChannel):
    """POSTs documents to an HTTP endpoint.

    The endpoint receives ``{"title", "body", "type"}`` and must answer with
    a JSON object containing ``url``.
    """

    def __init__(
        self,
        url: str,
        api_key: str = "",
        timeout: float = 30.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._url = url
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self._client = client or httpx.Client(timeout=httpx.Timeout(timeout), headers=headers)

    def send(
        self,
        title: str,
        body: str,
        publication_type: PublicationType = PublicationType.RESEARCH_NOTE,
    ) -> str:
        payload = {"title": title, "body": body, "type": publication_type.value}
        try:
            response = self._client.post(self._url, json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            raise SendError(
                f"HTTP {exc.response.status_code} from {self._url}",
                title=title,
                details={"status_code": exc.response.status_code},
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise SendError(f"send to {self._url} failed: {exc}", title=title) from exc

        ref = data.get("url") if isinstance(data, dict) else None
        if not ref:
            raise SendError("channel response has no url", title=title, details={"response": data})
        return str(ref)

    def close(self) -> None:
        self._client.close()
