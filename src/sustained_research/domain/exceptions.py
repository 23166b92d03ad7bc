"""Domain exceptions for the sustained research engine.

All exceptions inherit from ``ResearchEngineError`` so callers can catch the
full family with a single ``except`` clause when needed.  Collaborator
failures (text generation, fetching, publishing) share ``CollaboratorError``
because they are always recoverable: services degrade to fallback content or
drop the affected candidate.
"""

from __future__ import annotations

from typing import Any


class ResearchEngineError(Exception):
    """Base exception for all sustained research errors."""

    def __init__(self, message: str = "", details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details: dict[str, Any] = details or {}


# ---------------------------------------------------------------------------
# Collaborator failures
# ---------------------------------------------------------------------------


class CollaboratorError(ResearchEngineError):
    """An external collaborator (generator, fetcher, channel) failed."""

    def __init__(
        self,
        message: str = "Collaborator failed",
        collaborator: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.collaborator = collaborator


class GenerationError(CollaboratorError):
    """Text generation failed (quota, auth, network or timeout)."""

    def __init__(
        self,
        message: str = "Text generation failed",
        collaborator: str = "text_generator",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, collaborator, details)


class FetchError(CollaboratorError):
    """Fetching or searching remote content failed."""

    def __init__(
        self,
        message: str = "Content fetch failed",
        url: str = "",
        collaborator: str = "content_fetcher",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, collaborator, details)
        self.url = url


class SendError(CollaboratorError):
    """The publication channel rejected or failed to deliver a document."""

    def __init__(
        self,
        message: str = "Publication send failed",
        title: str = "",
        collaborator: str = "publication_channel",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, collaborator, details)
        self.title = title


# ---------------------------------------------------------------------------
# Content and state errors
# ---------------------------------------------------------------------------


class GeneratedContentError(ResearchEngineError):
    """Generated text could not be parsed into the expected structure.

    Raised for malformed JSON such as search-term lists; callers recover by
    falling back to keyword extraction or templated defaults.
    """

    def __init__(
        self,
        message: str = "Malformed generated content",
        raw: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.raw = raw


class PhaseOrderError(ResearchEngineError):
    """A reading phase was requested out of order for a (project, text)."""

    def __init__(
        self,
        message: str = "Reading phase regression",
        project_id: str = "",
        text_id: str = "",
        requested: str = "",
        latest: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.project_id = project_id
        self.text_id = text_id
        self.requested = requested
        self.latest = latest


class ProjectNotFoundError(ResearchEngineError):
    """The requested project does not exist in the store."""

    def __init__(
        self,
        message: str = "Project not found",
        project_id: str = "",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.project_id = project_id


class PersistenceWarning(UserWarning):
    """A store operation returned no result; the caller proceeds with defaults."""
