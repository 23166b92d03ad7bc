"""Domain events for the sustained research engine.

Every event is a frozen dataclass inheriting from ``DomainEvent``.  Services
publish them on the :class:`~sustained_research.infrastructure.event_bus.EventBus`
so that listeners (activity logging, the CLI, tests) can react without the
services knowing about them.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from .enums import PublicationTrigger, PublicationType, ReadingPhase

# ---------------------------------------------------------------------------
# Base event
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DomainEvent:
    """Base class for all domain events."""

    timestamp: float = field(default_factory=time.time)
    source_id: str = ""


# ---------------------------------------------------------------------------
# Project lifecycle
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ProjectCreated(DomainEvent):
    project_id: str = ""
    title: str = ""
    central_question: str = ""
    triggered_by: str | None = None


@dataclass(frozen=True)
class ProjectCompleted(DomainEvent):
    project_id: str = ""
    title: str = ""


# ---------------------------------------------------------------------------
# Reading and arguments
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ReadingPhaseCompleted(DomainEvent):
    """A reading session was written for one phase of a text."""

    project_id: str = ""
    text_id: str = ""
    session_id: str = ""
    phase: ReadingPhase = ReadingPhase.INITIAL_ENCOUNTER
    depth_score: float = 0.0
    publication_candidate: bool = False


@dataclass(frozen=True)
class ArgumentCreated(DomainEvent):
    project_id: str = ""
    argument_id: str = ""
    title: str = ""


@dataclass(frozen=True)
class ArgumentValidated(DomainEvent):
    argument_id: str = ""
    score: float = 0.0


# ---------------------------------------------------------------------------
# Discovery and publication
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SourcesDiscovered(DomainEvent):
    project_id: str = ""
    sources_found: int = 0
    sources_promoted: int = 0


@dataclass(frozen=True)
class PublicationEmitted(DomainEvent):
    publication_id: str = ""
    project_id: str | None = None
    publication_type: PublicationType = PublicationType.RESEARCH_NOTE
    trigger: PublicationTrigger = PublicationTrigger.SIGNIFICANT_READING
    title: str = ""
    external_ref: str = ""


@dataclass(frozen=True)
class PublicationRejected(DomainEvent):
    """A candidate failed its quality gate and was dropped for this scan."""

    project_id: str | None = None
    trigger: PublicationTrigger = PublicationTrigger.SIGNIFICANT_READING
    failed_checks: tuple[str, ...] = ()
