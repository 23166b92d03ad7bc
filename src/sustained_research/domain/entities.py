"""Domain entities for the sustained research engine.

Entities have *identity* (a short unique id) and are frozen dataclasses:
every lifecycle change produces a new instance via ``dataclasses.replace``
which the caller writes back through the store.  The store is therefore the
single source of truth; no service keeps a parallel cache of rows.

Ownership is by foreign key (``project_id``), never by embedding.
"""

from __future__ import annotations

import dataclasses
import time
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .enums import (
    ContributionStatus,
    ContributionType,
    ProjectStatus,
    PublicationTrigger,
    PublicationType,
    ReadingPhase,
    ReadingPriority,
    ReadingStatus,
)
from .values import ArgumentValidation, SourceQuality

SECONDS_PER_DAY = 24 * 60 * 60


def new_id() -> str:
    return str(uuid.uuid4())[:8]


def _unit(name: str, value: float) -> None:
    if not (0.0 <= value <= 1.0):
        raise ValueError(f"{name} must be in [0, 1], got {value}")


def _encode(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, (tuple, list)):
        return [_encode(v) for v in value]
    if isinstance(value, Mapping):
        return {k: _encode(v) for k, v in value.items()}
    return value


class _Record:
    """Mixin giving frozen dataclass records a JSON-friendly ``to_dict``."""

    def to_dict(self) -> dict[str, Any]:
        return {f.name: _encode(getattr(self, f.name)) for f in dataclasses.fields(self)}  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# ResearchProject
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ResearchProject(_Record):
    """A long-lived inquiry anchored by one immutable central question.

    ``texts_read`` and ``argument_maturity`` only ever grow.  The status
    moves from ``ACTIVE`` to ``COMPLETED`` exactly once.
    """

    project_id: str = field(default_factory=new_id)
    title: str = ""
    central_question: str = ""
    description: str = ""
    status: ProjectStatus = ProjectStatus.ACTIVE
    start_time: float = field(default_factory=time.time)
    estimated_weeks: int = 4
    min_texts_required: int = 3
    search_terms: tuple[str, ...] = ()
    texts_read: int = 0
    argument_maturity: float = 0.0
    triggered_by: str | None = None
    completed_at: float | None = None

    def __post_init__(self) -> None:
        if self.texts_read < 0:
            raise ValueError(f"texts_read must be >= 0, got {self.texts_read}")
        if self.argument_maturity < 0:
            raise ValueError(f"argument_maturity must be >= 0, got {self.argument_maturity}")

    @property
    def is_active(self) -> bool:
        return self.status is ProjectStatus.ACTIVE

    @property
    def estimated_completion(self) -> float:
        return self.start_time + self.estimated_weeks * 7 * SECONDS_PER_DAY

    def duration_days(self, now: float) -> int:
        return int(max(0.0, now - self.start_time) // SECONDS_PER_DAY)

    def record_progress(self, texts_read: int = 0, maturity: float = 0.0) -> ResearchProject:
        """Return a copy with the monotonic counters advanced."""
        return dataclasses.replace(
            self,
            texts_read=self.texts_read + max(0, texts_read),
            argument_maturity=self.argument_maturity + max(0.0, maturity),
        )

    def complete(self, now: float | None = None) -> ResearchProject:
        """One-way transition to ``COMPLETED``; a completed project is returned as is."""
        if self.status is ProjectStatus.COMPLETED:
            return self
        return dataclasses.replace(
            self,
            status=ProjectStatus.COMPLETED,
            completed_at=now if now is not None else time.time(),
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ResearchProject:
        return cls(
            project_id=data["project_id"],
            title=data.get("title", ""),
            central_question=data.get("central_question", ""),
            description=data.get("description", ""),
            status=ProjectStatus(data.get("status", "active")),
            start_time=data.get("start_time", 0.0),
            estimated_weeks=data.get("estimated_weeks", 4),
            min_texts_required=data.get("min_texts_required", 3),
            search_terms=tuple(data.get("search_terms", ())),
            texts_read=data.get("texts_read", 0),
            argument_maturity=data.get("argument_maturity", 0.0),
            triggered_by=data.get("triggered_by"),
            completed_at=data.get("completed_at"),
        )


# ---------------------------------------------------------------------------
# Library text and reading list
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Text(_Record):
    """A text held in the library, available for reading sessions."""

    text_id: str = field(default_factory=new_id)
    title: str = ""
    author: str = ""
    content: str = ""
    url: str = ""
    source: str = ""
    added_at: float = field(default_factory=time.time)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Text:
        return cls(
            text_id=data["text_id"],
            title=data.get("title", ""),
            author=data.get("author", ""),
            content=data.get("content", ""),
            url=data.get("url", ""),
            source=data.get("source", ""),
            added_at=data.get("added_at", 0.0),
        )


@dataclass(frozen=True)
class ReadingListItem(_Record):
    """A text a project wants to read, with priority and provenance."""

    item_id: str = field(default_factory=new_id)
    project_id: str = ""
    title: str = ""
    author: str = ""
    priority: ReadingPriority = ReadingPriority.MEDIUM
    status: ReadingStatus = ReadingStatus.SEEKING
    reason: str = ""
    suggested_by: str = "autonomous"
    text_id: str | None = None
    added_at: float = field(default_factory=time.time)
    started_at: float | None = None

    def with_status(self, status: ReadingStatus, now: float | None = None) -> ReadingListItem:
        started = self.started_at
        if status is ReadingStatus.READING and started is None:
            started = now if now is not None else time.time()
        return dataclasses.replace(self, status=status, started_at=started)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ReadingListItem:
        return cls(
            item_id=data["item_id"],
            project_id=data.get("project_id", ""),
            title=data.get("title", ""),
            author=data.get("author", ""),
            priority=ReadingPriority(data.get("priority", "medium")),
            status=ReadingStatus(data.get("status", "seeking")),
            reason=data.get("reason", ""),
            suggested_by=data.get("suggested_by", "autonomous"),
            text_id=data.get("text_id"),
            added_at=data.get("added_at", 0.0),
            started_at=data.get("started_at"),
        )


# ---------------------------------------------------------------------------
# ReadingSession
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ReadingSession(_Record):
    """One phase-scoped engagement record between a project and a text.

    Sessions are append-only: a new record is written for every phase and
    never mutated afterwards.  ``next_phase`` / ``next_phase_due`` record
    the follow-up that was scheduled when the session was written.
    """

    session_id: str = field(default_factory=new_id)
    project_id: str = ""
    text_id: str = ""
    phase: ReadingPhase = ReadingPhase.INITIAL_ENCOUNTER
    content: str = ""
    insights: tuple[str, ...] = ()
    questions: tuple[str, ...] = ()
    connections: tuple[str, ...] = ()
    community_input: tuple[str, ...] = ()
    depth_score: float = 0.0
    community_feedback_incorporated: bool = False
    time_spent_minutes: int = 0
    publication_candidate: bool = False
    created_at: float = field(default_factory=time.time)
    next_phase: ReadingPhase | None = None
    next_phase_due: float | None = None

    def __post_init__(self) -> None:
        _unit("depth_score", self.depth_score)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ReadingSession:
        next_phase = data.get("next_phase")
        return cls(
            session_id=data["session_id"],
            project_id=data.get("project_id", ""),
            text_id=data.get("text_id", ""),
            phase=ReadingPhase(data.get("phase", "initial_encounter")),
            content=data.get("content", ""),
            insights=tuple(data.get("insights", ())),
            questions=tuple(data.get("questions", ())),
            connections=tuple(data.get("connections", ())),
            community_input=tuple(data.get("community_input", ())),
            depth_score=data.get("depth_score", 0.0),
            community_feedback_incorporated=data.get("community_feedback_incorporated", False),
            time_spent_minutes=data.get("time_spent_minutes", 0),
            publication_candidate=data.get("publication_candidate", False),
            created_at=data.get("created_at", 0.0),
            next_phase=ReadingPhase(next_phase) if next_phase else None,
            next_phase_due=data.get("next_phase_due"),
        )


# ---------------------------------------------------------------------------
# Argument
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CounterArgument(_Record):
    """An objection raised against an argument."""

    content: str
    contributor: str = ""
    timestamp: float = field(default_factory=time.time)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> CounterArgument:
        return cls(
            content=data.get("content", ""),
            contributor=data.get("contributor", ""),
            timestamp=data.get("timestamp", 0.0),
        )


INITIAL_CONFIDENCE = 0.3


@dataclass(frozen=True)
class Argument(_Record):
    """A tracked thesis with accumulating evidence and confidence.

    ``confidence_level`` is nudged explicitly (by community input or the
    research loop) and is never derived from ``validation``; the two are
    kept as separate fields.
    """

    argument_id: str = field(default_factory=new_id)
    project_id: str = ""
    title: str = ""
    initial_intuition: str = ""
    refined_position: str = ""
    supporting_evidence: tuple[str, ...] = ()
    counter_arguments: tuple[CounterArgument, ...] = ()
    confidence_level: float = INITIAL_CONFIDENCE
    evidence_strength: float = 0.0
    citations: tuple[str, ...] = ()
    community_weight: float = 0.0
    community_feedback: tuple[str, ...] = ()
    validation: ArgumentValidation | None = None
    source_text_id: str | None = None
    created_at: float = field(default_factory=time.time)
    updated_at: float = field(default_factory=time.time)

    def __post_init__(self) -> None:
        _unit("confidence_level", self.confidence_level)
        _unit("evidence_strength", self.evidence_strength)
        _unit("community_weight", self.community_weight)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Argument:
        validation = data.get("validation")
        return cls(
            argument_id=data["argument_id"],
            project_id=data.get("project_id", ""),
            title=data.get("title", ""),
            initial_intuition=data.get("initial_intuition", ""),
            refined_position=data.get("refined_position", ""),
            supporting_evidence=tuple(data.get("supporting_evidence", ())),
            counter_arguments=tuple(
                CounterArgument.from_dict(c) for c in data.get("counter_arguments", ())
            ),
            confidence_level=data.get("confidence_level", INITIAL_CONFIDENCE),
            evidence_strength=data.get("evidence_strength", 0.0),
            citations=tuple(data.get("citations", ())),
            community_weight=data.get("community_weight", 0.0),
            community_feedback=tuple(data.get("community_feedback", ())),
            validation=ArgumentValidation.from_dict(validation) if validation else None,
            source_text_id=data.get("source_text_id"),
            created_at=data.get("created_at", 0.0),
            updated_at=data.get("updated_at", 0.0),
        )


# ---------------------------------------------------------------------------
# DiscoveredSource
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DiscoveredSource(_Record):
    """A scored candidate source found by the discovery pipeline.

    Written once per discovery, whether or not it was promoted to the
    reading list.
    """

    source_id: str = field(default_factory=new_id)
    project_id: str = ""
    title: str = ""
    author: str = ""
    url: str = ""
    search_term: str = ""
    quality: SourceQuality | None = None
    promoted: bool = False
    content_preview: str = ""
    discovered_at: float = field(default_factory=time.time)

    @property
    def quality_score(self) -> float:
        return self.quality.score if self.quality is not None else 0.0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> DiscoveredSource:
        quality = data.get("quality")
        return cls(
            source_id=data["source_id"],
            project_id=data.get("project_id", ""),
            title=data.get("title", ""),
            author=data.get("author", ""),
            url=data.get("url", ""),
            search_term=data.get("search_term", ""),
            quality=SourceQuality.from_dict(quality) if quality else None,
            promoted=data.get("promoted", False),
            content_preview=data.get("content_preview", ""),
            discovered_at=data.get("discovered_at", 0.0),
        )


# ---------------------------------------------------------------------------
# Publication
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Publication(_Record):
    """An emitted document.  Append-only; never mutated after creation.

    ``subject_key`` identifies the artifact that triggered it (project,
    session, argument or contribution id) so a trigger fires only once.
    """

    publication_id: str = field(default_factory=new_id)
    project_id: str | None = None
    publication_type: PublicationType = PublicationType.RESEARCH_NOTE
    title: str = ""
    content: str = ""
    trigger: PublicationTrigger = PublicationTrigger.SIGNIFICANT_READING
    subject_key: str = ""
    community_mentions: tuple[str, ...] = ()
    external_ref: str = ""
    created_at: float = field(default_factory=time.time)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Publication:
        return cls(
            publication_id=data["publication_id"],
            project_id=data.get("project_id"),
            publication_type=PublicationType(data.get("publication_type", "research_note")),
            title=data.get("title", ""),
            content=data.get("content", ""),
            trigger=PublicationTrigger(data.get("trigger", "significant_reading")),
            subject_key=data.get("subject_key", ""),
            community_mentions=tuple(data.get("community_mentions", ())),
            external_ref=data.get("external_ref", ""),
            created_at=data.get("created_at", 0.0),
        )


# ---------------------------------------------------------------------------
# Community input and activity log
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ForumContribution(_Record):
    """A piece of community input attached to a project (and maybe a text)."""

    contribution_id: str = field(default_factory=new_id)
    project_id: str = ""
    text_id: str | None = None
    contributor_name: str = ""
    contribution_type: ContributionType = ContributionType.QUESTION
    content: str = ""
    topic: str = ""
    significance_score: float = 0.5
    status: ContributionStatus = ContributionStatus.PENDING
    created_at: float = field(default_factory=time.time)

    def __post_init__(self) -> None:
        _unit("significance_score", self.significance_score)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ForumContribution:
        return cls(
            contribution_id=data["contribution_id"],
            project_id=data.get("project_id", ""),
            text_id=data.get("text_id"),
            contributor_name=data.get("contributor_name", ""),
            contribution_type=ContributionType(data.get("contribution_type", "question")),
            content=data.get("content", ""),
            topic=data.get("topic", ""),
            significance_score=data.get("significance_score", 0.5),
            status=ContributionStatus(data.get("status", "pending")),
            created_at=data.get("created_at", 0.0),
        )


@dataclass(frozen=True)
class ProjectActivity(_Record):
    """One entry in a project's activity log."""

    activity_id: str = field(default_factory=new_id)
    project_id: str = ""
    activity_type: str = ""
    description: str = ""
    timestamp: float = field(default_factory=time.time)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ProjectActivity:
        return cls(
            activity_id=data["activity_id"],
            project_id=data.get("project_id", ""),
            activity_type=data.get("activity_type", ""),
            description=data.get("description", ""),
            timestamp=data.get("timestamp", 0.0),
        )
