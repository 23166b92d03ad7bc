"""Domain enumerations for the sustained research engine.

These enums capture the fixed vocabularies used across the domain layer:
project and reading-list lifecycles, the ordered reading phases, publication
types and triggers, and the recommendation tiers produced by scoring.
"""

from enum import Enum


class ProjectStatus(Enum):
    """Lifecycle status of a research project."""

    ACTIVE = "active"
    COMPLETED = "completed"  # one-way, set after a major essay is published


class ReadingPriority(Enum):
    """Priority tier of a reading-list item."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return {"high": 0, "medium": 1, "low": 2}[self.value]


class ReadingStatus(Enum):
    """Status of a reading-list item."""

    SEEKING = "seeking"  # wanted, no text in the library yet
    FOUND = "found"
    READING = "reading"
    COMPLETED = "completed"


class ReadingPhase(Enum):
    """The four ordered phases of engaging a text.

    Members compare by their position in the sequence, so
    ``ReadingPhase.DEEP_ANALYSIS > ReadingPhase.INITIAL_ENCOUNTER``.
    """

    INITIAL_ENCOUNTER = "initial_encounter"
    DEEP_ANALYSIS = "deep_analysis"
    PHILOSOPHICAL_RESPONSE = "philosophical_response"
    SYNTHESIS_INTEGRATION = "synthesis_integration"

    @property
    def order(self) -> int:
        return _PHASE_SEQUENCE.index(self)

    @property
    def weight(self) -> float:
        """Multiplier applied to reading depth for this phase."""
        return _PHASE_WEIGHTS[self]

    def next(self) -> "ReadingPhase | None":
        """Return the following phase, or ``None`` after the last one."""
        idx = self.order + 1
        return _PHASE_SEQUENCE[idx] if idx < len(_PHASE_SEQUENCE) else None

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, ReadingPhase):
            return NotImplemented
        return self.order < other.order

    def __le__(self, other: object) -> bool:
        if not isinstance(other, ReadingPhase):
            return NotImplemented
        return self.order <= other.order

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, ReadingPhase):
            return NotImplemented
        return self.order > other.order

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, ReadingPhase):
            return NotImplemented
        return self.order >= other.order


_PHASE_SEQUENCE: list[ReadingPhase] = list(ReadingPhase)

_PHASE_WEIGHTS: dict[ReadingPhase, float] = {
    ReadingPhase.INITIAL_ENCOUNTER: 0.3,
    ReadingPhase.DEEP_ANALYSIS: 0.7,
    ReadingPhase.PHILOSOPHICAL_RESPONSE: 0.9,
    ReadingPhase.SYNTHESIS_INTEGRATION: 1.0,
}


class PublicationType(Enum):
    """Kinds of document emitted to the publication channel."""

    RESEARCH_ANNOUNCEMENT = "research_announcement"
    RESEARCH_NOTE = "research_note"
    MAJOR_ESSAY = "major_essay"


class PublicationTrigger(Enum):
    """Trigger families for publication opportunities, with base priority."""

    RESEARCH_COMPLETE = "research_complete"
    NEW_PROJECT = "new_project"
    SIGNIFICANT_READING = "significant_reading"
    ARGUMENT_DEVELOPMENT = "argument_development"
    COMMUNITY_INSIGHT = "community_insight"

    @property
    def priority(self) -> int:
        return _TRIGGER_PRIORITIES[self]

    @property
    def publication_type(self) -> PublicationType:
        if self is PublicationTrigger.RESEARCH_COMPLETE:
            return PublicationType.MAJOR_ESSAY
        if self is PublicationTrigger.NEW_PROJECT:
            return PublicationType.RESEARCH_ANNOUNCEMENT
        return PublicationType.RESEARCH_NOTE


_TRIGGER_PRIORITIES: dict[PublicationTrigger, int] = {
    PublicationTrigger.RESEARCH_COMPLETE: 10,
    PublicationTrigger.NEW_PROJECT: 9,
    PublicationTrigger.SIGNIFICANT_READING: 7,
    PublicationTrigger.ARGUMENT_DEVELOPMENT: 6,
    PublicationTrigger.COMMUNITY_INSIGHT: 5,
}


class SourceRecommendation(Enum):
    """Recommendation tier for a discovered source."""

    HIGH_PRIORITY = "high_priority"
    MEDIUM_PRIORITY = "medium_priority"
    LOW_PRIORITY = "low_priority"
    SKIP = "skip"


class CredibilityTier(Enum):
    """Recommendation tier for a credibility assessment."""

    HIGHLY_CREDIBLE = "highly_credible"
    CREDIBLE = "credible"
    MODERATE_CREDIBILITY = "moderate_credibility"
    LOW_CREDIBILITY = "low_credibility"


class ScholarlyClass(Enum):
    """Coarse scholarly classification of a text."""

    HIGHLY_SCHOLARLY = "highly_scholarly"
    SCHOLARLY = "scholarly"
    SEMI_SCHOLARLY = "semi_scholarly"
    POPULAR = "popular"


class ContributionType(Enum):
    """Kinds of community (forum) contribution."""

    QUESTION = "question"
    CHALLENGE = "challenge"
    INSIGHT = "insight"
    CONNECTION = "connection"
    SOURCE_SUGGESTION = "source_suggestion"


class ContributionStatus(Enum):
    """Processing status of a community contribution."""

    PENDING = "pending"
    NOTED = "noted"
    INCORPORATED = "incorporated"


class ResearchPhase(Enum):
    """Derived phase of a project, computed from stored counts."""

    INITIAL_SETUP = "initial_setup"
    READING_PHASE = "reading_phase"
    ARGUMENT_DEVELOPMENT = "argument_development"
    SYNTHESIS_READY = "synthesis_ready"
