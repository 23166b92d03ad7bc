"""Domain layer for the sustained research engine.

Re-exports all public domain types so that consumers can write::

    from sustained_research.domain import ResearchProject, ReadingPhase
"""

# -- Enumerations -------------------------------------------------------------
from .enums import (
    ContributionStatus,
    ContributionType,
    CredibilityTier,
    ProjectStatus,
    PublicationTrigger,
    PublicationType,
    ReadingPhase,
    ReadingPriority,
    ReadingStatus,
    ResearchPhase,
    ScholarlyClass,
    SourceRecommendation,
)

# -- Value Objects ------------------------------------------------------------
from .values import (
    ArgumentValidation,
    CredibilityAssessment,
    NextAction,
    QualityCheck,
    ScholarlyAssessment,
    SearchHit,
    SourceQuality,
)

# -- Entities -----------------------------------------------------------------
from .entities import (
    Argument,
    CounterArgument,
    DiscoveredSource,
    ForumContribution,
    ProjectActivity,
    Publication,
    ReadingListItem,
    ReadingSession,
    ResearchProject,
    Text,
)

# -- Domain Events ------------------------------------------------------------
from .events import (
    ArgumentCreated,
    ArgumentValidated,
    DomainEvent,
    ProjectCompleted,
    ProjectCreated,
    PublicationEmitted,
    PublicationRejected,
    ReadingPhaseCompleted,
    SourcesDiscovered,
)

# -- Exceptions ---------------------------------------------------------------
from .exceptions import (
    CollaboratorError,
    FetchError,
    GeneratedContentError,
    GenerationError,
    PersistenceWarning,
    PhaseOrderError,
    ProjectNotFoundError,
    ResearchEngineError,
    SendError,
)

__all__ = [
    # enums
    "ContributionStatus",
    "ContributionType",
    "CredibilityTier",
    "ProjectStatus",
    "PublicationTrigger",
    "PublicationType",
    "ReadingPhase",
    "ReadingPriority",
    "ReadingStatus",
    "ResearchPhase",
    "ScholarlyClass",
    "SourceRecommendation",
    # values
    "ArgumentValidation",
    "CredibilityAssessment",
    "NextAction",
    "QualityCheck",
    "ScholarlyAssessment",
    "SearchHit",
    "SourceQuality",
    # entities
    "Argument",
    "CounterArgument",
    "DiscoveredSource",
    "ForumContribution",
    "ProjectActivity",
    "Publication",
    "ReadingListItem",
    "ReadingSession",
    "ResearchProject",
    "Text",
    # events
    "ArgumentCreated",
    "ArgumentValidated",
    "DomainEvent",
    "ProjectCompleted",
    "ProjectCreated",
    "PublicationEmitted",
    "PublicationRejected",
    "ReadingPhaseCompleted",
    "SourcesDiscovered",
    # exceptions
    "CollaboratorError",
    "FetchError",
    "GeneratedContentError",
    "GenerationError",
    "PersistenceWarning",
    "PhaseOrderError",
    "ProjectNotFoundError",
    "ResearchEngineError",
    "SendError",
]
