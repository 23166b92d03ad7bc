"""Research services: scoring, discovery, reading, arguments, projects,
publication, query handling and scheduling.

Re-exports the service classes and result types::

    from sustained_research.services import ResearchSystem, ResearchScheduler
"""

from sustained_research.services.arguments import ArgumentDraft, ArgumentTracker
from sustained_research.services.discovery import (
    DiscoveryReport,
    SourceDiscoveryPipeline,
    fallback_search_terms,
)
from sustained_research.services.inquiry import (
    QueryOutcome,
    ResearchInquiry,
    parse_essay_request,
)
from sustained_research.services.projects import (
    Dashboard,
    ProjectManager,
    current_phase,
    next_actions,
    publication_readiness,
)
from sustained_research.services.publication import (
    PublicationCandidate,
    PublicationGatekeeper,
    ScanResult,
)
from sustained_research.services.reading import BibliographyEntry, ReadingSessionEngine
from sustained_research.services.scheduler import ResearchScheduler, TickReport
from sustained_research.services.system import ResearchSystem

__all__ = [
    "ArgumentDraft",
    "ArgumentTracker",
    "BibliographyEntry",
    "Dashboard",
    "DiscoveryReport",
    "ProjectManager",
    "PublicationCandidate",
    "PublicationGatekeeper",
    "QueryOutcome",
    "ReadingSessionEngine",
    "ResearchInquiry",
    "ResearchScheduler",
    "ResearchSystem",
    "ScanResult",
    "SourceDiscoveryPipeline",
    "TickReport",
    "current_phase",
    "fallback_search_terms",
    "next_actions",
    "parse_essay_request",
    "publication_readiness",
]
