"""Project manager: lifecycle, reading-list bookkeeping and the dashboard.

The derived state of a project (current phase, publication readiness, next
recommended actions) is computed by pure functions over stored records, so
it can never drift from the data it summarizes.  The dashboard is a
read-only aggregate and performs no text generation.
"""

from __future__ import annotations

import dataclasses
import logging
import math
import time
from collections import Counter
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

from sustained_research.domain.entities import (
    SECONDS_PER_DAY,
    Argument,
    DiscoveredSource,
    ForumContribution,
    ProjectActivity,
    Publication,
    ReadingListItem,
    ReadingSession,
    ResearchProject,
    Text,
)
from sustained_research.domain.enums import (
    ContributionStatus,
    ContributionType,
    ProjectStatus,
    PublicationType,
    ReadingPriority,
    ReadingStatus,
    ResearchPhase,
)
from sustained_research.domain.events import ProjectCompleted, ProjectCreated
from sustained_research.domain.exceptions import (
    GeneratedContentError,
    GenerationError,
    ResearchEngineError,
)
from sustained_research.domain.values import NextAction
from sustained_research.infrastructure.event_bus import EventBus
from sustained_research.infrastructure.generation import TextGenerator, parse_generated_json
from sustained_research.infrastructure.store import ResearchStore
from sustained_research.services import activity
from sustained_research.services.discovery import fallback_search_terms

if TYPE_CHECKING:
    from sustained_research.services.discovery import SourceDiscoveryPipeline

logger = logging.getLogger(__name__)

HARD_KEYWORDS = ("consciousness", "phenomenology", "ethics", "ontology", "epistemology")
BASE_MIN_TEXTS = 3


class SuggestedReading(BaseModel):
    """One entry of a generated initial reading list."""

    title: str = Field(min_length=1)
    author: str = ""
    reason: str = ""


_TITLE_PROMPT = (
    "Create a concise scholarly title (at most 10 words) for a philosophical "
    "research project on the question: {question}\nRespond with the title only."
)
_DESCRIPTION_PROMPT = (
    "Write a two-sentence description of a philosophical research project "
    "titled '{title}' that investigates: {question}"
)
_READING_LIST_PROMPT = (
    "Suggest 3-5 foundational texts for a philosophical research project on: "
    "{question}\nRespond with a JSON array of objects with keys \"title\", "
    "\"author\" and \"reason\"."
)


# ===================================================================== #
#  Pure derived state                                                    #
# ===================================================================== #

def minimum_texts(question: str) -> int:
    """Base requirement plus one per hard philosophical keyword."""
    lowered = question.lower()
    return BASE_MIN_TEXTS + sum(1 for keyword in HARD_KEYWORDS if keyword in lowered)


def current_phase(session_count: int, arguments: Sequence[Argument]) -> ResearchPhase:
    if session_count == 0:
        return ResearchPhase.INITIAL_SETUP
    if not arguments:
        return ResearchPhase.READING_PHASE
    if any(not a.refined_position for a in arguments):
        return ResearchPhase.ARGUMENT_DEVELOPMENT
    return ResearchPhase.SYNTHESIS_READY


def publication_readiness(
    sessions: Sequence[ReadingSession],
    arguments: Sequence[Argument],
    publications: Sequence[Publication],
) -> int:
    """Readiness percentage (0-100) for publishing a major essay.

    An already published essay pins readiness at ``60 + 15n``.  Otherwise
    reading volume contributes up to 40, argument confidence (or reading
    depth when there are no arguments) up to 35 and earlier publications
    up to 25.
    """
    essays = sum(1 for p in publications if p.publication_type is PublicationType.MAJOR_ESSAY)
    if essays:
        return min(100, 60 + 15 * essays)
    if not sessions:
        return 0

    score = min(1.0, len(sessions) / 3) * 40
    if arguments:
        score += sum(a.confidence_level for a in arguments) / len(arguments) * 35
    else:
        score += sum(s.depth_score for s in sessions) / len(sessions) * 35
    score += min(25, len(publications) * 5)
    return min(100, round(score))


def next_actions(
    reading_list: Sequence[ReadingListItem],
    arguments: Sequence[Argument],
    readiness: int,
    contributions: Sequence[ForumContribution] = (),
) -> list[NextAction]:
    actions: list[NextAction] = []
    by_status = Counter(item.status for item in reading_list)

    if by_status[ReadingStatus.SEEKING]:
        actions.append(NextAction(
            "find_texts", f"Locate {by_status[ReadingStatus.SEEKING]} texts still being sought", "high"
        ))
    if by_status[ReadingStatus.READING]:
        actions.append(NextAction(
            "continue_reading", f"Continue {by_status[ReadingStatus.READING]} texts in progress", "medium"
        ))
    weak = [a for a in arguments if a.confidence_level < 0.7]
    if weak:
        actions.append(NextAction(
            "strengthen_arguments", f"Strengthen {len(weak)} arguments below 0.7 confidence", "high"
        ))
    pending = [c for c in contributions if c.status is ContributionStatus.PENDING]
    if pending:
        actions.append(NextAction(
            "review_contributions", f"Engage with {len(pending)} pending community contributions", "medium"
        ))
    if readiness > 80:
        actions.append(NextAction("write_major_essay", "Ready to write the major essay", "high"))
    elif readiness > 50:
        actions.append(NextAction("draft_research_note", "Draft a research note on progress", "low"))
    if by_status[ReadingStatus.FOUND]:
        actions.append(NextAction(
            "evaluate_sources", f"Evaluate {by_status[ReadingStatus.FOUND]} discovered sources", "low"
        ))
    return actions


def top_contributors(contributions: Sequence[ForumContribution], limit: int = 5) -> list[tuple[str, int]]:
    names = Counter(c.contributor_name for c in contributions if c.contributor_name)
    return names.most_common(limit)


def community_influence(
    contributions: Sequence[ForumContribution],
    arguments: Sequence[Argument],
) -> float:
    """Share of high-impact contributions and community-shaped arguments."""
    impactful = sum(1 for c in contributions if c.significance_score > 0.7)
    shaped = sum(1 for a in arguments if a.community_feedback)
    return (impactful + shaped) / max(1, len(arguments) + len(contributions))


# ===================================================================== #
#  Dashboard                                                             #
# ===================================================================== #

@dataclass(frozen=True)
class Dashboard:
    """Read-only aggregate view of one project."""

    project: ResearchProject
    now: float
    sessions: tuple[ReadingSession, ...] = ()
    arguments: tuple[Argument, ...] = ()
    reading_list: tuple[ReadingListItem, ...] = ()
    sources: tuple[DiscoveredSource, ...] = ()
    contributions: tuple[ForumContribution, ...] = ()
    publications: tuple[Publication, ...] = ()
    activities: tuple[ProjectActivity, ...] = ()
    next_actions: tuple[NextAction, ...] = field(default=())

    @property
    def duration_days(self) -> int:
        return self.project.duration_days(self.now)

    @property
    def readiness(self) -> int:
        return publication_readiness(self.sessions, self.arguments, self.publications)

    @property
    def phase(self) -> ResearchPhase:
        return current_phase(len(self.sessions), self.arguments)

    @property
    def texts_completed(self) -> int:
        return sum(1 for i in self.reading_list if i.status is ReadingStatus.COMPLETED)

    def to_dict(self) -> dict[str, Any]:
        project = self.project
        depths = [s.depth_score for s in self.sessions]
        confidences = [a.confidence_level for a in self.arguments]
        by_status = Counter(i.status.value for i in self.reading_list)
        return {
            "project": project.to_dict(),
            "progress": {
                "duration_days": self.duration_days,
                "estimated_completion": project.estimated_completion,
                "texts_read": project.texts_read,
                "min_texts_required": project.min_texts_required,
                "reading_progress": min(1.0, project.texts_read / max(1, project.min_texts_required)),
                "argument_maturity": project.argument_maturity,
                "publication_readiness": self.readiness,
            },
            "current_status": {
                "phase": self.phase.value,
                "status": project.status.value,
                "recent_activity": [a.to_dict() for a in self.activities],
            },
            "reading": {
                "sessions": len(self.sessions),
                "average_depth": sum(depths) / len(depths) if depths else 0.0,
                "reading_list": dict(by_status),
                "texts_completed": self.texts_completed,
            },
            "discovery": {
                "sources_found": len(self.sources),
                "sources_promoted": sum(1 for s in self.sources if s.promoted),
                "average_quality": (
                    sum(s.quality_score for s in self.sources) / len(self.sources)
                    if self.sources else 0.0
                ),
            },
            "community": {
                "contributions": len(self.contributions),
                "pending": sum(1 for c in self.contributions if c.status is ContributionStatus.PENDING),
                "top_contributors": top_contributors(self.contributions),
                "influence": community_influence(self.contributions, self.arguments),
            },
            "publications": [
                {"title": p.title, "type": p.publication_type.value, "url": p.external_ref}
                for p in self.publications
            ],
            "next_actions": [a.to_dict() for a in self.next_actions],
            "intellectual_development": {
                "arguments": len(self.arguments),
                "average_confidence": sum(confidences) / len(confidences) if confidences else 0.0,
                "validated": sum(1 for a in self.arguments if a.validation is not None),
                "refined": sum(1 for a in self.arguments if a.refined_position),
            },
        }


# ===================================================================== #
#  Manager                                                               #
# ===================================================================== #

class ProjectManager:
    """Owns project lifecycle and reading-list bookkeeping.

    Parameters
    ----------
    store:
        The authoritative research store.
    generator:
        Proposes titles, descriptions and initial reading lists.
    discovery:
        Optional pipeline; run once when a project is created and used to
        generate search terms.
    event_bus:
        Receives ``ProjectCreated`` and ``ProjectCompleted``.
    clock:
        Returns the current epoch time; injectable for tests.
    """

    def __init__(
        self,
        store: ResearchStore,
        generator: TextGenerator,
        discovery: SourceDiscoveryPipeline | None = None,
        event_bus: EventBus | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._generator = generator
        self._discovery = discovery
        self._event_bus = event_bus
        self._clock = clock

    # -- creation -------------------------------------------------------------

    def _generate_or(self, prompt: str, fallback: str, max_length: int) -> str:
        try:
            text = self._generator.generate(prompt, max_length=max_length)
        except GenerationError as exc:
            logger.warning("Generation failed, using fallback: %s", exc)
            return fallback
        return text.strip().strip('"').strip() or fallback

    def _search_terms(self, title: str, question: str) -> tuple[str, ...]:
        if self._discovery is not None:
            return tuple(self._discovery.generate_search_terms(title, question))
        return tuple(fallback_search_terms(title, question))

    def _initial_reading_list(self, project: ResearchProject) -> list[ReadingListItem]:
        try:
            raw = self._generator.generate(
                _READING_LIST_PROMPT.format(question=project.central_question), max_length=600
            )
            suggestions = parse_generated_json(raw, list[SuggestedReading])
        except (GenerationError, GeneratedContentError) as exc:
            logger.warning("Initial reading list unavailable for %s: %s", project.project_id, exc)
            return []
        items = []
        for suggestion in suggestions:
            item = self.add_to_reading_list(
                project.project_id,
                suggestion.title,
                author=suggestion.author,
                reason=suggestion.reason,
                suggested_by="autonomous",
            )
            if item is not None:
                items.append(item)
        return items

    def create_project(
        self,
        question: str,
        estimated_weeks: int = 4,
        triggered_by: str | None = None,
    ) -> str:
        """Create an active project for *question* and return its id.

        Collaborator failures never abort creation: title, description,
        search terms and reading list all have fallbacks.
        """
        now = self._clock()
        title = self._generate_or(
            _TITLE_PROMPT.format(question=question),
            f"Research Project: {question[:30]}...",
            max_length=60,
        )
        description = self._generate_or(
            _DESCRIPTION_PROMPT.format(title=title, question=question),
            f"A sustained philosophical investigation into the question: {question}",
            max_length=300,
        )
        project = ResearchProject(
            title=title,
            central_question=question,
            description=description,
            start_time=now,
            estimated_weeks=estimated_weeks,
            min_texts_required=minimum_texts(question),
            search_terms=self._search_terms(title, question),
            triggered_by=triggered_by,
        )
        self._store.add_project(project)
        self._initial_reading_list(project)

        activity.record_activity(
            self._store, project.project_id, activity.PROJECT_CREATED, f"Started '{title}'", now
        )
        if self._event_bus is not None:
            self._event_bus.publish(
                ProjectCreated(
                    timestamp=now,
                    source_id="projects",
                    project_id=project.project_id,
                    title=title,
                    central_question=question,
                    triggered_by=triggered_by,
                )
            )
        logger.info("Project %s created: %s", project.project_id, title)

        if self._discovery is not None:
            try:
                self._discovery.discover_sources(project.project_id)
            except ResearchEngineError as exc:
                logger.warning("Initial discovery for %s failed: %s", project.project_id, exc)
        return project.project_id

    # -- lifecycle ------------------------------------------------------------

    def mark_completed(self, project_id: str) -> ResearchProject | None:
        """Complete the project.  Repeated calls are no-ops."""
        project = self._store.get_project(project_id)
        if project is None:
            return None
        if project.status is ProjectStatus.COMPLETED:
            return project
        now = self._clock()
        completed = project.complete(now)
        self._store.update_project(completed)
        activity.record_activity(
            self._store, project_id, activity.PROJECT_COMPLETED, "Project completed", now
        )
        if self._event_bus is not None:
            self._event_bus.publish(
                ProjectCompleted(
                    timestamp=now, source_id="projects", project_id=project_id, title=project.title
                )
            )
        return completed

    # -- library and reading list ---------------------------------------------

    def add_text(
        self,
        title: str,
        content: str,
        author: str = "",
        url: str = "",
        source: str = "manual",
    ) -> Text:
        """Add a text to the library and link it to any reading-list items
        still seeking a text of that title."""
        now = self._clock()
        text = Text(title=title, author=author, content=content, url=url, source=source, added_at=now)
        self._store.add_text(text)
        wanted = title.strip().lower()
        for project in self._store.list_projects(ProjectStatus.ACTIVE):
            for item in self._store.list_reading_items(project.project_id, ReadingStatus.SEEKING):
                if item.title.strip().lower() == wanted:
                    self._store.update_reading_item(
                        dataclasses.replace(item, status=ReadingStatus.FOUND, text_id=text.text_id)
                    )
        return text

    def add_to_reading_list(
        self,
        project_id: str,
        title: str,
        author: str = "",
        priority: ReadingPriority = ReadingPriority.MEDIUM,
        reason: str = "",
        suggested_by: str = "human",
        text_id: str | None = None,
    ) -> ReadingListItem | None:
        """Add a wanted text.  Linked to the library when the text is there."""
        if text_id is None:
            existing = self._store.find_text(title)
            text_id = existing.text_id if existing is not None else None
        now = self._clock()
        item = ReadingListItem(
            project_id=project_id,
            title=title,
            author=author,
            priority=priority,
            status=ReadingStatus.FOUND if text_id else ReadingStatus.SEEKING,
            reason=reason,
            suggested_by=suggested_by,
            text_id=text_id,
            added_at=now,
        )
        saved = self._store.add_reading_item(item)
        if saved is not None:
            activity.record_activity(
                self._store, project_id, activity.READING_LIST, f"Added '{title}' ({suggested_by})", now
            )
        return saved

    def add_contribution(
        self,
        project_id: str,
        contributor: str,
        contribution_type: ContributionType,
        content: str,
        significance: float = 0.5,
        text_id: str | None = None,
        topic: str = "",
    ) -> ForumContribution | None:
        """Store community input as ``pending``; later reading phases
        incorporate it."""
        now = self._clock()
        contribution = ForumContribution(
            project_id=project_id,
            text_id=text_id,
            contributor_name=contributor,
            contribution_type=contribution_type,
            content=content,
            topic=topic,
            significance_score=max(0.0, min(1.0, significance)),
            created_at=now,
        )
        saved = self._store.add_contribution(contribution)
        if saved is not None:
            activity.record_activity(
                self._store,
                project_id,
                activity.COMMUNITY_INPUT,
                f"{contribution_type.value} from {contributor or 'anonymous'}",
                now,
            )
        return saved

    # -- derived views --------------------------------------------------------

    def advancement_needs(self, project_id: str) -> list[str]:
        """Which kinds of work would move the project forward now."""
        sessions = self._store.list_sessions(project_id)
        arguments = self._store.list_arguments(project_id)
        needs: list[str] = []
        if len(sessions) < 3:
            needs.append("reading")
        if not arguments or (len(sessions) > 2 and len(arguments) < 2):
            needs.append("argument")
        if len(sessions) > 4 and len(arguments) > 1 and not self._store.list_publications(project_id):
            needs.append("publication")
        if len(self._store.list_discovered_sources(project_id)) < 5:
            needs.append("discovery")
        return needs

    def get_dashboard(self, project_id: str, recent_activities: int = 10) -> Dashboard | None:
        """Aggregate stored state for *project_id*, or ``None`` if unknown."""
        project = self._store.get_project(project_id)
        if project is None:
            return None
        sessions = self._store.list_sessions(project_id)
        arguments = self._store.list_arguments(project_id)
        reading_list = self._store.list_reading_items(project_id)
        contributions = self._store.list_contributions(project_id)
        publications = self._store.list_publications(project_id)
        readiness = publication_readiness(sessions, arguments, publications)
        return Dashboard(
            project=project,
            now=self._clock(),
            sessions=tuple(sessions),
            arguments=tuple(arguments),
            reading_list=tuple(sorted(reading_list, key=lambda i: (i.priority.rank, i.added_at))),
            sources=tuple(self._store.list_discovered_sources(project_id)),
            contributions=tuple(contributions),
            publications=tuple(publications),
            activities=tuple(self._store.list_activities(project_id, limit=recent_activities)),
            next_actions=tuple(next_actions(reading_list, arguments, readiness, contributions)),
        )


def estimated_weeks_remaining(dashboard: Dashboard) -> int:
    """Whole weeks left until the estimated completion (never negative)."""
    remaining = dashboard.project.estimated_completion - dashboard.now
    return max(0, math.ceil(remaining / (7 * SECONDS_PER_DAY)))
