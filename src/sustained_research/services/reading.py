"""Reading session engine: the four-phase state machine per (project, text).

Phases run in a fixed order::

    initial_encounter -> deep_analysis -> philosophical_response -> synthesis_integration

``begin_session`` always starts at ``initial_encounter``; each completed
phase records when the next one becomes due (``phase_delay_days`` later) and
the scheduler picks it up through :meth:`ReadingSessionEngine.due_phases`.
Sessions are append-only and a (project, text) pair never regresses to an
earlier phase.
"""

from __future__ import annotations

import dataclasses
import datetime
import logging
import re
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from sustained_research.domain.entities import (
    SECONDS_PER_DAY,
    ForumContribution,
    ReadingListItem,
    ReadingSession,
    ResearchProject,
    Text,
)
from sustained_research.domain.enums import (
    ContributionStatus,
    ProjectStatus,
    ReadingPhase,
    ReadingStatus,
    ScholarlyClass,
)
from sustained_research.domain.events import ReadingPhaseCompleted
from sustained_research.domain.exceptions import (
    PhaseOrderError,
    ProjectNotFoundError,
    ResearchEngineError,
)
from sustained_research.domain.values import ScholarlyAssessment
from sustained_research.infrastructure.config import ReadingConfig
from sustained_research.infrastructure.event_bus import EventBus
from sustained_research.infrastructure.generation import TextGenerator
from sustained_research.infrastructure.store import ResearchStore
from sustained_research.services import activity
from sustained_research.services.scoring import (
    classify_scholarly,
    evaluate_credibility,
    extract_citations,
    is_peer_reviewed,
    reading_depth,
    reading_time_minutes,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lexical extraction
# ---------------------------------------------------------------------------

_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")
_QUESTION_RE = re.compile(r"[^.!?]*\?")

INSIGHT_MARKERS = ("insight", "understand", "realize", "discover", "recognize")
CONNECTION_MARKERS = ("connect", "relate", "link", "similar", "echo", "resonate")


def _marked_sentences(content: str, markers: Sequence[str], limit: int) -> list[str]:
    found: list[str] = []
    for sentence in _SENTENCE_SPLIT_RE.split(content):
        sentence = sentence.strip()
        if len(sentence) > 10 and any(m in sentence.lower() for m in markers):
            found.append(sentence)
            if len(found) >= limit:
                break
    return found


def extract_insights(content: str) -> list[str]:
    """First three sentences containing an insight marker."""
    return _marked_sentences(content, INSIGHT_MARKERS, 3)


def extract_questions(content: str) -> list[str]:
    """Up to five sentences ending in a question mark."""
    questions: list[str] = []
    for match in _QUESTION_RE.findall(content):
        question = match.strip()
        if len(question) > 5:
            questions.append(question)
            if len(questions) >= 5:
                break
    return questions


def extract_connections(content: str) -> list[str]:
    """Up to three sentences drawing a connection to other work."""
    return _marked_sentences(content, CONNECTION_MARKERS, 3)


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

_PHASE_INSTRUCTIONS: dict[ReadingPhase, str] = {
    ReadingPhase.INITIAL_ENCOUNTER: (
        "This is your first encounter with the text. Record your initial "
        "impressions, what strikes you, and the questions it raises for your "
        "research."
    ),
    ReadingPhase.DEEP_ANALYSIS: (
        "Analyse the text closely. Reconstruct its central arguments, examine "
        "its key concepts and assumptions, and note where it is strongest and "
        "weakest."
    ),
    ReadingPhase.PHILOSOPHICAL_RESPONSE: (
        "Respond philosophically. Where do you agree or disagree, what "
        "objections would you raise, and how does the text challenge your own "
        "developing position?"
    ),
    ReadingPhase.SYNTHESIS_INTEGRATION: (
        "Integrate this text into your research. How does it connect to the "
        "other works you have read, and what does it contribute to answering "
        "your central question?"
    ),
}

_COMMUNITY_PHASES = (ReadingPhase.DEEP_ANALYSIS, ReadingPhase.PHILOSOPHICAL_RESPONSE)
_EXCERPT_CHARS = 3000


def build_phase_prompt(
    project: ResearchProject,
    text: Text,
    phase: ReadingPhase,
    community: Sequence[ForumContribution] = (),
    prior: Sequence[ReadingSession] = (),
) -> str:
    parts = [
        f"Research project: {project.title}",
        f"Central question: {project.central_question}",
        "",
        f"Text: {text.title}" + (f" by {text.author}" if text.author else ""),
        f"Reading phase: {phase.value.replace('_', ' ')}",
        "",
        _PHASE_INSTRUCTIONS[phase],
    ]
    earlier = [i for s in prior for i in s.insights]
    if earlier:
        parts += ["", "Insights from earlier phases:"]
        parts += [f"- {insight}" for insight in earlier[-6:]]
    if community and phase in _COMMUNITY_PHASES:
        parts += ["", "Community input to consider:"]
        parts += [
            f"- {c.contributor_name or 'anonymous'} ({c.contribution_type.value}): {c.content}"
            for c in community
        ]
    if text.content:
        parts += ["", "Excerpt:", text.content[:_EXCERPT_CHARS]]
    return "\n".join(parts)


# ---------------------------------------------------------------------------
# Bibliography
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BibliographyEntry:
    """One text read within a project."""

    text_id: str
    title: str
    author: str
    url: str
    phases_completed: int
    credibility: float
    classification: ScholarlyClass

    def to_dict(self) -> dict[str, Any]:
        return {
            "text_id": self.text_id,
            "title": self.title,
            "author": self.author,
            "url": self.url,
            "phases_completed": self.phases_completed,
            "credibility": round(self.credibility, 3),
            "classification": self.classification.value,
        }


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class ReadingSessionEngine:
    """Drives texts through the reading phases for each project.

    Parameters
    ----------
    store:
        The authoritative research store.
    generator:
        Produces the reading response for each phase.
    event_bus:
        Receives ``ReadingPhaseCompleted`` after each written session.
    config:
        Phase delay, candidate thresholds and response length.
    clock:
        Returns the current epoch time; injectable for tests.
    """

    def __init__(
        self,
        store: ResearchStore,
        generator: TextGenerator,
        event_bus: EventBus | None = None,
        config: ReadingConfig | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._generator = generator
        self._event_bus = event_bus
        self._config = config or ReadingConfig()
        self._clock = clock

    # -- lookups --------------------------------------------------------------

    def _require_project(self, project_id: str) -> ResearchProject:
        project = self._store.get_project(project_id)
        if project is None:
            raise ProjectNotFoundError(f"No project {project_id!r}", project_id=project_id)
        return project

    def _require_text(self, text_id: str) -> Text:
        text = self._store.get_text(text_id)
        if text is None:
            raise ResearchEngineError(f"No text {text_id!r} in the library", {"text_id": text_id})
        return text

    def latest_phase(self, project_id: str, text_id: str) -> ReadingPhase | None:
        sessions = self._store.list_sessions(project_id, text_id)
        return max((s.phase for s in sessions), default=None)

    # -- lifecycle ------------------------------------------------------------

    def begin_session(
        self,
        text_id: str,
        project_id: str,
        contributed_by: str | None = None,
    ) -> ReadingSession:
        """Start reading *text_id* at ``initial_encounter``.

        A reading-list item is created for the text if the project does not
        have one yet; *contributed_by* becomes its provenance.
        """
        self._require_project(project_id)
        text = self._require_text(text_id)
        if self._store.find_reading_item(project_id, text_id) is None:
            self._store.add_reading_item(
                ReadingListItem(
                    project_id=project_id,
                    title=text.title,
                    author=text.author,
                    status=ReadingStatus.FOUND,
                    reason="Added when reading began",
                    suggested_by=contributed_by or "autonomous",
                    text_id=text_id,
                    added_at=self._clock(),
                )
            )
        return self.conduct_phase(text_id, project_id, ReadingPhase.INITIAL_ENCOUNTER)

    def conduct_phase(self, text_id: str, project_id: str, phase: ReadingPhase) -> ReadingSession:
        """Run one reading phase and persist its session.

        Raises
        ------
        PhaseOrderError
            If *phase* does not come after the latest phase already recorded
            for this (project, text).
        GenerationError
            If the reading response cannot be generated.  Nothing is written,
            so the phase stays due and is retried on the next tick.
        """
        project = self._require_project(project_id)
        text = self._require_text(text_id)
        prior = self._store.list_sessions(project_id, text_id)
        latest = max((s.phase for s in prior), default=None)
        if latest is not None and phase <= latest:
            raise PhaseOrderError(
                f"Cannot run {phase.value} after {latest.value} for text {text_id}",
                project_id=project_id,
                text_id=text_id,
                requested=phase.value,
                latest=latest.value,
            )

        community: list[ForumContribution] = []
        if phase in _COMMUNITY_PHASES:
            community = [
                c
                for c in self._store.list_contributions(project_id, text_id=text_id)
                if c.status is not ContributionStatus.INCORPORATED
            ]

        prompt = build_phase_prompt(project, text, phase, community, prior)
        content = self._generator.generate(prompt, max_length=self._config.max_tokens)

        now = self._clock()
        insights = extract_insights(content)
        depth = reading_depth(content, phase)
        next_phase = phase.next()
        session = ReadingSession(
            project_id=project_id,
            text_id=text_id,
            phase=phase,
            content=content,
            insights=tuple(insights),
            questions=tuple(extract_questions(content)),
            connections=tuple(extract_connections(content)),
            community_input=tuple(c.content for c in community),
            depth_score=depth,
            community_feedback_incorporated=bool(community),
            time_spent_minutes=reading_time_minutes(content),
            publication_candidate=(
                depth >= self._config.candidate_depth
                and len(insights) >= self._config.candidate_min_insights
            ),
            created_at=now,
            next_phase=next_phase,
            next_phase_due=(
                now + self._config.phase_delay_days * SECONDS_PER_DAY if next_phase else None
            ),
        )
        self._store.add_session(session)

        finished = next_phase is None
        self._store.update_project(
            project.record_progress(texts_read=1 if finished else 0, maturity=depth * 0.1)
        )
        for contribution in community:
            self._store.update_contribution(
                dataclasses.replace(contribution, status=ContributionStatus.INCORPORATED)
            )
        self._advance_item(project_id, text_id, finished, now)

        activity.record_activity(
            self._store,
            project_id,
            activity.READING_PHASE,
            f"{phase.value} of '{text.title}' (depth {depth:.2f})",
            now,
        )
        if self._event_bus is not None:
            self._event_bus.publish(
                ReadingPhaseCompleted(
                    timestamp=now,
                    source_id="reading",
                    project_id=project_id,
                    text_id=text_id,
                    session_id=session.session_id,
                    phase=phase,
                    depth_score=depth,
                    publication_candidate=session.publication_candidate,
                )
            )
        logger.info(
            "Reading %s/%s: %s done, depth=%.2f, %d insights%s",
            project_id,
            text_id,
            phase.value,
            depth,
            len(insights),
            " (publication candidate)" if session.publication_candidate else "",
        )
        return session

    def _advance_item(self, project_id: str, text_id: str, finished: bool, now: float) -> None:
        item = self._store.find_reading_item(project_id, text_id)
        if item is None:
            return
        if finished:
            self._store.update_reading_item(item.with_status(ReadingStatus.COMPLETED, now))
        elif item.status in (ReadingStatus.SEEKING, ReadingStatus.FOUND):
            self._store.update_reading_item(item.with_status(ReadingStatus.READING, now))

    # -- scheduling -----------------------------------------------------------

    def due_phases(self, now: float | None = None) -> list[tuple[str, str, ReadingPhase]]:
        """``(project_id, text_id, phase)`` for every scheduled phase now due,
        earliest first.  Only active projects are considered."""
        now = self._clock() if now is None else now
        due: list[tuple[float, str, str, ReadingPhase]] = []
        for project in self._store.list_projects(ProjectStatus.ACTIVE):
            latest: dict[str, ReadingSession] = {}
            for session in self._store.list_sessions(project.project_id):
                current = latest.get(session.text_id)
                if current is None or session.phase > current.phase:
                    latest[session.text_id] = session
            for text_id, session in latest.items():
                if (
                    session.next_phase is not None
                    and session.next_phase_due is not None
                    and session.next_phase_due <= now
                ):
                    due.append((session.next_phase_due, project.project_id, text_id, session.next_phase))
        due.sort(key=lambda entry: entry[0])
        return [(pid, tid, phase) for _, pid, tid, phase in due]

    # -- scholarly review -----------------------------------------------------

    def _current_year(self) -> int:
        return datetime.datetime.fromtimestamp(self._clock()).year

    def assess_session(self, session_id: str) -> ScholarlyAssessment | None:
        """Scholarly-standards assessment of the text behind a session."""
        session = self._store.get_session(session_id)
        if session is None:
            return None
        text = self._store.get_text(session.text_id)
        if text is None:
            logger.warning("Session %s refers to missing text %s", session_id, session.text_id)
            return None
        credibility = evaluate_credibility(
            text.title, text.author, text.content, text.url or None, self._current_year()
        )
        citations = len(extract_citations(text.content))
        return ScholarlyAssessment(
            session_id=session_id,
            credibility=credibility,
            citations_count=citations,
            classification=classify_scholarly(credibility.score, citations),
            peer_reviewed=is_peer_reviewed(text.content, text.url or None),
        )

    def bibliography(self, project_id: str) -> list[BibliographyEntry]:
        """One entry per distinct text read, most credible first."""
        phases: dict[str, int] = {}
        for session in self._store.list_sessions(project_id):
            phases[session.text_id] = phases.get(session.text_id, 0) + 1

        year = self._current_year()
        entries: list[BibliographyEntry] = []
        for text_id, count in phases.items():
            text = self._store.get_text(text_id)
            if text is None:
                continue
            credibility = evaluate_credibility(
                text.title, text.author, text.content, text.url or None, year
            )
            entries.append(
                BibliographyEntry(
                    text_id=text_id,
                    title=text.title,
                    author=text.author,
                    url=text.url,
                    phases_completed=count,
                    credibility=credibility.score,
                    classification=classify_scholarly(
                        credibility.score, len(extract_citations(text.content))
                    ),
                )
            )
        entries.sort(key=lambda e: e.credibility, reverse=True)
        return entries
