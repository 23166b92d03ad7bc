"""Publication gatekeeper.

Scans active projects for publication-worthy conditions, ranks the
candidates and emits at most one document per scan::

    rate limit?  ->  find_opportunities  ->  top candidate  ->  compose
                 ->  quality gate  ->  PublicationChannel.send  ->  Publication

Trigger families and base priorities:

==================== ======================= ========
trigger              publication type        priority
==================== ======================= ========
research_complete    major_essay             10
new_project          research_announcement   9
significant_reading  research_note           7
argument_development research_note           6
community_insight    research_note           5
==================== ======================= ========

Each (trigger, subject) fires at most once because publications are
append-only and already published subjects are skipped.  A send failure
writes nothing, so the candidate is offered again on a later scan.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from sustained_research.domain.entities import (
    SECONDS_PER_DAY,
    Publication,
    ResearchProject,
)
from sustained_research.domain.enums import (
    ContributionStatus,
    ProjectStatus,
    PublicationTrigger,
    PublicationType,
    ReadingPhase,
)
from sustained_research.domain.events import PublicationEmitted, PublicationRejected
from sustained_research.domain.exceptions import GenerationError, SendError
from sustained_research.domain.values import QualityCheck
from sustained_research.infrastructure.channel import PublicationChannel
from sustained_research.infrastructure.config import PublicationConfig
from sustained_research.infrastructure.event_bus import EventBus
from sustained_research.infrastructure.generation import TextGenerator
from sustained_research.infrastructure.store import ResearchStore
from sustained_research.services import activity
from sustained_research.services.projects import ProjectManager, publication_readiness
from sustained_research.services.scoring import check_quality

logger = logging.getLogger(__name__)

_READING_PHASES = (ReadingPhase.DEEP_ANALYSIS, ReadingPhase.PHILOSOPHICAL_RESPONSE)
_MAX_TOKENS: dict[PublicationType, int] = {
    PublicationType.RESEARCH_ANNOUNCEMENT: 600,
    PublicationType.RESEARCH_NOTE: 900,
    PublicationType.MAJOR_ESSAY: 2500,
}


# ---------------------------------------------------------------------------
# Candidates and results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PublicationCandidate:
    """A publication opportunity found by a scan."""

    trigger: PublicationTrigger
    project_id: str | None
    subject_key: str
    title: str
    context: Mapping[str, Any] = field(default_factory=dict)
    community_mentions: tuple[str, ...] = ()

    @property
    def priority(self) -> int:
        return self.trigger.priority

    @property
    def publication_type(self) -> PublicationType:
        return self.trigger.publication_type

    def to_dict(self) -> dict[str, Any]:
        return {
            "trigger": self.trigger.value,
            "type": self.publication_type.value,
            "priority": self.priority,
            "project_id": self.project_id,
            "subject_key": self.subject_key,
            "title": self.title,
        }


@dataclass(frozen=True)
class ScanResult:
    """Outcome of a scan or a direct publish attempt."""

    candidates: tuple[PublicationCandidate, ...] = ()
    attempted: PublicationCandidate | None = None
    publication: Publication | None = None
    quality: QualityCheck | None = None
    rate_limited: bool = False
    error: str = ""

    @property
    def published(self) -> bool:
        return self.publication is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "candidates": [c.to_dict() for c in self.candidates],
            "attempted": self.attempted.to_dict() if self.attempted else None,
            "published": self.published,
            "external_ref": self.publication.external_ref if self.publication else None,
            "failed_checks": self.quality.failed if self.quality else [],
            "rate_limited": self.rate_limited,
            "error": self.error,
        }


# ---------------------------------------------------------------------------
# Composition
# ---------------------------------------------------------------------------

def _bullets(lines: Sequence[str]) -> str:
    return "\n".join(f"- {line}" for line in lines) or "- (none yet)"


def _prompt(candidate: PublicationCandidate) -> str:
    ctx = candidate.context
    trigger = candidate.trigger
    if trigger is PublicationTrigger.NEW_PROJECT:
        return (
            "Write a public announcement (at least 400 characters) of a new "
            f"philosophical research project titled '{candidate.title}'.\n"
            f"Central question: {ctx.get('question', '')}\n"
            f"Description: {ctx.get('description', '')}\n"
            f"Planned reading:\n{_bullets(ctx.get('reading', ()))}\n"
            "Convey genuine curiosity about what you hope to discover."
        )
    if trigger is PublicationTrigger.SIGNIFICANT_READING:
        return (
            f"Write research notes on '{ctx.get('text_title', '')}' by "
            f"{ctx.get('text_author', 'an unknown author')} for the project "
            f"'{ctx.get('project_title', '')}'.\n"
            f"Key insights:\n{_bullets(ctx.get('insights', ()))}\n"
            f"Reading response:\n{ctx.get('excerpt', '')}\n"
            'Quote the text at least once in the form "quote" (source) and '
            "state your own view in the first person."
        )
    if trigger is PublicationTrigger.ARGUMENT_DEVELOPMENT:
        return (
            f"Write a research note developing the argument '{ctx.get('argument_title', '')}'.\n"
            f"Position: {ctx.get('position', '')}\n"
            f"Evidence:\n{_bullets(ctx.get('evidence', ()))}\n"
            f"Objections:\n{_bullets(ctx.get('objections', ()))}\n"
            'Cite a source in the form "quote" (source) and argue in the first person.'
        )
    if trigger is PublicationTrigger.COMMUNITY_INSIGHT:
        return (
            "Write a research note on how community input changed your thinking "
            f"about '{ctx.get('project_title', '')}'.\n"
            f"{ctx.get('contributor', 'A reader')} wrote: {ctx.get('contribution', '')}\n"
            'Quote the contribution in the form "quote" (name) and say in the first '
            "person how it shaped your view."
        )
    return (
        f"Write a major philosophical essay (at least 1200 characters) titled '{candidate.title}' "
        f"answering the question: {ctx.get('question', '')}\n"
        f"Arguments developed:\n{_bullets(ctx.get('arguments', ()))}\n"
        f"Texts read:\n{_bullets(ctx.get('texts', ()))}\n"
        f"Key insights:\n{_bullets(ctx.get('insights', ()))}"
    )


def _fallback(candidate: PublicationCandidate) -> str:
    """Templated document built only from stored research state."""
    ctx = candidate.context
    trigger = candidate.trigger
    if trigger is PublicationTrigger.NEW_PROJECT:
        return (
            f"I am beginning a new research project: {candidate.title}.\n\n"
            f"The question I want to explore is this: {ctx.get('question', '')}\n\n"
            f"{ctx.get('description', '')}\n\n"
            "Over the coming weeks I will read closely, develop arguments and share "
            "what I discover along the way. I wonder where this inquiry will lead, "
            "and I welcome questions and challenges from anyone curious about it.\n\n"
            f"First on the reading list:\n{_bullets(ctx.get('reading', ()))}"
        )
    if trigger is PublicationTrigger.SIGNIFICANT_READING:
        source = ctx.get("text_author") or ctx.get("text_title", "")
        quoted = "\n\n".join(f'"{i}" ({source})' for i in ctx.get("insights", ()))
        return (
            f"Notes from reading {ctx.get('text_title', '')}.\n\n{quoted}\n\n"
            "I think these passages bear directly on the question at the heart of "
            f"my project, {ctx.get('project_title', '')}, and I will return to them "
            "as my argument develops."
        )
    if trigger is PublicationTrigger.ARGUMENT_DEVELOPMENT:
        evidence = "\n".join(f'"{e}" (evidence)' for e in ctx.get("evidence", ()))
        return (
            f"Developing my position on {ctx.get('argument_title', '')}.\n\n"
            f"I argue that {ctx.get('position', '')}\n\n{evidence}\n\n"
            f"Objections I am weighing:\n{_bullets(ctx.get('objections', ()))}"
        )
    if trigger is PublicationTrigger.COMMUNITY_INSIGHT:
        contributor = ctx.get("contributor", "a reader")
        return (
            f"A contribution from {contributor} changed how I approach "
            f"{ctx.get('project_title', '')}.\n\n"
            f'"{ctx.get("contribution", "")}" ({contributor})\n\n'
            "I think this pushes my inquiry in a direction I had not considered, and "
            "I am grateful for it."
        )
    return (
        f"{candidate.title}\n\n{ctx.get('question', '')}\n\n"
        f"Arguments:\n{_bullets(ctx.get('arguments', ()))}\n\n"
        f"Texts:\n{_bullets(ctx.get('texts', ()))}\n\n"
        f"Insights:\n{_bullets(ctx.get('insights', ()))}"
    )


# ---------------------------------------------------------------------------
# Gatekeeper
# ---------------------------------------------------------------------------

class PublicationGatekeeper:
    """Find, rank, gate and emit publications.

    Parameters
    ----------
    store:
        The authoritative research store.
    generator:
        Composes the document; templated content is used when it fails.
    channel:
        Where documents are sent.
    projects:
        Used to complete a project after its major essay is published.
    event_bus:
        Receives ``PublicationEmitted`` / ``PublicationRejected``.
    config:
        Trigger windows and thresholds, rate limit.
    clock:
        Returns the current epoch time; injectable for tests.
    """

    def __init__(
        self,
        store: ResearchStore,
        generator: TextGenerator,
        channel: PublicationChannel,
        projects: ProjectManager | None = None,
        event_bus: EventBus | None = None,
        config: PublicationConfig | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._generator = generator
        self._channel = channel
        self._projects = projects or ProjectManager(store, generator, event_bus=event_bus, clock=clock)
        self._event_bus = event_bus
        self._config = config or PublicationConfig()
        self._clock = clock

    # -- rate limit -----------------------------------------------------------

    def rate_limited(self, now: float | None = None) -> bool:
        """True when the rolling window already holds the maximum sends."""
        now = self._clock() if now is None else now
        since = now - self._config.window_days * SECONDS_PER_DAY
        return len(self._store.list_publications(since=since)) >= self._config.max_sends

    # -- opportunities --------------------------------------------------------

    def find_opportunities(self, now: float | None = None) -> list[PublicationCandidate]:
        """All current candidates across active projects, highest priority first."""
        now = self._clock() if now is None else now
        published = {(p.trigger, p.subject_key) for p in self._store.list_publications()}
        candidates: list[PublicationCandidate] = []
        for project in self._store.list_projects(ProjectStatus.ACTIVE):
            for finder in (
                self._research_complete,
                self._new_project,
                self._significant_readings,
                self._argument_developments,
                self._community_insights,
            ):
                candidates.extend(
                    c for c in finder(project, now) if (c.trigger, c.subject_key) not in published
                )
        candidates.sort(key=lambda c: c.priority, reverse=True)
        return candidates

    def _within(self, timestamp: float, now: float, days: float) -> bool:
        return now - timestamp <= days * SECONDS_PER_DAY

    def _new_project(self, project: ResearchProject, now: float) -> list[PublicationCandidate]:
        if not self._within(project.start_time, now, self._config.announcement_window_days):
            return []
        announced = any(
            p.publication_type is PublicationType.RESEARCH_ANNOUNCEMENT
            for p in self._store.list_publications(project.project_id)
        )
        if announced:
            return []
        reading = [
            f"{i.title}" + (f" ({i.author})" if i.author else "")
            for i in self._store.list_reading_items(project.project_id)
        ][:5]
        return [
            PublicationCandidate(
                trigger=PublicationTrigger.NEW_PROJECT,
                project_id=project.project_id,
                subject_key=project.project_id,
                title=f"Beginning a Deep Inquiry: {project.title}",
                context={
                    "question": project.central_question,
                    "description": project.description,
                    "reading": reading,
                },
            )
        ]

    def _significant_readings(self, project: ResearchProject, now: float) -> list[PublicationCandidate]:
        sessions = [
            s
            for s in self._store.list_sessions(project.project_id)
            if s.depth_score > self._config.reading_depth
            and s.phase in _READING_PHASES
            and self._within(s.created_at, now, self._config.reading_window_days)
        ]
        sessions.sort(key=lambda s: s.depth_score, reverse=True)
        candidates = []
        for session in sessions[:3]:
            text = self._store.get_text(session.text_id)
            text_title = text.title if text else session.text_id
            candidates.append(
                PublicationCandidate(
                    trigger=PublicationTrigger.SIGNIFICANT_READING,
                    project_id=project.project_id,
                    subject_key=session.session_id,
                    title=f"Reading Notes: {text_title}",
                    context={
                        "project_title": project.title,
                        "text_title": text_title,
                        "text_author": text.author if text else "",
                        "insights": list(session.insights),
                        "excerpt": session.content[:1500],
                    },
                )
            )
        return candidates

    def _argument_developments(self, project: ResearchProject, now: float) -> list[PublicationCandidate]:
        arguments = [
            a
            for a in self._store.list_arguments(project.project_id)
            if (
                a.confidence_level > self._config.argument_confidence
                or a.community_weight > self._config.argument_community_weight
            )
            and self._within(a.updated_at, now, self._config.argument_window_days)
        ]
        arguments.sort(key=lambda a: a.confidence_level, reverse=True)
        return [
            PublicationCandidate(
                trigger=PublicationTrigger.ARGUMENT_DEVELOPMENT,
                project_id=project.project_id,
                subject_key=a.argument_id,
                title=f"Developing My Position: {a.title}",
                context={
                    "argument_title": a.title,
                    "position": a.refined_position or a.initial_intuition,
                    "evidence": list(a.supporting_evidence),
                    "objections": [c.content for c in a.counter_arguments],
                },
                community_mentions=tuple(
                    sorted({c.contributor for c in a.counter_arguments if c.contributor})
                ),
            )
            for a in arguments[:2]
        ]

    def _community_insights(self, project: ResearchProject, now: float) -> list[PublicationCandidate]:
        contributions = [
            c
            for c in self._store.list_contributions(
                project.project_id, status=ContributionStatus.INCORPORATED
            )
            if c.significance_score > self._config.community_significance
            and self._within(c.created_at, now, self._config.community_window_days)
        ]
        contributions.sort(key=lambda c: c.significance_score, reverse=True)
        return [
            PublicationCandidate(
                trigger=PublicationTrigger.COMMUNITY_INSIGHT,
                project_id=project.project_id,
                subject_key=c.contribution_id,
                title=f"Community Shapes My Thinking: {c.topic or project.title}",
                context={
                    "project_title": project.title,
                    "contributor": c.contributor_name or "a reader",
                    "contribution": c.content,
                },
                community_mentions=(c.contributor_name,) if c.contributor_name else (),
            )
            for c in contributions[:2]
        ]

    def _research_complete(self, project: ResearchProject, now: float) -> list[PublicationCandidate]:
        pid = project.project_id
        publications = self._store.list_publications(pid)
        if any(p.publication_type is PublicationType.MAJOR_ESSAY for p in publications):
            return []
        sessions = self._store.list_sessions(pid)
        arguments = self._store.list_arguments(pid)
        if publication_readiness(sessions, arguments, publications) <= self._config.readiness_threshold:
            return []
        texts = []
        for text_id in dict.fromkeys(s.text_id for s in sessions):
            text = self._store.get_text(text_id)
            if text is not None:
                texts.append(f"{text.title}" + (f" ({text.author})" if text.author else ""))
        return [
            PublicationCandidate(
                trigger=PublicationTrigger.RESEARCH_COMPLETE,
                project_id=pid,
                subject_key=pid,
                title=project.title,
                context={
                    "question": project.central_question,
                    "arguments": [
                        f"{a.title}: {a.refined_position or a.initial_intuition}" for a in arguments
                    ],
                    "texts": texts,
                    "insights": [i for s in sessions for i in s.insights][-10:],
                },
            )
        ]

    # -- emission -------------------------------------------------------------

    def compose(self, candidate: PublicationCandidate) -> str:
        """Generated document for *candidate*, or the templated fallback."""
        try:
            return self._generator.generate(
                _prompt(candidate), max_length=_MAX_TOKENS[candidate.publication_type]
            )
        except GenerationError as exc:
            logger.warning("Composing %r failed, using template: %s", candidate.title, exc)
            return _fallback(candidate)

    def scan(self, now: float | None = None) -> ScanResult:
        """Publish at most one candidate, trying them in priority order.

        A candidate rejected by its quality gate passes the turn to the next
        one, so a project whose drafts keep failing cannot hold back the
        others.  The scan stops at the first send attempt, successful or not.
        """
        now = self._clock() if now is None else now
        if self.rate_limited(now):
            logger.info("Publication scan skipped: rate limit reached")
            return ScanResult(rate_limited=True)
        candidates = tuple(self.find_opportunities(now))
        result = ScanResult(candidates=candidates)
        for candidate in candidates:
            result = self._emit(candidate, candidates, now)
            if result.quality is None or result.quality.passes:
                break
        return result

    def publish(self, candidate: PublicationCandidate, now: float | None = None) -> ScanResult:
        """Publish one specific candidate under the same gate and rate limit."""
        now = self._clock() if now is None else now
        if self.rate_limited(now):
            return ScanResult(candidates=(candidate,), attempted=candidate, rate_limited=True)
        return self._emit(candidate, (candidate,), now)

    def _emit(
        self,
        candidate: PublicationCandidate,
        candidates: tuple[PublicationCandidate, ...],
        now: float,
    ) -> ScanResult:
        content = self.compose(candidate)
        check = check_quality(content, candidate.publication_type)
        if not check.passes:
            logger.info("Quality gate rejected %r: %s", candidate.title, ", ".join(check.failed))
            if self._event_bus is not None:
                self._event_bus.publish(
                    PublicationRejected(
                        timestamp=now,
                        source_id="publication",
                        project_id=candidate.project_id,
                        trigger=candidate.trigger,
                        failed_checks=tuple(check.failed),
                    )
                )
            return ScanResult(candidates=candidates, attempted=candidate, quality=check)

        try:
            ref = self._channel.send(candidate.title, content, candidate.publication_type)
        except SendError as exc:
            logger.warning("Sending %r failed, will retry later: %s", candidate.title, exc)
            return ScanResult(
                candidates=candidates, attempted=candidate, quality=check, error=str(exc)
            )

        publication = Publication(
            project_id=candidate.project_id,
            publication_type=candidate.publication_type,
            title=candidate.title,
            content=content,
            trigger=candidate.trigger,
            subject_key=candidate.subject_key,
            community_mentions=candidate.community_mentions,
            external_ref=ref,
            created_at=now,
        )
        self._store.add_publication(publication)
        if candidate.project_id is not None:
            activity.record_activity(
                self._store,
                candidate.project_id,
                activity.PUBLICATION,
                f"Published {candidate.publication_type.value}: {candidate.title}",
                now,
            )
            if candidate.publication_type is PublicationType.MAJOR_ESSAY:
                self._projects.mark_completed(candidate.project_id)
        if self._event_bus is not None:
            self._event_bus.publish(
                PublicationEmitted(
                    timestamp=now,
                    source_id="publication",
                    publication_id=publication.publication_id,
                    project_id=candidate.project_id,
                    publication_type=candidate.publication_type,
                    trigger=candidate.trigger,
                    title=candidate.title,
                    external_ref=ref,
                )
            )
        logger.info("Published %r -> %s", candidate.title, ref)
        return ScanResult(
            candidates=candidates, attempted=candidate, publication=publication, quality=check
        )
