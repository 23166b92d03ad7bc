"""Research system facade.

``ResearchSystem`` wires the research services to their collaborators by
constructor injection and exposes the outer operations used by the CLI and
the scheduler.  There is no module-level state: two systems over two stores
are fully independent.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from langchain_core.language_models import BaseChatModel

from sustained_research.domain.entities import Argument, ForumContribution, ReadingSession
from sustained_research.domain.enums import ContributionType, PublicationTrigger, ReadingStatus
from sustained_research.infrastructure.channel import LoggingChannel, PublicationChannel, WebhookChannel
from sustained_research.infrastructure.config import ResearchConfig
from sustained_research.infrastructure.event_bus import EventBus
from sustained_research.infrastructure.fetcher import ContentFetcher, FirecrawlFetcher
from sustained_research.infrastructure.generation import ChatModelTextGenerator, TextGenerator
from sustained_research.infrastructure.sql_store import SqlStore
from sustained_research.infrastructure.store import InMemoryStore, ResearchStore
from sustained_research.services.arguments import ArgumentTracker
from sustained_research.services.discovery import DiscoveryReport, SourceDiscoveryPipeline
from sustained_research.services.inquiry import QueryOutcome, ResearchInquiry
from sustained_research.services.projects import Dashboard, ProjectManager
from sustained_research.services.publication import PublicationGatekeeper, ScanResult
from sustained_research.services.reading import ReadingSessionEngine

logger = logging.getLogger(__name__)

_RECENT_INSIGHT_SESSIONS = 5


class ResearchSystem:
    """All research services over one store.

    Parameters
    ----------
    store, generator, fetcher, channel:
        The four external collaborators.
    config:
        Bundled configuration; defaults apply when omitted.
    event_bus:
        Shared bus for domain events; a fresh one is created when omitted.
    clock:
        Returns the current epoch time; injectable for tests.
    """

    def __init__(
        self,
        store: ResearchStore,
        generator: TextGenerator,
        fetcher: ContentFetcher,
        channel: PublicationChannel,
        config: ResearchConfig | None = None,
        event_bus: EventBus | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config or ResearchConfig()
        self.store = store
        self.event_bus = event_bus or EventBus()
        self.clock = clock

        self.discovery = SourceDiscoveryPipeline(
            store, generator, fetcher, self.event_bus, self.config.discovery, clock
        )
        self.reading = ReadingSessionEngine(
            store, generator, self.event_bus, self.config.reading, clock
        )
        self.arguments = ArgumentTracker(store, generator, self.event_bus, clock)
        self.projects = ProjectManager(store, generator, self.discovery, self.event_bus, clock)
        self.publication = PublicationGatekeeper(
            store,
            generator,
            channel,
            self.projects,
            self.event_bus,
            self.config.publication,
            clock,
        )
        self.inquiry = ResearchInquiry(store, generator, self.projects)

    @classmethod
    def from_config(
        cls,
        config: ResearchConfig,
        model: BaseChatModel,
        store: ResearchStore | None = None,
        event_bus: EventBus | None = None,
    ) -> ResearchSystem:
        """Build a system with the adapters named by *config*."""
        if store is None:
            if config.store.backend == "memory":
                store = InMemoryStore()
            else:
                store = SqlStore(config.store.url, echo=config.store.echo)
        generator = ChatModelTextGenerator(
            model,
            persona=config.generation.persona,
            timeout=config.generation.timeout_seconds,
        )
        fetcher = FirecrawlFetcher(
            api_key=config.discovery.api_key,
            base_url=config.discovery.base_url,
            timeout=config.discovery.fetch_timeout,
        )
        channel: PublicationChannel
        if config.publication.webhook_url:
            channel = WebhookChannel(config.publication.webhook_url)
        else:
            channel = LoggingChannel()
        return cls(store, generator, fetcher, channel, config, event_bus)

    # -- projects -------------------------------------------------------------

    def create_project(
        self,
        question: str,
        estimated_weeks: int = 4,
        triggered_by: str | None = None,
    ) -> str:
        return self.projects.create_project(question, estimated_weeks, triggered_by)

    def get_dashboard(self, project_id: str) -> Dashboard | None:
        return self.projects.get_dashboard(project_id)

    def contribute(
        self,
        project_id: str,
        contributor: str,
        contribution_type: ContributionType,
        content: str,
        significance: float = 0.5,
        text_id: str | None = None,
        argument_id: str | None = None,
    ) -> ForumContribution | None:
        """Record community input; when aimed at an argument, a challenge
        becomes a counter-argument and anything else community feedback."""
        contribution = self.projects.add_contribution(
            project_id, contributor, contribution_type, content, significance, text_id
        )
        if argument_id is not None:
            if contribution_type is ContributionType.CHALLENGE:
                self.arguments.add_counter_argument(argument_id, content, contributor)
            else:
                self.arguments.add_community_feedback(argument_id, content)
        return contribution

    # -- reading --------------------------------------------------------------

    def next_text(self, project_id: str) -> str | None:
        """The highest-priority library text on the list not yet started."""
        items = [
            i
            for i in self.store.list_reading_items(project_id, ReadingStatus.FOUND)
            if i.text_id is not None
        ]
        items.sort(key=lambda i: (i.priority.rank, i.added_at))
        return items[0].text_id if items else None

    def begin_reading(
        self,
        project_id: str,
        text_id: str | None = None,
        contributed_by: str | None = None,
    ) -> ReadingSession | None:
        text_id = text_id or self.next_text(project_id)
        if text_id is None:
            logger.info("No text available to read for %s", project_id)
            return None
        return self.reading.begin_session(text_id, project_id, contributed_by)

    def run_due_phases(
        self,
        project_id: str | None = None,
        now: float | None = None,
    ) -> list[ReadingSession]:
        """Conduct every due reading phase (optionally for one project)."""
        sessions = []
        for pid, text_id, phase in self.reading.due_phases(now):
            if project_id is None or pid == project_id:
                sessions.append(self.reading.conduct_phase(text_id, pid, phase))
        return sessions

    # -- discovery and publication --------------------------------------------

    def discover_sources(self, project_id: str) -> DiscoveryReport:
        return self.discovery.discover_sources(project_id)

    def check_publication_opportunities(self, now: float | None = None) -> ScanResult:
        return self.publication.scan(now)

    def publish(
        self,
        project_id: str | None = None,
        trigger: PublicationTrigger | None = None,
        now: float | None = None,
    ) -> ScanResult:
        """Publish the best candidate matching *project_id* / *trigger*."""
        candidates = [
            c
            for c in self.publication.find_opportunities(now)
            if (project_id is None or c.project_id == project_id)
            and (trigger is None or c.trigger is trigger)
        ]
        if not candidates:
            return ScanResult()
        return self.publication.publish(candidates[0], now)

    def process_query(self, query: str, user_name: str = "anonymous") -> QueryOutcome:
        return self.inquiry.process_query(query, user_name)

    # -- autonomous advancement -----------------------------------------------

    def _recent_insights(self, project_id: str) -> tuple[list[str], str | None]:
        sessions = self.store.list_sessions(project_id)[-_RECENT_INSIGHT_SESSIONS:]
        insights = [i for s in sessions for i in s.insights]
        return insights, sessions[-1].text_id if sessions else None

    def advance_project(self, project_id: str, now: float | None = None) -> list[str]:
        """Do whatever work the project currently needs; returns what was done."""
        done: list[str] = []
        needs = self.projects.advancement_needs(project_id)

        in_progress = self.store.list_reading_items(project_id, ReadingStatus.READING)
        if "reading" in needs and not in_progress:
            if self.begin_reading(project_id) is not None:
                done.append("reading")

        if "argument" in needs:
            insights, text_id = self._recent_insights(project_id)
            argument: Argument | None = self.arguments.develop_from_insights(
                project_id, insights, text_id
            )
            if argument is not None:
                done.append("argument")

        if "discovery" in needs and self.discovery.discovery_due(project_id, now):
            self.discovery.discover_sources(project_id)
            done.append("discovery")

        if done:
            logger.info("Advanced %s: %s", project_id, ", ".join(done))
        return done
