"""Tests for the research system facade."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from sustained_research.domain.entities import ResearchProject, Text
from sustained_research.domain.enums import (
    ContributionType,
    PublicationTrigger,
    ReadingPhase,
    ReadingPriority,
)
from sustained_research.infrastructure.channel import LoggingChannel
from sustained_research.infrastructure.config import ResearchConfig, StoreConfig
from sustained_research.infrastructure.generation import ChatModelTextGenerator
from sustained_research.infrastructure.sql_store import SqlStore
from sustained_research.infrastructure.store import InMemoryStore
from sustained_research.services.system import ResearchSystem
from sustained_research.testing import FakeClock, MockChatModel, StaticFetcher
from tests.helpers.texts import QUESTION, STANDARD_RULES


@pytest.fixture
def queued_text(system: ResearchSystem, project: ResearchProject, text: Text) -> Text:
    system.projects.add_to_reading_list(
        project.project_id, text.title, priority=ReadingPriority.HIGH, text_id=text.text_id
    )
    return text


class TestProjects:

    def test_create_and_dashboard(self, system: ResearchSystem) -> None:
        project_id = system.create_project(QUESTION, estimated_weeks=3)
        dashboard = system.get_dashboard(project_id)
        assert dashboard is not None
        assert dashboard.project.estimated_weeks == 3
        assert system.get_dashboard("missing") is None

    def test_systems_are_independent(self, clock: FakeClock) -> None:
        def build(store: InMemoryStore) -> ResearchSystem:
            generator = ChatModelTextGenerator(MockChatModel(rules=dict(STANDARD_RULES)))
            return ResearchSystem(store, generator, StaticFetcher(), LoggingChannel(), clock=clock)

        first, second = build(InMemoryStore()), build(InMemoryStore())
        project_id = first.create_project(QUESTION)
        assert second.get_dashboard(project_id) is None


class TestContribute:

    def test_challenge_becomes_counter_argument(
        self, system: ResearchSystem, project: ResearchProject, store: InMemoryStore
    ) -> None:
        argument_id = system.arguments.create_argument(project.project_id, "Dwelling", "Words house us.")

        contribution = system.contribute(
            project.project_id,
            "ben",
            ContributionType.CHALLENGE,
            "Words are only tools.",
            argument_id=argument_id,
        )

        argument = store.get_argument(argument_id)
        assert [c.content for c in argument.counter_arguments] == ["Words are only tools."]
        assert argument.community_feedback == ()
        assert store.list_contributions(project.project_id) == [contribution]

    def test_other_input_becomes_feedback(
        self, system: ResearchSystem, project: ResearchProject, store: InMemoryStore
    ) -> None:
        argument_id = system.arguments.create_argument(project.project_id, "Dwelling", "Words house us.")

        system.contribute(
            project.project_id, "ana", ContributionType.INSIGHT, "See Gadamer.", argument_id=argument_id
        )

        argument = store.get_argument(argument_id)
        assert argument.community_feedback == ("See Gadamer.",)
        assert argument.community_weight == pytest.approx(0.1)
        assert argument.counter_arguments == ()


class TestReading:

    def test_next_text_prefers_priority(
        self, system: ResearchSystem, project: ResearchProject, queued_text: Text, store: InMemoryStore
    ) -> None:
        other = Text(title="Minor Essay", content="Some words.")
        store.add_text(other)
        system.projects.add_to_reading_list(
            project.project_id, other.title, priority=ReadingPriority.LOW, text_id=other.text_id
        )
        assert system.next_text(project.project_id) == queued_text.text_id

    def test_nothing_to_read(self, system: ResearchSystem, project: ResearchProject) -> None:
        assert system.next_text(project.project_id) is None
        assert system.begin_reading(project.project_id) is None

    def test_due_phases_are_run(
        self,
        system: ResearchSystem,
        project: ResearchProject,
        queued_text: Text,
        clock: FakeClock,
    ) -> None:
        first = system.begin_reading(project.project_id)
        assert first.text_id == queued_text.text_id
        assert system.run_due_phases(project.project_id) == []

        clock.advance(days=2)
        [session] = system.run_due_phases(project.project_id)
        assert session.phase is ReadingPhase.DEEP_ANALYSIS
        assert system.run_due_phases("other-project") == []


class TestAdvanceProject:

    def test_does_needed_work(
        self,
        system: ResearchSystem,
        project: ResearchProject,
        queued_text: Text,
        store: InMemoryStore,
    ) -> None:
        done = system.advance_project(project.project_id)

        assert done == ["reading", "argument", "discovery"]
        assert len(store.list_sessions(project.project_id)) == 1
        [argument] = store.list_arguments(project.project_id)
        assert argument.source_text_id == queued_text.text_id

    def test_reading_in_progress_is_not_restarted(
        self, system: ResearchSystem, project: ResearchProject, queued_text: Text
    ) -> None:
        system.advance_project(project.project_id)
        assert "reading" not in system.advance_project(project.project_id)


class TestPublication:

    def test_publish_filters_candidates(
        self, system: ResearchSystem, project: ResearchProject
    ) -> None:
        assert not system.publish(project.project_id, PublicationTrigger.RESEARCH_COMPLETE).published

        result = system.publish(project.project_id, PublicationTrigger.NEW_PROJECT)
        assert result.published
        assert result.publication.project_id == project.project_id

    def test_query_routing(self, system: ResearchSystem) -> None:
        outcome = system.process_query("Deep dive into the ethics of attention")
        assert outcome.kind == "essay_project"
        assert system.get_dashboard(outcome.project_id) is not None


class TestFromConfig:

    @pytest.fixture(autouse=True)
    def offline_fetcher(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def fake(**kwargs: Any) -> StaticFetcher:
            return StaticFetcher()

        monkeypatch.setattr("sustained_research.services.system.FirecrawlFetcher", fake)

    def test_memory_backend(self) -> None:
        config = ResearchConfig(store=StoreConfig(backend="memory"))
        system = ResearchSystem.from_config(config, MockChatModel(rules=dict(STANDARD_RULES)))
        assert isinstance(system.store, InMemoryStore)
        assert system.config is config

    def test_sql_backend(self, tmp_path: Path) -> None:
        config = ResearchConfig(store=StoreConfig(url=f"sqlite:///{tmp_path / 'r.db'}"))
        system = ResearchSystem.from_config(config, MockChatModel(rules=dict(STANDARD_RULES)))
        assert isinstance(system.store, SqlStore)

        project_id = system.create_project(QUESTION)
        assert system.store.get_project(project_id).central_question == QUESTION

    def test_explicit_store_wins(self) -> None:
        store = InMemoryStore()
        system = ResearchSystem.from_config(ResearchConfig(), MockChatModel(), store=store)
        assert system.store is store
