"""Shared fixtures for the sustained research test suite."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from sustained_research.domain.entities import ResearchProject, Text
from sustained_research.infrastructure.channel import LoggingChannel, PublicationChannel
from sustained_research.infrastructure.config import ResearchConfig
from sustained_research.infrastructure.event_bus import EventBus, EventRecorder
from sustained_research.infrastructure.fetcher import ContentFetcher
from sustained_research.infrastructure.generation import ChatModelTextGenerator
from sustained_research.infrastructure.store import InMemoryStore
from sustained_research.services.system import ResearchSystem
from sustained_research.testing import FakeClock, MockChatModel, StaticFetcher
from tests.helpers.texts import QUESTION, SOURCE_CONTENT, STANDARD_RULES

# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def model() -> MockChatModel:
    """Mock chat model answering every standard prompt."""
    return MockChatModel(rules=dict(STANDARD_RULES))


@pytest.fixture
def generator(model: MockChatModel) -> ChatModelTextGenerator:
    return ChatModelTextGenerator(model, persona="test persona", timeout=5.0)


@pytest.fixture
def fetcher() -> StaticFetcher:
    """A fetcher that finds nothing."""
    return StaticFetcher()


@pytest.fixture
def channel() -> LoggingChannel:
    return LoggingChannel()


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def recorder(event_bus: EventBus) -> EventRecorder:
    recorder = EventRecorder()
    event_bus.subscribe_all(recorder)
    return recorder


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@pytest.fixture
def project(store: InMemoryStore, clock: FakeClock) -> ResearchProject:
    """An active project stored without going through generation."""
    project = ResearchProject(
        title="Language as Dwelling",
        central_question=QUESTION,
        description="An inquiry into language and existence.",
        start_time=clock.now,
        search_terms=("Language and being",),
    )
    store.add_project(project)
    return project


@pytest.fixture
def text(store: InMemoryStore, clock: FakeClock) -> Text:
    text = Text(
        title="On the Way to Language",
        author="Martin Heidegger",
        content=SOURCE_CONTENT,
        url="https://philosophy.example.edu/way-to-language",
        source="manual",
        added_at=clock.now,
    )
    store.add_text(text)
    return text


# ---------------------------------------------------------------------------
# System
# ---------------------------------------------------------------------------


@pytest.fixture
def build_system(
    store: InMemoryStore,
    clock: FakeClock,
    event_bus: EventBus,
) -> Callable[..., ResearchSystem]:
    """Factory for a system over the shared store, clock and bus."""

    def _build(
        model: MockChatModel | None = None,
        fetcher: ContentFetcher | None = None,
        channel: PublicationChannel | None = None,
        config: ResearchConfig | None = None,
    ) -> ResearchSystem:
        generator = ChatModelTextGenerator(
            model or MockChatModel(rules=dict(STANDARD_RULES)), timeout=5.0
        )
        return ResearchSystem(
            store,
            generator,
            fetcher or StaticFetcher(),
            channel or LoggingChannel(),
            config=config,
            event_bus=event_bus,
            clock=clock,
        )

    return _build


@pytest.fixture
def system(build_system: Callable[..., ResearchSystem]) -> ResearchSystem:
    return build_system()
