"""Tests for the event bus and recorder."""

from __future__ import annotations

from sustained_research.domain.events import (
    DomainEvent,
    ProjectCompleted,
    ProjectCreated,
)
from sustained_research.infrastructure.event_bus import EventBus, EventRecorder


class TestEventBus:

    def test_typed_subscription(self) -> None:
        bus = EventBus()
        received: list[DomainEvent] = []
        bus.subscribe(ProjectCreated, received.append)

        bus.publish(ProjectCreated(project_id="p1"))
        bus.publish(ProjectCompleted(project_id="p1"))

        assert [type(e) for e in received] == [ProjectCreated]

    def test_catch_all_runs_first(self) -> None:
        bus = EventBus()
        order: list[str] = []
        bus.subscribe(ProjectCreated, lambda e: order.append("typed"))
        bus.subscribe_all(lambda e: order.append("all"))

        bus.publish(ProjectCreated())

        assert order == ["all", "typed"]

    def test_failing_handler_is_isolated(self) -> None:
        bus = EventBus()
        received: list[DomainEvent] = []

        def broken(event: DomainEvent) -> None:
            raise RuntimeError("listener crashed")

        bus.subscribe(ProjectCreated, broken)
        bus.subscribe(ProjectCreated, received.append)

        bus.publish(ProjectCreated(project_id="p1"))

        assert len(received) == 1

    def test_unsubscribe_and_counts(self) -> None:
        bus = EventBus()
        handler = lambda e: None  # noqa: E731
        bus.subscribe(ProjectCreated, handler)
        bus.subscribe_all(handler)
        assert bus.handler_count(ProjectCreated) == 1
        assert bus.handler_count() == 2

        assert bus.unsubscribe(ProjectCreated, handler)
        assert not bus.unsubscribe(ProjectCreated, handler)
        assert bus.handler_count(ProjectCreated) == 0

        bus.clear()
        assert bus.handler_count() == 0


def test_recorder_filters_by_type() -> None:
    bus = EventBus()
    recorder = EventRecorder()
    bus.subscribe_all(recorder)

    bus.publish(ProjectCreated(project_id="p1"))
    bus.publish(ProjectCompleted(project_id="p1"))
    bus.publish(ProjectCreated(project_id="p2"))

    assert len(recorder) == 3
    assert [e.project_id for e in recorder.of_type(ProjectCreated)] == ["p1", "p2"]
    assert isinstance(recorder.events[1], ProjectCompleted)
