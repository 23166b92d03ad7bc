"""Tests for the asynchronous research scheduler."""

from __future__ import annotations

import asyncio
import threading
import time
from collections.abc import Callable

import pytest

from sustained_research.domain.entities import ReadingSession, ResearchProject, Text
from sustained_research.domain.enums import ReadingPhase
from sustained_research.infrastructure.config import SchedulerConfig
from sustained_research.infrastructure.store import InMemoryStore
from sustained_research.services.scheduler import ResearchScheduler, TickReport
from sustained_research.services.system import ResearchSystem
from sustained_research.testing import FakeClock, MockChatModel
from tests.helpers.texts import STANDARD_RULES

FAST = SchedulerConfig(tick_seconds=0.01, task_timeout=5.0, max_backoff_ticks=16)


@pytest.fixture
def doomed(store: InMemoryStore, clock: FakeClock, text: Text) -> ResearchProject:
    """A project whose due reading phase can never be generated."""
    project = ResearchProject(title="Doomed Project", start_time=clock.now)
    store.add_project(project)
    store.add_session(
        ReadingSession(
            project_id=project.project_id,
            text_id=text.text_id,
            created_at=clock.now - 3 * 86400.0,
            next_phase=ReadingPhase.DEEP_ANALYSIS,
            next_phase_due=clock.now - 1,
        )
    )
    return project


@pytest.fixture
def fragile_system(build_system: Callable[..., ResearchSystem]) -> ResearchSystem:
    return build_system(model=MockChatModel(rules=dict(STANDARD_RULES), fail_on=["Doomed Project"]))


class TestTick:

    @pytest.mark.asyncio
    async def test_failing_project_is_isolated_and_backs_off(
        self,
        fragile_system: ResearchSystem,
        project: ResearchProject,
        doomed: ResearchProject,
    ) -> None:
        scheduler = ResearchScheduler(fragile_system, FAST)

        first = await scheduler.tick()
        assert doomed.project_id in first.failures
        assert project.project_id in first.completed
        assert scheduler.failures(doomed.project_id) == 1
        assert scheduler.failures(project.project_id) == 0

        second = await scheduler.tick()
        assert second.skipped == [doomed.project_id]
        assert project.project_id in second.completed

        third = await scheduler.tick()
        assert doomed.project_id in third.failures
        assert scheduler.failures(doomed.project_id) == 2

        for _ in range(2):
            report = await scheduler.tick()
            assert report.skipped == [doomed.project_id]
        assert scheduler.tick_count == 5
        assert not scheduler.backing_off(doomed.project_id)

    @pytest.mark.asyncio
    async def test_due_phase_runs_in_tick(
        self,
        system: ResearchSystem,
        project: ResearchProject,
        text: Text,
        store: InMemoryStore,
        clock: FakeClock,
    ) -> None:
        system.begin_reading(project.project_id, text.text_id)
        clock.advance(days=2)

        report = await ResearchScheduler(system, FAST).tick()

        assert "1 reading phases" in report.completed[project.project_id]
        phases = [s.phase for s in store.list_sessions(project.project_id, text.text_id)]
        assert phases[-1] is ReadingPhase.DEEP_ANALYSIS

    @pytest.mark.asyncio
    async def test_tick_publishes_once(self, system: ResearchSystem, project: ResearchProject) -> None:
        report = await ResearchScheduler(system, FAST).tick()
        assert report.publication is not None
        assert report.publication.published

    @pytest.mark.asyncio
    async def test_slow_project_times_out(
        self,
        system: ResearchSystem,
        project: ResearchProject,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        def slow(project_id: str | None = None, now: float | None = None) -> list[ReadingSession]:
            time.sleep(0.3)
            return []

        monkeypatch.setattr(system, "run_due_phases", slow)
        scheduler = ResearchScheduler(
            system, SchedulerConfig(tick_seconds=0.01, task_timeout=0.05)
        )

        report = await scheduler.tick()

        assert report.failures[project.project_id] == "TimeoutError"
        assert scheduler.backing_off(project.project_id)

    @pytest.mark.asyncio
    async def test_timed_out_project_is_single_flight(
        self,
        system: ResearchSystem,
        project: ResearchProject,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        release = threading.Event()
        calls: list[str] = []

        def stuck(project_id: str | None = None, now: float | None = None) -> list[ReadingSession]:
            calls.append(project_id)
            release.wait(timeout=5.0)
            return []

        monkeypatch.setattr(system, "run_due_phases", stuck)
        scheduler = ResearchScheduler(
            system, SchedulerConfig(tick_seconds=0.01, task_timeout=0.05)
        )
        try:
            first = await scheduler.tick()
            assert first.failures[project.project_id] == "TimeoutError"
            assert (await scheduler.tick()).skipped == [project.project_id]

            third = await scheduler.tick()
            assert third.busy == [project.project_id]
            assert calls == [project.project_id]
        finally:
            release.set()

        for _ in range(200):
            if not scheduler.in_flight(project.project_id):
                break
            await asyncio.sleep(0.01)
        fourth = await scheduler.tick()
        assert project.project_id in fourth.completed
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_running_scan_is_not_started_again(
        self, system: ResearchSystem, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        release = threading.Event()
        scans: list[float | None] = []

        def stuck_scan(now: float | None = None) -> None:
            scans.append(now)
            release.wait(timeout=5.0)

        monkeypatch.setattr(system, "check_publication_opportunities", stuck_scan)
        scheduler = ResearchScheduler(
            system, SchedulerConfig(tick_seconds=0.01, task_timeout=0.05)
        )
        try:
            assert (await scheduler.tick()).publication is None
            assert (await scheduler.tick()).publication is None
            assert len(scans) == 1
        finally:
            release.set()


class TestRun:

    @pytest.mark.asyncio
    async def test_max_ticks(self, system: ResearchSystem) -> None:
        reports: list[TickReport] = []
        ran = await ResearchScheduler(system, FAST).run(max_ticks=2, on_tick=reports.append)
        assert ran == 2
        assert [r.tick for r in reports] == [0, 1]

    @pytest.mark.asyncio
    async def test_stop_event(self, system: ResearchSystem) -> None:
        stop = asyncio.Event()
        stop.set()
        assert await ResearchScheduler(system, FAST).run(stop_event=stop) == 0

    @pytest.mark.asyncio
    async def test_stop_while_waiting(self, system: ResearchSystem) -> None:
        stop = asyncio.Event()
        scheduler = ResearchScheduler(system, SchedulerConfig(tick_seconds=60.0))

        task = asyncio.create_task(scheduler.run(stop_event=stop))
        await asyncio.sleep(0.05)
        stop.set()

        assert await asyncio.wait_for(task, timeout=5.0) == 1
