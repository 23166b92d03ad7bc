"""Research scheduler: periodic, per-project isolated research work.

Each tick runs one task per active project concurrently::

    due reading phases  ->  discovery (when due)  ->  autonomous advancement

followed by a single publication scan for the whole system.  Project work
is blocking (generation, fetching, store I/O), so every task runs in a
worker thread via ``asyncio.to_thread`` under ``asyncio.wait_for``.  A
slow or failing project never delays the others: results are gathered with
``return_exceptions=True`` and a project that keeps failing is skipped for
an exponentially growing number of ticks (1, 2, 4, ... capped).

A timed-out worker thread cannot be interrupted, so work is single-flight:
a project (or the publication scan) whose previous thread is still running
is skipped until that thread finishes.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from sustained_research.domain.enums import ProjectStatus
from sustained_research.infrastructure.config import SchedulerConfig
from sustained_research.services.publication import ScanResult

_SCAN = "publication-scan"

if TYPE_CHECKING:
    from sustained_research.services.system import ResearchSystem

logger = logging.getLogger(__name__)


@dataclass
class TickReport:
    """What happened during one scheduler tick."""

    tick: int
    completed: dict[str, list[str]] = field(default_factory=dict)
    failures: dict[str, str] = field(default_factory=dict)
    skipped: list[str] = field(default_factory=list)
    busy: list[str] = field(default_factory=list)
    publication: ScanResult | None = None


class ResearchScheduler:
    """Drives all periodic research work for a :class:`ResearchSystem`.

    Parameters
    ----------
    system:
        The wired research services.
    config:
        Tick interval, per-task timeout and backoff cap.
    clock:
        Returns the current epoch time; injectable for tests.
    """

    def __init__(
        self,
        system: ResearchSystem,
        config: SchedulerConfig | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._system = system
        self._config = config or system.config.scheduler
        self._clock = clock or system.clock or time.time
        self._tick = 0
        self._failures: dict[str, int] = {}
        self._resume_at: dict[str, int] = {}
        self._in_flight: set[str] = set()
        self._lock = threading.Lock()

    @property
    def tick_count(self) -> int:
        return self._tick

    def failures(self, project_id: str) -> int:
        """Consecutive failed ticks for *project_id*."""
        return self._failures.get(project_id, 0)

    def backing_off(self, project_id: str) -> bool:
        return self._resume_at.get(project_id, 0) > self._tick

    def in_flight(self, key: str) -> bool:
        """True while a worker thread for *key* is still running."""
        with self._lock:
            return key in self._in_flight

    def _claim(self, key: str) -> bool:
        with self._lock:
            if key in self._in_flight:
                return False
            self._in_flight.add(key)
            return True

    def _release(self, key: str) -> None:
        with self._lock:
            self._in_flight.discard(key)

    # -- project work ---------------------------------------------------------

    def _project_work(self, project_id: str, now: float) -> list[str] | None:
        if not self._claim(project_id):
            return None
        try:
            done: list[str] = []
            sessions = self._system.run_due_phases(project_id, now)
            if sessions:
                done.append(f"{len(sessions)} reading phases")
            done.extend(self._system.advance_project(project_id, now))
            return done
        finally:
            self._release(project_id)

    def _scan_work(self, now: float) -> ScanResult | None:
        if not self._claim(_SCAN):
            return None
        try:
            return self._system.check_publication_opportunities(now)
        finally:
            self._release(_SCAN)

    async def _run_project(self, project_id: str, now: float) -> list[str] | None:
        return await asyncio.wait_for(
            asyncio.to_thread(self._project_work, project_id, now),
            timeout=self._config.task_timeout,
        )

    def _record_failure(self, project_id: str, error: BaseException) -> None:
        count = self._failures.get(project_id, 0) + 1
        self._failures[project_id] = count
        delay = min(2 ** (count - 1), self._config.max_backoff_ticks)
        self._resume_at[project_id] = self._tick + 1 + delay
        logger.error(
            "Project %s failed (%d in a row), backing off %d ticks: %s",
            project_id,
            count,
            delay,
            error,
            exc_info=error,
        )

    def _record_success(self, project_id: str) -> None:
        self._failures.pop(project_id, None)
        self._resume_at.pop(project_id, None)

    # -- ticks ----------------------------------------------------------------

    async def tick(self, now: float | None = None) -> TickReport:
        """Run one round of work for every active project, then scan."""
        now = self._clock() if now is None else now
        report = TickReport(tick=self._tick)

        runnable: list[str] = []
        for project in self._system.store.list_projects(ProjectStatus.ACTIVE):
            if self.backing_off(project.project_id):
                report.skipped.append(project.project_id)
            elif self.in_flight(project.project_id):
                report.busy.append(project.project_id)
            else:
                runnable.append(project.project_id)

        results = await asyncio.gather(
            *(self._run_project(pid, now) for pid in runnable),
            return_exceptions=True,
        )
        for project_id, result in zip(runnable, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                self._record_failure(project_id, result)
                report.failures[project_id] = str(result) or type(result).__name__
            elif result is None:
                report.busy.append(project_id)
            else:
                self._record_success(project_id)
                report.completed[project_id] = result

        if self.in_flight(_SCAN):
            logger.warning(
                "Publication scan skipped on tick %d: previous scan still running", self._tick
            )
        else:
            try:
                report.publication = await asyncio.wait_for(
                    asyncio.to_thread(self._scan_work, now),
                    timeout=self._config.task_timeout,
                )
            except Exception:
                logger.exception("Publication scan failed on tick %d", self._tick)

        logger.info(
            "Tick %d: %d projects run, %d failed, %d backing off, %d still running",
            self._tick,
            len(runnable),
            len(report.failures),
            len(report.skipped),
            len(report.busy),
        )
        self._tick += 1
        return report

    async def run(
        self,
        stop_event: asyncio.Event | None = None,
        max_ticks: int | None = None,
        on_tick: Callable[[TickReport], None] | None = None,
    ) -> int:
        """Tick every ``tick_seconds`` until *stop_event* is set or *max_ticks*
        ticks have run.  Returns the number of ticks run."""
        stop_event = stop_event or asyncio.Event()
        ran = 0
        while not stop_event.is_set():
            report = await self.tick()
            ran += 1
            if on_tick is not None:
                on_tick(report)
            if max_ticks is not None and ran >= max_ticks:
                break
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self._config.tick_seconds)
            except asyncio.TimeoutError:
                pass
        logger.info("Scheduler stopped after %d ticks", ran)
        return ran
