"""Tests for the rich console renderer."""

from __future__ import annotations

import io

from sustained_research.domain.entities import Argument, ReadingSession, ResearchProject
from sustained_research.domain.enums import PublicationTrigger, PublicationType, ReadingPhase
from sustained_research.domain.values import QualityCheck
from sustained_research.presentation.console import ResearchConsole
from sustained_research.services.inquiry import QueryOutcome
from sustained_research.services.projects import Dashboard
from sustained_research.services.publication import PublicationCandidate, ScanResult
from sustained_research.services.scheduler import TickReport


def _render(draw) -> str:
    buffer = io.StringIO()
    draw(ResearchConsole(file=buffer))
    return buffer.getvalue()


class TestResearchConsole:

    def test_dashboard(self) -> None:
        project = ResearchProject(title="Language as Dwelling", central_question="Why words?")
        dashboard = Dashboard(
            project=project,
            now=project.start_time,
            arguments=(Argument(title="Use", confidence_level=0.5),),
        )
        out = _render(lambda c: c.print_dashboard(dashboard))
        assert "Language as Dwelling" in out
        assert "Publication readiness" in out
        assert "Use" in out

    def test_session(self) -> None:
        session = ReadingSession(
            phase=ReadingPhase.DEEP_ANALYSIS,
            depth_score=0.7,
            insights=("I realize meaning is use",),
            publication_candidate=True,
            next_phase=ReadingPhase.PHILOSOPHICAL_RESPONSE,
            next_phase_due=1_700_000_000.0,
        )
        out = _render(lambda c: c.print_session(session))
        assert "deep_analysis" in out
        assert "publication candidate" in out
        assert "next: philosophical_response" in out

    def test_scan_outcomes(self) -> None:
        candidate = PublicationCandidate(
            trigger=PublicationTrigger.NEW_PROJECT,
            project_id="p1",
            subject_key="p1",
            title="Beginning",
        )
        assert "Rate limit" in _render(lambda c: c.print_scan(ScanResult(rate_limited=True)))
        assert "No publication opportunities" in _render(lambda c: c.print_scan(ScanResult()))

        rejected = ScanResult(
            candidates=(candidate,),
            attempted=candidate,
            quality=QualityCheck(PublicationType.RESEARCH_ANNOUNCEMENT, {"length": False}),
        )
        assert "rejected" in _render(lambda c: c.print_scan(rejected))

    def test_query_and_tick(self) -> None:
        outcome = QueryOutcome(kind="response", message="Thanks")
        assert "response" in _render(lambda c: c.print_query(outcome))

        report = TickReport(tick=3, failures={"p1": "boom"})
        out = _render(lambda c: c.print_tick(report))
        assert "tick 3" in out
        assert "boom" in out
