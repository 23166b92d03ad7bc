"""Rich-based terminal rendering for dashboards and pipeline results."""

from __future__ import annotations

import datetime
import sys
from collections.abc import Sequence
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from sustained_research.domain.entities import ReadingSession
from sustained_research.services.discovery import DiscoveryReport
from sustained_research.services.inquiry import QueryOutcome
from sustained_research.services.projects import Dashboard, estimated_weeks_remaining
from sustained_research.services.publication import ScanResult
from sustained_research.services.reading import BibliographyEntry
from sustained_research.services.scheduler import TickReport

_PRIORITY_STYLES = {"high": "bold red", "medium": "yellow", "low": "dim"}


def _rated(value: float) -> str:
    """Colour a unit score by band."""
    if value >= 0.8:
        colour = "green"
    elif value >= 0.6:
        colour = "yellow"
    elif value >= 0.4:
        colour = "orange3"
    else:
        colour = "red"
    return f"[{colour}]{value:.2f}[/{colour}]"


def _date(timestamp: float) -> str:
    return datetime.datetime.fromtimestamp(timestamp).strftime("%Y-%m-%d")


class ResearchConsole:
    """Renders research state to a terminal.

    Parameters
    ----------
    file:
        Output stream.  Defaults to ``sys.stdout``.
    """

    def __init__(self, file: Any = None) -> None:
        self._console = Console(file=file or sys.stdout)

    def message(self, text: str) -> None:
        self._console.print(text)

    # -- dashboard ------------------------------------------------------------

    def print_dashboard(self, dashboard: Dashboard) -> None:
        project = dashboard.project
        self._console.print()
        self._console.print(
            Panel(
                f"[bold]{project.central_question}[/bold]\n\n{project.description}",
                title=f"{project.title} [dim]({project.project_id})[/dim]",
                subtitle=f"{project.status.value} | {dashboard.phase.value}",
            )
        )

        progress = Table(title="Progress", show_header=False, header_style="bold cyan")
        progress.add_column("Item", style="bold")
        progress.add_column("Value", justify="right")
        progress.add_row("Started", _date(project.start_time))
        progress.add_row("Duration", f"{dashboard.duration_days} days")
        progress.add_row(
            "Estimated completion",
            f"{_date(project.estimated_completion)} "
            f"({estimated_weeks_remaining(dashboard)} weeks left)",
        )
        progress.add_row("Texts read", f"{project.texts_read} / {project.min_texts_required}")
        progress.add_row("Reading sessions", str(len(dashboard.sessions)))
        progress.add_row("Argument maturity", f"{project.argument_maturity:.2f}")
        progress.add_row("Publication readiness", f"{dashboard.readiness}%")
        progress.add_row("Sources discovered", str(len(dashboard.sources)))
        progress.add_row("Publications", str(len(dashboard.publications)))
        self._console.print(progress)

        if dashboard.reading_list:
            reading = Table(title="Reading List", header_style="bold cyan")
            reading.add_column("Title", style="bold")
            reading.add_column("Author")
            reading.add_column("Priority", justify="center")
            reading.add_column("Status", justify="center")
            reading.add_column("Suggested by", style="dim")
            for item in dashboard.reading_list:
                style = _PRIORITY_STYLES[item.priority.value]
                reading.add_row(
                    item.title,
                    item.author,
                    f"[{style}]{item.priority.value}[/{style}]",
                    item.status.value,
                    item.suggested_by,
                )
            self._console.print(reading)

        if dashboard.arguments:
            arguments = Table(title="Arguments", header_style="bold cyan")
            arguments.add_column("Title", style="bold")
            arguments.add_column("Confidence", justify="right")
            arguments.add_column("Evidence", justify="right")
            arguments.add_column("Objections", justify="right")
            arguments.add_column("Validation", justify="right")
            for arg in dashboard.arguments:
                arguments.add_row(
                    arg.title,
                    _rated(arg.confidence_level),
                    str(len(arg.supporting_evidence)),
                    str(len(arg.counter_arguments)),
                    _rated(arg.validation.score) if arg.validation else "[dim]-[/dim]",
                )
            self._console.print(arguments)

        if dashboard.next_actions:
            self._console.print("[bold]Next actions[/bold]")
            for action in dashboard.next_actions:
                style = _PRIORITY_STYLES.get(action.priority, "")
                self._console.print(f"  [{style}]{action.priority:>6}[/{style}]  {action.description}")
        self._console.print()

    # -- pipeline results -----------------------------------------------------

    def print_session(self, session: ReadingSession) -> None:
        self._console.print(
            f"[bold]{session.phase.value}[/bold] depth={_rated(session.depth_score)} "
            f"insights={len(session.insights)} questions={len(session.questions)}"
            + (" [green]publication candidate[/green]" if session.publication_candidate else "")
        )
        for insight in session.insights:
            self._console.print(f"  [cyan]*[/cyan] {insight}")
        if session.next_phase is not None and session.next_phase_due is not None:
            self._console.print(
                f"  [dim]next: {session.next_phase.value} on {_date(session.next_phase_due)}[/dim]"
            )

    def print_discovery(self, report: DiscoveryReport) -> None:
        table = Table(
            title=f"Discovery: {report.sources_found} found, {report.sources_promoted} promoted",
            header_style="bold cyan",
        )
        table.add_column("Title", style="bold")
        table.add_column("Term", style="dim")
        table.add_column("Score", justify="right")
        table.add_column("Recommendation", justify="center")
        table.add_column("Promoted", justify="center")
        for source in report.discovered:
            quality = source.quality
            table.add_row(
                source.title,
                source.search_term,
                _rated(source.quality_score),
                quality.recommendation.value if quality else "-",
                "[green]yes[/green]" if source.promoted else "no",
            )
        self._console.print(table)

    def print_scan(self, result: ScanResult) -> None:
        if result.rate_limited:
            self._console.print("[yellow]Rate limit reached; nothing published.[/yellow]")
            return
        if result.attempted is None:
            self._console.print("[dim]No publication opportunities.[/dim]")
            return
        attempted = result.attempted
        self._console.print(
            f"[bold]{attempted.publication_type.value}[/bold] (priority {attempted.priority}): "
            f"{attempted.title}"
        )
        if result.publication is not None:
            self._console.print(f"  [green]published[/green] -> {result.publication.external_ref}")
        elif result.quality is not None and not result.quality.passes:
            self._console.print(f"  [red]rejected[/red]: {', '.join(result.quality.failed)}")
        elif result.error:
            self._console.print(f"  [red]send failed[/red]: {result.error}")
        pending = [c for c in result.candidates if c is not attempted]
        if pending:
            self._console.print(f"  [dim]{len(pending)} more candidates pending[/dim]")

    def print_bibliography(self, entries: Sequence[BibliographyEntry]) -> None:
        table = Table(title="Bibliography", header_style="bold cyan")
        table.add_column("Title", style="bold")
        table.add_column("Author")
        table.add_column("Phases", justify="right")
        table.add_column("Credibility", justify="right")
        table.add_column("Class", justify="center")
        for entry in entries:
            table.add_row(
                entry.title,
                entry.author,
                str(entry.phases_completed),
                _rated(entry.credibility),
                entry.classification.value,
            )
        self._console.print(table)

    def print_query(self, outcome: QueryOutcome) -> None:
        self._console.print(f"[bold]{outcome.kind}[/bold]: {outcome.message}")
        if outcome.project_id:
            self._console.print(f"  project: {outcome.project_id}")

    def print_tick(self, report: TickReport) -> None:
        self._console.print(
            f"[bold]tick {report.tick}[/bold]: {len(report.completed)} ok, "
            f"{len(report.failures)} failed, {len(report.skipped)} backing off, "
            f"{len(report.busy)} still running"
        )
        for project_id, error in report.failures.items():
            self._console.print(f"  [red]{project_id}[/red]: {error}")
        if report.publication is not None:
            self.print_scan(report.publication)
