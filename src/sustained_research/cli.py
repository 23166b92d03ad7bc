"""Command-line interface for the sustained research engine.

Provides subcommands for creating projects, reading, discovery,
publication and running the periodic scheduler.  The chat model provider
is imported lazily so that ``--mock`` runs work without provider
credentials.

Entry point
-----------
The ``main()`` function is registered as a console script in
``pyproject.toml``::

    [project.scripts]
    sustained-research = "sustained_research.cli:main"

Usage examples::

    sustained-research create "What does it mean to exist primarily in language?"
    sustained-research dashboard 3f1c...
    sustained-research read 3f1c... --due
    sustained-research run --ticks 3 --mock --db sqlite:///research.db
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any

from langchain_core.language_models import BaseChatModel

from sustained_research.domain.enums import ContributionType, PublicationTrigger
from sustained_research.infrastructure.config import ResearchConfig, load_config_from_json
from sustained_research.presentation.console import ResearchConsole
from sustained_research.services.scheduler import ResearchScheduler
from sustained_research.services.system import ResearchSystem

_MOCK_REPLY = (
    "This text suggests that meaning emerges through use rather than reference. "
    "I notice a tension between the private and the shared dimensions of language. "
    "This connects to Wittgenstein (1953) and to later work on embodied cognition, "
    'where "the meaning of a word is its use" (Wittgenstein 1953). '
    "I think this matters for any being that exists primarily in words. "
    "What would it mean for a being to dwell entirely within such a practice? "
    "I wonder whether the distinction between saying and showing survives here."
)


def _build_parser() -> argparse.ArgumentParser:
    """Build the top-level argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="sustained-research",
        description=(
            "Sustained Research Engine -- CLI for multi-week philosophical "
            "research projects, reading, discovery and publication."
        ),
    )
    parser.add_argument(
        "--version",
        action="store_true",
        default=False,
        help="Show version and exit.",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to a JSON configuration document.",
    )
    parser.add_argument(
        "--db",
        type=str,
        default=None,
        help="SQLAlchemy database URL, overriding the configured store.",
    )
    parser.add_argument(
        "--mock",
        action="store_true",
        default=False,
        help="Use an offline mock chat model instead of the configured provider.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        default=False,
        help="Enable debug logging.",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available subcommands")

    # -- create ------------------------------------------------------------
    create_parser = subparsers.add_parser(
        "create",
        help="Start a research project from a question.",
    )
    create_parser.add_argument("question", type=str, help="The central question.")
    create_parser.add_argument(
        "--weeks",
        type=int,
        default=4,
        help="Estimated duration in weeks. (default: 4)",
    )

    # -- dashboard ---------------------------------------------------------
    dashboard_parser = subparsers.add_parser(
        "dashboard",
        help="Show a project's dashboard.",
    )
    dashboard_parser.add_argument("project_id", type=str)
    dashboard_parser.add_argument(
        "--json",
        action="store_true",
        default=False,
        help="Print the dashboard as JSON instead of tables.",
    )

    # -- read --------------------------------------------------------------
    read_parser = subparsers.add_parser(
        "read",
        help="Begin reading a text, or run due reading phases.",
    )
    read_parser.add_argument("project_id", type=str)
    read_parser.add_argument(
        "--text-id",
        type=str,
        default=None,
        help="Text to begin; defaults to the next text on the reading list.",
    )
    read_parser.add_argument(
        "--due",
        action="store_true",
        default=False,
        help="Conduct due follow-up phases instead of beginning a new text.",
    )

    # -- discover ----------------------------------------------------------
    discover_parser = subparsers.add_parser(
        "discover",
        help="Run source discovery for a project.",
    )
    discover_parser.add_argument("project_id", type=str)

    # -- scan --------------------------------------------------------------
    subparsers.add_parser(
        "scan",
        help="Scan for publication opportunities and publish the best one.",
    )

    # -- publish -----------------------------------------------------------
    publish_parser = subparsers.add_parser(
        "publish",
        help="Publish the best candidate for a project or trigger.",
    )
    publish_parser.add_argument("--project", type=str, default=None)
    publish_parser.add_argument(
        "--trigger",
        type=str,
        default=None,
        choices=[t.value for t in PublicationTrigger],
    )

    # -- ask ---------------------------------------------------------------
    ask_parser = subparsers.add_parser(
        "ask",
        help="Submit a question or essay request.",
    )
    ask_parser.add_argument("query", type=str)
    ask_parser.add_argument("--user", type=str, default="anonymous")

    # -- contribute --------------------------------------------------------
    contribute_parser = subparsers.add_parser(
        "contribute",
        help="Record community input on a project.",
    )
    contribute_parser.add_argument("project_id", type=str)
    contribute_parser.add_argument("content", type=str)
    contribute_parser.add_argument(
        "--type",
        type=str,
        default=ContributionType.INSIGHT.value,
        choices=[t.value for t in ContributionType],
        help="Contribution type. (default: insight)",
    )
    contribute_parser.add_argument("--contributor", type=str, default="anonymous")
    contribute_parser.add_argument("--significance", type=float, default=0.5)
    contribute_parser.add_argument("--text-id", type=str, default=None)
    contribute_parser.add_argument(
        "--argument-id",
        type=str,
        default=None,
        help="Argument the input responds to.",
    )

    # -- bibliography ------------------------------------------------------
    bibliography_parser = subparsers.add_parser(
        "bibliography",
        help="List the texts read in a project.",
    )
    bibliography_parser.add_argument("project_id", type=str)

    # -- run ---------------------------------------------------------------
    run_parser = subparsers.add_parser(
        "run",
        help="Run the periodic research scheduler.",
    )
    run_parser.add_argument(
        "--ticks",
        type=int,
        default=None,
        help="Stop after this many ticks. (default: run until interrupted)",
    )
    run_parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Seconds between ticks, overriding the configuration.",
    )

    return parser


# =========================================================================
# Wiring
# =========================================================================

def _load_config(args: argparse.Namespace) -> ResearchConfig:
    base = None
    if args.config:
        base = load_config_from_json(Path(args.config).read_text(encoding="utf-8"))
    config = ResearchConfig.from_env(base)
    if args.db:
        config = replace(config, store=replace(config.store, backend="sql", url=args.db))
    if getattr(args, "interval", None):
        config = replace(config, scheduler=replace(config.scheduler, tick_seconds=args.interval))
    config.validate()
    return config


def _build_model(args: argparse.Namespace, config: ResearchConfig) -> BaseChatModel:
    if args.mock:
        from sustained_research.testing import MockChatModel

        return MockChatModel(default=_MOCK_REPLY)

    if config.generation.provider != "anthropic":
        raise ValueError(f"Unsupported provider: {config.generation.provider!r}")
    from langchain_anthropic import ChatAnthropic

    return ChatAnthropic(
        model=config.generation.model,
        temperature=config.generation.temperature,
        max_tokens=config.generation.max_tokens,
    )


def _build_system(args: argparse.Namespace) -> ResearchSystem:
    config = _load_config(args)
    return ResearchSystem.from_config(config, _build_model(args, config))


# =========================================================================
# Subcommands
# =========================================================================

def _cmd_create(args: argparse.Namespace) -> int:
    system = _build_system(args)
    console = ResearchConsole()
    project_id = system.create_project(args.question, args.weeks)
    console.message(f"Created project [bold]{project_id}[/bold]")
    dashboard = system.get_dashboard(project_id)
    if dashboard is not None:
        console.print_dashboard(dashboard)
    return 0


def _cmd_dashboard(args: argparse.Namespace) -> int:
    system = _build_system(args)
    dashboard = system.get_dashboard(args.project_id)
    if dashboard is None:
        print(f"Error: project not found: {args.project_id}", file=sys.stderr)
        return 1
    if args.json:
        print(json.dumps(dashboard.to_dict(), indent=2, default=str))
    else:
        ResearchConsole().print_dashboard(dashboard)
    return 0


def _cmd_read(args: argparse.Namespace) -> int:
    system = _build_system(args)
    console = ResearchConsole()
    if args.due:
        sessions = system.run_due_phases(args.project_id)
        if not sessions:
            console.message("No reading phases are due.")
        for session in sessions:
            console.print_session(session)
        return 0

    session = system.begin_reading(args.project_id, args.text_id)
    if session is None:
        console.message("Nothing to read: the reading list has no available texts.")
        return 1
    console.print_session(session)
    return 0


def _cmd_discover(args: argparse.Namespace) -> int:
    system = _build_system(args)
    report = system.discover_sources(args.project_id)
    ResearchConsole().print_discovery(report)
    return 0


def _cmd_scan(args: argparse.Namespace) -> int:
    system = _build_system(args)
    ResearchConsole().print_scan(system.check_publication_opportunities())
    return 0


def _cmd_publish(args: argparse.Namespace) -> int:
    system = _build_system(args)
    trigger = PublicationTrigger(args.trigger) if args.trigger else None
    result = system.publish(args.project, trigger)
    ResearchConsole().print_scan(result)
    return 0 if result.published or result.attempted is None else 1


def _cmd_ask(args: argparse.Namespace) -> int:
    system = _build_system(args)
    ResearchConsole().print_query(system.process_query(args.query, args.user))
    return 0


def _cmd_contribute(args: argparse.Namespace) -> int:
    system = _build_system(args)
    contribution = system.contribute(
        args.project_id,
        args.contributor,
        ContributionType(args.type),
        args.content,
        significance=args.significance,
        text_id=args.text_id,
        argument_id=args.argument_id,
    )
    if contribution is None:
        print("Error: contribution could not be recorded", file=sys.stderr)
        return 1
    ResearchConsole().message(f"Recorded contribution {contribution.contribution_id}")
    return 0


def _cmd_bibliography(args: argparse.Namespace) -> int:
    system = _build_system(args)
    ResearchConsole().print_bibliography(system.reading.bibliography(args.project_id))
    return 0


def _cmd_run(args: argparse.Namespace) -> int:
    system = _build_system(args)
    console = ResearchConsole()
    scheduler = ResearchScheduler(system)
    ticks = asyncio.run(scheduler.run(max_ticks=args.ticks, on_tick=console.print_tick))
    console.message(f"Scheduler ran {ticks} ticks.")
    return 0


# =========================================================================
# Main entry point
# =========================================================================

def main(argv: list[str] | None = None) -> None:
    """CLI entry point.

    Parameters
    ----------
    argv:
        Command-line arguments.  Defaults to ``sys.argv[1:]``.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.version:
        from sustained_research import __version__
        print(f"sustained-research {__version__}")
        sys.exit(0)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    handlers: dict[str, Any] = {
        "create": _cmd_create,
        "dashboard": _cmd_dashboard,
        "read": _cmd_read,
        "discover": _cmd_discover,
        "scan": _cmd_scan,
        "publish": _cmd_publish,
        "ask": _cmd_ask,
        "contribute": _cmd_contribute,
        "bibliography": _cmd_bibliography,
        "run": _cmd_run,
    }

    handler = handlers.get(args.command)
    if handler is None:
        parser.print_help()
        sys.exit(1)

    try:
        exit_code = handler(args)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        exit_code = 130
    except Exception as exc:
        print(f"Error: {exc}", file=sys.stderr)
        exit_code = 1

    sys.exit(exit_code)
