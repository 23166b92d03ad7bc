"""Presentation layer: terminal rendering with ``rich``."""

from sustained_research.presentation.console import ResearchConsole

__all__ = ["ResearchConsole"]
