"""Sustained Research Engine.

Autonomous multi-week philosophical research: projects built around a
central question, phased reading of texts, argument development,
autonomous source discovery and quality-gated publication.
"""

__version__ = "0.1.0"

from sustained_research.infrastructure.config import ResearchConfig
from sustained_research.services.scheduler import ResearchScheduler
from sustained_research.services.system import ResearchSystem

__all__ = [
    "ResearchConfig",
    "ResearchScheduler",
    "ResearchSystem",
]
