"""Value objects for the sustained research engine.

All types here are frozen dataclasses, immutable and compared by value.
They represent scores, assessments, search hits and quality verdicts that
have no identity beyond their content.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from .enums import (
    CredibilityTier,
    PublicationType,
    ScholarlyClass,
    SourceRecommendation,
)


def _check_unit(name: str, value: float) -> None:
    if not (0.0 <= value <= 1.0):
        raise ValueError(f"{name} must be in [0, 1], got {value}")


# ---------------------------------------------------------------------------
# Credibility
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CredibilityAssessment:
    """Seven-factor credibility assessment of a text.

    ``factors`` maps factor name to its score; ``score`` is their unweighted
    mean.
    """

    score: float
    factors: Mapping[str, float]
    recommendation: CredibilityTier
    citations_found: int = 0

    def __post_init__(self) -> None:
        _check_unit("score", self.score)

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "factors": dict(self.factors),
            "recommendation": self.recommendation.value,
            "citations_found": self.citations_found,
        }


# ---------------------------------------------------------------------------
# Source quality
# ---------------------------------------------------------------------------

QUALITY_WEIGHTS: tuple[float, ...] = (0.30, 0.25, 0.20, 0.15, 0.10)


@dataclass(frozen=True)
class SourceQuality:
    """Five-dimension quality score for a discovered source.

    The overall ``score`` is the weighted sum of relevance, credibility,
    novelty, depth and accessibility using :data:`QUALITY_WEIGHTS`.
    """

    relevance: float
    credibility: float
    novelty: float
    depth: float
    accessibility: float
    score: float = 0.0
    recommendation: SourceRecommendation = SourceRecommendation.SKIP

    def __post_init__(self) -> None:
        for name in ("relevance", "credibility", "novelty", "depth", "accessibility", "score"):
            _check_unit(name, getattr(self, name))

    @property
    def dimensions(self) -> tuple[float, ...]:
        return (self.relevance, self.credibility, self.novelty, self.depth, self.accessibility)

    @staticmethod
    def weighted(dimensions: tuple[float, ...]) -> float:
        """Weighted overall score for a 5-tuple of dimension scores."""
        return float(np.dot(np.asarray(QUALITY_WEIGHTS), np.asarray(dimensions, dtype=float)))

    def to_dict(self) -> dict[str, Any]:
        return {
            "relevance": self.relevance,
            "credibility": self.credibility,
            "novelty": self.novelty,
            "depth": self.depth,
            "accessibility": self.accessibility,
            "score": self.score,
            "recommendation": self.recommendation.value,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SourceQuality:
        return cls(
            relevance=data.get("relevance", 0.0),
            credibility=data.get("credibility", 0.0),
            novelty=data.get("novelty", 0.0),
            depth=data.get("depth", 0.0),
            accessibility=data.get("accessibility", 0.0),
            score=data.get("score", 0.0),
            recommendation=SourceRecommendation(data.get("recommendation", "skip")),
        )


# ---------------------------------------------------------------------------
# Argument validation
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ArgumentValidation:
    """Result of a scholarly validation audit of an argument."""

    score: float
    factors: Mapping[str, float] = field(default_factory=dict)
    validated_at: float = 0.0

    def __post_init__(self) -> None:
        _check_unit("score", self.score)

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "factors": dict(self.factors),
            "validated_at": self.validated_at,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ArgumentValidation:
        return cls(
            score=data.get("score", 0.0),
            factors=dict(data.get("factors", {})),
            validated_at=data.get("validated_at", 0.0),
        )


# ---------------------------------------------------------------------------
# Quality gate
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class QualityCheck:
    """Verdict of a publication quality gate.

    A failing check is a normal negative result, not an error: the
    candidate is simply dropped for the current scan.
    """

    publication_type: PublicationType
    checks: Mapping[str, bool]

    @property
    def passes(self) -> bool:
        return bool(self.checks) and all(self.checks.values())

    @property
    def score(self) -> float:
        if not self.checks:
            return 0.0
        return sum(1 for ok in self.checks.values() if ok) / len(self.checks)

    @property
    def failed(self) -> list[str]:
        return [name for name, ok in self.checks.items() if not ok]


# ---------------------------------------------------------------------------
# Scholarly assessment of a reading session
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ScholarlyAssessment:
    """Scholarly-standards summary attached to a reading session's text."""

    session_id: str
    credibility: CredibilityAssessment
    citations_count: int
    classification: ScholarlyClass
    peer_reviewed: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "source_credibility": self.credibility.score,
            "credibility_factors": dict(self.credibility.factors),
            "citations_count": self.citations_count,
            "scholarly_classification": self.classification.value,
            "peer_review_status": "peer_reviewed" if self.peer_reviewed else "not_peer_reviewed",
        }


# ---------------------------------------------------------------------------
# Fetcher results
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SearchHit:
    """A candidate source returned by a content search."""

    title: str
    url: str
    author: str = ""
    snippet: str = ""
    source_site: str = ""


# ---------------------------------------------------------------------------
# Dashboard helpers
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NextAction:
    """A recommended next step for a project, shown on the dashboard."""

    action: str
    description: str
    priority: str  # "high" | "medium" | "low"

    def to_dict(self) -> dict[str, str]:
        return {"action": self.action, "description": self.description, "priority": self.priority}
