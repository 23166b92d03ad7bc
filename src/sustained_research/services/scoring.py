"""Scoring library: pure, deterministic text-feature scoring.

Every function here depends only on its arguments (the current year is an
explicit parameter where recency matters), so identical inputs always give
identical scores.  The functions fall into five groups:

* **Credibility** of a text: seven equally weighted factors (author
  reputation, institutional affiliation, citation count, argument rigor,
  primary-source status, recency, peer review).
* **Source quality** for discovery: relevance, credibility, novelty, depth
  and accessibility, combined with fixed weights.
* **Reading depth** of a generated reading response, scaled by phase.
* **Argument validation**: five scholarly-standard factors.
* **Publication quality gates** per publication type.

Lexical matching is substring based and case-insensitive throughout.
"""

from __future__ import annotations

import datetime
import math
import re
from collections.abc import Iterable, Sequence

import numpy as np

from sustained_research.domain.entities import Argument, ResearchProject
from sustained_research.domain.enums import (
    CredibilityTier,
    PublicationType,
    ReadingPhase,
    ReadingPriority,
    ScholarlyClass,
    SourceRecommendation,
)
from sustained_research.domain.values import (
    ArgumentValidation,
    CredibilityAssessment,
    QualityCheck,
    SourceQuality,
)


def _count_present(text: str, terms: Iterable[str]) -> int:
    lowered = text.lower()
    return sum(1 for term in terms if term in lowered)


def _any_present(text: str, terms: Iterable[str]) -> bool:
    lowered = text.lower()
    return any(term in lowered for term in terms)


def _mean(values: Sequence[float]) -> float:
    return float(np.mean(values)) if len(values) else 0.0


# ===================================================================== #
#  Citations and years                                                   #
# ===================================================================== #

_CITATION_PATTERNS = (
    re.compile(r"\([^)]*\d{4}[^)]*\)"),     # (Author 2020)
    re.compile(r'"[^"]+"\s*\([^)]+\)'),     # "Quote" (Source)
    re.compile(r"\[[^\]]*\]"),              # [1], [Author 2020]
    re.compile(r"\b\w+\s*\(\d{4}\)"),       # Author (2020)
)

_YEAR_RE = re.compile(r"\b(?:19|20)\d{2}\b")


def extract_citations(content: str) -> list[str]:
    """All citation-like spans in *content*, de-duplicated in order of pattern."""
    found: list[str] = []
    seen: set[str] = set()
    for pattern in _CITATION_PATTERNS:
        for match in pattern.findall(content):
            if match not in seen:
                seen.add(match)
                found.append(match)
    return found


def extract_latest_year(content: str) -> int | None:
    years = [int(y) for y in _YEAR_RE.findall(content)]
    return max(years) if years else None


# ===================================================================== #
#  Credibility                                                           #
# ===================================================================== #

RECOGNIZED_PHILOSOPHERS = (
    "kant", "heidegger", "nietzsche", "derrida", "foucault", "deleuze",
    "levinas", "husserl", "sartre", "beauvoir", "butler", "habermas",
    "wittgenstein", "quine", "davidson", "putnam", "kripke", "lewis",
    "chalmers", "dennett", "nagel", "searle", "block", "jackendoff",
)
_ACADEMIC_AUTHOR_MARKERS = ("professor", "dr.", "ph.d", "university", "college")
_ACADEMIC_URL_MARKERS = (".edu", "university", "college", "academy")
_ACADEMIC_CONTENT_MARKERS = ("department", "faculty", "professor", "research")
_PRIMARY_SOURCE_MARKERS = (
    "collected works", "complete works", "selected writings",
    "original text", "primary source", "first edition",
)
_PEER_REVIEW_MARKERS = (
    "peer review", "reviewed journal", "academic journal",
    "quarterly", "journal of", "philosophical review",
)

RIGOR_FAMILIES: dict[str, tuple[str, ...]] = {
    "logical_structure": ("therefore", "thus", "consequently", "follows that", "implies", "because"),
    "evidence_quality": ("evidence", "study", "research", "data", "experiment", "survey"),
    "counter_consideration": (
        "however", "but", "although", "nevertheless", "on the other hand", "conversely",
    ),
    "qualification": ("might", "perhaps", "possibly", "seems", "appears", "likely"),
    "precision": ("specifically", "precisely", "exactly", "particular", "distinct"),
}


def is_recognized_philosopher(author: str) -> bool:
    return _any_present(author, RECOGNIZED_PHILOSOPHERS)


def is_academic_author(author: str) -> bool:
    return _any_present(author, _ACADEMIC_AUTHOR_MARKERS)


def has_academic_affiliation(content: str, url: str | None = None) -> bool:
    if url and any(marker in url for marker in _ACADEMIC_URL_MARKERS):
        return True
    return _any_present(content, _ACADEMIC_CONTENT_MARKERS)


def is_primary_source(title: str, content: str) -> bool:
    return _any_present(title, _PRIMARY_SOURCE_MARKERS) or _any_present(
        content, _PRIMARY_SOURCE_MARKERS
    )


def is_peer_reviewed(content: str, url: str | None = None) -> bool:
    return _any_present(content, _PEER_REVIEW_MARKERS) or bool(
        url and _any_present(url, _PEER_REVIEW_MARKERS)
    )


def assess_recency(content: str, current_year: int) -> float:
    """0.9 / 0.7 / 0.5 / 0.3 by the age of the latest year mentioned."""
    latest = extract_latest_year(content)
    if latest is None:
        return 0.3
    age = current_year - latest
    if age <= 5:
        return 0.9
    if age <= 10:
        return 0.7
    if age <= 20:
        return 0.5
    return 0.3


def assess_argument_rigor(content: str) -> float:
    """Mean hit ratio over the five rigor marker families."""
    ratios = [_count_present(content, terms) / len(terms) for terms in RIGOR_FAMILIES.values()]
    return _mean(ratios)


def credibility_tier(score: float) -> CredibilityTier:
    if score >= 0.8:
        return CredibilityTier.HIGHLY_CREDIBLE
    if score >= 0.6:
        return CredibilityTier.CREDIBLE
    if score >= 0.4:
        return CredibilityTier.MODERATE_CREDIBILITY
    return CredibilityTier.LOW_CREDIBILITY


def evaluate_credibility(
    title: str,
    author: str,
    content: str,
    url: str | None = None,
    current_year: int | None = None,
) -> CredibilityAssessment:
    """Seven-factor credibility assessment.

    Parameters
    ----------
    title, author, content:
        The text under assessment.
    url:
        Where it was found, if known; academic domains and journal paths
        count towards affiliation and peer review.
    current_year:
        Reference year for recency.  Defaults to today's year.
    """
    year = current_year if current_year is not None else datetime.date.today().year
    citations = extract_citations(content)

    if is_recognized_philosopher(author):
        reputation = 0.9
    elif is_academic_author(author):
        reputation = 0.7
    else:
        reputation = 0.3

    if len(citations) > 5:
        citation_quality = 0.8
    elif citations:
        citation_quality = 0.5
    else:
        citation_quality = 0.0

    factors = {
        "author_reputation": reputation,
        "institutional_affiliation": 0.8 if has_academic_affiliation(content, url) else 0.0,
        "citation_quality": citation_quality,
        "argument_rigor": assess_argument_rigor(content),
        "primary_source": 1.0 if is_primary_source(title, content) else 0.0,
        "recency": assess_recency(content, year),
        "peer_review": 0.9 if is_peer_reviewed(content, url) else 0.0,
    }
    score = min(1.0, _mean(list(factors.values())))
    return CredibilityAssessment(
        score=score,
        factors=factors,
        recommendation=credibility_tier(score),
        citations_found=len(citations),
    )


def classify_scholarly(score: float, citation_count: int) -> ScholarlyClass:
    if score >= 0.8 and citation_count >= 10:
        return ScholarlyClass.HIGHLY_SCHOLARLY
    if score >= 0.6 and citation_count >= 5:
        return ScholarlyClass.SCHOLARLY
    if score >= 0.4 and citation_count >= 1:
        return ScholarlyClass.SEMI_SCHOLARLY
    return ScholarlyClass.POPULAR


# ===================================================================== #
#  Source quality                                                        #
# ===================================================================== #

def _long_words(text: str, min_length: int = 4) -> list[str]:
    return [w for w in text.lower().split() if len(w) >= min_length]


def project_terms(project: ResearchProject) -> list[str]:
    """Words longer than three characters from title, question and description."""
    return _long_words(f"{project.title} {project.central_question} {project.description}")


def assess_relevance(title: str, content: str, project: ResearchProject) -> float:
    """Share of project words that appear in the source, over at least 5 words."""
    words = project_terms(project)
    haystack = f"{title} {content}".lower()
    matched = [w for w in words if w in haystack]
    return min(len(matched) / max(len(words), 5), 1.0)


def title_similarity(first: str, second: str) -> float:
    """Token-overlap ratio: shared words over the union of words."""
    words1 = set(first.lower().split())
    words2 = set(second.lower().split())
    union = words1 | words2
    if not union:
        return 0.0
    return len(words1 & words2) / len(union)


def assess_novelty(
    title: str,
    existing_titles: Iterable[str],
    threshold: float = 0.8,
) -> float:
    """0.2 when *title* duplicates or closely matches an existing title, else 1.0."""
    candidate = title.lower().strip()
    for existing in existing_titles:
        other = existing.lower().strip()
        if other == candidate or title_similarity(other, candidate) >= threshold:
            return 0.2
    return 1.0


_DEPTH_CITATION_RE = re.compile(r"\[[^\]]+\]|\([^)]*\d{4}[^)]*\)")
_DEPTH_ARGUMENT_RE = re.compile(r"\b(therefore|thus|because|however|although)\b", re.IGNORECASE)
_DEPTH_TECHNICAL_RE = re.compile(
    r"\b(analysis|methodology|framework|theory|concept)\b", re.IGNORECASE
)


def assess_content_depth(content: str) -> float:
    """Mean of length, citation, argument-marker and technical-term indicators."""
    indicators = [
        min(len(content) / 2000, 1.0),
        1.0 if len(_DEPTH_CITATION_RE.findall(content)) > 5 else 0.5,
        1.0 if len(_DEPTH_ARGUMENT_RE.findall(content)) > 3 else 0.5,
        1.0 if len(_DEPTH_TECHNICAL_RE.findall(content)) > 2 else 0.5,
    ]
    return _mean(indicators)


def assess_accessibility(content: str) -> float:
    """Readability from average sentence length (10-20 words is the sweet spot)."""
    sentences = len(re.split(r"[.!?]+", content))
    words = len(content.split())
    average = words / sentences
    if 10 <= average <= 20:
        return 0.9
    if 5 <= average <= 30:
        return 0.7
    return 0.5


def source_recommendation(score: float) -> SourceRecommendation:
    if score >= 0.8:
        return SourceRecommendation.HIGH_PRIORITY
    if score >= 0.6:
        return SourceRecommendation.MEDIUM_PRIORITY
    if score >= 0.4:
        return SourceRecommendation.LOW_PRIORITY
    return SourceRecommendation.SKIP


def priority_from_score(score: float) -> ReadingPriority:
    if score >= 0.8:
        return ReadingPriority.HIGH
    if score >= 0.6:
        return ReadingPriority.MEDIUM
    return ReadingPriority.LOW


def combine_quality(
    relevance: float,
    credibility: float,
    novelty: float,
    depth: float,
    accessibility: float,
) -> SourceQuality:
    """Weighted overall score (0.30/0.25/0.20/0.15/0.10) and recommendation."""
    dimensions = (relevance, credibility, novelty, depth, accessibility)
    score = max(0.0, min(1.0, SourceQuality.weighted(dimensions)))
    return SourceQuality(
        relevance=relevance,
        credibility=credibility,
        novelty=novelty,
        depth=depth,
        accessibility=accessibility,
        score=score,
        recommendation=source_recommendation(score),
    )


def evaluate_source_quality(
    title: str,
    author: str,
    content: str,
    project: ResearchProject,
    existing_titles: Iterable[str] = (),
    url: str | None = None,
    current_year: int | None = None,
    novelty_threshold: float = 0.8,
) -> SourceQuality:
    """Score a candidate source against a project and its current reading list."""
    return combine_quality(
        relevance=assess_relevance(title, content, project),
        credibility=evaluate_credibility(title, author, content, url, current_year).score,
        novelty=assess_novelty(title, existing_titles, novelty_threshold),
        depth=assess_content_depth(content),
        accessibility=assess_accessibility(content),
    )


# ===================================================================== #
#  Reading depth                                                         #
# ===================================================================== #

DEPTH_INDICATORS = (
    "question", "challenge", "connect", "synthesis", "develop", "explore",
    "phenomenology", "consciousness", "existence", "meaning", "experience",
    "temporal", "embodiment", "language", "identity", "responsibility",
)
_DEPTH_SATURATION = 15


def reading_depth(content: str, phase: ReadingPhase) -> float:
    """Indicator density (capped at 1) times the phase weight."""
    density = min(1.0, _count_present(content, DEPTH_INDICATORS) / _DEPTH_SATURATION)
    return density * phase.weight


def reading_time_minutes(content: str, words_per_minute: int = 200) -> int:
    return math.ceil(len(content.split()) / words_per_minute)


# ===================================================================== #
#  Argument validation                                                   #
# ===================================================================== #

_LOGICAL_MARKERS = ("therefore", "thus", "because", "since", "given that", "follows")
_CONTRADICTION_MARKERS = ("but not", "however not", "contradiction", "inconsistent")
_EVIDENCE_TYPES = ("study", "research", "experiment", "data", "observation", "example")
_PRECISION_MARKERS = ("specifically", "precisely", "exactly", "in particular", "namely")
_CLARITY_MARKERS = ("that is", "in other words", "to clarify", "more precisely")


def logical_consistency(argument: Argument) -> float:
    text = " ".join(
        [argument.initial_intuition, *argument.supporting_evidence, argument.refined_position]
    )
    has_flow = _any_present(text, _LOGICAL_MARKERS)
    if has_flow and not _any_present(text, _CONTRADICTION_MARKERS):
        return 0.8
    return 0.6 if has_flow else 0.3


def evidence_support(argument: Argument) -> float:
    text = " ".join(argument.supporting_evidence)
    return min(_count_present(text, _EVIDENCE_TYPES) / len(_EVIDENCE_TYPES), 1.0)


def counter_argument_treatment(argument: Argument) -> float:
    """Tiered by the total length of counter-argument text."""
    length = len(" ".join(c.content for c in argument.counter_arguments).strip())
    if length == 0:
        return 0.0
    if length < 50:
        return 0.3
    if length < 200:
        return 0.6
    return 0.9


def citation_adequacy(argument: Argument) -> float:
    text = " ".join(
        [
            argument.initial_intuition,
            *argument.supporting_evidence,
            *(c.content for c in argument.counter_arguments),
        ]
    )
    count = len(set(extract_citations(text)) | set(argument.citations))
    if count >= 3:
        return 0.9
    if count >= 1:
        return 0.6
    return 0.2


def clarity_precision(argument: Argument) -> float:
    text = f"{argument.initial_intuition} {argument.refined_position or argument.initial_intuition}"
    score = 0.0
    if _any_present(text, _PRECISION_MARKERS):
        score += 0.5
    if _any_present(text, _CLARITY_MARKERS):
        score += 0.5
    return score


def validate_argument(argument: Argument, validated_at: float = 0.0) -> ArgumentValidation:
    """Average of the five scholarly-standard factors."""
    factors = {
        "logical_consistency": logical_consistency(argument),
        "evidence_support": evidence_support(argument),
        "counter_argument_consideration": counter_argument_treatment(argument),
        "citation_adequacy": citation_adequacy(argument),
        "clarity_precision": clarity_precision(argument),
    }
    return ArgumentValidation(
        score=min(1.0, _mean(list(factors.values()))),
        factors=factors,
        validated_at=validated_at,
    )


# ===================================================================== #
#  Publication quality gates                                             #
# ===================================================================== #

_QUOTED_CITATION_RE = re.compile(r'"[^"]+"\s*\([^)]+\)')
_ORIGINALITY_MARKERS = ("i think", "i believe", "my view", "i argue", "i suggest", "it seems to me")
_CURIOSITY_MARKERS = ("wonder", "question", "explore", "discover", "investigate", "curious")

QUALITY_STANDARDS: dict[PublicationType, dict[str, object]] = {
    PublicationType.RESEARCH_ANNOUNCEMENT: {"min_length": 400, "curiosity": True},
    PublicationType.RESEARCH_NOTE: {"min_length": 300, "citations": True, "originality": True},
    PublicationType.MAJOR_ESSAY: {"min_length": 1200},
}


def check_quality(content: str, publication_type: PublicationType) -> QualityCheck:
    """Apply the type-specific gate; every check must pass."""
    standards = QUALITY_STANDARDS[publication_type]
    checks: dict[str, bool] = {"length": len(content) >= int(standards["min_length"])}  # type: ignore[call-overload]
    if standards.get("citations"):
        checks["citations"] = bool(_QUOTED_CITATION_RE.search(content))
    if standards.get("originality"):
        checks["originality"] = _any_present(content, _ORIGINALITY_MARKERS)
    if standards.get("curiosity"):
        checks["curiosity"] = _any_present(content, _CURIOSITY_MARKERS)
    return QualityCheck(publication_type=publication_type, checks=checks)
