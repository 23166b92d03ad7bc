"""Source discovery pipeline.

Turns a project's central question into search terms, queries the content
fetcher, scores every candidate with the scoring library and promotes the
best ones into the project's reading list.

Pipeline per run::

    search terms  ->  search(term)  ->  relevance filter  ->  fetch(url)
                  ->  evaluate_source_quality  ->  DiscoveredSource (always)
                  ->  promote top N with score >= threshold  ->  ReadingListItem

A failure on any single candidate (fetch error, empty content, invalid
score) is logged and only that candidate is dropped.
"""

from __future__ import annotations

import dataclasses
import datetime
import logging
import re
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from sustained_research.domain.entities import (
    SECONDS_PER_DAY,
    DiscoveredSource,
    ReadingListItem,
    ResearchProject,
    Text,
)
from sustained_research.domain.enums import ReadingStatus, SourceRecommendation
from sustained_research.domain.events import SourcesDiscovered
from sustained_research.domain.exceptions import (
    FetchError,
    GeneratedContentError,
    GenerationError,
    ProjectNotFoundError,
)
from sustained_research.domain.values import SearchHit
from sustained_research.infrastructure.config import DiscoveryConfig
from sustained_research.infrastructure.event_bus import EventBus
from sustained_research.infrastructure.fetcher import ContentFetcher
from sustained_research.infrastructure.generation import TextGenerator, parse_generated_json
from sustained_research.infrastructure.store import ResearchStore
from sustained_research.services import activity
from sustained_research.services.scoring import (
    assess_novelty,
    evaluate_source_quality,
    priority_from_score,
)

logger = logging.getLogger(__name__)

AUTONOMOUS_DISCOVERY = "autonomous_discovery"

_INTERROGATIVES = frozenset({"what", "how", "why", "when", "where", "does", "can", "will"})
_FALLBACK_TERM_LIMIT = 8

_SEARCH_TERMS_PROMPT = (
    "Generate 8-12 search terms for finding scholarly philosophical sources on "
    "the following research project.\n\n"
    "Title: {title}\n"
    "Central question: {question}\n\n"
    "Include key concepts, relevant philosophers and established debates. "
    "Respond with a JSON array of strings only."
)


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------

def fallback_search_terms(title: str, question: str, limit: int = _FALLBACK_TERM_LIMIT) -> list[str]:
    """Keyword split of title and question: words longer than three
    characters, interrogatives removed, capitalized, de-duplicated."""
    terms: list[str] = []
    for word in re.findall(r"[a-z][a-z'-]*", f"{title} {question}".lower()):
        if len(word) <= 3 or word in _INTERROGATIVES:
            continue
        term = word.capitalize()
        if term not in terms:
            terms.append(term)
        if len(terms) >= limit:
            break
    return terms


def is_relevant_hit(title: str, term: str) -> bool:
    """A hit is relevant when its title contains the term, or shares at
    least ``min(len(term words), 2)`` words with it."""
    lowered = title.lower()
    term = term.lower().strip()
    if not term:
        return False
    if term in lowered:
        return True
    term_words = term.split()
    overlap = sum(1 for word in term_words if word in lowered)
    return overlap >= min(len(term_words), 2)


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DiscoveryReport:
    """Outcome of one ``discover_sources`` run."""

    project_id: str
    search_terms: tuple[str, ...] = ()
    discovered: tuple[DiscoveredSource, ...] = ()
    promoted: tuple[ReadingListItem, ...] = ()
    dropped: int = 0

    @property
    def sources_found(self) -> int:
        return len(self.discovered)

    @property
    def sources_promoted(self) -> int:
        return len(self.promoted)

    def to_dict(self) -> dict[str, Any]:
        return {
            "project_id": self.project_id,
            "search_terms": list(self.search_terms),
            "sources_found": self.sources_found,
            "sources_promoted": self.sources_promoted,
            "dropped": self.dropped,
            "sources": [
                {
                    "title": s.title,
                    "url": s.url,
                    "score": round(s.quality_score, 3),
                    "promoted": s.promoted,
                }
                for s in self.discovered
            ],
        }


@dataclass
class _Candidate:
    hit: SearchHit
    term: str
    content: str
    source: DiscoveredSource | None = None


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

class SourceDiscoveryPipeline:
    """Search, score and promote sources for research projects.

    Parameters
    ----------
    store:
        The authoritative research store.
    generator:
        Used to propose search terms.
    fetcher:
        Search and content retrieval.
    event_bus:
        Receives ``SourcesDiscovered`` after each run.
    config:
        Term counts, promotion threshold and cadence.
    clock:
        Returns the current epoch time; injectable for tests.
    """

    def __init__(
        self,
        store: ResearchStore,
        generator: TextGenerator,
        fetcher: ContentFetcher,
        event_bus: EventBus | None = None,
        config: DiscoveryConfig | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._generator = generator
        self._fetcher = fetcher
        self._event_bus = event_bus
        self._config = config or DiscoveryConfig()
        self._clock = clock

    # -- search terms ---------------------------------------------------------

    def generate_search_terms(self, title: str, question: str) -> list[str]:
        """Ask the generator for search terms; fall back to a keyword split."""
        limit = self._config.max_search_terms
        prompt = _SEARCH_TERMS_PROMPT.format(title=title, question=question)
        try:
            raw = self._generator.generate(prompt, max_length=300)
            terms = parse_generated_json(raw, list[str])
        except (GenerationError, GeneratedContentError) as exc:
            logger.warning("Search-term generation failed, using keyword fallback: %s", exc)
            return fallback_search_terms(title, question)[:limit]

        cleaned: list[str] = []
        for term in terms:
            term = term.strip()
            if term and term not in cleaned:
                cleaned.append(term)
        return cleaned[:limit] or fallback_search_terms(title, question)[:limit]

    def _terms_for(self, project: ResearchProject) -> list[str]:
        terms = list(project.search_terms) or self.generate_search_terms(
            project.title, project.central_question
        )
        return terms[: self._config.max_search_terms]

    # -- candidates -----------------------------------------------------------

    def _gather(self, terms: Sequence[str]) -> tuple[list[_Candidate], int]:
        candidates: list[_Candidate] = []
        seen_urls: set[str] = set()
        dropped = 0
        for term in terms:
            try:
                hits = self._fetcher.search(term, self._config.results_per_term)
            except FetchError as exc:
                logger.warning("Search for %r failed: %s", term, exc)
                continue

            for hit in hits:
                if hit.url in seen_urls or not is_relevant_hit(hit.title, term):
                    continue
                seen_urls.add(hit.url)
                try:
                    content = self._fetcher.fetch(hit.url)
                except FetchError as exc:
                    logger.warning("Fetching %s failed, dropping candidate: %s", hit.url, exc)
                    dropped += 1
                    continue
                if not content:
                    logger.info("No content at %s, dropping candidate", hit.url)
                    dropped += 1
                    continue
                candidates.append(_Candidate(hit=hit, term=term, content=content))
        return candidates, dropped

    def _score(
        self,
        project: ResearchProject,
        candidate: _Candidate,
        existing_titles: Sequence[str],
        now: float,
    ) -> DiscoveredSource | None:
        hit = candidate.hit
        try:
            quality = evaluate_source_quality(
                title=hit.title,
                author=hit.author,
                content=candidate.content,
                project=project,
                existing_titles=existing_titles,
                url=hit.url,
                current_year=datetime.datetime.fromtimestamp(now).year,
                novelty_threshold=self._config.novelty_similarity,
            )
        except ValueError as exc:
            logger.warning("Scoring %s failed, dropping candidate: %s", hit.url, exc)
            return None
        return DiscoveredSource(
            project_id=project.project_id,
            title=hit.title,
            author=hit.author,
            url=hit.url,
            search_term=candidate.term,
            quality=quality,
            content_preview=candidate.content[:500],
            discovered_at=now,
        )

    def _qualifies(self, source: DiscoveredSource) -> bool:
        quality = source.quality
        return (
            quality is not None
            and quality.score >= self._config.promotion_threshold
            and quality.recommendation is not SourceRecommendation.SKIP
        )

    def _promote(self, candidate: _Candidate, now: float) -> ReadingListItem | None:
        source = candidate.source
        hit = candidate.hit
        text = self._store.add_text(
            Text(
                title=hit.title,
                author=hit.author,
                content=candidate.content,
                url=hit.url,
                source=hit.source_site or AUTONOMOUS_DISCOVERY,
                added_at=now,
            )
        )
        item = ReadingListItem(
            project_id=source.project_id,
            title=hit.title,
            author=hit.author,
            priority=priority_from_score(source.quality_score),
            status=ReadingStatus.FOUND if text is not None else ReadingStatus.SEEKING,
            reason=f"Discovered via '{candidate.term}' (quality {source.quality_score:.2f})",
            suggested_by=AUTONOMOUS_DISCOVERY,
            text_id=text.text_id if text is not None else None,
            added_at=now,
        )
        return self._store.add_reading_item(item)

    # -- public API -----------------------------------------------------------

    def discover_sources(self, project_id: str) -> DiscoveryReport:
        """Run one discovery pass for *project_id*.

        Raises
        ------
        ProjectNotFoundError
            If the project is not in the store.
        """
        project = self._store.get_project(project_id)
        if project is None:
            raise ProjectNotFoundError(f"No project {project_id!r}", project_id=project_id)

        now = self._clock()
        terms = self._terms_for(project)[: self._config.terms_per_run]
        listed_titles = [item.title for item in self._store.list_reading_items(project_id)]
        logger.info("Discovering sources for %s with %d terms", project_id, len(terms))

        candidates, dropped = self._gather(terms)
        # Titles scored earlier in this run count as existing for later hits.
        seen_titles = list(listed_titles)
        scored: list[_Candidate] = []
        for candidate in candidates:
            source = self._score(project, candidate, tuple(seen_titles), now)
            seen_titles.append(candidate.hit.title)
            if source is None:
                dropped += 1
                continue
            candidate.source = source
            scored.append(candidate)

        ranked = sorted(
            (c for c in scored if self._qualifies(c.source)),
            key=lambda c: c.source.quality_score,
            reverse=True,
        )
        eligible: list[_Candidate] = []
        for candidate in ranked:
            if len(eligible) >= self._config.max_promotions:
                break
            title = candidate.hit.title
            if assess_novelty(title, listed_titles, self._config.novelty_similarity) < 1.0:
                logger.info("Not promoting %r: already on the reading list", title)
                continue
            eligible.append(candidate)
            listed_titles.append(title)
        promoted_urls = {c.hit.url for c in eligible}

        promoted: list[ReadingListItem] = []
        for candidate in eligible:
            item = self._promote(candidate, now)
            if item is not None:
                promoted.append(item)

        discovered: list[DiscoveredSource] = []
        for candidate in scored:
            source = candidate.source
            if source.url in promoted_urls:
                source = dataclasses.replace(source, promoted=True)
            self._store.add_discovered_source(source)
            discovered.append(source)

        report = DiscoveryReport(
            project_id=project_id,
            search_terms=tuple(terms),
            discovered=tuple(discovered),
            promoted=tuple(promoted),
            dropped=dropped,
        )
        activity.record_activity(
            self._store,
            project_id,
            activity.SOURCE_DISCOVERY,
            f"Discovered {report.sources_found} sources, promoted {report.sources_promoted}",
            now,
        )
        if self._event_bus is not None:
            self._event_bus.publish(
                SourcesDiscovered(
                    timestamp=now,
                    source_id="discovery",
                    project_id=project_id,
                    sources_found=report.sources_found,
                    sources_promoted=report.sources_promoted,
                )
            )
        logger.info(
            "Discovery for %s: %d found, %d promoted, %d dropped",
            project_id,
            report.sources_found,
            report.sources_promoted,
            dropped,
        )
        return report

    def discovery_due(self, project_id: str, now: float | None = None) -> bool:
        """True when the project has no discovery run within the cadence window."""
        now = self._clock() if now is None else now
        last = activity.last_activity_time(self._store, project_id, activity.SOURCE_DISCOVERY)
        if last is None:
            return True
        return now - last >= self._config.rediscovery_days * SECONDS_PER_DAY
