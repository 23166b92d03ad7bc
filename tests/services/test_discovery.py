"""Tests for the source discovery pipeline."""

from __future__ import annotations

from typing import Any

import pytest

from sustained_research.domain.entities import ReadingListItem, ResearchProject
from sustained_research.domain.enums import ReadingPriority, ReadingStatus
from sustained_research.domain.events import SourcesDiscovered
from sustained_research.domain.exceptions import ProjectNotFoundError
from sustained_research.domain.values import SearchHit, SourceQuality
from sustained_research.infrastructure.config import DiscoveryConfig
from sustained_research.infrastructure.event_bus import EventBus, EventRecorder
from sustained_research.infrastructure.generation import ChatModelTextGenerator
from sustained_research.infrastructure.store import InMemoryStore
from sustained_research.services.discovery import (
    SourceDiscoveryPipeline,
    fallback_search_terms,
    is_relevant_hit,
)
from sustained_research.services.scoring import combine_quality
from sustained_research.testing import FakeClock, MockChatModel, StaticFetcher
from tests.helpers.texts import QUESTION, SOURCE_CONTENT

TERM = "Language and being"


def _hit(n: int, title: str | None = None) -> SearchHit:
    return SearchHit(
        title=title or f"Language and Being, part {n}",
        url=f"https://philosophy.example.edu/part-{n}",
        author="Jane Doe",
        source_site="philosophy.example.edu",
    )


def _fixed_quality(monkeypatch: pytest.MonkeyPatch, quality: SourceQuality) -> list[dict[str, Any]]:
    calls: list[dict[str, Any]] = []

    def fake(**kwargs: Any) -> SourceQuality:
        calls.append(kwargs)
        return quality

    monkeypatch.setattr("sustained_research.services.discovery.evaluate_source_quality", fake)
    return calls


@pytest.fixture
def make_pipeline(
    store: InMemoryStore,
    generator: ChatModelTextGenerator,
    event_bus: EventBus,
    clock: FakeClock,
):
    def _make(fetcher: StaticFetcher, config: DiscoveryConfig | None = None) -> SourceDiscoveryPipeline:
        return SourceDiscoveryPipeline(store, generator, fetcher, event_bus, config, clock)

    return _make


# ===================================================================== #
#  Helpers                                                               #
# ===================================================================== #

class TestHelpers:

    def test_fallback_search_terms(self) -> None:
        terms = fallback_search_terms("Language as Dwelling", QUESTION)
        assert terms == ["Language", "Dwelling", "Mean", "Exist", "Primarily"]

    def test_fallback_limit(self) -> None:
        assert len(fallback_search_terms("", "alpha bravo charlie delta echo", limit=2)) == 2

    def test_relevance_filter(self) -> None:
        assert is_relevant_hit("Language and Being in Heidegger", TERM)
        assert is_relevant_hit("Being, Time and Language", TERM)
        assert not is_relevant_hit("A Cookbook", TERM)
        assert not is_relevant_hit("anything", "   ")


# ===================================================================== #
#  Search terms                                                          #
# ===================================================================== #

class TestSearchTerms:

    def test_generated_terms(self, make_pipeline) -> None:
        pipeline = make_pipeline(StaticFetcher())
        terms = pipeline.generate_search_terms("Language as Dwelling", QUESTION)
        assert terms == ["Language and being", "Heidegger language", "Wittgenstein language games"]

    def test_terms_are_capped(self, store, event_bus, clock) -> None:
        generator = ChatModelTextGenerator(
            MockChatModel(rules={"search terms": '["a", "b", "b", " ", "c"]'})
        )
        pipeline = SourceDiscoveryPipeline(
            store, generator, StaticFetcher(), event_bus, DiscoveryConfig(max_search_terms=2), clock
        )
        assert pipeline.generate_search_terms("T", "Q?") == ["a", "b"]

    @pytest.mark.parametrize(
        "model",
        [MockChatModel(fail=True), MockChatModel(rules={"search terms": "no JSON here"})],
    )
    def test_fallback_on_failure(self, model: MockChatModel, store, event_bus, clock) -> None:
        pipeline = SourceDiscoveryPipeline(
            store, ChatModelTextGenerator(model), StaticFetcher(), event_bus, None, clock
        )
        terms = pipeline.generate_search_terms("Language as Dwelling", QUESTION)
        assert terms == fallback_search_terms("Language as Dwelling", QUESTION)

    def test_project_without_terms_uses_generated_ones(
        self, make_pipeline, store: InMemoryStore, clock: FakeClock
    ) -> None:
        project = ResearchProject(title="Language as Dwelling", central_question=QUESTION,
                                  start_time=clock.now)
        store.add_project(project)
        fetcher = StaticFetcher()
        report = make_pipeline(fetcher).discover_sources(project.project_id)
        assert list(report.search_terms) == fetcher.searches
        assert len(fetcher.searches) == 3


# ===================================================================== #
#  Discovery runs                                                        #
# ===================================================================== #

class TestDiscoverSources:

    def test_high_quality_source_is_promoted(
        self,
        make_pipeline,
        monkeypatch: pytest.MonkeyPatch,
        project: ResearchProject,
        store: InMemoryStore,
        recorder: EventRecorder,
    ) -> None:
        _fixed_quality(monkeypatch, combine_quality(0.9, 0.9, 1.0, 0.8, 0.9))
        hit = _hit(1)
        fetcher = StaticFetcher(hits={TERM: [hit]}, contents={hit.url: SOURCE_CONTENT})

        report = make_pipeline(fetcher).discover_sources(project.project_id)

        assert report.sources_found == 1
        assert report.sources_promoted == 1
        item = report.promoted[0]
        assert item.priority is ReadingPriority.HIGH
        assert item.status is ReadingStatus.FOUND
        assert item.suggested_by == "autonomous_discovery"
        assert store.get_text(item.text_id).content == SOURCE_CONTENT

        [source] = store.list_discovered_sources(project.project_id)
        assert source.promoted
        assert source.quality_score == pytest.approx(0.905)

        [event] = recorder.of_type(SourcesDiscovered)
        assert (event.sources_found, event.sources_promoted) == (1, 1)

    def test_promotions_are_capped(
        self,
        make_pipeline,
        monkeypatch: pytest.MonkeyPatch,
        project: ResearchProject,
        store: InMemoryStore,
    ) -> None:
        _fixed_quality(monkeypatch, combine_quality(0.9, 0.9, 1.0, 0.8, 0.9))
        hits = [_hit(n) for n in range(8)]
        fetcher = StaticFetcher(
            hits={TERM: hits}, contents={h.url: SOURCE_CONTENT for h in hits}
        )

        report = make_pipeline(fetcher, DiscoveryConfig(results_per_term=10)).discover_sources(
            project.project_id
        )

        assert report.sources_found == 8
        assert report.sources_promoted == 5
        assert len(store.list_discovered_sources(project.project_id)) == 8
        assert sum(s.promoted for s in store.list_discovered_sources(project.project_id)) == 5
        assert len(store.list_reading_items(project.project_id)) == 5

    def test_low_quality_is_recorded_not_promoted(
        self,
        make_pipeline,
        monkeypatch: pytest.MonkeyPatch,
        project: ResearchProject,
        store: InMemoryStore,
    ) -> None:
        _fixed_quality(monkeypatch, combine_quality(0.3, 0.3, 1.0, 0.5, 0.5))
        hit = _hit(1)
        fetcher = StaticFetcher(hits={TERM: [hit]}, contents={hit.url: SOURCE_CONTENT})

        report = make_pipeline(fetcher).discover_sources(project.project_id)

        assert report.sources_found == 1
        assert report.sources_promoted == 0
        assert not store.list_discovered_sources(project.project_id)[0].promoted
        assert store.list_reading_items(project.project_id) == []

    def test_failing_candidates_are_dropped_individually(
        self,
        make_pipeline,
        monkeypatch: pytest.MonkeyPatch,
        project: ResearchProject,
    ) -> None:
        _fixed_quality(monkeypatch, combine_quality(0.9, 0.9, 1.0, 0.8, 0.9))
        broken, empty, good = _hit(1), _hit(2), _hit(3)
        irrelevant = _hit(4, title="A Cookbook")
        fetcher = StaticFetcher(
            hits={TERM: [broken, empty, irrelevant, good]},
            contents={good.url: SOURCE_CONTENT, empty.url: ""},
            failing_urls=[broken.url],
        )

        report = make_pipeline(fetcher).discover_sources(project.project_id)

        assert report.dropped == 2
        assert [s.url for s in report.discovered] == [good.url]
        assert irrelevant.url not in fetcher.fetches

    def test_failing_search_term_is_skipped(
        self,
        make_pipeline,
        monkeypatch: pytest.MonkeyPatch,
        store: InMemoryStore,
        clock: FakeClock,
    ) -> None:
        _fixed_quality(monkeypatch, combine_quality(0.9, 0.9, 1.0, 0.8, 0.9))
        project = ResearchProject(
            title="T", start_time=clock.now, search_terms=("broken term", TERM)
        )
        store.add_project(project)
        hit = _hit(1)
        fetcher = StaticFetcher(
            hits={TERM: [hit]}, contents={hit.url: SOURCE_CONTENT}, failing_terms=["broken term"]
        )

        report = make_pipeline(fetcher).discover_sources(project.project_id)

        assert fetcher.searches == ["broken term", TERM]
        assert report.sources_promoted == 1

    def test_reading_list_titles_reduce_novelty(
        self, make_pipeline, project: ResearchProject, store: InMemoryStore
    ) -> None:
        store.add_reading_item(ReadingListItem(project_id=project.project_id, title="Language and Being"))
        hit = _hit(1, title="Language and Being")
        fetcher = StaticFetcher(hits={TERM: [hit]}, contents={hit.url: SOURCE_CONTENT})

        report = make_pipeline(fetcher).discover_sources(project.project_id)

        assert report.discovered[0].quality.novelty == 0.2

    def test_same_title_in_one_run_reduces_novelty(
        self, make_pipeline, project: ResearchProject
    ) -> None:
        hits = [_hit(0, title="Language and Being"), _hit(1, title="Language and Being")]
        fetcher = StaticFetcher(hits={TERM: hits}, contents={h.url: SOURCE_CONTENT for h in hits})

        report = make_pipeline(fetcher).discover_sources(project.project_id)

        assert [s.quality.novelty for s in report.discovered] == [1.0, 0.2]

    def test_same_title_is_promoted_once(
        self,
        make_pipeline,
        monkeypatch: pytest.MonkeyPatch,
        project: ResearchProject,
        store: InMemoryStore,
    ) -> None:
        calls = _fixed_quality(monkeypatch, combine_quality(0.9, 0.9, 1.0, 0.8, 0.9))
        hits = [_hit(0, title="Language and Being"), _hit(1, title="Language and Being")]
        fetcher = StaticFetcher(hits={TERM: hits}, contents={h.url: SOURCE_CONTENT for h in hits})

        report = make_pipeline(fetcher).discover_sources(project.project_id)

        assert list(calls[0]["existing_titles"]) == []
        assert list(calls[1]["existing_titles"]) == ["Language and Being"]
        assert report.sources_found == 2
        assert report.sources_promoted == 1
        assert [i.title for i in store.list_reading_items(project.project_id)] == [
            "Language and Being"
        ]

    def test_unknown_project(self, make_pipeline) -> None:
        with pytest.raises(ProjectNotFoundError):
            make_pipeline(StaticFetcher()).discover_sources("missing")


class TestCadence:

    def test_discovery_due_after_rediscovery_window(
        self, make_pipeline, project: ResearchProject, clock: FakeClock
    ) -> None:
        pipeline = make_pipeline(StaticFetcher())
        assert pipeline.discovery_due(project.project_id)

        pipeline.discover_sources(project.project_id)
        assert not pipeline.discovery_due(project.project_id)

        clock.advance(days=3)
        assert pipeline.discovery_due(project.project_id)
