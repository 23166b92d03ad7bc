"""Tests for the deterministic scoring library."""

from __future__ import annotations

import pytest

from sustained_research.domain.entities import Argument, CounterArgument, ResearchProject
from sustained_research.domain.enums import (
    CredibilityTier,
    PublicationType,
    ReadingPhase,
    ReadingPriority,
    ScholarlyClass,
    SourceRecommendation,
)
from sustained_research.services.scoring import (
    assess_accessibility,
    assess_argument_rigor,
    assess_novelty,
    assess_recency,
    assess_relevance,
    check_quality,
    classify_scholarly,
    combine_quality,
    credibility_tier,
    evaluate_credibility,
    evaluate_source_quality,
    extract_citations,
    priority_from_score,
    reading_depth,
    reading_time_minutes,
    source_recommendation,
    title_similarity,
    validate_argument,
)
from tests.helpers.texts import ANNOUNCEMENT, ESSAY, NOTE, QUESTION, READING_RESPONSE, SOURCE_CONTENT


@pytest.fixture
def language_project() -> ResearchProject:
    return ResearchProject(
        title="Language as Dwelling",
        central_question=QUESTION,
        description="An inquiry into language and existence.",
    )


# ===================================================================== #
#  Credibility                                                           #
# ===================================================================== #

class TestCredibility:

    def test_factors(self) -> None:
        assessment = evaluate_credibility(
            "On the Way to Language",
            "Martin Heidegger",
            SOURCE_CONTENT,
            url="https://philosophy.example.edu/way",
            current_year=2026,
        )
        assert assessment.factors["author_reputation"] == 0.9
        assert assessment.factors["institutional_affiliation"] == 0.8
        assert assessment.factors["citation_quality"] == 0.5
        assert assessment.factors["primary_source"] == 0.0
        assert assessment.factors["recency"] == 0.3
        assert assessment.factors["peer_review"] == 0.0
        assert len(assessment.factors) == 7
        assert assessment.score == pytest.approx(sum(assessment.factors.values()) / 7)
        assert assessment.recommendation is credibility_tier(assessment.score)

    def test_unknown_author_without_signals(self) -> None:
        assessment = evaluate_credibility("A blog post", "someone", "plain words", current_year=2026)
        assert assessment.factors["author_reputation"] == 0.3
        assert assessment.factors["institutional_affiliation"] == 0.0
        assert assessment.citations_found == 0
        assert assessment.recommendation is CredibilityTier.LOW_CREDIBILITY

    def test_academic_author(self) -> None:
        assessment = evaluate_credibility("T", "Dr. Jane Doe", "", current_year=2026)
        assert assessment.factors["author_reputation"] == 0.7

    @pytest.mark.parametrize(
        ("score", "tier"),
        [
            (0.85, CredibilityTier.HIGHLY_CREDIBLE),
            (0.6, CredibilityTier.CREDIBLE),
            (0.45, CredibilityTier.MODERATE_CREDIBILITY),
            (0.1, CredibilityTier.LOW_CREDIBILITY),
        ],
    )
    def test_tiers(self, score: float, tier: CredibilityTier) -> None:
        assert credibility_tier(score) is tier

    def test_recency(self) -> None:
        assert assess_recency("published 2024", 2026) == 0.9
        assert assess_recency("published 2018", 2026) == 0.7
        assert assess_recency("published 2010", 2026) == 0.5
        assert assess_recency("published 1927", 2026) == 0.3
        assert assess_recency("no year at all", 2026) == 0.3

    def test_rigor_is_bounded(self) -> None:
        assert assess_argument_rigor("") == 0.0
        assert 0.0 < assess_argument_rigor(SOURCE_CONTENT) <= 1.0

    def test_extract_citations(self) -> None:
        citations = extract_citations(SOURCE_CONTENT)
        assert "(1959)" in citations
        assert "(Wittgenstein 1953)" in citations
        assert "[1]" in citations
        assert len(citations) == len(set(citations))

    def test_classify_scholarly(self) -> None:
        assert classify_scholarly(0.9, 12) is ScholarlyClass.HIGHLY_SCHOLARLY
        assert classify_scholarly(0.65, 5) is ScholarlyClass.SCHOLARLY
        assert classify_scholarly(0.9, 1) is ScholarlyClass.SEMI_SCHOLARLY
        assert classify_scholarly(0.9, 0) is ScholarlyClass.POPULAR


# ===================================================================== #
#  Source quality                                                        #
# ===================================================================== #

class TestSourceQuality:

    def test_combined_high_priority(self) -> None:
        quality = combine_quality(0.9, 0.9, 1.0, 0.8, 0.9)
        assert quality.score == pytest.approx(0.905)
        assert quality.recommendation is SourceRecommendation.HIGH_PRIORITY

    @pytest.mark.parametrize(
        ("score", "recommendation", "priority"),
        [
            (0.8, SourceRecommendation.HIGH_PRIORITY, ReadingPriority.HIGH),
            (0.65, SourceRecommendation.MEDIUM_PRIORITY, ReadingPriority.MEDIUM),
            (0.45, SourceRecommendation.LOW_PRIORITY, ReadingPriority.LOW),
            (0.2, SourceRecommendation.SKIP, ReadingPriority.LOW),
        ],
    )
    def test_tiers(
        self, score: float, recommendation: SourceRecommendation, priority: ReadingPriority
    ) -> None:
        assert source_recommendation(score) is recommendation
        assert priority_from_score(score) is priority

    def test_relevance(self, language_project: ResearchProject) -> None:
        own_words = (
            f"{language_project.title} {language_project.central_question} "
            f"{language_project.description}"
        )
        assert assess_relevance("", own_words, language_project) == 1.0
        assert assess_relevance("Cooking", "recipes for bread", language_project) == 0.0

    def test_relevance_uses_at_least_five_words(self) -> None:
        project = ResearchProject(title="Being")
        assert assess_relevance("Being", "", project) == pytest.approx(0.2)

    def test_novelty(self) -> None:
        existing = ["Being and Time", "Philosophical Investigations"]
        assert assess_novelty("being and time", existing) == 0.2
        assert assess_novelty("On the Way to Language", existing) == 1.0
        assert assess_novelty("anything", []) == 1.0

    def test_novelty_similarity_threshold_is_inclusive(self) -> None:
        assert title_similarity("a b c d", "a b c d e") == pytest.approx(0.8)
        assert assess_novelty("a b c d e", ["a b c d"], threshold=0.8) == 0.2
        assert assess_novelty("a b c d e", ["a b c d"], threshold=0.81) == 1.0

    @pytest.mark.parametrize(
        "first, second, expected",
        [
            ("the the the", "the", 1.0),
            ("the the being", "the time", 1 / 3),
            ("Being and Time", "being and time", 1.0),
            ("", "", 0.0),
        ],
    )
    def test_title_similarity_counts_distinct_words(
        self, first: str, second: str, expected: float
    ) -> None:
        similarity = title_similarity(first, second)
        assert similarity == pytest.approx(expected)
        assert 0.0 <= similarity <= 1.0

    def test_accessibility(self) -> None:
        assert assess_accessibility(" ".join(["word"] * 15)) == 0.9
        assert assess_accessibility(" ".join(["word"] * 25)) == 0.7
        assert assess_accessibility("Too short.") == 0.5

    def test_evaluation_is_deterministic(self, language_project: ResearchProject) -> None:
        kwargs = dict(
            title="On the Way to Language",
            author="Martin Heidegger",
            content=SOURCE_CONTENT,
            project=language_project,
            existing_titles=["Being and Time"],
            url="https://philosophy.example.edu/way",
            current_year=2026,
        )
        first = evaluate_source_quality(**kwargs)
        second = evaluate_source_quality(**kwargs)
        assert first == second
        assert 0.0 <= first.score <= 1.0


# ===================================================================== #
#  Reading depth                                                         #
# ===================================================================== #

class TestReadingDepth:

    @pytest.mark.parametrize("phase", list(ReadingPhase))
    def test_saturated_response_scores_phase_weight(self, phase: ReadingPhase) -> None:
        assert reading_depth(READING_RESPONSE, phase) == pytest.approx(phase.weight)

    def test_density(self) -> None:
        content = "language meaning existence"
        assert reading_depth(content, ReadingPhase.SYNTHESIS_INTEGRATION) == pytest.approx(3 / 15)
        assert reading_depth("", ReadingPhase.SYNTHESIS_INTEGRATION) == 0.0

    def test_reading_time(self) -> None:
        assert reading_time_minutes(" ".join(["word"] * 401)) == 3
        assert reading_time_minutes("") == 0


# ===================================================================== #
#  Argument validation                                                   #
# ===================================================================== #

class TestArgumentValidation:

    def test_bare_argument(self) -> None:
        validation = validate_argument(Argument(title="Bare"), validated_at=7.0)
        assert validation.factors == {
            "logical_consistency": 0.3,
            "evidence_support": 0.0,
            "counter_argument_consideration": 0.0,
            "citation_adequacy": 0.2,
            "clarity_precision": 0.0,
        }
        assert validation.score == pytest.approx(0.1)
        assert validation.validated_at == 7.0

    def test_developed_argument(self) -> None:
        argument = Argument(
            initial_intuition=(
                "Language is a dwelling, because meaning is use; that is, "
                "specifically, words are lived (Heidegger 1959)."
            ),
            supporting_evidence=(
                "A study of language acquisition (Tomasello 2003)",
                "Observation of ordinary usage as an example [1]",
            ),
            counter_arguments=(
                CounterArgument("Words are only tools and do not house anything at all, " * 2),
            ),
        )
        validation = validate_argument(argument)
        assert validation.factors["logical_consistency"] == 0.8
        assert validation.factors["evidence_support"] == pytest.approx(3 / 6)
        assert validation.factors["counter_argument_consideration"] == 0.6
        assert validation.factors["citation_adequacy"] == 0.9
        assert validation.factors["clarity_precision"] == 1.0


# ===================================================================== #
#  Quality gates                                                         #
# ===================================================================== #

class TestQualityGates:

    def test_canned_documents_pass(self) -> None:
        assert check_quality(NOTE, PublicationType.RESEARCH_NOTE).passes
        assert check_quality(ANNOUNCEMENT, PublicationType.RESEARCH_ANNOUNCEMENT).passes
        assert check_quality(ESSAY, PublicationType.MAJOR_ESSAY).passes

    def test_short_note_fails_on_length_only(self) -> None:
        short = 'I think "being speaks" (Heidegger 1959).'
        check = check_quality(short, PublicationType.RESEARCH_NOTE)
        assert not check.passes
        assert check.failed == ["length"]

    def test_note_needs_quoted_citation_and_originality(self) -> None:
        plain = "A long note without any quotation or personal stance. " * 10
        check = check_quality(plain, PublicationType.RESEARCH_NOTE)
        assert set(check.failed) == {"citations", "originality"}

    def test_essay_length_boundary(self) -> None:
        assert not check_quality("x" * 1199, PublicationType.MAJOR_ESSAY).passes
        assert check_quality("x" * 1200, PublicationType.MAJOR_ESSAY).passes

    def test_announcement_needs_curiosity(self) -> None:
        flat = "This project will read some books over several weeks. " * 10
        check = check_quality(flat, PublicationType.RESEARCH_ANNOUNCEMENT)
        assert check.failed == ["curiosity"]
