"""Handling of free-form research queries.

A query is routed one of four ways:

1. An explicit essay request ("write an essay on X", "deep dive into X",
   "research X in depth") starts a focused two-week project on X.
2. A query the generator rates as both complex and novel starts a regular
   project.
3. A query that shares at least two significant words with an active
   project's question is recorded as community input for that project.
4. Anything else gets a plain response.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, Field

from sustained_research.domain.enums import ContributionType, ProjectStatus
from sustained_research.domain.exceptions import GeneratedContentError, GenerationError
from sustained_research.infrastructure.generation import TextGenerator, parse_generated_json
from sustained_research.infrastructure.store import ResearchStore
from sustained_research.services.projects import ProjectManager

logger = logging.getLogger(__name__)

_ESSAY_PATTERNS = (
    re.compile(r"\bwrite (?:an? |me an? )?essay (?:on|about) (.+)", re.IGNORECASE),
    re.compile(r"\bdeep dive (?:into|on) (.+)", re.IGNORECASE),
    re.compile(r"\bresearch (.+?) in depth\b", re.IGNORECASE),
)

_ANALYSIS_PROMPT = (
    "Rate this question for philosophical research potential.\n"
    "Question: {query}\n\n"
    'Respond with a JSON object {{"complexity": <0-1>, "novelty": <0-1>}}.'
)

FOCUSED_PROJECT_WEEKS = 2


class QueryAnalysis(BaseModel):
    complexity: float = Field(default=0.5, ge=0.0, le=1.0)
    novelty: float = Field(default=0.5, ge=0.0, le=1.0)


def parse_essay_request(query: str) -> str | None:
    """Topic of an explicit essay request, or ``None``."""
    for pattern in _ESSAY_PATTERNS:
        match = pattern.search(query)
        if match:
            topic = match.group(1).strip().rstrip(".?!").strip()
            if topic:
                return topic
    return None


def _significant_words(text: str) -> set[str]:
    return {w for w in re.findall(r"[a-z']+", text.lower()) if len(w) > 3}


@dataclass(frozen=True)
class QueryOutcome:
    """How a query was handled."""

    kind: str  # "essay_project" | "new_project" | "contribution" | "response"
    message: str
    project_id: str | None = None
    contribution_id: str | None = None
    complexity: float | None = None
    novelty: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "message": self.message,
            "project_id": self.project_id,
            "contribution_id": self.contribution_id,
            "complexity": self.complexity,
            "novelty": self.novelty,
        }


class ResearchInquiry:
    """Routes user queries to projects, contributions or plain answers."""

    def __init__(
        self,
        store: ResearchStore,
        generator: TextGenerator,
        projects: ProjectManager,
        complexity_threshold: float = 0.7,
        novelty_threshold: float = 0.6,
    ) -> None:
        self._store = store
        self._generator = generator
        self._projects = projects
        self._complexity_threshold = complexity_threshold
        self._novelty_threshold = novelty_threshold

    def analyse(self, query: str) -> QueryAnalysis:
        try:
            raw = self._generator.generate(_ANALYSIS_PROMPT.format(query=query), max_length=100)
            return parse_generated_json(raw, QueryAnalysis)
        except (GenerationError, GeneratedContentError) as exc:
            logger.warning("Query analysis failed, assuming neutral scores: %s", exc)
            return QueryAnalysis()

    def _related_project(self, query: str) -> str | None:
        words = _significant_words(query)
        for project in self._store.list_projects(ProjectStatus.ACTIVE):
            if len(words & _significant_words(project.central_question)) >= 2:
                return project.project_id
        return None

    def process_query(self, query: str, user_name: str = "anonymous") -> QueryOutcome:
        topic = parse_essay_request(query)
        if topic is not None:
            project_id = self._projects.create_project(
                topic, FOCUSED_PROJECT_WEEKS, triggered_by=f"essay_request:{user_name}"
            )
            return QueryOutcome(
                kind="essay_project",
                message=f"Started a focused inquiry into {topic}",
                project_id=project_id,
            )

        analysis = self.analyse(query)
        if (
            analysis.complexity > self._complexity_threshold
            and analysis.novelty > self._novelty_threshold
        ):
            project_id = self._projects.create_project(query, triggered_by=f"query:{user_name}")
            return QueryOutcome(
                kind="new_project",
                message="This question deserves sustained research; a project has begun",
                project_id=project_id,
                complexity=analysis.complexity,
                novelty=analysis.novelty,
            )

        related = self._related_project(query)
        if related is not None:
            contribution = self._projects.add_contribution(
                related,
                user_name,
                ContributionType.QUESTION,
                query,
                significance=analysis.complexity,
            )
            return QueryOutcome(
                kind="contribution",
                message="Your question has been added to an ongoing inquiry",
                project_id=related,
                contribution_id=contribution.contribution_id if contribution else None,
                complexity=analysis.complexity,
                novelty=analysis.novelty,
            )

        return QueryOutcome(
            kind="response",
            message="Thank you for the question; it does not call for a new research project",
            complexity=analysis.complexity,
            novelty=analysis.novelty,
        )
