"""Argument tracker.

Maintains per-project arguments: creation at a low starting confidence,
evidence and counter-arguments, refinement, explicit confidence nudges and
scholarly validation.  Validation is an on-demand audit stored next to the
argument; it never rewrites ``confidence_level``.
"""

from __future__ import annotations

import dataclasses
import logging
import time
from collections.abc import Callable, Sequence

from pydantic import BaseModel, Field

from sustained_research.domain.entities import Argument, CounterArgument
from sustained_research.domain.events import ArgumentCreated, ArgumentValidated
from sustained_research.domain.exceptions import (
    GeneratedContentError,
    GenerationError,
    ResearchEngineError,
)
from sustained_research.domain.values import ArgumentValidation
from sustained_research.infrastructure.event_bus import EventBus
from sustained_research.infrastructure.generation import TextGenerator, parse_generated_json
from sustained_research.infrastructure.store import ResearchStore
from sustained_research.services import activity
from sustained_research.services.scoring import evidence_support, validate_argument

logger = logging.getLogger(__name__)


class ArgumentDraft(BaseModel):
    """Argument proposed by the generator from reading insights."""

    title: str = Field(min_length=1, description="Short title of the argument")
    position: str = Field(min_length=1, description="The position taken")
    reasoning: str = Field(default="", description="Why the position holds")


_DEVELOP_PROMPT = (
    "You are developing a philosophical argument for the research project "
    "'{title}', whose central question is: {question}\n\n"
    "Recent insights from your reading:\n{insights}\n\n"
    "Formulate one argument these insights support. Respond with a JSON object "
    'with keys "title", "position" and "reasoning".'
)


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


class ArgumentTracker:
    """Create, develop and validate arguments.

    Parameters
    ----------
    store:
        The authoritative research store.
    generator:
        Needed only by :meth:`develop_from_insights`.
    event_bus:
        Receives ``ArgumentCreated`` and ``ArgumentValidated``.
    clock:
        Returns the current epoch time; injectable for tests.
    """

    def __init__(
        self,
        store: ResearchStore,
        generator: TextGenerator | None = None,
        event_bus: EventBus | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._generator = generator
        self._event_bus = event_bus
        self._clock = clock

    def _require(self, argument_id: str) -> Argument:
        argument = self._store.get_argument(argument_id)
        if argument is None:
            raise ResearchEngineError(
                f"No argument {argument_id!r}", {"argument_id": argument_id}
            )
        return argument

    def _save(self, argument: Argument, **changes: object) -> Argument:
        updated = dataclasses.replace(argument, updated_at=self._clock(), **changes)
        self._store.update_argument(updated)
        return updated

    # -- creation -------------------------------------------------------------

    def create_argument(
        self,
        project_id: str,
        title: str,
        intuition: str,
        source_text_id: str | None = None,
    ) -> str:
        """Record a new thesis and return its id.  Confidence starts at 0.3."""
        now = self._clock()
        argument = Argument(
            project_id=project_id,
            title=title,
            initial_intuition=intuition,
            source_text_id=source_text_id,
            created_at=now,
            updated_at=now,
        )
        self._store.add_argument(argument)
        activity.record_activity(
            self._store, project_id, activity.ARGUMENT_CREATED, f"New argument: {title}", now
        )
        if self._event_bus is not None:
            self._event_bus.publish(
                ArgumentCreated(
                    timestamp=now,
                    source_id="arguments",
                    project_id=project_id,
                    argument_id=argument.argument_id,
                    title=title,
                )
            )
        logger.info("Argument %s created for %s: %s", argument.argument_id, project_id, title)
        return argument.argument_id

    def develop_from_insights(
        self,
        project_id: str,
        insights: Sequence[str],
        text_id: str | None = None,
    ) -> Argument | None:
        """Ask the generator to turn reading insights into an argument.

        Returns ``None`` (and logs) when generation fails or the draft is
        malformed; no argument is created in that case.
        """
        project = self._store.get_project(project_id)
        if project is None or not insights or self._generator is None:
            return None
        prompt = _DEVELOP_PROMPT.format(
            title=project.title,
            question=project.central_question,
            insights="\n".join(f"- {i}" for i in insights),
        )
        try:
            raw = self._generator.generate(prompt, max_length=600)
            draft = parse_generated_json(raw, ArgumentDraft)
        except (GenerationError, GeneratedContentError) as exc:
            logger.warning("Could not develop argument for %s: %s", project_id, exc)
            return None

        intuition = f"{draft.position} {draft.reasoning}".strip()
        argument_id = self.create_argument(project_id, draft.title, intuition, text_id)
        return self._store.get_argument(argument_id)

    # -- development ----------------------------------------------------------

    def add_counter_argument(self, argument_id: str, content: str, contributor: str = "") -> Argument:
        """Append an objection.  Confidence is left unchanged."""
        argument = self._require(argument_id)
        counter = CounterArgument(content=content, contributor=contributor, timestamp=self._clock())
        return self._save(argument, counter_arguments=argument.counter_arguments + (counter,))

    def add_evidence(
        self,
        argument_id: str,
        evidence: str,
        citations: Sequence[str] = (),
    ) -> Argument:
        """Append supporting evidence; evidence strength follows the coverage
        of evidence types across all supporting evidence."""
        argument = self._require(argument_id)
        merged = argument.citations + tuple(c for c in citations if c not in argument.citations)
        updated = dataclasses.replace(
            argument,
            supporting_evidence=argument.supporting_evidence + (evidence,),
            citations=merged,
        )
        return self._save(updated, evidence_strength=evidence_support(updated))

    def refine_position(self, argument_id: str, position: str) -> Argument:
        return self._save(self._require(argument_id), refined_position=position)

    def adjust_confidence(self, argument_id: str, delta: float) -> Argument:
        """Nudge confidence by *delta*, clamped to [0, 1]."""
        argument = self._require(argument_id)
        return self._save(argument, confidence_level=_clamp(argument.confidence_level + delta))

    def add_community_feedback(
        self,
        argument_id: str,
        feedback: str,
        weight_delta: float = 0.1,
    ) -> Argument:
        """Record community feedback and raise the community weight."""
        argument = self._require(argument_id)
        return self._save(
            argument,
            community_feedback=argument.community_feedback + (feedback,),
            community_weight=_clamp(argument.community_weight + weight_delta),
        )

    # -- validation -----------------------------------------------------------

    def validate(self, argument_id: str) -> ArgumentValidation:
        """Audit the argument against the five scholarly factors and store
        the result.  ``confidence_level`` is not touched."""
        argument = self._require(argument_id)
        now = self._clock()
        validation = validate_argument(argument, validated_at=now)
        self._save(argument, validation=validation)
        activity.record_activity(
            self._store,
            argument.project_id,
            activity.ARGUMENT_VALIDATED,
            f"Validated '{argument.title}': {validation.score:.2f}",
            now,
        )
        if self._event_bus is not None:
            self._event_bus.publish(
                ArgumentValidated(
                    timestamp=now,
                    source_id="arguments",
                    argument_id=argument_id,
                    score=validation.score,
                )
            )
        return validation
