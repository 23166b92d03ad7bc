"""Text-generation collaborator.

``TextGenerator`` is the opaque "prompt in, prose out" capability the
research services depend on.  ``ChatModelTextGenerator`` adapts any
LangChain ``BaseChatModel`` (``ChatAnthropic``, a local model, or the mock
in :mod:`sustained_research.testing`) by running a persona prompt through
the model and a ``StrOutputParser``, with an optional wall-clock timeout.

Generated JSON (search-term lists, reading lists, argument drafts) is parsed
with :func:`parse_generated_json`, which validates against a pydantic schema
and raises :class:`GeneratedContentError` on anything malformed.
"""

from __future__ import annotations

import concurrent.futures
import logging
import re
from abc import ABC, abstractmethod
from typing import Any, TypeVar

from langchain_core.language_models import BaseChatModel
from langchain_core.output_parsers import StrOutputParser
from langchain_core.prompts import ChatPromptTemplate
from pydantic import TypeAdapter, ValidationError

from sustained_research.domain.exceptions import GeneratedContentError, GenerationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TextGenerator(ABC):
    """Turns a prompt into prose."""

    @abstractmethod
    def generate(self, prompt: str, max_length: int = 1024) -> str:
        """Return generated text for *prompt*.

        Raises
        ------
        GenerationError
            On quota, auth, network or timeout failures.
        """


_GENERATION_PROMPT = ChatPromptTemplate.from_messages(
    [
        ("system", "{persona}"),
        ("human", "{prompt}"),
    ]
)


class ChatModelTextGenerator(TextGenerator):
    """Text generation backed by a LangChain chat model.

    Parameters
    ----------
    model:
        Any ``BaseChatModel``.
    persona:
        System message sent with every prompt.
    timeout:
        Seconds before a call is abandoned and reported as a
        ``GenerationError``.  ``None`` disables the limit.
    """

    def __init__(
        self,
        model: BaseChatModel,
        persona: str = "",
        timeout: float | None = 60.0,
    ) -> None:
        self.model = model
        self.persona = persona
        self._timeout = timeout

    def _invoke(self, prompt: str, max_length: int) -> str:
        chain = _GENERATION_PROMPT | self.model.bind(max_tokens=max_length) | StrOutputParser()
        return chain.invoke({"persona": self.persona, "prompt": prompt})

    def generate(self, prompt: str, max_length: int = 1024) -> str:
        pool = concurrent.futures.ThreadPoolExecutor(max_workers=1)
        try:
            future = pool.submit(self._invoke, prompt, max_length)
            text = future.result(timeout=self._timeout)
        except concurrent.futures.TimeoutError as exc:
            raise GenerationError(
                f"generation timed out after {self._timeout}s",
                details={"timeout": self._timeout},
            ) from exc
        except Exception as exc:
            raise GenerationError(
                f"generation failed: {exc}",
                details={"error_type": type(exc).__name__},
            ) from exc
        finally:
            pool.shutdown(wait=False)

        if not text or not text.strip():
            raise GenerationError("generation returned empty text")
        return text.strip()


# ---------------------------------------------------------------------------
# Parsing generated JSON
# ---------------------------------------------------------------------------

_FENCE_RE = re.compile(r"```(?:json)?\s*|\s*```")


def _json_span(raw: str, opener: str, closer: str) -> str:
    cleaned = _FENCE_RE.sub("", raw).strip()
    start = cleaned.find(opener)
    end = cleaned.rfind(closer)
    if start == -1 or end <= start:
        raise GeneratedContentError(f"no JSON {opener}{closer} found in generated text", raw=raw)
    return cleaned[start:end + 1]


def parse_generated_json(raw: str, schema: Any) -> Any:
    """Validate generated JSON against *schema*.

    Markdown fences are stripped and the outermost array (for list schemas)
    or object is sliced out before validation, so chatty preambles such as
    "Here are the terms:" are tolerated.

    Parameters
    ----------
    raw:
        The generated text.
    schema:
        A pydantic model class or any type ``TypeAdapter`` accepts
        (e.g. ``list[str]``).

    Raises
    ------
    GeneratedContentError
        If no JSON is found or it does not match *schema*.
    """
    adapter = TypeAdapter(schema)
    is_list = getattr(schema, "__origin__", None) is list
    span = _json_span(raw, "[", "]") if is_list else _json_span(raw, "{", "}")
    try:
        return adapter.validate_json(span)
    except ValidationError as exc:
        raise GeneratedContentError(
            f"generated JSON does not match {schema!r}: {exc.error_count()} errors",
            raw=raw,
        ) from exc
