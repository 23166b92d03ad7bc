"""Public testing utilities for the sustained research engine.

Provides a mock chat model and collaborator fakes for writing
self-contained tests and offline runs without API keys.
"""

from sustained_research.testing.fakes import FailingChannel, FakeClock, StaticFetcher
from sustained_research.testing.mock_llm import MockChatModel

__all__ = ["FailingChannel", "FakeClock", "MockChatModel", "StaticFetcher"]
