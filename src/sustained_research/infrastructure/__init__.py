"""Infrastructure layer for the sustained research engine.

Re-exports the collaborator interfaces and their adapters::

    from sustained_research.infrastructure import (
        InMemoryStore, SqlStore, ChatModelTextGenerator,
        FirecrawlFetcher, LoggingChannel, EventBus, ResearchConfig,
    )
"""

from sustained_research.infrastructure.channel import (
    LoggingChannel,
    PublicationChannel,
    WebhookChannel,
)
from sustained_research.infrastructure.config import (
    DiscoveryConfig,
    GenerationConfig,
    PublicationConfig,
    ReadingConfig,
    ResearchConfig,
    SchedulerConfig,
    StoreConfig,
    load_config_from_json,
)
from sustained_research.infrastructure.event_bus import EventBus, EventRecorder
from sustained_research.infrastructure.fetcher import ContentFetcher, FirecrawlFetcher
from sustained_research.infrastructure.generation import (
    ChatModelTextGenerator,
    TextGenerator,
    parse_generated_json,
)
from sustained_research.infrastructure.sql_store import SqlStore
from sustained_research.infrastructure.store import InMemoryStore, ResearchStore

__all__ = [
    "ChatModelTextGenerator",
    "ContentFetcher",
    "DiscoveryConfig",
    "EventBus",
    "EventRecorder",
    "FirecrawlFetcher",
    "GenerationConfig",
    "InMemoryStore",
    "LoggingChannel",
    "PublicationChannel",
    "PublicationConfig",
    "ReadingConfig",
    "ResearchConfig",
    "ResearchStore",
    "SchedulerConfig",
    "SqlStore",
    "StoreConfig",
    "TextGenerator",
    "WebhookChannel",
    "load_config_from_json",
    "parse_generated_json",
]
