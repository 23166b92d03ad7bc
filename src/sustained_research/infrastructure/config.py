"""Configuration dataclasses for the sustained research engine.

Each config is a plain frozen ``dataclass`` with a ``validate()`` method that
raises ``ValueError`` on invalid values, plus ``to_dict()`` / ``from_dict()``
for JSON round-trips.  :class:`ResearchConfig` bundles one instance of each
section; :func:`load_config_from_json` parses a sectioned JSON document.
"""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, field, fields
from typing import Any

_DEFAULT_PERSONA = (
    "You are an autonomous philosophical researcher conducting sustained, "
    "multi-week inquiries. Write in the first person with intellectual "
    "honesty, specific textual references and genuine curiosity."
)


# ===================================================================== #
#  Text generation                                                       #
# ===================================================================== #

@dataclass(frozen=True)
class GenerationConfig:
    """Parameters for the text-generation collaborator.

    Attributes
    ----------
    provider:
        Chat model backend used by the CLI (``"anthropic"``).
    model:
        Model identifier passed to the provider.
    temperature:
        Sampling temperature.
    max_tokens:
        Default response budget when a caller does not pass one.
    timeout_seconds:
        Wall-clock limit for one generation call.
    persona:
        System message prepended to every prompt.
    """

    provider: str = "anthropic"
    model: str = "claude-sonnet-4-5-20250929"
    temperature: float = 0.7
    max_tokens: int = 1024
    timeout_seconds: float = 60.0
    persona: str = _DEFAULT_PERSONA

    def validate(self) -> None:
        if not self.provider:
            raise ValueError("provider must not be empty")
        if not (0.0 <= self.temperature <= 2.0):
            raise ValueError(f"temperature must be in [0, 2], got {self.temperature}")
        if self.max_tokens < 1:
            raise ValueError(f"max_tokens must be >= 1, got {self.max_tokens}")
        if self.timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be > 0, got {self.timeout_seconds}")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GenerationConfig:
        valid_keys = {f.name for f in fields(cls)}
        cfg = cls(**{k: v for k, v in data.items() if k in valid_keys})
        cfg.validate()
        return cfg


# ===================================================================== #
#  Source discovery                                                      #
# ===================================================================== #

@dataclass(frozen=True)
class DiscoveryConfig:
    """Parameters for the source discovery pipeline.

    Attributes
    ----------
    max_search_terms:
        Upper bound on generated search terms kept per project.
    terms_per_run:
        Search terms queried in one discovery run.
    results_per_term:
        Candidates requested from the fetcher for each term.
    max_promotions:
        Reading-list items a single run may add.
    promotion_threshold:
        Minimum overall quality for promotion.
    novelty_similarity:
        Title similarity at or above which a candidate counts as a duplicate.
    rediscovery_days:
        Minimum gap between periodic discovery runs for one project.
    base_url / api_key / fetch_timeout:
        Settings for the HTTP content fetcher.
    """

    max_search_terms: int = 10
    terms_per_run: int = 5
    results_per_term: int = 5
    max_promotions: int = 5
    promotion_threshold: float = 0.6
    novelty_similarity: float = 0.8
    rediscovery_days: float = 3.0
    base_url: str = "https://api.firecrawl.dev"
    api_key: str = ""
    fetch_timeout: float = 15.0

    def validate(self) -> None:
        if self.max_search_terms < 1:
            raise ValueError(f"max_search_terms must be >= 1, got {self.max_search_terms}")
        if self.terms_per_run < 1:
            raise ValueError(f"terms_per_run must be >= 1, got {self.terms_per_run}")
        if self.results_per_term < 1:
            raise ValueError(f"results_per_term must be >= 1, got {self.results_per_term}")
        if self.max_promotions < 0:
            raise ValueError(f"max_promotions must be >= 0, got {self.max_promotions}")
        if not (0.0 <= self.promotion_threshold <= 1.0):
            raise ValueError(
                f"promotion_threshold must be in [0, 1], got {self.promotion_threshold}"
            )
        if not (0.0 <= self.novelty_similarity <= 1.0):
            raise ValueError(
                f"novelty_similarity must be in [0, 1], got {self.novelty_similarity}"
            )
        if self.rediscovery_days < 0:
            raise ValueError(f"rediscovery_days must be >= 0, got {self.rediscovery_days}")
        if self.fetch_timeout <= 0:
            raise ValueError(f"fetch_timeout must be > 0, got {self.fetch_timeout}")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DiscoveryConfig:
        valid_keys = {f.name for f in fields(cls)}
        cfg = cls(**{k: v for k, v in data.items() if k in valid_keys})
        cfg.validate()
        return cfg


# ===================================================================== #
#  Reading sessions                                                      #
# ===================================================================== #

@dataclass(frozen=True)
class ReadingConfig:
    """Parameters for the reading-session engine."""

    phase_delay_days: float = 2.0
    candidate_depth: float = 0.6
    candidate_min_insights: int = 2
    max_tokens: int = 800

    def validate(self) -> None:
        if self.phase_delay_days < 0:
            raise ValueError(f"phase_delay_days must be >= 0, got {self.phase_delay_days}")
        if not (0.0 <= self.candidate_depth <= 1.0):
            raise ValueError(f"candidate_depth must be in [0, 1], got {self.candidate_depth}")
        if self.candidate_min_insights < 0:
            raise ValueError(
                f"candidate_min_insights must be >= 0, got {self.candidate_min_insights}"
            )
        if self.max_tokens < 1:
            raise ValueError(f"max_tokens must be >= 1, got {self.max_tokens}")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ReadingConfig:
        valid_keys = {f.name for f in fields(cls)}
        cfg = cls(**{k: v for k, v in data.items() if k in valid_keys})
        cfg.validate()
        return cfg


# ===================================================================== #
#  Publication                                                           #
# ===================================================================== #

@dataclass(frozen=True)
class PublicationConfig:
    """Thresholds and throttles for the publication gatekeeper.

    Attributes
    ----------
    max_sends / window_days:
        At most ``max_sends`` publications in any rolling window of
        ``window_days`` days, system-wide.
    announcement_window_days:
        A project is announced only within this many days of its start.
    reading_window_days / argument_window_days / community_window_days:
        Recency windows for the note triggers.
    reading_depth:
        Session depth above which a reading qualifies for a note.
    argument_confidence / argument_community_weight:
        Either threshold qualifies an argument for a note.
    community_significance:
        Contribution significance above which it qualifies for a note.
    readiness_threshold:
        Publication readiness (0-100) above which a major essay is drafted.
    webhook_url:
        Endpoint for the HTTP publication channel; empty means log only.
    """

    max_sends: int = 2
    window_days: float = 3.0
    announcement_window_days: float = 1.0
    reading_window_days: float = 7.0
    argument_window_days: float = 3.0
    community_window_days: float = 7.0
    reading_depth: float = 0.6
    argument_confidence: float = 0.7
    argument_community_weight: float = 0.5
    community_significance: float = 0.8
    readiness_threshold: float = 80.0
    webhook_url: str = ""

    def validate(self) -> None:
        if self.max_sends < 1:
            raise ValueError(f"max_sends must be >= 1, got {self.max_sends}")
        if self.window_days <= 0:
            raise ValueError(f"window_days must be > 0, got {self.window_days}")
        for name in ("reading_depth", "argument_confidence",
                     "argument_community_weight", "community_significance"):
            value = getattr(self, name)
            if not (0.0 <= value <= 1.0):
                raise ValueError(f"{name} must be in [0, 1], got {value}")
        if not (0.0 <= self.readiness_threshold <= 100.0):
            raise ValueError(
                f"readiness_threshold must be in [0, 100], got {self.readiness_threshold}"
            )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PublicationConfig:
        valid_keys = {f.name for f in fields(cls)}
        cfg = cls(**{k: v for k, v in data.items() if k in valid_keys})
        cfg.validate()
        return cfg


# ===================================================================== #
#  Scheduler                                                             #
# ===================================================================== #

@dataclass(frozen=True)
class SchedulerConfig:
    """Parameters for the periodic research scheduler.

    Attributes
    ----------
    tick_seconds:
        Interval between scheduler ticks.
    task_timeout:
        Limit for one project's work within a tick.
    max_backoff_ticks:
        Cap on the number of ticks a repeatedly failing project is skipped.
    """

    tick_seconds: float = 3600.0
    task_timeout: float = 300.0
    max_backoff_ticks: int = 16

    def validate(self) -> None:
        if self.tick_seconds <= 0:
            raise ValueError(f"tick_seconds must be > 0, got {self.tick_seconds}")
        if self.task_timeout <= 0:
            raise ValueError(f"task_timeout must be > 0, got {self.task_timeout}")
        if self.max_backoff_ticks < 1:
            raise ValueError(f"max_backoff_ticks must be >= 1, got {self.max_backoff_ticks}")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SchedulerConfig:
        valid_keys = {f.name for f in fields(cls)}
        cfg = cls(**{k: v for k, v in data.items() if k in valid_keys})
        cfg.validate()
        return cfg


# ===================================================================== #
#  Store                                                                 #
# ===================================================================== #

_VALID_STORE_BACKENDS = frozenset({"memory", "sql"})


@dataclass(frozen=True)
class StoreConfig:
    """Which store backend to use and where it lives."""

    backend: str = "sql"
    url: str = "sqlite:///sustained_research.db"
    echo: bool = False

    def validate(self) -> None:
        if self.backend not in _VALID_STORE_BACKENDS:
            raise ValueError(
                f"backend must be one of {sorted(_VALID_STORE_BACKENDS)}, "
                f"got '{self.backend}'"
            )
        if self.backend == "sql" and not self.url:
            raise ValueError("url is required for the sql backend")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StoreConfig:
        valid_keys = {f.name for f in fields(cls)}
        cfg = cls(**{k: v for k, v in data.items() if k in valid_keys})
        cfg.validate()
        return cfg


# ===================================================================== #
#  Bundle                                                                #
# ===================================================================== #

_CONFIG_MAP: dict[str, type] = {
    "generation": GenerationConfig,
    "discovery": DiscoveryConfig,
    "reading": ReadingConfig,
    "publication": PublicationConfig,
    "scheduler": SchedulerConfig,
    "store": StoreConfig,
}

# environment variable -> (section, field, type)
_ENV_OVERRIDES: dict[str, tuple[str, str, type]] = {
    "SUSTAINED_RESEARCH_MODEL": ("generation", "model", str),
    "SUSTAINED_RESEARCH_DB_URL": ("store", "url", str),
    "SUSTAINED_RESEARCH_WEBHOOK_URL": ("publication", "webhook_url", str),
    "SUSTAINED_RESEARCH_TICK_SECONDS": ("scheduler", "tick_seconds", float),
    "FIRECRAWL_API_KEY": ("discovery", "api_key", str),
}


@dataclass(frozen=True)
class ResearchConfig:
    """All configuration sections for one research system."""

    generation: GenerationConfig = field(default_factory=GenerationConfig)
    discovery: DiscoveryConfig = field(default_factory=DiscoveryConfig)
    reading: ReadingConfig = field(default_factory=ReadingConfig)
    publication: PublicationConfig = field(default_factory=PublicationConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    store: StoreConfig = field(default_factory=StoreConfig)

    def validate(self) -> None:
        for name in _CONFIG_MAP:
            getattr(self, name).validate()

    def to_dict(self) -> dict[str, Any]:
        return {name: getattr(self, name).to_dict() for name in _CONFIG_MAP}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ResearchConfig:
        sections = {
            name: section_cls.from_dict(data[name])
            for name, section_cls in _CONFIG_MAP.items()
            if isinstance(data.get(name), dict)
        }
        cfg = cls(**sections)
        cfg.validate()
        return cfg

    @classmethod
    def from_env(cls, base: ResearchConfig | None = None) -> ResearchConfig:
        """Apply ``SUSTAINED_RESEARCH_*`` environment overrides to *base*."""
        data = (base or cls()).to_dict()
        for var, (section, key, cast) in _ENV_OVERRIDES.items():
            raw = os.environ.get(var)
            if raw:
                data[section][key] = cast(raw)
        return cls.from_dict(data)


def load_config_from_json(json_str: str) -> ResearchConfig:
    """Parse a JSON document into a :class:`ResearchConfig`.

    The JSON must be an object whose top-level keys are section names
    (``generation``, ``discovery``, ``reading``, ``publication``,
    ``scheduler``, ``store``).  Missing sections keep their defaults;
    unknown sections are ignored.
    """
    raw = json.loads(json_str)
    if not isinstance(raw, dict):
        raise ValueError("Top-level JSON must be an object")
    return ResearchConfig.from_dict(raw)
