"""Event bus for the sustained research engine.

A synchronous pub-sub bus plus an in-memory recorder.  Research services
publish ``DomainEvent`` instances after each state change; handlers are
isolated from one another, so a failing listener (say, the activity log) is
logged and never breaks the pipeline that published the event.
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from collections.abc import Callable, Sequence

from sustained_research.domain.events import DomainEvent

logger = logging.getLogger(__name__)

Handler = Callable[[DomainEvent], None]


class EventBus:
    """Thread-safe synchronous pub-sub for domain events.

    Handlers run in registration order, catch-all handlers first.  A
    handler that raises is logged and skipped.

    Usage::

        bus = EventBus()
        bus.subscribe(ProjectCreated, on_created)
        bus.publish(ProjectCreated(project_id="a1b2c3d4"))
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._handlers: dict[type[DomainEvent], list[Handler]] = defaultdict(list)
        self._catch_all: list[Handler] = []

    def subscribe(self, event_type: type[DomainEvent], handler: Handler) -> None:
        """Register *handler* for events of exactly *event_type*."""
        with self._lock:
            self._handlers[event_type].append(handler)

    def subscribe_all(self, handler: Handler) -> None:
        """Register *handler* for every published event."""
        with self._lock:
            self._catch_all.append(handler)

    def unsubscribe(self, event_type: type[DomainEvent], handler: Handler) -> bool:
        """Remove *handler* from *event_type*. Returns ``True`` if it was registered."""
        with self._lock:
            handlers = self._handlers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)
                return True
            return False

    def publish(self, event: DomainEvent) -> None:
        with self._lock:
            targets = list(self._catch_all) + list(self._handlers.get(type(event), []))

        for handler in targets:
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Event handler %r failed for %s", handler, type(event).__name__
                )

    def handler_count(self, event_type: type[DomainEvent] | None = None) -> int:
        """Number of handlers for *event_type*, or all handlers when ``None``."""
        with self._lock:
            if event_type is not None:
                return len(self._handlers.get(event_type, []))
            return sum(len(hs) for hs in self._handlers.values()) + len(self._catch_all)

    def clear(self) -> None:
        with self._lock:
            self._handlers.clear()
            self._catch_all.clear()


class EventRecorder:
    """Keeps every event it receives, for inspection by the CLI and tests.

    Wire it with ``bus.subscribe_all(recorder)``.
    """

    def __init__(self) -> None:
        self._events: list[DomainEvent] = []
        self._lock = threading.Lock()

    def __call__(self, event: DomainEvent) -> None:
        with self._lock:
            self._events.append(event)

    def of_type(self, event_type: type[DomainEvent]) -> Sequence[DomainEvent]:
        with self._lock:
            return [e for e in self._events if isinstance(e, event_type)]

    @property
    def events(self) -> Sequence[DomainEvent]:
        with self._lock:
            return list(self._events)

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
