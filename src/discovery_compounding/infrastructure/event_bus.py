"""Activity plumbing: a synchronous event bus and the bounded activity log.

Services publish ``DomainEvent`` instances on the orchestrator's
:class:`EventBus`.  The orchestrator subscribes an :class:`EventStore` to
every event; the store is the source of the activity feed shown by
``get_recent_activity_messages`` and the console dashboard.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence

from discovery_compounding.domain.enums import MessageKind
from discovery_compounding.domain.events import DomainEvent
from discovery_compounding.domain.values import ActivityMessage

logger = logging.getLogger(__name__)

Handler = Callable[[DomainEvent], None]


class EventBus:
    """Synchronous publish/subscribe keyed by event class.

    A subscription to a class also receives its subclasses, so subscribing
    to ``DomainEvent`` (what :meth:`subscribe_all` does) sees everything.
    Handlers run in subscription order.  A handler that raises is logged
    and the remaining handlers still run.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscriptions: list[tuple[type[DomainEvent], Handler]] = []

    def subscribe(self, event_type: type[DomainEvent], handler: Handler) -> None:
        with self._lock:
            self._subscriptions.append((event_type, handler))

    def subscribe_all(self, handler: Handler) -> None:
        self.subscribe(DomainEvent, handler)

    def unsubscribe(self, event_type: type[DomainEvent], handler: Handler) -> bool:
        """Drop the first matching subscription.  Returns ``False`` if absent."""
        with self._lock:
            for i, (registered, fn) in enumerate(self._subscriptions):
                if registered is event_type and fn == handler:
                    del self._subscriptions[i]
                    return True
        return False

    def publish(self, event: DomainEvent) -> None:
        with self._lock:
            matching = [fn for registered, fn in self._subscriptions if isinstance(event, registered)]
        for handler in matching:
            try:
                handler(event)
            except Exception:
                logger.exception("EventBus: handler %r failed on %s", handler, event.describe())


class EventStore:
    """Recent events, oldest first.

    Parameters
    ----------
    max_size:
        Capacity; ``0`` keeps everything.  Passing the capacity drops the
        older half in one step, so a store of 1000 falls back to 500.
    """

    def __init__(self, max_size: int = 0) -> None:
        self._events: list[DomainEvent] = []
        self._max_size = max_size
        self._lock = threading.Lock()

    def append(self, event: DomainEvent) -> None:
        with self._lock:
            self._events.append(event)
            if self._max_size and len(self._events) > self._max_size:
                keep = self._max_size // 2
                del self._events[: len(self._events) - keep]

    def query(
        self,
        event_type: type[DomainEvent] | None = None,
        since: float | None = None,
        kind: MessageKind | None = None,
        limit: int = 0,
    ) -> Sequence[DomainEvent]:
        """Events matching every given filter, oldest first.

        ``limit`` keeps the newest matches.
        """
        with self._lock:
            events = list(self._events)
        matches = [
            e for e in events
            if (event_type is None or isinstance(e, event_type))
            and (since is None or e.timestamp >= since)
            and (kind is None or e.kind is kind)
        ]
        return matches[-limit:] if limit > 0 else matches

    def recent_messages(self, limit: int = 50, kind: MessageKind | None = None) -> list[ActivityMessage]:
        """Activity messages for the newest *limit* events, newest first."""
        return [e.to_message() for e in reversed(self.query(kind=kind, limit=limit))]

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
