"""Priority-ordered backlog of research topics.

The queue keeps an *active window* of at most ``capacity`` pending/active
topics sorted by descending priority.  Topics are never deleted: completed
topics and topics truncated out of the window move to a history index that
:meth:`TopicQueue.get` still searches.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from discovery_compounding.domain.entities import Topic, clamp_priority
from discovery_compounding.domain.enums import TopicOrigin, TopicStatus
from discovery_compounding.domain.exceptions import NotFound

logger = logging.getLogger(__name__)


class TopicQueue:
    """Bounded priority queue of :class:`Topic` entities.

    Parameters
    ----------
    capacity:
        Size of the active window.  Lowest-priority entries beyond it are
        demoted to history after every mutation.
    """

    def __init__(self, capacity: int = 20) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._capacity = capacity
        self._window: list[Topic] = []
        self._history: dict[str, Topic] = {}

    @property
    def capacity(self) -> int:
        return self._capacity

    # -- mutation -------------------------------------------------------------

    def enqueue(self, topic: Topic) -> bool:
        """Add one topic.  Returns ``True`` if it survived truncation."""
        self.requeue([topic])
        return any(t is topic for t in self._window)

    def requeue(self, topics: Iterable[Topic]) -> list[Topic]:
        """Add a batch of topics, then resort and truncate.

        Directed topics are placed ahead of existing entries so they win
        priority ties.  Returns the topics demoted out of the window.
        """
        queued = {t.topic_id for t in self._window}
        batch = [t for t in topics if t.topic_id not in queued]
        directed = [t for t in batch if t.origin is TopicOrigin.DIRECTED]
        others = [t for t in batch if t.origin is not TopicOrigin.DIRECTED]
        self._window = directed + self._window + others
        for topic in batch:
            self._history.setdefault(topic.topic_id, topic)
        return self._normalize()

    def select_next(self) -> Topic | None:
        """Mark the highest-priority pending topic active and return it.

        Returns ``None`` when nothing is pending.
        """
        for topic in self._window:
            if topic.is_pending:
                topic.activate()
                return topic
        return None

    def complete(self, topic_id: str) -> Topic:
        """Mark a topic completed and drop it from the window."""
        topic = self.get(topic_id)
        topic.complete()
        self._normalize()
        return topic

    def reprioritize(self, topic_id: str, priority: float) -> Topic:
        """Change a topic's priority and resort."""
        topic = self.get(topic_id)
        topic.priority = clamp_priority(priority)
        self._normalize()
        return topic

    def _normalize(self) -> list[Topic]:
        live = [t for t in self._window if t.status is not TopicStatus.COMPLETED]
        live.sort(key=lambda t: t.priority, reverse=True)
        demoted = live[self._capacity:]
        self._window = live[: self._capacity]
        for topic in demoted:
            logger.debug("TopicQueue: demoted '%s' (priority %d)", topic.text, topic.priority)
        return demoted

    # -- queries --------------------------------------------------------------

    def get(self, topic_id: str) -> Topic:
        topic = self._history.get(topic_id)
        if topic is None:
            raise NotFound(kind="topic", identifier=topic_id)
        return topic

    def topics(self) -> list[Topic]:
        """The active window, highest priority first."""
        return list(self._window)

    def history(self) -> list[Topic]:
        return list(self._history.values())

    @property
    def pending_count(self) -> int:
        return sum(1 for t in self._window if t.status is TopicStatus.PENDING)

    @property
    def active_count(self) -> int:
        return sum(1 for t in self._window if t.status is TopicStatus.ACTIVE)

    def has_pending(self) -> bool:
        return self.pending_count > 0

    def __len__(self) -> int:
        return len(self._window)

    def status(self) -> dict[str, int]:
        return {
            "pending": self.pending_count,
            "active": self.active_count,
            "total": len(self._window),
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "capacity": self._capacity,
            "window": [t.to_dict() for t in self._window],
            "history": len(self._history),
        }
