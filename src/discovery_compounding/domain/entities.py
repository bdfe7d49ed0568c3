"""Domain entities for the discovery compounding orchestrator.

Entities have *identity* (a unique id that persists across mutations) and a
mutable lifecycle.  ``Topic`` moves through the queue, ``Discovery`` is
resolved exactly once by the validator, and ``DiscoveryThread`` groups
discoveries into a lineage whose depth only ever grows.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from typing import Any

from .enums import DiscoveryStatus, TopicOrigin, TopicStatus
from .exceptions import AlreadyInState
from .values import Source


def _new_id() -> str:
    return str(uuid.uuid4())[:8]


def clamp_priority(priority: float) -> int:
    """Round *priority* and clamp it into the 1..10 band."""
    return max(1, min(10, int(round(priority))))


# ---------------------------------------------------------------------------
# Topic entity
# ---------------------------------------------------------------------------

@dataclass
class Topic:
    """A unit of research work waiting in, or moving through, the queue."""

    text: str
    priority: int = 5
    status: TopicStatus = TopicStatus.PENDING
    parent_discovery_id: str | None = None
    origin: TopicOrigin = TopicOrigin.SEED
    topic_id: str = field(default_factory=_new_id)
    created_at: float = field(default_factory=time.time)

    def __post_init__(self) -> None:
        self.priority = clamp_priority(self.priority)

    # -- lifecycle transitions ------------------------------------------------

    def activate(self) -> None:
        if self.status is not TopicStatus.PENDING:
            raise AlreadyInState(
                f"Topic {self.topic_id} is {self.status.value}, not pending",
                state=self.status.value,
            )
        self.status = TopicStatus.ACTIVE

    def complete(self) -> None:
        self.status = TopicStatus.COMPLETED

    @property
    def is_pending(self) -> bool:
        return self.status is TopicStatus.PENDING

    def to_dict(self) -> dict[str, Any]:
        return {
            "topic_id": self.topic_id,
            "text": self.text,
            "priority": self.priority,
            "status": self.status.value,
            "parent_discovery_id": self.parent_discovery_id,
            "origin": self.origin.value,
            "created_at": self.created_at,
        }


# ---------------------------------------------------------------------------
# Discovery entity
# ---------------------------------------------------------------------------

@dataclass
class Discovery:
    """A candidate or validated insight record.

    ``novelty_score`` and ``status`` are written together by :meth:`resolve`,
    which succeeds only once.  Afterwards the record is immutable except for
    connection annotations.
    """

    finding: str
    sources: tuple[Source, ...] = ()
    contributors: tuple[str, ...] = ()
    builds_on: tuple[str, ...] = ()
    thread_id: str = ""
    topic_id: str | None = None
    lineage_depth: int = 1
    discovery_id: str = field(default_factory=_new_id)
    created_at: float = field(default_factory=time.time)
    novelty_score: float = 0.0
    novelty_explanation: str = ""
    status: DiscoveryStatus = DiscoveryStatus.PENDING
    related_ids: list[str] = field(default_factory=list)

    def resolve(self, status: DiscoveryStatus, score: float, explanation: str = "") -> None:
        """Set the final status and novelty score in one step.

        Raises
        ------
        AlreadyInState
            If the discovery has already been resolved.
        ValueError
            If *status* is ``PENDING``.
        """
        if self.status is not DiscoveryStatus.PENDING:
            raise AlreadyInState(
                f"Discovery {self.discovery_id} already {self.status.value}",
                state=self.status.value,
            )
        if status is DiscoveryStatus.PENDING:
            raise ValueError("A discovery can only be resolved to validated or rejected")
        self.novelty_score = max(0.0, min(10.0, float(score)))
        if explanation:
            self.novelty_explanation = explanation
        self.status = status

    def annotate_connection(self, other_id: str) -> None:
        if other_id != self.discovery_id and other_id not in self.related_ids:
            self.related_ids.append(other_id)

    @property
    def is_validated(self) -> bool:
        return self.status is DiscoveryStatus.VALIDATED

    def to_dict(self) -> dict[str, Any]:
        return {
            "discovery_id": self.discovery_id,
            "finding": self.finding,
            "novelty_score": self.novelty_score,
            "novelty_explanation": self.novelty_explanation,
            "sources": [s.to_dict() for s in self.sources],
            "contributors": list(self.contributors),
            "builds_on": list(self.builds_on),
            "thread_id": self.thread_id,
            "topic_id": self.topic_id,
            "status": self.status.value,
            "created_at": self.created_at,
            "related_ids": list(self.related_ids),
        }


# ---------------------------------------------------------------------------
# DiscoveryThread entity
# ---------------------------------------------------------------------------

@dataclass
class DiscoveryThread:
    """Ordered lineage of discoveries sharing an origin topic."""

    topic_text: str
    thread_id: str = field(default_factory=_new_id)
    discovery_ids: list[str] = field(default_factory=list)
    depth: int = 0
    created_at: float = field(default_factory=time.time)
    updated_at: float = field(default_factory=time.time)

    def append(self, discovery: Discovery) -> None:
        """Attach *discovery*; depth never decreases."""
        self.discovery_ids.append(discovery.discovery_id)
        self.depth = max(self.depth, discovery.lineage_depth)
        self.updated_at = time.time()

    def __len__(self) -> int:
        return len(self.discovery_ids)

    def to_dict(self) -> dict[str, Any]:
        return {
            "thread_id": self.thread_id,
            "topic_text": self.topic_text,
            "discovery_ids": list(self.discovery_ids),
            "depth": self.depth,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
