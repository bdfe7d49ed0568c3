"""Domain events for the discovery compounding orchestrator.

Every event is a frozen dataclass inheriting from ``DomainEvent``.  The
scheduler and its services publish events on the ``EventBus``; the event
store keeps a bounded history from which the activity feed is derived.

All events carry a ``timestamp`` and a ``source_id`` identifying the
originating role (specialist id, ``validator``, ``connections``, ...).
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from .enums import HandoffTarget, MessageKind, RelationType
from .values import ActivityMessage, CycleSummary

# ---------------------------------------------------------------------------
# Base event
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DomainEvent:
    """Base class for all domain events.

    Subclasses describe themselves for the activity feed through
    :meth:`to_message`.
    """

    timestamp: float = field(default_factory=time.time)
    source_id: str = ""

    kind = MessageKind.COORDINATION

    def describe(self) -> str:
        return type(self).__name__

    def to_message(self) -> ActivityMessage:
        return ActivityMessage(
            content=self.describe(),
            role=self.source_id or "orchestrator",
            kind=self.kind,
            timestamp=self.timestamp,
        )


# ---------------------------------------------------------------------------
# Lifecycle events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class OrchestratorStarted(DomainEvent):
    """The periodic trigger was started."""

    interval: float = 0.0

    def describe(self) -> str:
        return f"Orchestrator started (cycle every {self.interval:g}s)"


@dataclass(frozen=True)
class OrchestratorStopped(DomainEvent):
    """The periodic trigger was stopped."""

    cycles_run: int = 0

    def describe(self) -> str:
        return f"Orchestrator stopped after {self.cycles_run} cycle(s)"


@dataclass(frozen=True)
class CycleStarted(DomainEvent):
    """A research cycle began."""

    cycle: int = 0

    def describe(self) -> str:
        return f"Cycle {self.cycle} started"


@dataclass(frozen=True)
class CycleCompleted(DomainEvent):
    """A research cycle finished its full pipeline."""

    summary: CycleSummary | None = None

    def describe(self) -> str:
        s = self.summary
        if s is None:
            return "Cycle completed"
        if s.skipped:
            return f"Cycle {s.cycle} idle: no pending topics"
        return (
            f"Cycle {s.cycle} complete: {s.accepted} validated, {s.rejected} rejected, "
            f"{s.connections} connections, {s.new_topics} new topics, queue {s.queue_depth}"
        )


# ---------------------------------------------------------------------------
# Topic events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TopicEnqueued(DomainEvent):
    """A topic entered the queue."""

    topic_id: str = ""
    text: str = ""
    priority: int = 0

    def describe(self) -> str:
        return f"Queued topic '{self.text}' (priority {self.priority})"


@dataclass(frozen=True)
class TopicSelected(DomainEvent):
    """The scheduler picked a topic and routed it."""

    topic_id: str = ""
    text: str = ""
    specialist_ids: tuple[str, ...] = ()

    kind = MessageKind.RESEARCH

    def describe(self) -> str:
        return f"Researching '{self.text}' with {', '.join(self.specialist_ids) or 'nobody'}"


# ---------------------------------------------------------------------------
# Research and discovery events
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class HandoffExecuted(DomainEvent):
    """A specialist result was handed to the validator or another specialist."""

    topic_id: str = ""
    target: HandoffTarget = HandoffTarget.NONE
    target_specialist_id: str | None = None
    reason: str = ""

    def describe(self) -> str:
        dest = self.target_specialist_id or self.target.value
        return f"Handoff from {self.source_id} to {dest}: {self.reason}"


@dataclass(frozen=True)
class DiscoveryProposed(DomainEvent):
    """A specialist result became a pending discovery."""

    discovery_id: str = ""
    finding: str = ""
    sources: int = 0

    kind = MessageKind.DISCOVERY

    def describe(self) -> str:
        return f"Candidate discovery ({self.sources} sources): {self.finding}"


@dataclass(frozen=True)
class DiscoveryValidated(DomainEvent):
    """The validator accepted a discovery."""

    discovery_id: str = ""
    score: float = 0.0
    tags: tuple[str, ...] = ()

    kind = MessageKind.VALIDATION

    def describe(self) -> str:
        return f"Validated {self.discovery_id} (novelty {self.score:.1f}, tags {', '.join(self.tags)})"


@dataclass(frozen=True)
class DiscoveryRejected(DomainEvent):
    """The validator rejected a discovery."""

    discovery_id: str = ""
    score: float = 0.0
    reason: str = ""

    kind = MessageKind.VALIDATION

    def describe(self) -> str:
        return f"Rejected {self.discovery_id} (novelty {self.score:.1f}): {self.reason}"


@dataclass(frozen=True)
class ChainOpportunityFound(DomainEvent):
    """The connection engine linked two validated discoveries."""

    source_discovery_id: str = ""
    target_discovery_id: str = ""
    relation: RelationType = RelationType.INTERSECTS
    strength: int = 0

    kind = MessageKind.CHAIN

    def describe(self) -> str:
        return (
            f"{self.source_discovery_id} {self.relation.value} {self.target_discovery_id} "
            f"(strength {self.strength})"
        )
