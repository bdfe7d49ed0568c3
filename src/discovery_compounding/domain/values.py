"""Value objects for the discovery compounding orchestrator.

All types here are frozen dataclasses, immutable and compared by value.
They represent research inputs and outputs, routing decisions, assessments
and summaries that have no identity beyond their content.
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .enums import (
    HandoffTarget,
    MessageKind,
    Recommendation,
    RelationType,
    SuggestionType,
)

# ---------------------------------------------------------------------------
# Source
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Source:
    """A piece of evidence a specialist gathered for a topic.

    ``credibility`` is computed once when the source is built and never
    revisited.
    """

    url: str
    title: str = ""
    key_insight: str = ""
    credibility: int = 5  # [1, 10]

    def __post_init__(self) -> None:
        if not 1 <= self.credibility <= 10:
            raise ValueError(f"credibility must be in [1, 10], got {self.credibility}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "title": self.title,
            "key_insight": self.key_insight,
            "credibility": self.credibility,
        }


# ---------------------------------------------------------------------------
# Specialists and their output
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SpecialistProfile:
    """Roster entry for a specialist role.

    ``domain`` is the tag the routing tagger must produce for a topic to be
    considered a keyword match for this specialist.
    """

    specialist_id: str
    name: str
    domain: str
    focus: str = ""


@dataclass(frozen=True)
class ResearchResult:
    """What one specialist produced for one topic in one cycle."""

    specialist_id: str
    topic_id: str
    finding: str = ""
    novelty_explanation: str = ""
    novelty_score: float = 0.0
    sources: tuple[Source, ...] = ()
    sources_synthesized: int = 0
    handoff_from: str | None = None  # set on results produced by a handoff hop

    @property
    def sources_analyzed(self) -> int:
        return len(self.sources)

    @property
    def is_candidate(self) -> bool:
        """True when the result carries enough synthesis to become a discovery."""
        return bool(self.finding.strip()) and self.sources_synthesized >= 2


@dataclass(frozen=True)
class HandoffDecision:
    """Outcome of the handoff policy for a single research result."""

    recommended: bool
    target: HandoffTarget = HandoffTarget.NONE
    target_specialist_id: str | None = None
    reason: str = ""


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class NoveltyAssessment:
    """Result of scoring a candidate discovery against the knowledge base."""

    discovery_id: str
    score: float  # [1, 10]
    reason: str = ""
    compared_insights: tuple[str, ...] = ()
    recommendation: Recommendation = Recommendation.REJECT
    tags: tuple[str, ...] = ()
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not 0.0 <= self.score <= 10.0:
            raise ValueError(f"score must be in [0, 10], got {self.score}")

    @property
    def accepted(self) -> bool:
        return self.recommendation is Recommendation.ACCEPT


# ---------------------------------------------------------------------------
# Connections
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ChainOpportunity:
    """A detected relationship between two validated discoveries."""

    source_id: str
    target_id: str
    relation: RelationType = RelationType.INTERSECTS
    strength: int = 6  # [1, 10]
    explanation: str = ""
    timestamp: float = field(default_factory=time.time)

    def __post_init__(self) -> None:
        if not 1 <= self.strength <= 10:
            raise ValueError(f"strength must be in [1, 10], got {self.strength}")

    def to_dict(self) -> dict[str, Any]:
        return {
            "source_id": self.source_id,
            "target_id": self.target_id,
            "relation": self.relation.value,
            "strength": self.strength,
            "explanation": self.explanation,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class ResearchSuggestion:
    """Next-step research proposed from validated discoveries.

    Ephemeral: converted into topics by the scheduler and then discarded.
    """

    topic_text: str
    priority: int = 7
    based_on: tuple[str, ...] = ()
    rationale: str = ""
    suggestion_type: SuggestionType = SuggestionType.DEEP_DIVE


# ---------------------------------------------------------------------------
# Cycle and activity reporting
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CycleSummary:
    """Counts emitted at the end of every research cycle."""

    cycle: int
    topic_id: str | None = None
    topic_text: str = ""
    candidates: int = 0
    accepted: int = 0
    rejected: int = 0
    connections: int = 0
    new_topics: int = 0
    queue_depth: int = 0
    knowledge_base_size: int = 0
    duration: float = 0.0
    errors: tuple[str, ...] = ()

    @property
    def skipped(self) -> bool:
        """True when the cycle ended early because no topic was available."""
        return self.topic_id is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "cycle": self.cycle,
            "topic_id": self.topic_id,
            "topic_text": self.topic_text,
            "candidates": self.candidates,
            "accepted": self.accepted,
            "rejected": self.rejected,
            "connections": self.connections,
            "new_topics": self.new_topics,
            "queue_depth": self.queue_depth,
            "knowledge_base_size": self.knowledge_base_size,
            "duration": self.duration,
            "errors": list(self.errors),
        }


@dataclass(frozen=True)
class ActivityMessage:
    """A human-readable line in the activity feed."""

    content: str
    role: str = "orchestrator"
    kind: MessageKind = MessageKind.COORDINATION
    timestamp: float = field(default_factory=time.time)
    message_id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])

    def to_dict(self) -> dict[str, Any]:
        return {
            "message_id": self.message_id,
            "role": self.role,
            "kind": self.kind.value,
            "content": self.content,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class ControlResult:
    """Outcome of a lifecycle command (``start`` / ``stop``)."""

    changed: bool
    state: str
    message: str = ""


@dataclass(frozen=True)
class CommandResult:
    """Outcome of an external command such as a directed topic."""

    accepted: bool
    message: str = ""
    topic_id: str | None = None
