"""Domain enumerations for the discovery compounding orchestrator.

These enums capture the fixed vocabularies used across the domain layer:
topic and discovery lifecycles, relation and suggestion types, handoff
targets, and the phases of a research cycle.
"""

from enum import Enum


class TopicStatus(Enum):
    """Lifecycle state of a research topic in the queue."""

    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"


class TopicOrigin(Enum):
    """Where a topic came from."""

    SEED = "seed"
    DIRECTED = "directed"  # external command, maximum priority
    SUGGESTION = "suggestion"
    FOLLOW_UP = "follow_up"


class DiscoveryStatus(Enum):
    """Lifecycle state of a discovery record."""

    PENDING = "pending"
    VALIDATED = "validated"
    REJECTED = "rejected"


class RelationType(Enum):
    """Kind of relationship between two validated discoveries."""

    BUILDS_ON = "builds_on"
    CONTRADICTS = "contradicts"
    INTERSECTS = "intersects"
    APPLIES = "applies"


class SuggestionType(Enum):
    """Kind of follow-up research the connection engine proposes."""

    DEEP_DIVE = "deep_dive"
    CONTRADICTION_CHECK = "contradiction_check"
    APPLICATION_EXPLORE = "application_explore"
    INTERSECTION = "intersection"


class HandoffTarget(Enum):
    """Destination of a mid-cycle handoff."""

    NONE = "none"
    VALIDATOR = "validator"
    SPECIALIST = "specialist"


class Recommendation(Enum):
    """Final verdict of a novelty assessment."""

    ACCEPT = "accept"
    REJECT = "reject"


class CyclePhase(Enum):
    """States of the cycle scheduler."""

    IDLE = "idle"
    SELECT_TOPIC = "select_topic"
    DISPATCH_RESEARCH = "dispatch_research"
    COLLECT_RESULTS = "collect_results"
    VALIDATE = "validate"
    BUILD_CHAINS = "build_chains"
    REPLENISH_QUEUE = "replenish_queue"


class MessageKind(Enum):
    """Category of an activity-feed message."""

    RESEARCH = "research"
    DISCOVERY = "discovery"
    VALIDATION = "validation"
    CHAIN = "chain"
    COORDINATION = "coordination"
