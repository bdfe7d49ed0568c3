"""Domain layer for the discovery compounding orchestrator.

Re-exports all public domain types so that consumers can write::

    from discovery_compounding.domain import Discovery, Topic, TopicStatus
"""

# -- Enumerations -------------------------------------------------------------
from .enums import (
    CyclePhase,
    DiscoveryStatus,
    HandoffTarget,
    MessageKind,
    Recommendation,
    RelationType,
    SuggestionType,
    TopicOrigin,
    TopicStatus,
)

# -- Value Objects ------------------------------------------------------------
from .values import (
    ActivityMessage,
    ChainOpportunity,
    CommandResult,
    ControlResult,
    CycleSummary,
    HandoffDecision,
    NoveltyAssessment,
    ResearchResult,
    ResearchSuggestion,
    Source,
    SpecialistProfile,
)

# -- Entities -----------------------------------------------------------------
from .entities import Discovery, DiscoveryThread, Topic, clamp_priority

# -- Events -------------------------------------------------------------------
from .events import (
    ChainOpportunityFound,
    CycleCompleted,
    CycleStarted,
    DiscoveryProposed,
    DiscoveryRejected,
    DiscoveryValidated,
    DomainEvent,
    HandoffExecuted,
    OrchestratorStarted,
    OrchestratorStopped,
    TopicEnqueued,
    TopicSelected,
)

# -- Exceptions ---------------------------------------------------------------
from .exceptions import (
    AlreadyInState,
    DiscoveryCompoundingError,
    MalformedResponse,
    NotFound,
    UpstreamError,
    UpstreamTimeout,
)

__all__ = [
    # enums
    "CyclePhase",
    "DiscoveryStatus",
    "HandoffTarget",
    "MessageKind",
    "Recommendation",
    "RelationType",
    "SuggestionType",
    "TopicOrigin",
    "TopicStatus",
    # values
    "ActivityMessage",
    "ChainOpportunity",
    "CommandResult",
    "ControlResult",
    "CycleSummary",
    "HandoffDecision",
    "NoveltyAssessment",
    "ResearchResult",
    "ResearchSuggestion",
    "Source",
    "SpecialistProfile",
    # entities
    "Discovery",
    "DiscoveryThread",
    "Topic",
    "clamp_priority",
    # events
    "ChainOpportunityFound",
    "CycleCompleted",
    "CycleStarted",
    "DiscoveryProposed",
    "DiscoveryRejected",
    "DiscoveryValidated",
    "DomainEvent",
    "HandoffExecuted",
    "OrchestratorStarted",
    "OrchestratorStopped",
    "TopicEnqueued",
    "TopicSelected",
    # exceptions
    "AlreadyInState",
    "DiscoveryCompoundingError",
    "MalformedResponse",
    "NotFound",
    "UpstreamError",
    "UpstreamTimeout",
]
