"""Infrastructure layer for the discovery compounding orchestrator.

Re-exports the public API surface for convenience::

    from discovery_compounding.infrastructure import (
        EventBus, EventStore, KnowledgeBase,
        ReasoningCapability, ChatModelReasoner,
        OrchestratorConfig, ValidationConfig, ConnectionConfig, ReasoningConfig,
    )
"""

from discovery_compounding.infrastructure.config import (
    ConnectionConfig,
    OrchestratorConfig,
    ReasoningConfig,
    ValidationConfig,
    load_config_from_json,
)
from discovery_compounding.infrastructure.event_bus import EventBus, EventStore
from discovery_compounding.infrastructure.knowledge_base import KnowledgeBase
from discovery_compounding.infrastructure.reasoning import (
    ChatModelReasoner,
    ReasoningCapability,
    TimeoutReasoner,
    create_chat_model,
    parse_structured,
)

__all__ = [
    # config
    "ConnectionConfig",
    "OrchestratorConfig",
    "ReasoningConfig",
    "ValidationConfig",
    "load_config_from_json",
    # events
    "EventBus",
    "EventStore",
    # knowledge
    "KnowledgeBase",
    # reasoning
    "ChatModelReasoner",
    "ReasoningCapability",
    "TimeoutReasoner",
    "create_chat_model",
    "parse_structured",
]
