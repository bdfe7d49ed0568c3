"""Service layer for the discovery compounding orchestrator.

Re-exports public service types for convenient top-level access::

    from discovery_compounding.services import (
        TopicQueue, DiscoveryStore, SpecialistRouter, evaluate_handoff,
        Specialist, NoveltyValidator, ConnectionEngine, TopicPlanner,
        KeywordTaggingStrategy, DiscoveryOrchestrator,
    )
"""

from discovery_compounding.services.connections import ConnectionEngine
from discovery_compounding.services.discovery_store import DiscoveryStore
from discovery_compounding.services.routing import SpecialistRouter, evaluate_handoff
from discovery_compounding.services.specialists import (
    DEFAULT_ROSTER,
    Specialist,
    estimate_credibility,
)
from discovery_compounding.services.tagging import (
    KeywordTaggingStrategy,
    TaggingStrategy,
    default_domain_tagger,
    default_topic_tagger,
)
from discovery_compounding.services.topic_planning import TopicPlanner
from discovery_compounding.services.topic_queue import TopicQueue
from discovery_compounding.services.validation import NoveltyValidator
from discovery_compounding.services.orchestrator import DiscoveryOrchestrator, SystemStatus

__all__ = [
    "ConnectionEngine",
    "DEFAULT_ROSTER",
    "DiscoveryOrchestrator",
    "DiscoveryStore",
    "KeywordTaggingStrategy",
    "NoveltyValidator",
    "Specialist",
    "SpecialistRouter",
    "SystemStatus",
    "TaggingStrategy",
    "TopicPlanner",
    "TopicQueue",
    "default_domain_tagger",
    "default_topic_tagger",
    "estimate_credibility",
    "evaluate_handoff",
]
