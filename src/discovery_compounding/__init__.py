"""Discovery Compounding Orchestrator.

Coordinates specialist reasoning workers through repeated research cycles,
validates the novelty of what they find against accumulated knowledge, and
links accepted discoveries so each cycle seeds the next.
"""

__version__ = "0.1.0"

from discovery_compounding.services.orchestrator import DiscoveryOrchestrator, SystemStatus

__all__ = [
    "DiscoveryOrchestrator",
    "SystemStatus",
]
