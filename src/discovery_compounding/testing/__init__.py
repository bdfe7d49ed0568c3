"""Public testing utilities for the discovery compounding orchestrator.

Provides deterministic reasoning doubles for writing self-contained
examples and tests without requiring API keys.
"""

from discovery_compounding.testing.mock_llm import (
    MockChatModel,
    ScriptedReasoner,
    demo_reasoner,
    failing_reasoner,
)

__all__ = ["MockChatModel", "ScriptedReasoner", "demo_reasoner", "failing_reasoner"]
