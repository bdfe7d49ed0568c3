"""LangGraph state definition for one research cycle.

Defines ``CycleState``, a ``TypedDict`` that flows through the cycle
``StateGraph``.  The ``errors`` channel is append-only
(``Annotated[list, operator.add]``) so every node can record per-item
failures without overwriting earlier ones.

LangGraph resolves these hints at runtime via ``get_type_hints()``, so this
module keeps annotations unpostponed.
"""

import operator
from typing import Annotated, Any, Optional, TypedDict

from discovery_compounding.domain.entities import Discovery, Topic
from discovery_compounding.domain.values import (
    ChainOpportunity,
    ResearchResult,
    ResearchSuggestion,
)


class CycleState(TypedDict, total=False):
    """State flowing through the cycle graph.

    Each node returns a partial update; only ``errors`` accumulates.
    """

    # -- Cycle identity
    cycle: int
    started_at: float

    # -- select_topic
    topic: Optional[Topic]
    specialist_ids: list[str]

    # -- dispatch_research (fan-out, handoffs, fan-in)
    results: list[ResearchResult]
    candidates: list[Discovery]

    # -- validate
    accepted: list[Discovery]
    rejected: list[Discovery]

    # -- build_chains
    connections: list[ChainOpportunity]
    suggestions: list[ResearchSuggestion]

    # -- replenish_queue
    new_topics: list[Topic]

    # -- Per-item failures
    errors: Annotated[list[str], operator.add]

    # -- Free-form extras
    metadata: dict[str, Any]
