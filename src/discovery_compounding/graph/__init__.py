"""LangGraph layer: the research cycle as a compiled StateGraph."""

from discovery_compounding.graph.graph import build_cycle_graph
from discovery_compounding.graph.nodes import CycleServices
from discovery_compounding.graph.state import CycleState

__all__ = [
    "CycleServices",
    "CycleState",
    "build_cycle_graph",
]
