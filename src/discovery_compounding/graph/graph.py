"""Build the research-cycle StateGraph.

``build_cycle_graph()`` wires the five cycle nodes and their conditional
edges into a compiled LangGraph implementing one pass of
select-topic, dispatch-research (with collect-results fan-in), validate,
build-chains and replenish-queue.
"""

from __future__ import annotations

from typing import Any

from langgraph.graph import END, START, StateGraph

from discovery_compounding.graph.edges import should_build_chains, should_dispatch
from discovery_compounding.graph.nodes import (
    CycleServices,
    make_build_chains_node,
    make_dispatch_research_node,
    make_replenish_queue_node,
    make_select_topic_node,
    make_validate_node,
)
from discovery_compounding.graph.state import CycleState


def build_cycle_graph(
    services: CycleServices,
    existing_pool: int = 20,
    checkpointer: Any | None = None,
) -> Any:
    """Build and compile the cycle StateGraph.

    Parameters
    ----------
    services:
        Shared queue, store and services the nodes close over.
    existing_pool:
        Most recent validated discoveries compared against each new one.
    checkpointer:
        Optional LangGraph checkpointer.

    Returns
    -------
    CompiledStateGraph
        A compiled graph ready for ``.ainvoke()``.
    """
    graph = StateGraph(CycleState)

    graph.add_node("select_topic", make_select_topic_node(services))
    graph.add_node("dispatch_research", make_dispatch_research_node(services))
    graph.add_node("validate", make_validate_node(services))
    graph.add_node("build_chains", make_build_chains_node(services, existing_pool))
    graph.add_node("replenish_queue", make_replenish_queue_node(services))

    graph.add_edge(START, "select_topic")
    graph.add_conditional_edges(
        "select_topic",
        should_dispatch,
        {"dispatch_research": "dispatch_research", "__end__": END},
    )
    graph.add_edge("dispatch_research", "validate")
    graph.add_conditional_edges(
        "validate",
        should_build_chains,
        {"build_chains": "build_chains", "replenish_queue": "replenish_queue"},
    )
    graph.add_edge("build_chains", "replenish_queue")
    graph.add_edge("replenish_queue", END)

    return graph.compile(checkpointer=checkpointer)
