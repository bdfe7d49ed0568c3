"""Conditional edge functions for the cycle graph.

These functions determine routing between nodes based on the current state.
"""

from __future__ import annotations

from typing import Any, Literal


def should_dispatch(state: dict[str, Any]) -> Literal["dispatch_research", "__end__"]:
    """After select_topic, end the cycle early when no topic was available."""
    if state.get("topic") is None:
        return "__end__"
    return "dispatch_research"


def should_build_chains(state: dict[str, Any]) -> Literal["build_chains", "replenish_queue"]:
    """After validate, skip connection analysis when nothing was accepted."""
    if state.get("accepted"):
        return "build_chains"
    return "replenish_queue"
