"""Presentation layer: rich console rendering of orchestrator state."""

from discovery_compounding.presentation.console import ConsoleDashboard

__all__ = ["ConsoleDashboard"]
