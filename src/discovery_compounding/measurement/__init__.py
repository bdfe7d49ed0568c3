"""Measurement layer: derived metrics over discoveries."""

from discovery_compounding.measurement.metrics import (
    DerivedMetrics,
    compute_derived_metrics,
    novelty_summary,
)

__all__ = ["DerivedMetrics", "compute_derived_metrics", "novelty_summary"]
