"""Derived metrics over the discovery store.

Computes the figures reported in the orchestrator status:

::

    discovery_rate  = validated discoveries per hour of uptime
    avg_novelty     = mean novelty score of validated discoveries
    acceptance_rate = validated / (validated + rejected)

plus a novelty distribution summary used by the console dashboard.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import numpy as np

from discovery_compounding.domain.entities import Discovery
from discovery_compounding.domain.enums import DiscoveryStatus

_SECONDS_PER_HOUR = 3600.0


@dataclass(frozen=True)
class DerivedMetrics:
    """Rates and averages derived from the current discovery set."""

    discovery_rate: float = 0.0
    avg_novelty: float = 0.0
    acceptance_rate: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return {
            "discovery_rate": self.discovery_rate,
            "avg_novelty": self.avg_novelty,
            "acceptance_rate": self.acceptance_rate,
        }


def compute_derived_metrics(
    discoveries: Sequence[Discovery],
    started_at: float | None,
    now: float | None = None,
) -> DerivedMetrics:
    """Compute :class:`DerivedMetrics` for *discoveries*.

    Parameters
    ----------
    discoveries:
        Every discovery in the store.
    started_at:
        Epoch seconds the orchestrator first started.  ``None`` yields a
        zero discovery rate.
    now:
        Evaluation time; defaults to ``time.time()``.
    """
    validated = np.array(
        [d.novelty_score for d in discoveries if d.status is DiscoveryStatus.VALIDATED],
        dtype=float,
    )
    rejected = sum(1 for d in discoveries if d.status is DiscoveryStatus.REJECTED)

    resolved = validated.size + rejected
    acceptance = validated.size / resolved if resolved else 0.0
    avg_novelty = float(validated.mean()) if validated.size else 0.0

    rate = 0.0
    if started_at is not None:
        elapsed_hours = ((now if now is not None else time.time()) - started_at) / _SECONDS_PER_HOUR
        if elapsed_hours > 0:
            rate = validated.size / elapsed_hours

    return DerivedMetrics(
        discovery_rate=float(rate),
        avg_novelty=avg_novelty,
        acceptance_rate=float(acceptance),
    )


def novelty_summary(scores: Sequence[float]) -> dict[str, Any]:
    """Mean, median, 90th percentile and histogram of novelty *scores*.

    The histogram uses ten unit-wide bins over [0, 10].
    """
    arr = np.asarray(scores, dtype=float)
    if arr.size == 0:
        return {"count": 0, "mean": 0.0, "median": 0.0, "p90": 0.0, "histogram": [0] * 10}
    hist, _ = np.histogram(arr, bins=10, range=(0.0, 10.0))
    return {
        "count": int(arr.size),
        "mean": float(arr.mean()),
        "median": float(np.median(arr)),
        "p90": float(np.percentile(arr, 90)),
        "histogram": hist.tolist(),
    }
