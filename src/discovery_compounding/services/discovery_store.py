"""DiscoveryStore: owner of every discovery record and thread.

The store creates pending discoveries from specialist results, attaches
them to threads, applies the validator's one-time resolution, and exposes
the sorted views the scheduler and presentation layer read (recent,
validated, seed-worthy, threads).
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from typing import Any

from discovery_compounding.domain.entities import Discovery, DiscoveryThread
from discovery_compounding.domain.enums import DiscoveryStatus
from discovery_compounding.domain.exceptions import NotFound
from discovery_compounding.domain.values import Source

logger = logging.getLogger(__name__)


class DiscoveryStore:
    """Thread-safe registry of discoveries and their threads.

    Parameters
    ----------
    validated_threshold:
        Minimum novelty score for a validated discovery to appear in
        :meth:`validated`.
    seed_threshold:
        Minimum novelty score for :meth:`seeds`.
    """

    def __init__(self, validated_threshold: float = 7.0, seed_threshold: float = 8.0) -> None:
        self._discoveries: dict[str, Discovery] = {}
        self._threads: dict[str, DiscoveryThread] = {}
        self._topic_threads: dict[str, str] = {}
        self._validated_threshold = validated_threshold
        self._seed_threshold = seed_threshold
        self._lock = threading.Lock()

    # -- creation -------------------------------------------------------------

    def create(
        self,
        finding: str,
        *,
        sources: Sequence[Source] = (),
        contributors: Sequence[str] = (),
        builds_on: Sequence[str] = (),
        topic_id: str | None = None,
        topic_text: str = "",
        explanation: str = "",
    ) -> Discovery:
        """Register a new pending discovery and attach it to a thread.

        A discovery building on a known parent joins the parent's thread;
        otherwise it joins the thread already opened for its topic, or a
        new thread is created lazily.
        """
        with self._lock:
            parents = [self._discoveries[p] for p in builds_on if p in self._discoveries]
            depth = 1 + max((p.lineage_depth for p in parents), default=0)
            discovery = Discovery(
                finding=finding,
                sources=tuple(sources),
                contributors=tuple(contributors),
                builds_on=tuple(builds_on),
                topic_id=topic_id,
                lineage_depth=depth,
                novelty_explanation=explanation,
            )
            thread = self._thread_for(parents, topic_id, topic_text or finding)
            discovery.thread_id = thread.thread_id
            thread.append(discovery)
            self._discoveries[discovery.discovery_id] = discovery

        logger.debug(
            "DiscoveryStore: created %s in thread %s (depth %d)",
            discovery.discovery_id, thread.thread_id, thread.depth,
        )
        return discovery

    def _thread_for(
        self,
        parents: list[Discovery],
        topic_id: str | None,
        topic_text: str,
    ) -> DiscoveryThread:
        for parent in parents:
            thread = self._threads.get(parent.thread_id)
            if thread is not None:
                return thread
        if topic_id is not None and topic_id in self._topic_threads:
            return self._threads[self._topic_threads[topic_id]]
        thread = DiscoveryThread(topic_text=topic_text)
        self._threads[thread.thread_id] = thread
        if topic_id is not None:
            self._topic_threads[topic_id] = thread.thread_id
        return thread

    # -- lifecycle ------------------------------------------------------------

    def resolve(
        self,
        discovery_id: str,
        status: DiscoveryStatus,
        score: float,
        explanation: str = "",
    ) -> Discovery:
        """Apply the validator's verdict.  Raises ``AlreadyInState`` on a
        second resolution and ``NotFound`` for unknown ids."""
        with self._lock:
            discovery = self._get(discovery_id)
            discovery.resolve(status, score, explanation)
        return discovery

    def annotate_connection(self, source_id: str, target_id: str) -> None:
        """Record a strong link on both discoveries."""
        with self._lock:
            self._get(source_id).annotate_connection(target_id)
            self._get(target_id).annotate_connection(source_id)

    # -- lookups --------------------------------------------------------------

    def _get(self, discovery_id: str) -> Discovery:
        discovery = self._discoveries.get(discovery_id)
        if discovery is None:
            raise NotFound(kind="discovery", identifier=discovery_id)
        return discovery

    def get(self, discovery_id: str) -> Discovery:
        with self._lock:
            return self._get(discovery_id)

    def get_thread(self, thread_id: str) -> DiscoveryThread:
        with self._lock:
            thread = self._threads.get(thread_id)
        if thread is None:
            raise NotFound(kind="thread", identifier=thread_id)
        return thread

    def thread_discoveries(self, thread_id: str) -> list[Discovery]:
        """Discoveries of a thread in append order."""
        thread = self.get_thread(thread_id)
        with self._lock:
            return [self._discoveries[d] for d in thread.discovery_ids]

    # -- views ----------------------------------------------------------------

    def all(self) -> list[Discovery]:
        with self._lock:
            return list(self._discoveries.values())

    def recent(self, limit: int = 10) -> list[Discovery]:
        """Newest first."""
        items = sorted(self.all(), key=lambda d: d.created_at, reverse=True)
        return items[:limit] if limit > 0 else items

    def validated(self, limit: int = 0) -> list[Discovery]:
        """Validated discoveries above the threshold, highest novelty first."""
        items = [
            d for d in self.all()
            if d.is_validated and d.novelty_score >= self._validated_threshold
        ]
        items.sort(key=lambda d: d.novelty_score, reverse=True)
        return items[:limit] if limit > 0 else items

    def recent_validated(self, limit: int = 20) -> list[Discovery]:
        """Validated discoveries, newest first."""
        items = [d for d in self.all() if d.is_validated]
        items.sort(key=lambda d: d.created_at, reverse=True)
        return items[:limit] if limit > 0 else items

    def seeds(self, limit: int = 5) -> list[Discovery]:
        """High-scoring validated discoveries suited to seed new research."""
        items = [
            d for d in self.all()
            if d.is_validated and d.novelty_score >= self._seed_threshold
        ]
        items.sort(key=lambda d: d.created_at, reverse=True)
        return items[:limit]

    def threads(self) -> list[DiscoveryThread]:
        """All threads, most recently updated first."""
        with self._lock:
            items = list(self._threads.values())
        items.sort(key=lambda t: t.updated_at, reverse=True)
        return items

    def counts(self) -> dict[str, int]:
        items = self.all()
        by_status = {s: 0 for s in DiscoveryStatus}
        for d in items:
            by_status[d.status] += 1
        return {
            "total": len(items),
            "validated": by_status[DiscoveryStatus.VALIDATED],
            "pending": by_status[DiscoveryStatus.PENDING],
            "rejected": by_status[DiscoveryStatus.REJECTED],
        }

    def __len__(self) -> int:
        with self._lock:
            return len(self._discoveries)

    def __contains__(self, discovery_id: str) -> bool:
        with self._lock:
            return discovery_id in self._discoveries

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a dict for export."""
        with self._lock:
            return {
                "discoveries": [d.to_dict() for d in self._discoveries.values()],
                "threads": [t.to_dict() for t in self._threads.values()],
            }
