"""KnowledgeBase: tag-keyed index of accepted findings.

Thread-safe store mapping a coarse topic tag to a bounded, recency-ordered
window of accepted finding summaries.  The window is the comparison context
handed to the novelty validator; a separate membership index remembers every
finding ever accepted under a tag so eviction from the window does not make
a validated discovery look unknown.
"""

from __future__ import annotations

import json
import threading
from collections import deque
from collections.abc import Iterable
from typing import Any


class KnowledgeBase:
    """Thread-safe novelty-comparison index.

    Parameters
    ----------
    window:
        Findings kept per tag for comparison.  Oldest are dropped first.
    """

    def __init__(self, window: int = 10) -> None:
        if window < 1:
            raise ValueError(f"window must be >= 1, got {window}")
        self._window = window
        self._recent: dict[str, deque[str]] = {}
        self._accepted: dict[str, set[str]] = {}
        self._lock = threading.Lock()

    @property
    def window(self) -> int:
        return self._window

    def add(self, finding: str, tags: Iterable[str]) -> tuple[str, ...]:
        """Record an accepted *finding* under each of *tags*.

        A finding already present under a tag is not duplicated there.
        Returns the tags the finding was newly added under.
        """
        added: list[str] = []
        with self._lock:
            for tag in tags:
                recent = self._recent.setdefault(tag, deque(maxlen=self._window))
                members = self._accepted.setdefault(tag, set())
                if finding in members:
                    continue
                recent.append(finding)
                members.add(finding)
                added.append(tag)
        return tuple(added)

    def entries_for(self, tags: Iterable[str]) -> list[str]:
        """Return the comparison window for *tags*, de-duplicated, newest first."""
        seen: set[str] = set()
        result: list[str] = []
        with self._lock:
            for tag in tags:
                for finding in reversed(self._recent.get(tag, ())):
                    if finding not in seen:
                        seen.add(finding)
                        result.append(finding)
        return result

    def contains(self, finding: str, tags: Iterable[str] | None = None) -> bool:
        """True if *finding* was accepted under any of *tags* (or any tag)."""
        with self._lock:
            keys = list(tags) if tags is not None else list(self._accepted)
            return any(finding in self._accepted.get(tag, ()) for tag in keys)

    def tags(self) -> list[str]:
        with self._lock:
            return sorted(self._recent)

    def __len__(self) -> int:
        """Number of tags with at least one entry."""
        with self._lock:
            return len(self._recent)

    @property
    def size(self) -> int:
        """Total findings currently held in the comparison windows."""
        with self._lock:
            return sum(len(v) for v in self._recent.values())

    def snapshot(self) -> dict[str, list[str]]:
        """Return a copy of the comparison windows, oldest first per tag."""
        with self._lock:
            return {tag: list(findings) for tag, findings in self._recent.items()}

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a dict for export."""
        with self._lock:
            return {
                "window": self._window,
                "recent": {tag: list(v) for tag, v in self._recent.items()},
                "accepted": {tag: sorted(v) for tag, v in self._accepted.items()},
            }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> KnowledgeBase:
        """Deserialize from a dict."""
        kb = cls(window=data.get("window", 10))
        for tag, findings in data.get("accepted", {}).items():
            kb._accepted[tag] = set(findings)
        for tag, findings in data.get("recent", {}).items():
            kb._recent[tag] = deque(findings, maxlen=kb._window)
            kb._accepted.setdefault(tag, set()).update(findings)
        return kb

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)
