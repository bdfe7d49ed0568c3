"""Shared fixtures for the discovery compounding test suite."""

from __future__ import annotations

import pytest

from discovery_compounding.domain.entities import Discovery, Topic
from discovery_compounding.domain.enums import DiscoveryStatus
from discovery_compounding.domain.values import Source
from discovery_compounding.infrastructure.event_bus import EventBus, EventStore
from discovery_compounding.infrastructure.knowledge_base import KnowledgeBase
from discovery_compounding.services.discovery_store import DiscoveryStore

# ---------------------------------------------------------------------------
# Value-object fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_sources() -> tuple[Source, ...]:
    """Three sources of mixed credibility."""
    return (
        Source(url="https://arxiv.org/abs/1", title="Quantum sensing review", key_insight="NV centres", credibility=8),
        Source(url="https://www.nature.com/x", title="Nature study", key_insight="Crystal screening", credibility=9),
        Source(url="https://example.com/blog", title="Blog", key_insight="Pilot deployments", credibility=5),
    )


@pytest.fixture
def sample_topic() -> Topic:
    return Topic(text="Quantum sensors for disease detection", priority=8)


# ---------------------------------------------------------------------------
# Infrastructure fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def recorded_bus() -> tuple[EventBus, EventStore]:
    """An event bus wired to an unbounded store."""
    bus = EventBus()
    store = EventStore()
    bus.subscribe_all(store.append)
    return bus, store


@pytest.fixture
def knowledge_base() -> KnowledgeBase:
    return KnowledgeBase(window=10)


@pytest.fixture
def store() -> DiscoveryStore:
    return DiscoveryStore()


@pytest.fixture
def validated_discovery(store: DiscoveryStore, sample_sources: tuple[Source, ...]) -> Discovery:
    """A discovery already accepted with novelty 8."""
    d = store.create("Quantum sensors detect biomarkers label-free", sources=sample_sources)
    store.resolve(d.discovery_id, DiscoveryStatus.VALIDATED, 8.0)
    return d
