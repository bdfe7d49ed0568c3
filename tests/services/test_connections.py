"""Tests for connection detection and research suggestions."""

from __future__ import annotations

import pytest

from discovery_compounding.domain.entities import Discovery
from discovery_compounding.domain.enums import (
    DiscoveryStatus,
    RelationType,
    SuggestionType,
    TopicOrigin,
)
from discovery_compounding.domain.events import ChainOpportunityFound
from discovery_compounding.domain.exceptions import MalformedResponse, UpstreamError
from discovery_compounding.domain.values import ChainOpportunity, ResearchSuggestion
from discovery_compounding.infrastructure.config import ConnectionConfig
from discovery_compounding.infrastructure.event_bus import EventBus, EventStore
from discovery_compounding.services.connections import ConnectionEngine
from tests.helpers.mock_llm import (
    CONNECTION,
    SUGGESTIONS,
    ScriptedReasoner,
    as_json,
    failing_reasoner,
)


def _make_discovery(finding: str, score: float = 8.0, validated: bool = True) -> Discovery:
    d = Discovery(finding=finding)
    if validated:
        d.resolve(DiscoveryStatus.VALIDATED, score)
    return d


def _link(has: bool = True, kind: str = "builds_on", strength: float = 7) -> str:
    return as_json({
        "has_connection": has,
        "connection_type": kind,
        "strength": strength,
        "explanation": "related",
    })


def _make_engine(
    routes: dict,
    config: ConnectionConfig | None = None,
) -> tuple[ConnectionEngine, EventStore, ScriptedReasoner]:
    bus = EventBus()
    events = EventStore()
    bus.subscribe_all(events.append)
    reasoner = ScriptedReasoner(routes=routes)
    return ConnectionEngine(reasoner, config, bus), events, reasoner


class TestCompare:
    @pytest.mark.asyncio
    async def test_kept_at_threshold(self) -> None:
        engine, _, _ = _make_engine({CONNECTION: _link(strength=6)})
        a, b = _make_discovery("a"), _make_discovery("b")
        opportunity = await engine.compare(a, b)
        assert opportunity is not None
        assert opportunity.source_id == a.discovery_id
        assert opportunity.target_id == b.discovery_id
        assert opportunity.relation is RelationType.BUILDS_ON

    @pytest.mark.asyncio
    async def test_weak_relation_dropped(self) -> None:
        engine, _, _ = _make_engine({CONNECTION: _link(strength=5)})
        assert await engine.compare(_make_discovery("a"), _make_discovery("b")) is None

    @pytest.mark.asyncio
    async def test_no_connection_dropped(self) -> None:
        engine, _, _ = _make_engine({CONNECTION: _link(has=False, strength=9)})
        assert await engine.compare(_make_discovery("a"), _make_discovery("b")) is None

    @pytest.mark.asyncio
    async def test_unknown_relation_becomes_intersects(self) -> None:
        engine, _, _ = _make_engine({CONNECTION: _link(kind="rhymes_with")})
        opportunity = await engine.compare(_make_discovery("a"), _make_discovery("b"))
        assert opportunity is not None
        assert opportunity.relation is RelationType.INTERSECTS

    @pytest.mark.asyncio
    async def test_non_finite_strength_is_malformed(self) -> None:
        engine, _, _ = _make_engine({CONNECTION: _link(strength=float("nan"))})
        with pytest.raises(MalformedResponse):
            await engine.compare(_make_discovery("a"), _make_discovery("b"))


class TestFindConnections:
    @pytest.mark.asyncio
    async def test_contradiction_found(self) -> None:
        engine, events, _ = _make_engine({CONNECTION: _link(kind="contradicts", strength=7)})
        x = _make_discovery("X implies Y")
        y = _make_discovery("Y contradicts Z")
        found = await engine.find_connections([y], [x])
        assert len(found) == 1
        assert found[0].relation is RelationType.CONTRADICTS
        assert found[0].strength >= 6
        assert engine.connections == found
        assert len(events.query(event_type=ChainOpportunityFound)) == 1

    @pytest.mark.asyncio
    async def test_failed_pair_is_skipped(self) -> None:
        engine, _, _ = _make_engine({CONNECTION: [UpstreamError("down"), _link()]})
        new = _make_discovery("new")
        found = await engine.find_connections([new], [_make_discovery("a"), _make_discovery("b")])
        assert len(found) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "failure", [RuntimeError("boom"), _link(strength=float("inf"))], ids=["raises", "infinite"]
    )
    async def test_any_pair_failure_is_skipped(self, failure: object) -> None:
        engine, _, _ = _make_engine({CONNECTION: [failure, _link()]})
        new = _make_discovery("new")
        found = await engine.find_connections([new], [_make_discovery("a"), _make_discovery("b")])
        assert len(found) == 1

    @pytest.mark.asyncio
    async def test_pool_is_capped(self) -> None:
        engine, _, reasoner = _make_engine(
            {CONNECTION: _link()}, ConnectionConfig(existing_pool=2)
        )
        pool = [_make_discovery(f"d{i}") for i in range(5)]
        await engine.find_connections([_make_discovery("new")], pool)
        assert len(reasoner.calls(CONNECTION)) == 2

    @pytest.mark.asyncio
    async def test_skips_self_and_unvalidated(self) -> None:
        engine, _, reasoner = _make_engine({CONNECTION: _link()})
        new = _make_discovery("new")
        pending = _make_discovery("pending", validated=False)
        found = await engine.find_connections([new, pending], [new, pending])
        assert found == []
        assert reasoner.calls(CONNECTION) == []

    def test_strong_connections(self) -> None:
        engine, _, _ = _make_engine({})
        items = [
            ChainOpportunity(source_id="a", target_id="b", strength=7),
            ChainOpportunity(source_id="a", target_id="c", strength=8),
        ]
        assert [c.target_id for c in engine.strong_connections(items)] == ["c"]

    @pytest.mark.asyncio
    async def test_stats(self) -> None:
        engine, _, _ = _make_engine({CONNECTION: [_link(strength=6), _link(kind="applies", strength=9)]})
        await engine.find_connections(
            [_make_discovery("new")], [_make_discovery("a"), _make_discovery("b")]
        )
        stats = engine.stats()
        assert stats["total_connections"] == 2
        assert stats["strong_connections"] == 1
        assert stats["average_connection_strength"] == 7.5
        assert stats["connection_types"] == {"builds_on": 1, "applies": 1}
        assert engine.status == "Connections: 2"


class TestSuggestions:
    @pytest.mark.asyncio
    async def test_contradiction_check_suggestion(self) -> None:
        engine, _, _ = _make_engine({
            SUGGESTIONS: as_json([
                {"topic": "Does Y really hold?", "type": "contradiction_check", "priority": 8},
            ])
        })
        x = _make_discovery("X implies Y", score=8)
        y = _make_discovery("Y contradicts Z", score=9)
        suggestions = await engine.generate_suggestions([x, y])
        assert len(suggestions) == 1
        suggestion = suggestions[0]
        assert suggestion.suggestion_type is SuggestionType.CONTRADICTION_CHECK
        assert suggestion.based_on == (y.discovery_id,)

        topic = ConnectionEngine.suggestion_to_topic(suggestion)
        assert topic.text == "Does Y really hold?"
        assert topic.priority == 8
        assert topic.origin is TopicOrigin.SUGGESTION
        assert topic.parent_discovery_id == y.discovery_id

    @pytest.mark.asyncio
    async def test_low_priority_filtered_and_sorted(self) -> None:
        engine, _, _ = _make_engine({
            SUGGESTIONS: as_json([
                {"topic": "meh", "priority": 5},
                {"topic": "good", "priority": 7},
                {"topic": "best", "priority": 9},
                {"topic": "  ", "priority": 9},
            ])
        })
        suggestions = await engine.generate_suggestions([_make_discovery("a")])
        assert [s.topic_text for s in suggestions] == ["best", "good"]

    @pytest.mark.asyncio
    async def test_based_on_filtered_to_known_ids(self) -> None:
        a = _make_discovery("a")
        engine, _, _ = _make_engine({
            SUGGESTIONS: as_json([{"topic": "t", "priority": 8, "based_on": [a.discovery_id, "ghost"]}])
        })
        suggestions = await engine.generate_suggestions([a])
        assert suggestions[0].based_on == (a.discovery_id,)

    @pytest.mark.asyncio
    async def test_failure_returns_empty(self) -> None:
        engine = ConnectionEngine(failing_reasoner(timeout=False))
        assert await engine.generate_suggestions([_make_discovery("a")]) == []

    @pytest.mark.asyncio
    async def test_unexpected_error_returns_empty(self) -> None:
        engine, _, _ = _make_engine({SUGGESTIONS: RuntimeError("boom")})
        assert await engine.generate_suggestions([_make_discovery("a")]) == []

    @pytest.mark.asyncio
    async def test_non_finite_priority_returns_empty(self) -> None:
        engine, _, _ = _make_engine({
            SUGGESTIONS: as_json([
                {"topic": "good", "priority": 9},
                {"topic": "broken", "priority": float("nan")},
            ])
        })
        assert await engine.generate_suggestions([_make_discovery("a")]) == []

    @pytest.mark.asyncio
    async def test_nothing_validated_makes_no_call(self) -> None:
        engine, _, reasoner = _make_engine({SUGGESTIONS: as_json([])})
        result = await engine.generate_suggestions([_make_discovery("a", validated=False)])
        assert result == []
        assert reasoner.prompts == []

    @pytest.mark.asyncio
    async def test_only_top_k_in_prompt(self) -> None:
        engine, _, reasoner = _make_engine({SUGGESTIONS: as_json([])}, ConnectionConfig(top_k=1))
        low = _make_discovery("low finding", score=7)
        high = _make_discovery("high finding", score=9)
        await engine.generate_suggestions([low, high])
        prompt = reasoner.calls(SUGGESTIONS)[0]
        assert "high finding" in prompt
        assert "low finding" not in prompt

    def test_suggestion_without_basis(self) -> None:
        topic = ConnectionEngine.suggestion_to_topic(ResearchSuggestion(topic_text="t"))
        assert topic.parent_discovery_id is None
