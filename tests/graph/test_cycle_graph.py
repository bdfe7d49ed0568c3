"""Tests for the cycle StateGraph: edges, wiring, handoffs and replenishment."""

from __future__ import annotations

from typing import Any

import pytest

from discovery_compounding.domain.entities import Discovery, Topic
from discovery_compounding.domain.enums import (
    CyclePhase,
    DiscoveryStatus,
    HandoffTarget,
    RelationType,
    TopicOrigin,
)
from discovery_compounding.domain.events import HandoffExecuted, TopicEnqueued
from discovery_compounding.domain.values import Source, SpecialistProfile
from discovery_compounding.graph import CycleServices, build_cycle_graph
from discovery_compounding.graph.edges import should_build_chains, should_dispatch
from discovery_compounding.graph.nodes import make_dispatch_research_node
from discovery_compounding.infrastructure.event_bus import EventBus, EventStore
from discovery_compounding.infrastructure.knowledge_base import KnowledgeBase
from discovery_compounding.services.connections import ConnectionEngine
from discovery_compounding.services.discovery_store import DiscoveryStore
from discovery_compounding.services.orchestrator import DiscoveryOrchestrator
from discovery_compounding.services.routing import SpecialistRouter
from discovery_compounding.services.specialists import DEFAULT_ROSTER, Specialist
from discovery_compounding.services.topic_queue import TopicQueue
from discovery_compounding.services.validation import NoveltyValidator
from tests.helpers.mock_llm import (
    CONNECTION,
    FOLLOW_UP,
    SEED_TOPICS,
    SUGGESTIONS,
    SYNTHESIS,
    VALIDATION,
    ScriptedReasoner,
    as_json,
    demo_reasoner,
)

_SOURCES = (
    Source(url="https://arxiv.org/abs/9", title="Preprint", credibility=8),
    Source(url="https://www.nature.com/y", title="Study", credibility=9),
)


def _make_services(
    reasoner: ScriptedReasoner | None = None,
    phases: list[CyclePhase] | None = None,
) -> tuple[CycleServices, EventStore]:
    reasoner = reasoner or demo_reasoner()
    bus = EventBus()
    events = EventStore()
    bus.subscribe_all(events.append)
    store = DiscoveryStore()
    services = CycleServices(
        queue=TopicQueue(),
        store=store,
        router=SpecialistRouter(),
        specialists={p.specialist_id: Specialist(p, reasoner) for p in DEFAULT_ROSTER},
        validator=NoveltyValidator(reasoner, KnowledgeBase(), store, event_bus=bus),
        connections=ConnectionEngine(reasoner, event_bus=bus),
        event_bus=bus,
        phase_listener=phases.append if phases is not None else None,
    )
    return services, events


def _prevalidated(store: DiscoveryStore, finding: str, score: float = 8.0) -> Discovery:
    d = store.create(finding, sources=_SOURCES)
    store.resolve(d.discovery_id, DiscoveryStatus.VALIDATED, score)
    return d


def _low_synthesis() -> str:
    return as_json({
        "finding": "weak idea",
        "novelty_explanation": "Mostly restates the sources.",
        "novelty_score": 3,
        "sources_synthesized": 1,
    })


def _good_synthesis(finding: str = "Sensing hardware and crystal screening share one pipeline.") -> str:
    return as_json({
        "finding": finding,
        "novelty_explanation": "Bridges two fields.",
        "novelty_score": 8,
        "sources_synthesized": 3,
    })


# ---------------------------------------------------------------------------
# Edges
# ---------------------------------------------------------------------------


class TestEdges:

    def test_no_topic_ends_cycle(self) -> None:
        assert should_dispatch({"topic": None}) == "__end__"
        assert should_dispatch({}) == "__end__"

    def test_topic_dispatches(self) -> None:
        assert should_dispatch({"topic": Topic(text="x")}) == "dispatch_research"

    def test_accepted_builds_chains(self) -> None:
        state: dict[str, Any] = {"accepted": [Discovery(finding="f")]}
        assert should_build_chains(state) == "build_chains"

    def test_nothing_accepted_replenishes(self) -> None:
        assert should_build_chains({"accepted": []}) == "replenish_queue"
        assert should_build_chains({}) == "replenish_queue"


# ---------------------------------------------------------------------------
# Graph wiring
# ---------------------------------------------------------------------------


class TestBuildCycleGraph:

    def test_compiles_with_all_nodes(self) -> None:
        services, _ = _make_services()
        graph = build_cycle_graph(services)
        nodes = set(graph.get_graph().nodes)
        assert {
            "select_topic",
            "dispatch_research",
            "validate",
            "build_chains",
            "replenish_queue",
        } <= nodes

    @pytest.mark.asyncio
    async def test_phase_sequence_for_accepted_cycle(self) -> None:
        phases: list[CyclePhase] = []
        services, _ = _make_services(phases=phases)
        services.queue.enqueue(Topic(text="quantum sensors", priority=9))

        final = await build_cycle_graph(services).ainvoke({"cycle": 1, "started_at": 0.0, "errors": []})

        assert phases == [
            CyclePhase.SELECT_TOPIC,
            CyclePhase.DISPATCH_RESEARCH,
            CyclePhase.COLLECT_RESULTS,
            CyclePhase.VALIDATE,
            CyclePhase.BUILD_CHAINS,
            CyclePhase.REPLENISH_QUEUE,
        ]
        assert len(final["accepted"]) == 2
        assert final["errors"] == []

    @pytest.mark.asyncio
    async def test_empty_queue_stops_after_selection(self) -> None:
        phases: list[CyclePhase] = []
        services, _ = _make_services(phases=phases)

        final = await build_cycle_graph(services).ainvoke({"cycle": 1, "started_at": 0.0, "errors": []})

        assert phases == [CyclePhase.SELECT_TOPIC]
        assert final["topic"] is None

    @pytest.mark.asyncio
    async def test_rejections_skip_chain_building(self) -> None:
        phases: list[CyclePhase] = []
        reasoner = demo_reasoner({
            VALIDATION: as_json({"novelty_score": 4, "reason": "Known.", "recommendation": "reject"}),
        })
        services, _ = _make_services(reasoner, phases=phases)
        topic = Topic(text="quantum sensors", priority=9)
        services.queue.enqueue(topic)

        final = await build_cycle_graph(services).ainvoke({"cycle": 1, "started_at": 0.0, "errors": []})

        assert CyclePhase.BUILD_CHAINS not in phases
        assert phases[-1] is CyclePhase.REPLENISH_QUEUE
        assert len(final["rejected"]) == 2
        assert final["new_topics"] == []
        assert reasoner.calls(CONNECTION) == []
        assert services.queue.get(topic.topic_id).status.value == "completed"


# ---------------------------------------------------------------------------
# dispatch_research
# ---------------------------------------------------------------------------


class TestDispatchResearch:

    @pytest.mark.asyncio
    async def test_unknown_specialist_reported_not_raised(self) -> None:
        services, _ = _make_services()
        node = make_dispatch_research_node(services)
        topic = Topic(text="quantum sensors")

        update = await node({"topic": topic, "specialist_ids": ["technology", "ghost"]})

        assert len(update["candidates"]) == 1
        assert update["errors"] == ["ghost: unknown specialist"]

    @pytest.mark.asyncio
    async def test_failing_specialist_isolated(self) -> None:
        reasoner = demo_reasoner({SYNTHESIS: [ValueError("boom"), _good_synthesis()]})
        services, _ = _make_services(reasoner)
        node = make_dispatch_research_node(services)

        update = await node({"topic": Topic(text="quantum sensors"), "specialist_ids": ["technology", "science"]})

        assert len(update["candidates"]) == 1
        assert update["candidates"][0].contributors == ("science",)
        assert len(update["errors"]) == 1
        assert update["errors"][0].startswith("technology: ValueError")

    @pytest.mark.asyncio
    async def test_fast_track_publishes_validator_handoff(self) -> None:
        services, events = _make_services()
        node = make_dispatch_research_node(services)

        await node({"topic": Topic(text="quantum sensors"), "specialist_ids": ["technology"]})

        handoffs = events.query(event_type=HandoffExecuted)
        assert len(handoffs) == 1
        assert handoffs[0].target is HandoffTarget.VALIDATOR  # type: ignore[attr-defined]

    @pytest.mark.asyncio
    async def test_parent_topic_sets_builds_on(self) -> None:
        services, _ = _make_services()
        parent = _prevalidated(services.store, "Earlier result")
        node = make_dispatch_research_node(services)
        topic = Topic(text="quantum sensors", parent_discovery_id=parent.discovery_id)

        update = await node({"topic": topic, "specialist_ids": ["technology"]})

        candidate = update["candidates"][0]
        assert candidate.builds_on == (parent.discovery_id,)
        assert candidate.lineage_depth == 2
        assert candidate.thread_id == parent.thread_id


# ---------------------------------------------------------------------------
# End-to-end cycles through the orchestrator
# ---------------------------------------------------------------------------


class TestSpecialistHandoff:

    @pytest.mark.asyncio
    async def test_low_novelty_results_hop_to_other_specialist(self) -> None:
        reasoner = demo_reasoner({SYNTHESIS: [_low_synthesis(), _low_synthesis(), _good_synthesis()]})
        orch = DiscoveryOrchestrator(reasoner, auto_plan=False)
        orch.queue.enqueue(Topic(text="quantum sensors", priority=9))

        summary = await orch.run_cycle()

        handoffs = orch.activity.query(event_type=HandoffExecuted)
        assert len(handoffs) == 2
        assert all(h.target is HandoffTarget.SPECIALIST for h in handoffs)  # type: ignore[attr-defined]
        assert {h.target_specialist_id for h in handoffs} == {"technology", "science"}  # type: ignore[attr-defined]

        assert summary.candidates == 2
        contributors = {d.contributors for d in orch.store.all()}
        assert contributors == {("technology", "science"), ("science", "technology")}
        assert len(reasoner.calls(SYNTHESIS)) == 4

    @pytest.mark.asyncio
    async def test_hop_prompt_mentions_prior_finding(self) -> None:
        reasoner = demo_reasoner({SYNTHESIS: [_low_synthesis(), _low_synthesis(), _good_synthesis()]})
        orch = DiscoveryOrchestrator(reasoner, auto_plan=False)
        orch.queue.enqueue(Topic(text="quantum sensors", priority=9))

        await orch.run_cycle()

        hop_prompts = reasoner.calls(SYNTHESIS)[2:]
        assert all("weak idea" in p for p in hop_prompts)
        assert all("Handed off from" in p for p in hop_prompts)


class TestChainBuilding:

    @pytest.mark.asyncio
    async def test_contradiction_becomes_suggested_topic(self) -> None:
        reasoner = demo_reasoner({
            SYNTHESIS: _good_synthesis("Y contradicts Z"),
            CONNECTION: as_json({
                "has_connection": True,
                "connection_type": "contradicts",
                "strength": 7,
                "explanation": "Y cannot hold if Z does.",
            }),
            SUGGESTIONS: as_json([
                {"topic": "Resolve whether Y or Z holds", "type": "contradiction_check", "priority": 8},
            ]),
        })
        roster = [SpecialistProfile(specialist_id="science", name="Science", domain="science")]
        orch = DiscoveryOrchestrator(reasoner, roster=roster, auto_plan=False)
        earlier = _prevalidated(orch.store, "X implies Y")
        orch.queue.enqueue(Topic(text="Does Y hold?", priority=8))

        summary = await orch.run_cycle()

        assert summary.accepted == 1
        assert summary.connections == 1
        connection = orch.connections.connections[0]
        assert connection.relation is RelationType.CONTRADICTS
        assert connection.target_id == earlier.discovery_id
        # strength 7 is below the strong threshold
        assert earlier.related_ids == []

        assert summary.new_topics == 1
        pending = orch.queue.topics()
        assert len(pending) == 1
        assert pending[0].text == "Resolve whether Y or Z holds"
        assert pending[0].origin is TopicOrigin.SUGGESTION

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response",
        [
            RuntimeError("boom"),
            '[{"topic": "Scale it up", "priority": NaN}]',
        ],
        ids=["raises", "nan-priority"],
    )
    async def test_bad_suggestion_response_still_finishes_cycle(self, response: Any) -> None:
        orch = DiscoveryOrchestrator(demo_reasoner({SUGGESTIONS: response}), auto_plan=False)
        topic = Topic(text="quantum sensors", priority=9)
        orch.queue.enqueue(topic)

        summary = await orch.run_cycle()

        assert summary.accepted == 2
        assert summary.new_topics == 0
        assert orch.cycle_count == 1
        assert orch.queue.get(topic.topic_id).status.value == "completed"

    @pytest.mark.asyncio
    async def test_suggestion_step_failure_is_recorded(self, monkeypatch: pytest.MonkeyPatch) -> None:
        orch = DiscoveryOrchestrator(demo_reasoner(), auto_plan=False)

        async def broken(*args: Any, **kwargs: Any) -> list[Any]:
            raise RuntimeError("boom")

        monkeypatch.setattr(orch.connections, "generate_suggestions", broken)
        topic = Topic(text="quantum sensors", priority=9)
        orch.queue.enqueue(topic)

        summary = await orch.run_cycle()

        assert summary.connections == 2
        assert summary.new_topics == 0
        assert summary.errors == ("suggestions: boom",)
        assert orch.queue.get(topic.topic_id).status.value == "completed"


class TestReplenishWhenDry:

    @pytest.mark.asyncio
    async def test_follow_up_topics_fill_empty_queue(self) -> None:
        parents: list[str] = []
        reasoner = demo_reasoner({
            FOLLOW_UP: lambda prompt: as_json([
                {"topic": "Scale label-free sensing", "priority": 8, "parent_discovery_id": parents[0]},
            ]),
        })
        orch = DiscoveryOrchestrator(reasoner, auto_plan=True)
        seed = _prevalidated(orch.store, "Quantum sensors detect biomarkers", score=9.0)
        parents.append(seed.discovery_id)

        summary = await orch.run_cycle()

        assert len(reasoner.calls(FOLLOW_UP)) == 1
        assert seed.discovery_id in reasoner.calls(FOLLOW_UP)[0]

        assert summary.topic_text == "Scale label-free sensing"
        selected = orch.queue.get(summary.topic_id)  # type: ignore[arg-type]
        assert selected.origin is TopicOrigin.FOLLOW_UP
        assert selected.parent_discovery_id == seed.discovery_id
        enqueued = orch.activity.query(event_type=TopicEnqueued)
        assert enqueued[0].source_id == "director"

        new = [d for d in orch.store.all() if d.discovery_id != seed.discovery_id]
        assert new and all(d.builds_on == (seed.discovery_id,) for d in new)
        assert orch.store.get_thread(seed.thread_id).depth == 2

    @pytest.mark.asyncio
    async def test_first_dry_cycle_uses_seed_topics(self) -> None:
        reasoner = demo_reasoner()
        orch = DiscoveryOrchestrator(reasoner, auto_plan=True)

        summary = await orch.run_cycle()

        assert summary.topic_text == "Quantum sensors for early disease detection"
        assert orch.planner is not None and orch.planner.seeded
        assert len(reasoner.calls(SEED_TOPICS)) == 1
        assert reasoner.calls(FOLLOW_UP) == []
        seeds = [t for t in orch.queue.history() if t.origin is TopicOrigin.SEED]
        assert len(seeds) == 2

    @pytest.mark.asyncio
    async def test_no_planner_means_skipped_cycle(self) -> None:
        orch = DiscoveryOrchestrator(demo_reasoner(), auto_plan=False)
        _prevalidated(orch.store, "Quantum sensors detect biomarkers", score=9.0)

        summary = await orch.run_cycle()

        assert summary.skipped
