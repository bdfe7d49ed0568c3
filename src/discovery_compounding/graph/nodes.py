"""LangGraph node factories for the research cycle.

Each ``make_*_node`` factory closes over a :class:`CycleServices` bundle and
returns an async node that takes a ``CycleState`` and returns a partial
update dict.  The nodes delegate to the service classes rather than
reimplementing any logic; their job is ordering, fan-out/fan-in and
per-item failure isolation.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from discovery_compounding.domain.entities import Discovery, Topic
from discovery_compounding.domain.enums import CyclePhase, HandoffTarget
from discovery_compounding.domain.events import (
    DiscoveryProposed,
    HandoffExecuted,
    TopicEnqueued,
    TopicSelected,
)
from discovery_compounding.domain.values import ResearchResult, SpecialistProfile
from discovery_compounding.infrastructure.event_bus import EventBus
from discovery_compounding.services.connections import ConnectionEngine
from discovery_compounding.services.discovery_store import DiscoveryStore
from discovery_compounding.services.routing import SpecialistRouter, evaluate_handoff
from discovery_compounding.services.specialists import Specialist
from discovery_compounding.services.topic_planning import TopicPlanner
from discovery_compounding.services.topic_queue import TopicQueue
from discovery_compounding.services.validation import NoveltyValidator

logger = logging.getLogger(__name__)


@dataclass
class CycleServices:
    """Everything a cycle touches, owned by the orchestrator."""

    queue: TopicQueue
    store: DiscoveryStore
    router: SpecialistRouter
    specialists: dict[str, Specialist]
    validator: NoveltyValidator
    connections: ConnectionEngine
    event_bus: EventBus
    planner: TopicPlanner | None = None
    min_candidate_sources: int = 2
    max_new_topics: int = 2
    phase_listener: Callable[[CyclePhase], None] | None = None

    @property
    def roster(self) -> list[SpecialistProfile]:
        return [s.profile for s in self.specialists.values()]

    def enter(self, phase: CyclePhase) -> None:
        if self.phase_listener is not None:
            self.phase_listener(phase)


# -- select_topic -------------------------------------------------------------


def make_select_topic_node(services: CycleServices) -> Callable[..., Any]:
    """Pick the next topic, refilling the queue from the planner when dry."""

    async def select_topic_node(state: dict[str, Any]) -> dict[str, Any]:
        services.enter(CyclePhase.SELECT_TOPIC)
        errors: list[str] = []

        planner = services.planner
        if not services.queue.has_pending() and planner is not None:
            if not planner.seeded and len(services.store) == 0:
                refill = await planner.initial_topics()
            else:
                refill = await planner.follow_up_topics(
                    services.store.recent_validated(5), services.store.seeds()
                )
            if refill:
                services.queue.requeue(refill)
                for topic in refill:
                    _publish_enqueued(services, topic, planner.role)

        topic = services.queue.select_next()
        if topic is None:
            logger.info("Cycle %d: no pending topics", state.get("cycle", 0))
            return {"topic": None, "specialist_ids": [], "errors": errors}

        try:
            specialist_ids = services.router.select_specialists(topic, services.roster)
        except ValueError as exc:
            logger.warning("Cycle %d: routing failed: %s", state.get("cycle", 0), exc)
            specialist_ids = []
            errors.append(f"routing: {exc}")

        services.event_bus.publish(
            TopicSelected(
                source_id="scheduler",
                topic_id=topic.topic_id,
                text=topic.text,
                specialist_ids=tuple(specialist_ids),
            )
        )
        logger.info("Cycle %d: researching '%s' with %s", state.get("cycle", 0), topic.text, specialist_ids)
        return {"topic": topic, "specialist_ids": specialist_ids, "errors": errors}

    return select_topic_node


# -- dispatch_research --------------------------------------------------------


async def _run_research(
    services: CycleServices,
    topic: Topic,
    jobs: Sequence[tuple[str, ResearchResult | None]],
) -> tuple[list[ResearchResult], list[str]]:
    """Run ``(specialist_id, prior_result)`` jobs concurrently.

    Failures are logged and reported, never raised.
    """
    runnable: list[tuple[str, ResearchResult | None]] = []
    errors: list[str] = []
    for specialist_id, prior in jobs:
        if specialist_id in services.specialists:
            runnable.append((specialist_id, prior))
        else:
            logger.warning("Dispatch: unknown specialist %r", specialist_id)
            errors.append(f"{specialist_id}: unknown specialist")

    outcomes = await asyncio.gather(
        *(
            services.specialists[sid].research(
                topic,
                handoff_from=prior.specialist_id if prior is not None else None,
                prior=prior,
            )
            for sid, prior in runnable
        ),
        return_exceptions=True,
    )

    results: list[ResearchResult] = []
    for (sid, _prior), outcome in zip(runnable, outcomes):
        if isinstance(outcome, BaseException):
            if not isinstance(outcome, Exception):
                raise outcome
            logger.warning("Dispatch: specialist %s failed on '%s': %s", sid, topic.text, outcome)
            errors.append(f"{sid}: {type(outcome).__name__}: {outcome}")
        else:
            results.append(outcome)
    return results, errors


def make_dispatch_research_node(services: CycleServices) -> Callable[..., Any]:
    """Fan out to the routed specialists, execute one handoff hop each, fan in."""

    async def dispatch_research_node(state: dict[str, Any]) -> dict[str, Any]:
        services.enter(CyclePhase.DISPATCH_RESEARCH)
        topic: Topic = state["topic"]
        roster = services.roster

        results, errors = await _run_research(
            services, topic, [(sid, None) for sid in state.get("specialist_ids", [])]
        )

        fast_tracked: list[ResearchResult] = []
        regular: list[ResearchResult] = []
        hops: list[tuple[str, ResearchResult]] = []
        for result in results:
            decision = evaluate_handoff(result, result.specialist_id, roster)
            if decision.recommended:
                services.event_bus.publish(
                    HandoffExecuted(
                        source_id=result.specialist_id,
                        topic_id=topic.topic_id,
                        target=decision.target,
                        target_specialist_id=decision.target_specialist_id,
                        reason=decision.reason,
                    )
                )
            if decision.target is HandoffTarget.VALIDATOR:
                fast_tracked.append(result)
                continue
            regular.append(result)
            if decision.target is HandoffTarget.SPECIALIST and decision.target_specialist_id:
                hops.append((decision.target_specialist_id, result))

        if hops:
            services.enter(CyclePhase.COLLECT_RESULTS)
            hop_results, hop_errors = await _run_research(services, topic, hops)
            regular.extend(hop_results)
            errors.extend(hop_errors)

        services.enter(CyclePhase.COLLECT_RESULTS)
        candidates: list[Discovery] = []
        builds_on = (topic.parent_discovery_id,) if topic.parent_discovery_id else ()
        for result in fast_tracked + regular:
            if not result.finding.strip():
                continue
            if result.sources_synthesized < services.min_candidate_sources:
                continue
            contributors = (result.specialist_id,)
            if result.handoff_from:
                contributors = (result.handoff_from, result.specialist_id)
            discovery = services.store.create(
                result.finding,
                sources=result.sources,
                contributors=contributors,
                builds_on=builds_on,
                topic_id=topic.topic_id,
                topic_text=topic.text,
                explanation=result.novelty_explanation,
            )
            candidates.append(discovery)
            services.event_bus.publish(
                DiscoveryProposed(
                    source_id=result.specialist_id,
                    discovery_id=discovery.discovery_id,
                    finding=discovery.finding,
                    sources=len(discovery.sources),
                )
            )

        return {
            "results": fast_tracked + regular,
            "candidates": candidates,
            "errors": errors,
        }

    return dispatch_research_node


# -- validate -----------------------------------------------------------------


def make_validate_node(services: CycleServices) -> Callable[..., Any]:
    """Validate every candidate sequentially and partition the outcome."""

    async def validate_node(state: dict[str, Any]) -> dict[str, Any]:
        services.enter(CyclePhase.VALIDATE)
        accepted: list[Discovery] = []
        rejected: list[Discovery] = []
        errors: list[str] = []
        for discovery in state.get("candidates", []):
            try:
                assessment = await services.validator.validate(discovery)
            except Exception as exc:
                logger.warning("Validate: %s could not be resolved: %s", discovery.discovery_id, exc)
                errors.append(f"validate {discovery.discovery_id}: {exc}")
                continue
            (accepted if assessment.accepted else rejected).append(discovery)
        return {"accepted": accepted, "rejected": rejected, "errors": errors}

    return validate_node


# -- build_chains -------------------------------------------------------------


def make_build_chains_node(services: CycleServices, existing_pool: int = 20) -> Callable[..., Any]:
    """Link accepted discoveries to earlier ones and propose follow-ups."""

    async def build_chains_node(state: dict[str, Any]) -> dict[str, Any]:
        services.enter(CyclePhase.BUILD_CHAINS)
        accepted: list[Discovery] = state.get("accepted", [])
        if not accepted:
            return {"connections": [], "suggestions": []}

        errors: list[str] = []
        engine = services.connections
        existing = services.store.recent_validated(existing_pool)
        try:
            connections = await engine.find_connections(accepted, existing)
        except Exception as exc:
            logger.warning("BuildChains: connection analysis failed: %s", exc)
            errors.append(f"connections: {exc}")
            connections = []

        for opportunity in engine.strong_connections(connections):
            services.store.annotate_connection(opportunity.source_id, opportunity.target_id)

        top = services.store.validated(engine.config.top_k)
        try:
            suggestions = await engine.generate_suggestions(top, connections)
        except Exception as exc:
            logger.warning("BuildChains: suggestion generation failed: %s", exc)
            errors.append(f"suggestions: {exc}")
            suggestions = []
        return {"connections": connections, "suggestions": suggestions, "errors": errors}

    return build_chains_node


# -- replenish_queue ----------------------------------------------------------


def make_replenish_queue_node(services: CycleServices) -> Callable[..., Any]:
    """Complete the topic and enqueue the best suggestions."""

    async def replenish_queue_node(state: dict[str, Any]) -> dict[str, Any]:
        services.enter(CyclePhase.REPLENISH_QUEUE)
        topic: Topic = state["topic"]
        services.queue.complete(topic.topic_id)

        suggestions = state.get("suggestions", [])[: services.max_new_topics]
        new_topics = [services.connections.suggestion_to_topic(s) for s in suggestions]
        if new_topics:
            demoted = services.queue.requeue(new_topics)
            for new_topic in new_topics:
                if new_topic not in demoted:
                    _publish_enqueued(services, new_topic, services.connections.role)
        return {"new_topics": new_topics}

    return replenish_queue_node


def _publish_enqueued(services: CycleServices, topic: Topic, source_id: str) -> None:
    services.event_bus.publish(
        TopicEnqueued(
            source_id=source_id,
            topic_id=topic.topic_id,
            text=topic.text,
            priority=topic.priority,
        )
    )
