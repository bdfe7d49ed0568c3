"""Discovery orchestrator: the cycle scheduler and its public surface.

:class:`DiscoveryOrchestrator` owns every piece of mutable state (topic
queue, discovery store, knowledge base, connection log, activity log) and
is the only writer to it.  Cycles run through a compiled LangGraph
(:func:`discovery_compounding.graph.build_cycle_graph`), either on a fixed
period or on demand, and never overlap: a single ``asyncio.Lock`` guards
the whole pipeline.

Classes
-------
SystemStatus
    Snapshot returned by :meth:`DiscoveryOrchestrator.get_status`.
DiscoveryOrchestrator
    Scheduler facade consumed by the CLI and any transport layer.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from discovery_compounding.domain.entities import Discovery, DiscoveryThread, Topic
from discovery_compounding.domain.enums import CyclePhase, TopicOrigin, TopicStatus
from discovery_compounding.domain.events import (
    CycleCompleted,
    CycleStarted,
    OrchestratorStarted,
    OrchestratorStopped,
    TopicEnqueued,
)
from discovery_compounding.domain.exceptions import AlreadyInState
from discovery_compounding.domain.values import (
    ActivityMessage,
    CommandResult,
    ControlResult,
    CycleSummary,
    SpecialistProfile,
)
from discovery_compounding.graph.graph import build_cycle_graph
from discovery_compounding.graph.nodes import CycleServices
from discovery_compounding.infrastructure.config import (
    ConnectionConfig,
    OrchestratorConfig,
    ValidationConfig,
)
from discovery_compounding.infrastructure.event_bus import EventBus, EventStore
from discovery_compounding.infrastructure.knowledge_base import KnowledgeBase
from discovery_compounding.infrastructure.reasoning import ReasoningCapability, TimeoutReasoner
from discovery_compounding.measurement.metrics import compute_derived_metrics
from discovery_compounding.services.connections import ConnectionEngine
from discovery_compounding.services.discovery_store import DiscoveryStore
from discovery_compounding.services.routing import SpecialistRouter
from discovery_compounding.services.specialists import DEFAULT_ROSTER, Specialist
from discovery_compounding.services.tagging import TaggingStrategy
from discovery_compounding.services.topic_planning import TopicPlanner
from discovery_compounding.services.topic_queue import TopicQueue
from discovery_compounding.services.validation import NoveltyValidator

logger = logging.getLogger(__name__)

DIRECTED_PRIORITY = 10


# ===================================================================== #
#  Status                                                                #
# ===================================================================== #


@dataclass(frozen=True)
class SystemStatus:
    """Point-in-time view of the orchestrator.

    Attributes
    ----------
    running:
        Whether the periodic trigger is active.
    cycle_count:
        Cycles completed since construction.
    phase:
        Current cycle phase (``idle`` between cycles).
    per_role_state:
        Human-readable state per specialist and support role.
    discovery_counts:
        ``total``, ``validated``, ``pending`` and ``rejected``.
    derived_metrics:
        ``discovery_rate``, ``avg_novelty`` and ``acceptance_rate``.
    queue:
        ``pending``, ``active`` and ``total`` topic counts.
    """

    running: bool
    cycle_count: int
    phase: str = CyclePhase.IDLE.value
    per_role_state: dict[str, str] = field(default_factory=dict)
    discovery_counts: dict[str, int] = field(default_factory=dict)
    derived_metrics: dict[str, float] = field(default_factory=dict)
    queue: dict[str, int] = field(default_factory=dict)
    knowledge_base_topics: int = 0
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        return {
            "running": self.running,
            "cycle_count": self.cycle_count,
            "phase": self.phase,
            "per_role_state": dict(self.per_role_state),
            "discovery_counts": dict(self.discovery_counts),
            "derived_metrics": dict(self.derived_metrics),
            "queue": dict(self.queue),
            "knowledge_base_topics": self.knowledge_base_topics,
            "timestamp": self.timestamp,
        }


# ===================================================================== #
#  Orchestrator                                                          #
# ===================================================================== #


class DiscoveryOrchestrator:
    """Runs research cycles and exposes the system's control surface.

    Parameters
    ----------
    reasoner:
        Capability shared by every specialist and support role.  Each call
        is bounded by ``config.call_timeout``.
    roster:
        Specialist profiles in registration order.  Defaults to the
        technology / science / applications roster.
    config:
        Scheduler configuration.
    validation_config:
        Validator thresholds.
    connection_config:
        Connection engine thresholds.
    topic_tagger:
        Knowledge-base tagging strategy for the validator.
    domain_tagger:
        Routing tagging strategy for the router.
    auto_plan:
        When ``True``, seed topics on first start and ask for follow-ups
        whenever the queue runs dry.
    """

    def __init__(
        self,
        reasoner: ReasoningCapability,
        roster: Sequence[SpecialistProfile] | None = None,
        config: OrchestratorConfig | None = None,
        validation_config: ValidationConfig | None = None,
        connection_config: ConnectionConfig | None = None,
        topic_tagger: TaggingStrategy | None = None,
        domain_tagger: TaggingStrategy | None = None,
        auto_plan: bool = True,
    ) -> None:
        self.config = config or OrchestratorConfig()
        self.config.validate()
        validation_config = validation_config or ValidationConfig()
        validation_config.validate()
        connection_config = connection_config or ConnectionConfig()
        connection_config.validate()

        reasoner = TimeoutReasoner(reasoner, timeout=self.config.call_timeout)
        self.reasoner = reasoner
        self.event_bus = EventBus()
        self.activity = EventStore(max_size=self.config.activity_log_size)
        self.event_bus.subscribe_all(self.activity.append)

        self.queue = TopicQueue(capacity=self.config.queue_capacity)
        self.store = DiscoveryStore(validated_threshold=validation_config.novelty_threshold)
        self.knowledge_base = KnowledgeBase(window=validation_config.knowledge_window)
        self.router = SpecialistRouter(domain_tagger, max_specialists=self.config.max_specialists)
        self.specialists: dict[str, Specialist] = {
            profile.specialist_id: Specialist(profile, reasoner)
            for profile in (roster if roster is not None else DEFAULT_ROSTER)
        }
        self.validator = NoveltyValidator(
            reasoner,
            self.knowledge_base,
            self.store,
            tagger=topic_tagger,
            config=validation_config,
            event_bus=self.event_bus,
        )
        self.connections = ConnectionEngine(reasoner, connection_config, self.event_bus)
        self.planner = TopicPlanner(reasoner) if auto_plan else None

        self._services = CycleServices(
            queue=self.queue,
            store=self.store,
            router=self.router,
            specialists=self.specialists,
            validator=self.validator,
            connections=self.connections,
            event_bus=self.event_bus,
            planner=self.planner,
            min_candidate_sources=validation_config.min_candidate_sources,
            max_new_topics=self.config.max_new_topics_per_cycle,
            phase_listener=self._set_phase,
        )
        self._graph = build_cycle_graph(self._services, existing_pool=connection_config.existing_pool)

        self._running = False
        self._cycle_count = 0
        self._phase = CyclePhase.IDLE
        self._started_at: float | None = None
        self._cycle_lock = asyncio.Lock()
        self._trigger = asyncio.Event()
        self._loop_task: asyncio.Task[None] | None = None
        self._last_status: SystemStatus | None = None
        self._last_summary: CycleSummary | None = None

    # -- lifecycle ------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._running

    @property
    def cycle_count(self) -> int:
        return self._cycle_count

    @property
    def last_summary(self) -> CycleSummary | None:
        return self._last_summary

    def _set_phase(self, phase: CyclePhase) -> None:
        self._phase = phase

    def _transition(self, running: bool) -> None:
        if self._running == running:
            raise AlreadyInState(state="running" if running else "stopped")
        self._running = running

    async def start(self) -> ControlResult:
        """Start the periodic trigger; the first cycle runs immediately.

        Calling ``start()`` while running is a no-op reporting the state.
        """
        try:
            self._transition(True)
        except AlreadyInState as exc:
            logger.info("Orchestrator: start ignored, %s", exc)
            return ControlResult(changed=False, state="running", message=str(exc))

        if self._started_at is None:
            self._started_at = time.time()
        self._trigger.clear()
        self._loop_task = asyncio.create_task(self._run_periodically())
        self._loop_task.add_done_callback(self._on_loop_done)
        self.event_bus.publish(
            OrchestratorStarted(source_id="scheduler", interval=self.config.cycle_interval)
        )
        logger.info("Orchestrator: started (interval %.1fs)", self.config.cycle_interval)
        return ControlResult(changed=True, state="running", message="started")

    async def stop(self) -> ControlResult:
        """Cancel the periodic trigger and wait for an in-flight cycle.

        Calling ``stop()`` while stopped is a no-op reporting the state.
        """
        try:
            self._transition(False)
        except AlreadyInState as exc:
            logger.info("Orchestrator: stop ignored, %s", exc)
            return ControlResult(changed=False, state="stopped", message=str(exc))

        self._trigger.set()
        task, self._loop_task = self._loop_task, None
        if task is not None and task is not asyncio.current_task():
            await task
        self.event_bus.publish(
            OrchestratorStopped(source_id="scheduler", cycles_run=self._cycle_count)
        )
        logger.info("Orchestrator: stopped after %d cycle(s)", self._cycle_count)
        return ControlResult(changed=True, state="stopped", message="stopped")

    async def _run_periodically(self) -> None:
        if self.planner is not None and not self.planner.seeded and len(self.queue) == 0:
            try:
                await self.seed_topics()
            except Exception:
                logger.exception("Orchestrator: seeding failed")
        while self._running:
            try:
                await self.run_cycle()
            except Exception:
                logger.exception("Orchestrator: cycle %d failed", self._cycle_count + 1)
            if not self._running:
                break
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(self._trigger.wait(), self.config.cycle_interval)
            self._trigger.clear()

    def _on_loop_done(self, task: asyncio.Task[None]) -> None:
        if task.cancelled() or task.exception() is None:
            return
        logger.error("Orchestrator: scheduler loop died: %s", task.exception())
        self._running = False

    async def seed_topics(self) -> list[Topic]:
        """Ask the planner for initial topics and enqueue them."""
        if self.planner is None:
            return []
        topics = await self.planner.initial_topics()
        self.queue.requeue(topics)
        for topic in topics:
            self._publish_enqueued(topic, self.planner.role)
        return topics

    # -- cycles ---------------------------------------------------------------

    async def run_cycle(self) -> CycleSummary:
        """Run one full cycle now.  Waits for any in-flight cycle first."""
        async with self._cycle_lock:
            cycle = self._cycle_count + 1
            started = time.time()
            self.event_bus.publish(CycleStarted(source_id="scheduler", cycle=cycle))
            try:
                final = await self._graph.ainvoke(
                    {"cycle": cycle, "started_at": started, "errors": []}
                )
            except Exception as exc:
                logger.exception("Cycle %d: aborted", cycle)
                final = {
                    "topic": self._release_active_topic(),
                    "errors": [f"cycle: {type(exc).__name__}: {exc}"],
                }
            finally:
                self._phase = CyclePhase.IDLE
            self._cycle_count = cycle

            topic: Topic | None = final.get("topic")
            summary = CycleSummary(
                cycle=cycle,
                topic_id=topic.topic_id if topic is not None else None,
                topic_text=topic.text if topic is not None else "",
                candidates=len(final.get("candidates", [])),
                accepted=len(final.get("accepted", [])),
                rejected=len(final.get("rejected", [])),
                connections=len(final.get("connections", [])),
                new_topics=len(final.get("new_topics", [])),
                queue_depth=len(self.queue),
                knowledge_base_size=self.knowledge_base.size,
                duration=time.time() - started,
                errors=tuple(final.get("errors", [])),
            )
            self._last_summary = summary
            self.event_bus.publish(CycleCompleted(source_id="scheduler", summary=summary))
            logger.info(
                "Cycle %d: %d candidate(s), %d accepted, %d rejected, %d connection(s), "
                "%d new topic(s), queue %d, %d error(s)",
                cycle, summary.candidates, summary.accepted, summary.rejected,
                summary.connections, summary.new_topics, summary.queue_depth,
                len(summary.errors),
            )
            return summary

    def _release_active_topic(self) -> Topic | None:
        """Complete whatever topic an aborted cycle left active."""
        active = [t for t in self.queue.topics() if t.status is TopicStatus.ACTIVE]
        for topic in active:
            self.queue.complete(topic.topic_id)
        return active[0] if active else None

    # -- commands -------------------------------------------------------------

    def submit_directed_topic(self, text: Any) -> CommandResult:
        """Enqueue a user-specified topic at maximum priority.

        Invalid input is rejected with a reason; the scheduler is untouched.
        """
        if not isinstance(text, str) or not text.strip():
            return CommandResult(accepted=False, message="Topic text must be a non-empty string")
        cleaned = " ".join(text.split())
        if len(cleaned) > self.config.directed_topic_max_length:
            return CommandResult(
                accepted=False,
                message=f"Topic text exceeds {self.config.directed_topic_max_length} characters",
            )

        topic = Topic(text=cleaned, priority=DIRECTED_PRIORITY, origin=TopicOrigin.DIRECTED)
        self.queue.enqueue(topic)
        self._publish_enqueued(topic, "user")
        if self._running:
            self._trigger.set()
        logger.info("Orchestrator: directed topic '%s' queued", cleaned)
        return CommandResult(accepted=True, message="Topic queued", topic_id=topic.topic_id)

    def submit_command(self, command: Any) -> CommandResult:
        """Handle a free-form command such as ``"research quantum sensors"``."""
        if not isinstance(command, str):
            return CommandResult(accepted=False, message="Command must be a string")
        topic_text = TopicPlanner.parse_command(command)
        if topic_text is None:
            return CommandResult(
                accepted=False, message=f"Unrecognized command: {command.strip()!r}"
            )
        return self.submit_directed_topic(topic_text)

    def _publish_enqueued(self, topic: Topic, source_id: str) -> None:
        self.event_bus.publish(
            TopicEnqueued(
                source_id=source_id,
                topic_id=topic.topic_id,
                text=topic.text,
                priority=topic.priority,
            )
        )

    # -- queries --------------------------------------------------------------

    def get_status(self) -> SystemStatus:
        """Current status, or the last good one if it cannot be built."""
        try:
            status = self._build_status()
        except Exception:
            logger.exception("Orchestrator: status snapshot failed")
            if self._last_status is not None:
                return self._last_status
            return SystemStatus(running=self._running, cycle_count=self._cycle_count)
        self._last_status = status
        return status

    def _build_status(self) -> SystemStatus:
        per_role = {s.profile.name: s.status for s in self.specialists.values()}
        per_role["Validator"] = self.validator.status
        per_role["Connections"] = self.connections.status
        queue = self.queue.status()
        per_role["Director"] = (
            f"Cycle {self._cycle_count}, queue {queue['pending']} pending / "
            f"{queue['active']} active"
        )
        metrics = compute_derived_metrics(self.store.all(), self._started_at)
        return SystemStatus(
            running=self._running,
            cycle_count=self._cycle_count,
            phase=self._phase.value,
            per_role_state=per_role,
            discovery_counts=self.store.counts(),
            derived_metrics=metrics.to_dict(),
            queue=queue,
            knowledge_base_topics=len(self.knowledge_base),
        )

    def get_recent_discoveries(self, limit: int = 10) -> list[Discovery]:
        return self.store.recent(limit)

    def get_threads(self) -> list[DiscoveryThread]:
        return self.store.threads()

    def get_thread(self, thread_id: str) -> DiscoveryThread:
        """Raises ``NotFound`` for an unknown id."""
        return self.store.get_thread(thread_id)

    def get_recent_activity_messages(self, limit: int = 50) -> list[ActivityMessage]:
        return self.activity.recent_messages(limit)

    def snapshot(self) -> dict[str, Any]:
        """JSON-serializable export of all process-lifetime state."""
        data = self.store.to_dict()
        return {
            "status": self.get_status().to_dict(),
            "queue": self.queue.to_dict(),
            "discoveries": data["discoveries"],
            "threads": data["threads"],
            "knowledge_base": self.knowledge_base.to_dict(),
            "connections": [c.to_dict() for c in self.connections.connections],
            "connection_stats": self.connections.stats(),
            "validation_stats": self.validator.stats(),
        }
