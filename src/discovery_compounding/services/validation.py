"""Novelty validation of candidate discoveries.

The validator tags a candidate's finding, pulls matching knowledge-base
entries as comparison context, and asks the reasoning capability for a
score and verdict.  Acceptance requires *both* an ``accept`` verdict and a
clamped score at or above the local threshold.  The validator is the only
writer of a discovery's score and status, and a discovery it cannot assess
is rejected rather than left pending.
"""

from __future__ import annotations

import logging
from typing import Any

from langchain_core.prompts import PromptTemplate
from pydantic import BaseModel, ConfigDict, Field

from discovery_compounding.domain.entities import Discovery
from discovery_compounding.domain.enums import DiscoveryStatus, Recommendation
from discovery_compounding.domain.events import DiscoveryRejected, DiscoveryValidated
from discovery_compounding.domain.exceptions import AlreadyInState
from discovery_compounding.domain.values import NoveltyAssessment
from discovery_compounding.infrastructure.config import ValidationConfig
from discovery_compounding.infrastructure.event_bus import EventBus
from discovery_compounding.infrastructure.knowledge_base import KnowledgeBase
from discovery_compounding.infrastructure.reasoning import ReasoningCapability, parse_structured
from discovery_compounding.services.discovery_store import DiscoveryStore
from discovery_compounding.services.tagging import TaggingStrategy, default_topic_tagger

logger = logging.getLogger(__name__)

FAILURE_REASON = "Validation failed due to processing error"


# -- Structured output schemas -----------------------------------------------


class ValidationOutput(BaseModel):
    """Structured output schema for a novelty judgment."""

    model_config = ConfigDict(allow_inf_nan=False)

    novelty_score: float | None = Field(default=None, description="Novelty 1-10")
    reason: str = Field(default="", description="Justification for the score")
    recommendation: str = Field(default="reject", description="'accept' or 'reject'")
    compared_insights: list[str] = Field(
        default_factory=list, description="Known findings the candidate was compared to"
    )


# -- Prompt ------------------------------------------------------------------

_VALIDATION_PROMPT = PromptTemplate.from_template(
    "## Task: Novelty validation\n"
    "You are a strict novelty reviewer. Judge whether the candidate below is "
    "genuinely new given what is already known.\n\n"
    "Candidate finding: {finding}\n"
    "Specialist explanation: {explanation}\n"
    "Sources:\n{sources}\n\n"
    "Already known under tags [{tags}]:\n{known}\n\n"
    "Score 1-10 (7+ means a novel, well-supported insight).\n"
    "Respond with JSON only:\n"
    '{{"novelty_score": <1-10>, "reason": "<short justification>", '
    '"recommendation": "accept" | "reject", "compared_insights": ["<known finding>", ...]}}'
)


# -- NoveltyValidator --------------------------------------------------------


class NoveltyValidator:
    """Scores candidates against the knowledge base and resolves them.

    Parameters
    ----------
    reasoner:
        Capability that performs the judgment.
    knowledge_base:
        Index of accepted findings; updated on acceptance.
    store:
        Discovery store through which verdicts are applied.
    tagger:
        Strategy mapping findings to knowledge-base tags.
    config:
        Thresholds and default scores.
    event_bus:
        Optional bus for ``DiscoveryValidated`` / ``DiscoveryRejected``.
    """

    role = "validator"

    def __init__(
        self,
        reasoner: ReasoningCapability,
        knowledge_base: KnowledgeBase,
        store: DiscoveryStore,
        tagger: TaggingStrategy | None = None,
        config: ValidationConfig | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        self.reasoner = reasoner
        self.knowledge_base = knowledge_base
        self.store = store
        self.tagger = tagger or default_topic_tagger()
        self.config = config or ValidationConfig()
        self.event_bus = event_bus
        self.processed = 0
        self.accepted = 0
        self._scores: list[float] = []

    def tags_for(self, finding: str) -> tuple[str, ...]:
        return self.tagger.extract_tags(finding) or ("general",)

    async def assess(self, discovery: Discovery) -> NoveltyAssessment:
        """Judge *discovery* without changing any state.

        Raises the capability's ``UpstreamTimeout`` / ``UpstreamError`` and
        ``MalformedResponse`` to the caller.
        """
        tags = self.tags_for(discovery.finding)
        known = self.knowledge_base.entries_for(tags)
        prompt = _VALIDATION_PROMPT.format(
            finding=discovery.finding,
            explanation=discovery.novelty_explanation or "(none)",
            sources="\n".join(
                f"- {s.title} ({s.url}): {s.key_insight}" for s in discovery.sources
            ) or "(none)",
            tags=", ".join(tags),
            known="\n".join(f"- {k}" for k in known) or "(nothing yet)",
        )
        output = parse_structured(await self.reasoner.invoke(prompt), ValidationOutput)

        raw = self.config.default_score if output.novelty_score is None else output.novelty_score
        score = max(1.0, min(10.0, raw))
        verdict = output.recommendation.strip().lower() == Recommendation.ACCEPT.value
        accepted = verdict and score >= self.config.novelty_threshold

        return NoveltyAssessment(
            discovery_id=discovery.discovery_id,
            score=score,
            reason=output.reason,
            compared_insights=tuple(output.compared_insights) or tuple(known),
            recommendation=Recommendation.ACCEPT if accepted else Recommendation.REJECT,
            tags=tags,
            metadata={"external_verdict": output.recommendation},
        )

    async def validate(self, discovery: Discovery) -> NoveltyAssessment:
        """Assess *discovery* once and apply the verdict.

        Any failure during assessment rejects the discovery with the
        configured failure score.

        Raises
        ------
        AlreadyInState
            If *discovery* has already been resolved.
        """
        if discovery.status is not DiscoveryStatus.PENDING:
            raise AlreadyInState(
                f"Discovery {discovery.discovery_id} already {discovery.status.value}",
                state=discovery.status.value,
            )
        try:
            assessment = await self.assess(discovery)
        except Exception as exc:
            logger.warning(
                "NoveltyValidator: assessment of %s failed: %s", discovery.discovery_id, exc
            )
            assessment = NoveltyAssessment(
                discovery_id=discovery.discovery_id,
                score=self.config.failure_score,
                reason=FAILURE_REASON,
                recommendation=Recommendation.REJECT,
                tags=self.tags_for(discovery.finding),
                metadata={
                    "llm_error": True,
                    "error_type": type(exc).__name__,
                    "error": str(exc),
                },
            )
        self._apply(discovery, assessment)
        return assessment

    def _apply(self, discovery: Discovery, assessment: NoveltyAssessment) -> None:
        status = DiscoveryStatus.VALIDATED if assessment.accepted else DiscoveryStatus.REJECTED
        explanation = discovery.novelty_explanation
        if not assessment.accepted and assessment.reason:
            explanation = assessment.reason
        self.store.resolve(discovery.discovery_id, status, assessment.score, explanation)

        self.processed += 1
        self._scores.append(assessment.score)
        if assessment.accepted:
            self.accepted += 1
            self.knowledge_base.add(discovery.finding, assessment.tags)
            logger.info(
                "NoveltyValidator: accepted %s (%.1f) under %s",
                discovery.discovery_id, assessment.score, list(assessment.tags),
            )
            event: Any = DiscoveryValidated(
                source_id=self.role,
                discovery_id=discovery.discovery_id,
                score=assessment.score,
                tags=assessment.tags,
            )
        else:
            logger.info(
                "NoveltyValidator: rejected %s (%.1f): %s",
                discovery.discovery_id, assessment.score, assessment.reason,
            )
            event = DiscoveryRejected(
                source_id=self.role,
                discovery_id=discovery.discovery_id,
                score=assessment.score,
                reason=assessment.reason,
            )
        if self.event_bus is not None:
            self.event_bus.publish(event)

    async def review(self, discovery_id: str) -> NoveltyAssessment:
        """Re-assess a stored discovery without changing it.

        Raises ``NotFound`` for an unknown id.
        """
        return await self.assess(self.store.get(discovery_id))

    @property
    def acceptance_rate(self) -> float:
        return self.accepted / self.processed if self.processed else 0.0

    @property
    def status(self) -> str:
        return f"Processed {self.processed}, knowledge base topics {len(self.knowledge_base)}"

    def stats(self) -> dict[str, Any]:
        return {
            "total_processed": self.processed,
            "acceptance_rate": self.acceptance_rate,
            "average_novelty_score": (
                sum(self._scores) / len(self._scores) if self._scores else 0.0
            ),
            "knowledge_base_topics": len(self.knowledge_base),
        }
