"""Connection detection and research suggestions.

``ConnectionEngine.find_connections`` compares each newly validated
discovery with a capped pool of earlier validated ones, one reasoning call
per pair, and keeps only meaningful relations.  ``generate_suggestions``
turns the strongest discoveries into next-step research proposals.  Both
enforce their thresholds locally regardless of what the capability claims.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Sequence
from typing import Any

from langchain_core.prompts import PromptTemplate
from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from discovery_compounding.domain.entities import Discovery, Topic, clamp_priority
from discovery_compounding.domain.enums import RelationType, SuggestionType, TopicOrigin
from discovery_compounding.domain.events import ChainOpportunityFound
from discovery_compounding.domain.values import ChainOpportunity, ResearchSuggestion
from discovery_compounding.infrastructure.config import ConnectionConfig
from discovery_compounding.infrastructure.event_bus import EventBus
from discovery_compounding.infrastructure.reasoning import ReasoningCapability, parse_structured

logger = logging.getLogger(__name__)


# -- Structured output schemas -----------------------------------------------


class ConnectionOutput(BaseModel):
    """Structured output schema for a pairwise relation judgment."""

    model_config = ConfigDict(allow_inf_nan=False)

    has_connection: bool = False
    connection_type: str = Field(default="intersects")
    strength: float = Field(default=1, description="Relation strength 1-10")
    explanation: str = ""


class SuggestionOutput(BaseModel):
    """One proposed follow-up topic."""

    model_config = ConfigDict(allow_inf_nan=False)

    topic: str
    type: str = Field(default="deep_dive")
    priority: float = 7
    based_on: list[str] = Field(default_factory=list)
    rationale: str = ""


class SuggestionsOutput(BaseModel):
    """Structured output schema for suggestion generation."""

    items: list[SuggestionOutput] = Field(
        default_factory=list, validation_alias=AliasChoices("items", "suggestions")
    )


# -- Prompts -----------------------------------------------------------------

_CONNECTION_PROMPT = PromptTemplate.from_template(
    "## Task: Connection analysis\n"
    "Decide whether discovery A relates to discovery B.\n\n"
    "A ({new_id}): {new_finding}\n"
    "B ({existing_id}): {existing_finding}\n\n"
    "Relation types: builds_on, contradicts, intersects, applies.\n"
    "Respond with JSON only:\n"
    '{{"has_connection": true | false, "connection_type": "<type>", '
    '"strength": <1-10>, "explanation": "<one sentence>"}}'
)

_SUGGESTION_PROMPT = PromptTemplate.from_template(
    "## Task: Research suggestions\n"
    "Given these validated discoveries:\n{discoveries}\n\n"
    "Known connections:\n{connections}\n\n"
    "Propose up to 3 follow-up research topics that would compound on them. "
    "Types: deep_dive, contradiction_check, application_explore, intersection.\n"
    "Respond with a JSON array only:\n"
    '[{{"topic": "<text>", "type": "<type>", "priority": <1-10>, '
    '"based_on": ["<discovery id>", ...], "rationale": "<why>"}}]'
)


def _relation(value: str) -> RelationType:
    try:
        return RelationType(value.strip().lower())
    except ValueError:
        return RelationType.INTERSECTS


def _suggestion_type(value: str) -> SuggestionType:
    try:
        return SuggestionType(value.strip().lower())
    except ValueError:
        return SuggestionType.DEEP_DIVE


# -- ConnectionEngine --------------------------------------------------------


class ConnectionEngine:
    """Finds chain opportunities and proposes follow-up research.

    Parameters
    ----------
    reasoner:
        Capability performing pairwise judgments and suggestion generation.
    config:
        Thresholds and pool sizes.
    event_bus:
        Optional bus for ``ChainOpportunityFound`` events.
    """

    role = "connections"

    def __init__(
        self,
        reasoner: ReasoningCapability,
        config: ConnectionConfig | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        self.reasoner = reasoner
        self.config = config or ConnectionConfig()
        self.event_bus = event_bus
        self._log: list[ChainOpportunity] = []

    @property
    def connections(self) -> list[ChainOpportunity]:
        """Append-only log of every kept chain opportunity."""
        return list(self._log)

    async def compare(self, new: Discovery, existing: Discovery) -> ChainOpportunity | None:
        """Judge one pair; ``None`` when there is no meaningful relation."""
        prompt = _CONNECTION_PROMPT.format(
            new_id=new.discovery_id,
            new_finding=new.finding,
            existing_id=existing.discovery_id,
            existing_finding=existing.finding,
        )
        output = parse_structured(await self.reasoner.invoke(prompt), ConnectionOutput)
        strength = max(1, min(10, int(round(output.strength))))
        if not output.has_connection or strength < self.config.connection_threshold:
            return None
        return ChainOpportunity(
            source_id=new.discovery_id,
            target_id=existing.discovery_id,
            relation=_relation(output.connection_type),
            strength=strength,
            explanation=output.explanation,
        )

    async def find_connections(
        self,
        new_discoveries: Sequence[Discovery],
        existing_validated: Sequence[Discovery],
    ) -> list[ChainOpportunity]:
        """Compare every validated new discovery with the existing pool.

        The pool is capped at ``existing_pool`` entries; a failed comparison
        is logged and skipped.
        """
        pool = [d for d in existing_validated if d.is_validated][: self.config.existing_pool]
        found: list[ChainOpportunity] = []
        for new in new_discoveries:
            if not new.is_validated:
                continue
            for existing in pool:
                if existing.discovery_id == new.discovery_id:
                    continue
                try:
                    opportunity = await self.compare(new, existing)
                except Exception as exc:
                    logger.warning(
                        "ConnectionEngine: comparing %s with %s failed: %s",
                        new.discovery_id, existing.discovery_id, exc,
                    )
                    continue
                if opportunity is None:
                    continue
                found.append(opportunity)
                self._log.append(opportunity)
                if self.event_bus is not None:
                    self.event_bus.publish(
                        ChainOpportunityFound(
                            source_id=self.role,
                            source_discovery_id=opportunity.source_id,
                            target_discovery_id=opportunity.target_id,
                            relation=opportunity.relation,
                            strength=opportunity.strength,
                        )
                    )
        logger.info("ConnectionEngine: %d connection(s) found", len(found))
        return found

    async def generate_suggestions(
        self,
        top_discoveries: Sequence[Discovery],
        connections: Sequence[ChainOpportunity] = (),
    ) -> list[ResearchSuggestion]:
        """Propose follow-up topics from the highest-novelty discoveries.

        Returns an empty list when there is nothing to build on or the
        capability fails.
        """
        top = sorted(
            (d for d in top_discoveries if d.is_validated),
            key=lambda d: d.novelty_score,
            reverse=True,
        )[: self.config.top_k]
        if not top:
            return []

        prompt = _SUGGESTION_PROMPT.format(
            discoveries="\n".join(
                f"- {d.discovery_id} (novelty {d.novelty_score:g}): {d.finding}" for d in top
            ),
            connections="\n".join(
                f"- {c.source_id} {c.relation.value} {c.target_id} (strength {c.strength})"
                for c in connections
            ) or "(none)",
        )
        try:
            output = parse_structured(await self.reasoner.invoke(prompt), SuggestionsOutput)
        except Exception as exc:
            logger.warning("ConnectionEngine: suggestion generation failed: %s", exc)
            return []

        known_ids = {d.discovery_id for d in top}
        suggestions: list[ResearchSuggestion] = []
        for item in output.items:
            if not item.topic.strip():
                continue
            priority = clamp_priority(item.priority)
            if priority < self.config.suggestion_priority:
                continue
            based_on = tuple(i for i in item.based_on if i in known_ids) or (top[0].discovery_id,)
            suggestions.append(
                ResearchSuggestion(
                    topic_text=item.topic.strip(),
                    priority=priority,
                    based_on=based_on,
                    rationale=item.rationale,
                    suggestion_type=_suggestion_type(item.type),
                )
            )
        suggestions.sort(key=lambda s: s.priority, reverse=True)
        return suggestions

    @staticmethod
    def suggestion_to_topic(suggestion: ResearchSuggestion) -> Topic:
        return Topic(
            text=suggestion.topic_text,
            priority=suggestion.priority,
            parent_discovery_id=suggestion.based_on[0] if suggestion.based_on else None,
            origin=TopicOrigin.SUGGESTION,
        )

    def strong_connections(self, opportunities: Sequence[ChainOpportunity]) -> list[ChainOpportunity]:
        return [c for c in opportunities if c.strength >= self.config.strong_threshold]

    @property
    def status(self) -> str:
        return f"Connections: {len(self._log)}"

    def stats(self) -> dict[str, Any]:
        strengths = [c.strength for c in self._log]
        return {
            "total_connections": len(self._log),
            "strong_connections": sum(1 for s in strengths if s >= self.config.strong_threshold),
            "average_connection_strength": sum(strengths) / len(strengths) if strengths else 0.0,
            "connection_types": dict(Counter(c.relation.value for c in self._log)),
        }
