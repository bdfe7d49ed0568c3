"""Topic planning: seed topics, follow-up topics and directed commands.

The planner keeps the queue from starving.  On first start it asks the
reasoning capability for seed topics (falling back to a built-in list), and
whenever the queue runs dry it proposes follow-ups that extend recent and
seed-worthy discoveries.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence

from langchain_core.prompts import PromptTemplate
from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from discovery_compounding.domain.entities import Discovery, Topic
from discovery_compounding.domain.enums import TopicOrigin
from discovery_compounding.domain.exceptions import DiscoveryCompoundingError
from discovery_compounding.infrastructure.reasoning import ReasoningCapability, parse_structured

logger = logging.getLogger(__name__)

FALLBACK_TOPICS: tuple[tuple[str, int], ...] = (
    ("Quantum computing applications in biological systems", 9),
    ("AI-driven materials discovery for sustainable technology", 8),
    ("Intersection of blockchain and space technology", 7),
    ("Novel applications of CRISPR beyond gene editing", 8),
    ("Emergent properties in neural network architectures", 7),
)

DEFAULT_FOLLOW_UP_PRIORITY = 7

_COMMAND_RE = re.compile(r"^\s*(?:please\s+)?(?:research|investigate|explore)\s+(.+)$", re.IGNORECASE)


# -- Structured output schemas -----------------------------------------------


class TopicOutput(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    topic: str
    priority: float = DEFAULT_FOLLOW_UP_PRIORITY
    parent_discovery_id: str | None = None


class TopicsOutput(BaseModel):
    """Structured output schema for topic generation."""

    items: list[TopicOutput] = Field(
        default_factory=list, validation_alias=AliasChoices("items", "topics")
    )


# -- Prompts -----------------------------------------------------------------

_SEED_PROMPT = PromptTemplate.from_template(
    "## Task: Seed topics\n"
    "Propose {count} promising, specific research topics at the intersection "
    "of technology and science where cross-source synthesis could yield "
    "novel insights.\n"
    "Respond with a JSON array only:\n"
    '[{{"topic": "<text>", "priority": <1-10>}}]'
)

_FOLLOW_UP_PROMPT = PromptTemplate.from_template(
    "## Task: Follow-up topics\n"
    "Recent discoveries:\n{recent}\n\n"
    "Strongest discoveries so far:\n{seeds}\n\n"
    "Propose up to {count} research topics that build directly on these "
    "results.\n"
    "Respond with a JSON array only:\n"
    '[{{"topic": "<text>", "priority": <1-10>, "parent_discovery_id": "<id or null>"}}]'
)


# -- TopicPlanner ------------------------------------------------------------


class TopicPlanner:
    """Generates topics for the queue.

    Parameters
    ----------
    reasoner:
        Capability asked for seed and follow-up topics.
    seed_count:
        Number of seed topics requested on first start.
    """

    role = "director"

    def __init__(self, reasoner: ReasoningCapability, seed_count: int = 5) -> None:
        self.reasoner = reasoner
        self.seed_count = seed_count
        self.seeded = False

    async def initial_topics(self) -> list[Topic]:
        """Seed topics, or the built-in fallback list on any failure.

        Sets :attr:`seeded`.
        """
        try:
            output = parse_structured(
                await self.reasoner.invoke(_SEED_PROMPT.format(count=self.seed_count)),
                TopicsOutput,
            )
            topics = [
                Topic(text=item.topic.strip(), priority=item.priority, origin=TopicOrigin.SEED)
                for item in output.items
                if item.topic.strip()
            ][: self.seed_count]
        except DiscoveryCompoundingError as exc:
            logger.warning("TopicPlanner: seed topic generation failed: %s", exc)
            topics = []
        if not topics:
            logger.info("TopicPlanner: using %d fallback topics", len(FALLBACK_TOPICS))
            topics = [
                Topic(text=text, priority=priority, origin=TopicOrigin.SEED)
                for text, priority in FALLBACK_TOPICS
            ]
        self.seeded = True
        return topics

    async def follow_up_topics(
        self,
        recent: Sequence[Discovery],
        seeds: Sequence[Discovery],
        count: int = 3,
    ) -> list[Topic]:
        """Topics extending *recent* and *seeds*; empty on failure."""
        if not recent and not seeds:
            return []
        known = {d.discovery_id for d in (*recent, *seeds)}
        prompt = _FOLLOW_UP_PROMPT.format(
            recent="\n".join(f"- {d.discovery_id}: {d.finding}" for d in recent) or "(none)",
            seeds="\n".join(
                f"- {d.discovery_id} (novelty {d.novelty_score:g}): {d.finding}" for d in seeds
            ) or "(none)",
            count=count,
        )
        try:
            output = parse_structured(await self.reasoner.invoke(prompt), TopicsOutput)
        except DiscoveryCompoundingError as exc:
            logger.warning("TopicPlanner: follow-up generation failed: %s", exc)
            return []
        return [
            Topic(
                text=item.topic.strip(),
                priority=item.priority,
                parent_discovery_id=(
                    item.parent_discovery_id if item.parent_discovery_id in known else None
                ),
                origin=TopicOrigin.FOLLOW_UP,
            )
            for item in output.items[:count]
            if item.topic.strip()
        ]

    @staticmethod
    def parse_command(command: str) -> str | None:
        """Extract the topic from a "research X" style command."""
        match = _COMMAND_RE.match(command)
        if match is None:
            return None
        return match.group(1).strip().rstrip(".!?") or None
