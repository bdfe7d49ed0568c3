"""Specialist routing and handoff policy.

``SpecialistRouter.select_specialists`` decides who works a topic;
``evaluate_handoff`` decides, from the numbers in a specialist's result,
whether the result should be fast-tracked to validation or re-framed by a
different specialist.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from discovery_compounding.domain.entities import Topic
from discovery_compounding.domain.enums import HandoffTarget
from discovery_compounding.domain.values import (
    HandoffDecision,
    ResearchResult,
    SpecialistProfile,
)
from discovery_compounding.services.tagging import TaggingStrategy, default_domain_tagger

logger = logging.getLogger(__name__)

VALIDATOR_NOVELTY = 6.0
VALIDATOR_SOURCES = 2
ALTERNATE_MIN_ANALYZED = 3
ALTERNATE_MAX_NOVELTY = 5.0


class SpecialistRouter:
    """Keyword-based specialist selection.

    Parameters
    ----------
    tagger:
        Strategy mapping topic text to domain tags.  A specialist matches
        when its ``domain`` is among the tags.
    max_specialists:
        Upper bound on the specialists selected per topic.
    """

    def __init__(
        self,
        tagger: TaggingStrategy | None = None,
        max_specialists: int = 2,
    ) -> None:
        if max_specialists < 1:
            raise ValueError(f"max_specialists must be >= 1, got {max_specialists}")
        self.tagger = tagger or default_domain_tagger()
        self.max_specialists = max_specialists

    def select_specialists(
        self,
        topic: Topic,
        roster: Sequence[SpecialistProfile],
    ) -> list[str]:
        """Return an ordered, de-duplicated list of specialist ids.

        * Matches are taken in roster order, up to ``max_specialists``.
        * A single match is paired with the first other roster entry so
          cross-source synthesis is possible.
        * No match falls back to the first roster entries.

        Raises
        ------
        ValueError
            If *roster* is empty.
        """
        if not roster:
            raise ValueError("Cannot route a topic without specialists")

        tags = set(self.tagger.extract_tags(topic.text))
        matched = [p.specialist_id for p in roster if p.domain in tags]

        if not matched:
            selected = [p.specialist_id for p in roster[: self.max_specialists]]
        else:
            selected = matched[: self.max_specialists]
            if len(matched) == 1 and self.max_specialists > 1:
                extra = next(
                    (p.specialist_id for p in roster if p.specialist_id not in selected),
                    None,
                )
                if extra is not None:
                    selected.append(extra)

        logger.debug("Router: '%s' tags=%s -> %s", topic.text, sorted(tags), selected)
        return selected


def evaluate_handoff(
    result: ResearchResult,
    producing_specialist: str,
    roster: Sequence[SpecialistProfile] = (),
) -> HandoffDecision:
    """Decide whether *result* should be handed off, and to whom.

    Pure function of the result's numbers and the roster:

    * novelty >= 6 with >= 2 synthesized sources goes to the validator;
    * >= 3 analyzed sources with novelty < 5 goes to the first other
      specialist on the roster, if there is one;
    * anything else stays put.
    """
    if result.novelty_score >= VALIDATOR_NOVELTY and result.sources_synthesized >= VALIDATOR_SOURCES:
        return HandoffDecision(
            recommended=True,
            target=HandoffTarget.VALIDATOR,
            reason=(
                f"High-quality candidate (novelty {result.novelty_score:g}, "
                f"{result.sources_synthesized} sources synthesized)"
            ),
        )

    if (
        result.sources_analyzed >= ALTERNATE_MIN_ANALYZED
        and result.novelty_score < ALTERNATE_MAX_NOVELTY
    ):
        alternate = next(
            (p.specialist_id for p in roster if p.specialist_id != producing_specialist),
            None,
        )
        if alternate is not None:
            return HandoffDecision(
                recommended=True,
                target=HandoffTarget.SPECIALIST,
                target_specialist_id=alternate,
                reason=(
                    f"Low novelty ({result.novelty_score:g}) from "
                    f"{result.sources_analyzed} sources; trying an alternate framing"
                ),
            )

    return HandoffDecision(recommended=False, reason="No handoff warranted")
