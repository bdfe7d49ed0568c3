"""Tests for specialist selection and the handoff policy."""

from __future__ import annotations

import pytest

from discovery_compounding.domain.entities import Topic
from discovery_compounding.domain.enums import HandoffTarget
from discovery_compounding.domain.values import ResearchResult, Source, SpecialistProfile
from discovery_compounding.services.routing import SpecialistRouter, evaluate_handoff
from discovery_compounding.services.specialists import DEFAULT_ROSTER


def _make_sources(n: int) -> tuple[Source, ...]:
    return tuple(Source(url=f"https://example.com/{i}") for i in range(n))


def _make_result(
    specialist_id: str,
    novelty: float,
    analyzed: int,
    synthesized: int,
) -> ResearchResult:
    return ResearchResult(
        specialist_id=specialist_id,
        topic_id="t1",
        finding="a finding",
        novelty_score=novelty,
        sources=_make_sources(analyzed),
        sources_synthesized=synthesized,
    )


class TestSelectSpecialists:
    """Keyword routing over the default roster."""

    def test_multiple_matches(self) -> None:
        router = SpecialistRouter()
        selected = router.select_specialists(Topic(text="software for research"), DEFAULT_ROSTER)
        assert selected == ["technology", "science"]

    def test_single_match_gets_cross_domain_partner(self) -> None:
        router = SpecialistRouter()
        selected = router.select_specialists(Topic(text="practical uses of graphene"), DEFAULT_ROSTER)
        assert selected == ["applications", "technology"]

    def test_no_match_falls_back_to_first_entries(self) -> None:
        router = SpecialistRouter()
        selected = router.select_specialists(Topic(text="quantum sensors"), DEFAULT_ROSTER)
        assert selected == ["technology", "science"]

    def test_respects_max_specialists(self) -> None:
        router = SpecialistRouter(max_specialists=1)
        selected = router.select_specialists(Topic(text="practical uses"), DEFAULT_ROSTER)
        assert selected == ["applications"]

    def test_three_way_match(self) -> None:
        router = SpecialistRouter(max_specialists=3)
        selected = router.select_specialists(
            Topic(text="software research with practical applications"), DEFAULT_ROSTER
        )
        assert selected == ["technology", "science", "applications"]

    def test_no_duplicates(self) -> None:
        router = SpecialistRouter(max_specialists=3)
        selected = router.select_specialists(Topic(text="tech"), DEFAULT_ROSTER)
        assert len(selected) == len(set(selected))

    def test_empty_roster_raises(self) -> None:
        with pytest.raises(ValueError):
            SpecialistRouter().select_specialists(Topic(text="anything"), [])

    def test_invalid_max(self) -> None:
        with pytest.raises(ValueError):
            SpecialistRouter(max_specialists=0)


class TestEvaluateHandoff:
    """Handoff policy is a pure function of the result's numbers."""

    def test_strong_result_goes_to_validator(self) -> None:
        decision = evaluate_handoff(_make_result("technology", 6, 2, 2), "technology", DEFAULT_ROSTER)
        assert decision.recommended
        assert decision.target is HandoffTarget.VALIDATOR
        assert decision.target_specialist_id is None

    def test_weak_result_goes_to_alternate_specialist(self) -> None:
        decision = evaluate_handoff(_make_result("science", 3, 4, 1), "science", DEFAULT_ROSTER)
        assert decision.recommended
        assert decision.target is HandoffTarget.SPECIALIST
        assert decision.target_specialist_id == "technology"

    def test_alternate_is_never_the_producer(self) -> None:
        decision = evaluate_handoff(_make_result("technology", 2, 5, 1), "technology", DEFAULT_ROSTER)
        assert decision.target_specialist_id == "science"

    def test_novelty_five_is_not_low(self) -> None:
        decision = evaluate_handoff(_make_result("science", 5, 3, 1), "science", DEFAULT_ROSTER)
        assert not decision.recommended
        assert decision.target is HandoffTarget.NONE

    def test_no_alternate_available(self) -> None:
        roster = [SpecialistProfile(specialist_id="solo", name="Solo", domain="technology")]
        decision = evaluate_handoff(_make_result("solo", 3, 4, 1), "solo", roster)
        assert not decision.recommended

    def test_high_novelty_single_source(self) -> None:
        decision = evaluate_handoff(_make_result("science", 8, 2, 1), "science", DEFAULT_ROSTER)
        assert not decision.recommended
