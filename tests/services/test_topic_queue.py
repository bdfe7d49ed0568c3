"""Tests for the bounded priority topic queue."""

from __future__ import annotations

import pytest

from discovery_compounding.domain.entities import Topic
from discovery_compounding.domain.enums import TopicOrigin, TopicStatus
from discovery_compounding.domain.exceptions import NotFound
from discovery_compounding.services.topic_queue import TopicQueue


def _make_topic(text: str, priority: int = 5, origin: TopicOrigin = TopicOrigin.SEED) -> Topic:
    return Topic(text=text, priority=priority, origin=origin)


class TestOrdering:
    def test_sorted_by_priority_descending(self) -> None:
        queue = TopicQueue()
        queue.requeue([_make_topic("low", 3), _make_topic("high", 9), _make_topic("mid", 6)])
        assert [t.text for t in queue.topics()] == ["high", "mid", "low"]

    def test_ties_keep_insertion_order(self) -> None:
        queue = TopicQueue()
        queue.enqueue(_make_topic("first", 7))
        queue.enqueue(_make_topic("second", 7))
        assert [t.text for t in queue.topics()] == ["first", "second"]

    def test_directed_wins_ties(self) -> None:
        queue = TopicQueue()
        queue.enqueue(_make_topic("seed", 10))
        queue.enqueue(_make_topic("directed", 10, TopicOrigin.DIRECTED))
        assert queue.topics()[0].text == "directed"

    def test_requeue_skips_already_queued(self) -> None:
        queue = TopicQueue()
        topic = _make_topic("once")
        queue.enqueue(topic)
        queue.requeue([topic])
        assert len(queue) == 1


class TestCapacity:
    def test_truncates_lowest_priority(self) -> None:
        queue = TopicQueue(capacity=2)
        demoted = queue.requeue([_make_topic("a", 9), _make_topic("b", 5), _make_topic("c", 7)])
        assert [t.text for t in queue.topics()] == ["a", "c"]
        assert [t.text for t in demoted] == ["b"]

    def test_enqueue_reports_survival(self) -> None:
        queue = TopicQueue(capacity=1)
        assert queue.enqueue(_make_topic("high", 9))
        assert not queue.enqueue(_make_topic("low", 2))

    def test_demoted_topics_still_findable(self) -> None:
        queue = TopicQueue(capacity=1)
        queue.enqueue(_make_topic("high", 9))
        low = _make_topic("low", 2)
        queue.enqueue(low)
        assert queue.get(low.topic_id) is low
        assert low in queue.history()

    def test_invalid_capacity(self) -> None:
        with pytest.raises(ValueError):
            TopicQueue(capacity=0)


class TestLifecycle:
    def test_select_next_activates_highest(self) -> None:
        queue = TopicQueue()
        queue.requeue([_make_topic("a", 4), _make_topic("b", 8)])
        topic = queue.select_next()
        assert topic is not None and topic.text == "b"
        assert topic.status is TopicStatus.ACTIVE
        assert queue.active_count == 1
        assert queue.pending_count == 1

    def test_select_next_empty_returns_none(self) -> None:
        assert TopicQueue().select_next() is None

    def test_select_next_skips_active(self) -> None:
        queue = TopicQueue()
        queue.requeue([_make_topic("a", 9), _make_topic("b", 8)])
        queue.select_next()
        second = queue.select_next()
        assert second is not None and second.text == "b"
        assert queue.select_next() is None

    def test_complete_removes_from_window(self) -> None:
        queue = TopicQueue()
        topic = _make_topic("a")
        queue.enqueue(topic)
        queue.select_next()
        queue.complete(topic.topic_id)
        assert len(queue) == 0
        assert queue.get(topic.topic_id).status is TopicStatus.COMPLETED

    def test_reprioritize_resorts(self) -> None:
        queue = TopicQueue()
        a, b = _make_topic("a", 9), _make_topic("b", 3)
        queue.requeue([a, b])
        queue.reprioritize(b.topic_id, 12)
        assert queue.topics()[0] is b
        assert b.priority == 10

    def test_unknown_topic(self) -> None:
        with pytest.raises(NotFound):
            TopicQueue().get("missing")

    def test_status(self) -> None:
        queue = TopicQueue()
        queue.requeue([_make_topic("a"), _make_topic("b")])
        queue.select_next()
        assert queue.status() == {"pending": 1, "active": 1, "total": 2}
        assert queue.has_pending()

    def test_to_dict(self) -> None:
        queue = TopicQueue(capacity=3)
        queue.enqueue(_make_topic("a"))
        data = queue.to_dict()
        assert data["capacity"] == 3
        assert data["window"][0]["text"] == "a"
        assert data["history"] == 1
