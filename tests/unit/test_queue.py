"""Unit tests for DurableQueue — both backends, visibility and redrive."""

from __future__ import annotations

from pathlib import Path

import pytest

from routewise.errors import ConfigurationError, QueueFullError
from routewise.routing.destinations.queue import DurableQueue, open_queue


@pytest.fixture(params=["memory", "sqlite"])
def queue(request, tmp_path: Path, clock) -> DurableQueue:
    """The same contract is exercised against both storage backends."""
    db_path = tmp_path / "queue.db" if request.param == "sqlite" else None
    q = DurableQueue("q", db_path=db_path, max_depth=5, visibility_timeout=30.0, clock=clock)
    yield q
    q.close()


class TestQueueContract:
    def test_enqueue_dequeue(self, queue):
        message_id = queue.enqueue(b'{"a":1}', attributes={"country": "Peru"})

        [message] = queue.dequeue()

        assert message.message_id == message_id
        assert message.body == b'{"a":1}'
        assert message.attributes == {"country": "Peru"}
        assert message.receive_count == 1
        assert message.digest.startswith("sha256:")

    def test_dequeue_empty_returns_empty_list(self, queue):
        assert queue.dequeue() == []

    def test_dequeue_respects_max_messages(self, queue):
        for i in range(4):
            queue.enqueue(str(i).encode())
        assert len(queue.dequeue(3)) == 3
        assert len(queue.dequeue(3)) == 1

    def test_in_flight_message_is_hidden(self, queue):
        queue.enqueue(b"x")
        queue.dequeue()
        assert queue.dequeue() == []
        assert queue.depth == 1
        assert queue.visible_depth == 0

    def test_ack_deletes(self, queue):
        queue.enqueue(b"x")
        [message] = queue.dequeue()

        assert queue.ack(message.receipt_handle) is True
        assert queue.depth == 0

    def test_ack_with_stale_handle_returns_false(self, queue, clock):
        queue.enqueue(b"x")
        [first] = queue.dequeue()
        clock.advance(31)
        [second] = queue.dequeue()

        assert first.receipt_handle != second.receipt_handle
        assert queue.ack(first.receipt_handle) is False
        assert queue.ack(second.receipt_handle) is True

    def test_unacked_message_redelivered_after_timeout(self, queue, clock):
        queue.enqueue(b"x")
        queue.dequeue()
        clock.advance(31)

        [message] = queue.dequeue()

        assert message.receive_count == 2

    def test_custom_visibility_timeout(self, queue, clock):
        queue.enqueue(b"x")
        queue.dequeue(visibility_timeout=5)
        clock.advance(6)
        assert len(queue.dequeue()) == 1

    def test_release_makes_visible_immediately(self, queue):
        queue.enqueue(b"x")
        [message] = queue.dequeue()

        assert queue.release(message.receipt_handle) is True
        assert len(queue.dequeue()) == 1

    def test_full_queue_rejects(self, queue):
        for _ in range(5):
            queue.enqueue(b"x")
        with pytest.raises(QueueFullError, match="full"):
            queue.enqueue(b"overflow")

    def test_in_flight_counts_toward_depth(self, queue):
        for _ in range(5):
            queue.enqueue(b"x")
        queue.dequeue(5)
        with pytest.raises(QueueFullError):
            queue.enqueue(b"overflow")

    def test_duplicate_bodies_get_distinct_ids(self, queue):
        a = queue.enqueue(b"same")
        b = queue.enqueue(b"same")
        assert a != b
        digests = {m.digest for m in queue.dequeue()}
        assert len(digests) == 1

    def test_purge(self, queue):
        queue.enqueue(b"x")
        queue.enqueue(b"y")
        assert queue.purge() == 2
        assert queue.depth == 0

    def test_deliver_stores_event(self, queue, make_event):
        event = make_event("Ireland")
        queue.deliver(event)

        [message] = queue.dequeue()
        assert message.body == event.payload
        rebuilt = message.to_event()
        assert rebuilt.attributes == {"country": "Ireland"}
        assert rebuilt.event_id == message.message_id


class TestRedrive:
    def test_message_moves_to_dead_letter_after_max_receives(self, clock):
        dlq = DurableQueue("dlq", clock=clock)
        queue = DurableQueue(
            "q", max_receive_count=2, dead_letter=dlq, visibility_timeout=10, clock=clock
        )
        queue.enqueue(b"poison", attributes={"country": "Peru"})

        assert len(queue.dequeue()) == 1
        clock.advance(11)
        assert len(queue.dequeue()) == 1
        clock.advance(11)
        assert queue.dequeue() == []

        assert queue.depth == 0
        [moved] = dlq.dequeue()
        assert moved.body == b"poison"
        assert moved.attributes == {"country": "Peru"}

    def test_max_receive_count_requires_dead_letter(self):
        with pytest.raises(ConfigurationError, match="dead_letter"):
            DurableQueue("q", max_receive_count=3)

    def test_full_dead_letter_keeps_message_and_serves_the_rest(self, clock):
        dlq = DurableQueue("dlq", max_depth=1, clock=clock)
        dlq.enqueue(b"occupant")
        queue = DurableQueue(
            "q", max_receive_count=1, dead_letter=dlq, visibility_timeout=10, clock=clock
        )
        queue.enqueue(b"poison")
        assert len(queue.dequeue()) == 1
        clock.advance(11)
        queue.enqueue(b"healthy")

        [received] = queue.dequeue()

        assert received.body == b"healthy"
        assert queue.depth == 2
        assert dlq.depth == 1

        [occupant] = dlq.dequeue()
        dlq.ack(occupant.receipt_handle)
        assert queue.dequeue() == []
        assert [m.body for m in dlq.dequeue()] == [b"poison"]

    def test_dead_letter_is_fixed_at_construction(self, clock):
        dlq = DurableQueue("dlq", clock=clock)
        queue = DurableQueue("q", max_receive_count=1, dead_letter=dlq, clock=clock)
        with pytest.raises(AttributeError):
            queue.dead_letter = queue  # type: ignore[misc]
        assert queue.dead_letter is dlq


class TestSQLitePersistence:
    def test_messages_survive_reopen(self, tmp_path: Path):
        db = tmp_path / "queue.db"
        with DurableQueue("q", db_path=db) as q1:
            q1.enqueue(b"persisted", attributes={"k": "v"})

        with DurableQueue("q", db_path=db) as q2:
            [message] = q2.dequeue()
            assert message.body == b"persisted"
            assert message.attributes == {"k": "v"}

    def test_creates_parent_directory(self, tmp_path: Path):
        db = tmp_path / "nested" / "dir" / "queue.db"
        with DurableQueue("q", db_path=db) as q:
            assert q.is_persistent
        assert db.exists()


class TestOpenQueue:
    def test_memory_url(self):
        q = open_queue("memory://queue-b")
        assert q.destination_name == "queue-b"
        assert not q.is_persistent

    def test_sqlite_url(self, tmp_path: Path):
        path = tmp_path / "queue-a.db"
        with open_queue(f"sqlite:///{path}") as q:
            assert q.destination_name == "queue-a"
            assert q.is_persistent

    def test_kwargs_forwarded(self):
        q = open_queue("memory://q", max_depth=1)
        q.enqueue(b"x")
        with pytest.raises(QueueFullError):
            q.enqueue(b"y")

    @pytest.mark.parametrize("url", ["", "queue-b", "memory://", "https://sqs/queue-b"])
    def test_invalid_urls(self, url):
        with pytest.raises(ConfigurationError):
            open_queue(url)
