"""Unit tests for QueuePoller — ack on success, leave failures in flight."""

from __future__ import annotations

import json

from routewise.consumers.rescue import RescueConsumer
from routewise.models.events import Event
from routewise.models.reports import BatchReport, RecordStatus
from routewise.routing.destinations.queue import DurableQueue
from routewise.routing.poller import QueuePoller


def _queue_with(clock, *bodies: bytes) -> DurableQueue:
    queue = DurableQueue("source", visibility_timeout=30, clock=clock)
    for body in bodies:
        queue.enqueue(body, attributes={"country": "France"})
    return queue


class TestQueuePoller:
    def test_idle_queue_returns_empty_report(self, clock):
        poller = QueuePoller(_queue_with(clock), lambda events: BatchReport())
        assert poller.poll_once().outcomes == []

    def test_successful_records_acked(self, clock, secondary_queue):
        source = _queue_with(clock, json.dumps({"country": "France"}).encode())
        consumer = RescueConsumer(secondary_queue)

        report = QueuePoller(source, consumer.on_batch).poll_once()

        assert [o.status for o in report.outcomes] == [RecordStatus.FORWARDED]
        assert source.depth == 0
        assert secondary_queue.depth == 1

    def test_failed_records_redelivered_after_timeout(self, clock, secondary_queue):
        source = _queue_with(
            clock,
            json.dumps({"country": "France", "email": "a@b.fr"}).encode(),
            b"not json",
        )
        poller = QueuePoller(source, RescueConsumer(secondary_queue).on_batch)

        first = poller.poll_once()
        assert len(first.failed_record_ids) == 1
        assert source.depth == 1
        assert poller.poll_once().outcomes == []

        clock.advance(31)
        retry = poller.poll_once()
        assert retry.failed_record_ids == first.failed_record_ids

    def test_handler_crash_fails_whole_batch(self, clock):
        source = _queue_with(clock, b"{}", b"{}")

        def crash(events: list[Event]) -> BatchReport:
            raise RuntimeError("consumer crashed")

        report = QueuePoller(source, crash).poll_once()

        assert len(report.failed_record_ids) == 2
        assert all("consumer crashed" in o.error for o in report.outcomes)
        assert source.depth == 2

    def test_events_carry_message_ids_and_attributes(self, clock):
        source = _queue_with(clock, b"{}")
        seen: list[Event] = []

        def handler(events: list[Event]) -> BatchReport:
            seen.extend(events)
            return BatchReport()

        QueuePoller(source, handler).poll_once()

        assert seen[0].attributes == {"country": "France"}
        assert seen[0].payload == b"{}"

    def test_run_drains_in_batches(self, clock, secondary_queue):
        bodies = [json.dumps({"country": "France", "n": i}).encode() for i in range(5)]
        source = _queue_with(clock, *bodies)
        poller = QueuePoller(source, RescueConsumer(secondary_queue).on_batch, batch_size=2)

        reports = poller.run()

        assert [len(r.outcomes) for r in reports] == [2, 2, 1]
        assert source.depth == 0
        assert secondary_queue.depth == 5

    def test_run_respects_max_batches(self, clock):
        source = _queue_with(clock, b"{}", b"{}", b"{}")
        poller = QueuePoller(source, lambda events: BatchReport(), batch_size=1)
        assert len(poller.run(max_batches=2)) == 2
        assert source.depth == 1

    def test_run_survives_full_dead_letter_queue(self, clock, secondary_queue):
        dlq = DurableQueue("dlq", max_depth=1, clock=clock)
        dlq.enqueue(b"occupant")
        source = DurableQueue(
            "source", visibility_timeout=30, max_receive_count=1, dead_letter=dlq, clock=clock
        )
        source.enqueue(b"not json", attributes={"country": "France"})
        poller = QueuePoller(source, RescueConsumer(secondary_queue).on_batch)
        assert len(poller.poll_once().failed_record_ids) == 1

        clock.advance(31)
        source.enqueue(json.dumps({"country": "France"}).encode())
        reports = poller.run()

        assert [o.status for r in reports for o in r.outcomes] == [RecordStatus.FORWARDED]
        assert source.depth == 1
        assert secondary_queue.depth == 1
