"""Queue poller — drains a durable queue into a batch handler.

This is the event-source mapping between a queue and a consumer: receive
a batch, hand it to the handler, then ack every record the handler did
not report as failed.  Failed records are left in flight; once their
visibility timeout expires the queue redelivers them.  The poller itself
never retries.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from routewise.models.events import Event
from routewise.models.reports import BatchReport, RecordOutcome, RecordStatus
from routewise.routing.destinations.queue import DurableQueue

logger = logging.getLogger(__name__)

BatchHandler = Callable[[list[Event]], BatchReport]


class QueuePoller:
    """Pulls batches from *queue* and feeds them to *handler*.

    Parameters
    ----------
    queue:
        The source queue.
    handler:
        Callable taking a list of events and returning a ``BatchReport``
        whose record ids are the events' ``event_id`` values.
    batch_size:
        Maximum number of messages per batch.
    visibility_timeout:
        Seconds each received message stays hidden.  ``None`` uses the
        queue default.
    """

    def __init__(
        self,
        queue: DurableQueue,
        handler: BatchHandler,
        *,
        batch_size: int = 10,
        visibility_timeout: float | None = None,
    ) -> None:
        self._queue = queue
        self._handler = handler
        self._batch_size = batch_size
        self._visibility_timeout = visibility_timeout

    def poll_once(self) -> BatchReport:
        """Receive and process one batch.  Returns an empty report if idle."""
        _, report = self._poll()
        return report

    def run(self, *, max_batches: int | None = None) -> list[BatchReport]:
        """Poll until the queue has no visible messages (or *max_batches*)."""
        reports: list[BatchReport] = []
        while max_batches is None or len(reports) < max_batches:
            received, report = self._poll()
            if not received:
                break
            reports.append(report)
        return reports

    def _poll(self) -> tuple[int, BatchReport]:
        messages = self._queue.dequeue(
            self._batch_size, visibility_timeout=self._visibility_timeout
        )
        if not messages:
            return 0, BatchReport()

        events = [m.to_event() for m in messages]
        try:
            report = self._handler(events)
        except Exception as exc:  # noqa: BLE001
            # Whole invocation failed: every record stays in flight.
            logger.error(
                "Batch handler failed on %d message(s) from %s: %s",
                len(messages),
                self._queue.destination_name,
                exc,
            )
            return len(messages), BatchReport(
                outcomes=[
                    RecordOutcome(
                        record_id=m.message_id, status=RecordStatus.FAILED, error=str(exc)
                    )
                    for m in messages
                ]
            )

        failed = set(report.failed_record_ids)
        for message in messages:
            if message.message_id not in failed:
                self._queue.ack(message.receipt_handle)

        if failed:
            logger.warning(
                "%d/%d record(s) from %s left for redelivery",
                len(failed),
                len(messages),
                self._queue.destination_name,
            )
        return len(messages), report
