"""Rescue consumer — forwards payloads missing a required field.

The consumer receives events pushed by the router (one at a time) or by a
broker notification (a batch).  For each record it parses the payload as
a JSON object and checks the required field.  Records without it are
re-emitted, whole, onto the secondary queue for remediation.  Records
with it need no further action here.

Batch records are isolated: a malformed payload or a failed forward marks
that record failed and processing continues with its siblings.  Duplicate
deliveries are forwarded again; there is no deduplication.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from routewise.config import RoutewiseConfig
from routewise.errors import ForwardError, RoutewiseError
from routewise.models.events import Event, RescueRecord
from routewise.models.reports import BatchReport, RecordOutcome, RecordStatus
from routewise.routing.destinations.consumer import ActiveConsumer
from routewise.routing.destinations.queue import DurableQueue, open_queue
from routewise.routing.topic import notification_records, record_event, record_id

logger = logging.getLogger(__name__)


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


class RescueConsumer(ActiveConsumer):
    """Inspect-and-forward consumer with a secondary rescue queue.

    Parameters
    ----------
    secondary_queue:
        Queue that receives rescue records.
    required_field:
        Payload key that must be present and non-empty.
    name:
        Destination name used in logs and delivery reports.
    timeout_seconds:
        Upper bound on a single routed invocation.
    """

    def __init__(
        self,
        secondary_queue: DurableQueue,
        *,
        required_field: str = "email",
        name: str = "rescue-consumer",
        timeout_seconds: float | None = None,
    ) -> None:
        super().__init__(name, timeout_seconds=timeout_seconds)
        self._secondary = secondary_queue
        self._required_field = required_field

    @classmethod
    def from_config(
        cls,
        config: RoutewiseConfig,
        secondary_queue: DurableQueue | None = None,
    ) -> RescueConsumer:
        """Build the consumer from configuration.

        The secondary queue URL is required even when a queue instance is
        supplied, so a misconfigured deployment fails at startup.

        Raises
        ------
        ConfigurationError
            If ``secondary_queue_url`` is not configured.
        """
        url = config.require_secondary_queue_url()
        if secondary_queue is None:
            secondary_queue = open_queue(
                url,
                max_depth=config.max_queue_depth,
                visibility_timeout=config.visibility_timeout_seconds,
            )
        return cls(
            secondary_queue,
            required_field=config.required_field,
            timeout_seconds=config.consumer_timeout_seconds,
        )

    @property
    def secondary_queue(self) -> DurableQueue:
        return self._secondary

    @property
    def required_field(self) -> str:
        return self._required_field

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def inspect(self, event: Event) -> RescueRecord | None:
        """Return the rescue record for *event*, or ``None`` if it conforms.

        Raises
        ------
        MalformedPayloadError
            If the payload is not a JSON object.
        """
        payload = event.payload_json()
        if not _is_missing(payload.get(self._required_field)):
            return None
        return RescueRecord(
            source_event_id=event.event_id,
            payload=payload,
            missing_field=self._required_field,
        )

    def on_event(self, event: Event) -> RecordStatus:
        """Inspect one event and forward it if the required field is missing.

        Raises
        ------
        MalformedPayloadError
            If the payload cannot be parsed.
        ForwardError
            If the secondary queue rejects the rescue record.
        """
        record = self.inspect(event)
        if record is None:
            return RecordStatus.OK
        self._forward(record)
        return RecordStatus.FORWARDED

    def handle(self, event: Event) -> None:
        self.on_event(event)

    # ------------------------------------------------------------------
    # Batches
    # ------------------------------------------------------------------

    def on_batch(self, records: Iterable[Event]) -> BatchReport:
        """Process every record independently and report each outcome."""
        return self._report([self._outcome(event) for event in records])

    def handle_notification(self, notification: Mapping[str, Any]) -> BatchReport:
        """Process a broker notification batch (``{"Records": [...]}``).

        Each envelope is converted on its own; one that cannot become an
        event is reported failed under its ``MessageId`` (or its index)
        while its siblings are still processed.

        Raises
        ------
        RoutewiseError
            If the batch itself has no ``Records`` list.
        """
        outcomes: list[RecordOutcome] = []
        for index, record in enumerate(notification_records(notification)):
            try:
                event = record_event(record, index)
            except RoutewiseError as exc:
                rid = record_id(record, index)
                logger.warning("Record %s rejected: %s", rid, exc)
                outcomes.append(
                    RecordOutcome(record_id=rid, status=RecordStatus.FAILED, error=str(exc))
                )
                continue
            outcomes.append(self._outcome(event))
        return self._report(outcomes)

    def _outcome(self, event: Event) -> RecordOutcome:
        try:
            status = self.on_event(event)
        except RoutewiseError as exc:
            logger.warning("Record %s failed: %s", event.event_id, exc)
            return RecordOutcome(
                record_id=event.event_id,
                status=RecordStatus.FAILED,
                error=str(exc),
            )
        except Exception as exc:  # noqa: BLE001
            logger.exception("Record %s failed unexpectedly", event.event_id)
            return RecordOutcome(
                record_id=event.event_id,
                status=RecordStatus.FAILED,
                error=f"{type(exc).__name__}: {exc}",
            )
        return RecordOutcome(record_id=event.event_id, status=status)

    def _report(self, outcomes: list[RecordOutcome]) -> BatchReport:
        report = BatchReport(outcomes=outcomes)
        logger.info(
            "%s: batch of %d, %d forwarded, %d failed",
            self.destination_name,
            len(outcomes),
            report.forwarded_count,
            len(report.failed_record_ids),
        )
        return report

    # ------------------------------------------------------------------
    # Forwarding
    # ------------------------------------------------------------------

    def _forward(self, record: RescueRecord) -> None:
        try:
            message_id = self._secondary.enqueue(record.to_message())
        except Exception as exc:
            raise ForwardError(
                f"Forward of event {record.source_event_id} to "
                f"{self._secondary.destination_name} failed: {exc}"
            ) from exc
        logger.info(
            "Event %s missing %r, rescued to %s as %s",
            record.source_event_id,
            record.missing_field,
            self._secondary.destination_name,
            message_id,
        )
