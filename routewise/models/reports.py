"""Outcome reports for routing fan-out and batch consumption.

Failures are collected here rather than raised so that one record or one
destination never hides the outcome of its siblings.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class RecordStatus(str, Enum):
    """Terminal state of a single batch record."""

    OK = "ok"  # handled, nothing forwarded
    FORWARDED = "forwarded"  # rescue record enqueued
    FAILED = "failed"  # eligible for upstream redelivery


class RecordOutcome(BaseModel):
    """The result of processing one record of a batch."""

    model_config = ConfigDict(frozen=True)

    record_id: str
    status: RecordStatus
    error: str = ""

    @property
    def failed(self) -> bool:
        return self.status is RecordStatus.FAILED


class BatchReport(BaseModel):
    """Per-record outcomes of one consumer invocation."""

    model_config = ConfigDict(frozen=True)

    outcomes: list[RecordOutcome] = []

    @property
    def failed_record_ids(self) -> list[str]:
        """Identifiers the upstream queue should redeliver."""
        return [o.record_id for o in self.outcomes if o.failed]

    @property
    def forwarded_count(self) -> int:
        return sum(1 for o in self.outcomes if o.status is RecordStatus.FORWARDED)

    @property
    def all_succeeded(self) -> bool:
        return not self.failed_record_ids

    def to_batch_item_failures(self) -> dict[str, list[dict[str, str]]]:
        """Render failures in the partial-batch-response shape brokers expect."""
        return {
            "batchItemFailures": [
                {"itemIdentifier": record_id} for record_id in self.failed_record_ids
            ]
        }


class DeliveryReport(BaseModel):
    """What ``Router.route()`` did with one event.

    ``matched`` names every destination whose rule accepted the event;
    ``delivered`` is the subset that accepted delivery; ``errors`` maps
    each failed destination to its error text.
    """

    model_config = ConfigDict(frozen=True)

    event_id: str
    matched: frozenset[str] = frozenset()
    delivered: frozenset[str] = frozenset()
    errors: dict[str, str] = {}

    @property
    def failed(self) -> frozenset[str]:
        return frozenset(self.errors)
