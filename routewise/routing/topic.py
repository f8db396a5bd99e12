"""Publish side of the pipeline — topics, the broker, and notification records.

A ``Topic`` turns a publish call into an ``Event`` and hands it to its
router.  The ``Broker`` looks topics up by name.  ``record_event``
unpacks one record of a broker notification batch (the shape pushed to
active consumers) back into an event.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import ValidationError

from routewise.errors import RoutewiseError
from routewise.models.events import Event
from routewise.models.reports import DeliveryReport
from routewise.routing.router import Router

logger = logging.getLogger(__name__)


class UnknownTopicError(RoutewiseError):
    """Raised when publishing to a topic the broker does not know."""


class Topic:
    """A named publish target backed by one router."""

    def __init__(self, name: str, router: Router) -> None:
        self._name = name
        self._router = router

    @property
    def name(self) -> str:
        return self._name

    @property
    def router(self) -> Router:
        return self._router

    def publish(
        self, payload: Any, attributes: Mapping[str, str] | None = None
    ) -> DeliveryReport:
        """Build an event from *payload* and *attributes* and route it."""
        event = Event(attributes=dict(attributes or {}), payload=payload)
        return self.publish_event(event)

    def publish_event(self, event: Event) -> DeliveryReport:
        logger.debug("Topic %s: publishing event %s", self._name, event.event_id)
        return self._router.route(event)


class Broker:
    """Holds the process-wide set of topics, fixed at construction."""

    def __init__(self, topics: Iterable[Topic]) -> None:
        self._topics: dict[str, Topic] = {t.name: t for t in topics}

    @property
    def topic_names(self) -> list[str]:
        return sorted(self._topics)

    def topic(self, name: str) -> Topic:
        try:
            return self._topics[name]
        except KeyError:
            raise UnknownTopicError(f"Unknown topic: {name!r}") from None

    def publish(self, topic_name: str, event: Event) -> DeliveryReport:
        return self.topic(topic_name).publish_event(event)


# ---------------------------------------------------------------------------
# Notification records
# ---------------------------------------------------------------------------


def to_notification(events: Iterable[Event], topic_name: str = "") -> dict[str, Any]:
    """Wrap events in the notification batch shape handed to consumers."""
    return {
        "Records": [
            {
                "EventSource": "routewise:topic",
                "Sns": {
                    "MessageId": event.event_id,
                    "TopicArn": topic_name,
                    "Message": event.payload.decode("utf-8", errors="replace"),
                    "MessageAttributes": {
                        key: {"Type": "String", "Value": value}
                        for key, value in event.attributes.items()
                    },
                },
            }
            for event in events
        ]
    }


def notification_records(notification: Mapping[str, Any]) -> list[Any]:
    """Return the raw record envelopes of a notification batch.

    Raises
    ------
    RoutewiseError
        If the batch itself is not a mapping with a ``Records`` list.
    """
    if not isinstance(notification, Mapping):
        raise RoutewiseError("Notification batch must be a JSON object")
    records = notification.get("Records")
    if not isinstance(records, list):
        raise RoutewiseError("Notification batch has no Records list")
    return records


def record_id(record: Any, index: int) -> str:
    """Identify a record envelope by its ``MessageId``, or by position."""
    sns = record.get("Sns") if isinstance(record, Mapping) else None
    if isinstance(sns, Mapping) and sns.get("MessageId"):
        return str(sns["MessageId"])
    return str(index)


def record_event(record: Any, index: int) -> Event:
    """Convert one record envelope into an event.

    The ``Message`` string becomes the raw payload; it is not parsed here,
    so malformed payloads surface in the consumer.

    Raises
    ------
    RoutewiseError
        If the envelope has no ``Sns.Message`` or cannot form an event.
    """
    sns = record.get("Sns") if isinstance(record, Mapping) else None
    if not isinstance(sns, Mapping) or "Message" not in sns:
        raise RoutewiseError(f"Notification record {index} has no Sns.Message")

    raw_attributes = sns.get("MessageAttributes") or {}
    if not isinstance(raw_attributes, Mapping):
        raise RoutewiseError(
            f"Notification record {index} has non-object MessageAttributes"
        )
    attributes = {
        str(key): str(attr.get("Value", ""))
        for key, attr in raw_attributes.items()
        if isinstance(attr, Mapping)
    }
    event_kwargs: dict[str, Any] = {
        "attributes": attributes,
        "payload": sns["Message"],
    }
    if sns.get("MessageId"):
        event_kwargs["event_id"] = str(sns["MessageId"])
    try:
        return Event(**event_kwargs)
    except ValidationError as exc:
        raise RoutewiseError(f"Notification record {index} is not a valid event: {exc}") from exc


def notification_events(notification: Mapping[str, Any]) -> list[Event]:
    """Unpack a whole notification batch into events, failing on any bad record."""
    return [
        record_event(record, index)
        for index, record in enumerate(notification_records(notification))
    ]
