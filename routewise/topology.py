"""Reference deployment wiring — one topic split by country of origin.

    topic ──country in [Ireland, China]──────> primary queue
          └─country not in [Ireland, China]──> rescue consumer ──(no email)──> secondary queue

The two rules are complements of each other, so every event that carries
the classification attribute reaches exactly one of the two paths.
Events without the attribute reach neither.
"""

from __future__ import annotations

import logging
from typing import Any

from routewise.config import RoutewiseConfig
from routewise.consumers.rescue import RescueConsumer
from routewise.models.rules import Rule
from routewise.routing.destinations.queue import DurableQueue, open_queue
from routewise.routing.router import Router, Subscription
from routewise.routing.topic import Broker, Topic

logger = logging.getLogger(__name__)


class CountryTopology:
    """The wired topic, router, queues and rescue consumer."""

    def __init__(
        self,
        topic: Topic,
        primary_queue: DurableQueue,
        rescue_consumer: RescueConsumer,
    ) -> None:
        self.topic = topic
        self.primary_queue = primary_queue
        self.rescue_consumer = rescue_consumer

    @property
    def router(self) -> Router:
        return self.topic.router

    @property
    def secondary_queue(self) -> DurableQueue:
        return self.rescue_consumer.secondary_queue

    @property
    def broker(self) -> Broker:
        return Broker([self.topic])

    def close(self) -> None:
        self.primary_queue.close()
        self.secondary_queue.close()

    def __enter__(self) -> CountryTopology:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()


def build_country_topology(
    config: RoutewiseConfig,
    *,
    primary_queue: DurableQueue | None = None,
    secondary_queue: DurableQueue | None = None,
) -> CountryTopology:
    """Wire the reference deployment from *config*.

    Queues are opened from the configured URLs unless supplied.

    Raises
    ------
    ConfigurationError
        If the secondary queue URL is missing or a queue URL is invalid.
    """
    # Validate the rescue path before opening anything.
    rescue = RescueConsumer.from_config(config, secondary_queue=secondary_queue)

    if primary_queue is None:
        primary_queue = open_queue(
            config.primary_queue_url,
            max_depth=config.max_queue_depth,
            visibility_timeout=config.visibility_timeout_seconds,
        )

    allow = Rule.allow(config.classification_attribute, config.routed_values)
    router = Router(
        [
            Subscription(rule=allow, destination=primary_queue),
            Subscription(rule=allow.complement(), destination=rescue),
        ]
    )
    topic = Topic(config.topic_name, router)
    logger.info(
        "Topology ready: topic=%s primary=%s secondary=%s",
        topic.name,
        primary_queue.destination_name,
        rescue.secondary_queue.destination_name,
    )
    return CountryTopology(topic, primary_queue, rescue)
