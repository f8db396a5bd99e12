"""Router — delivers each event to every destination whose rule matches.

Subscriptions are fixed when the router is built.  Fan-out is independent
per destination: a failure in one destination is logged and reported but
does not prevent delivery to the remaining matched destinations.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict

from routewise.errors import DeliveryError
from routewise.models.events import Event
from routewise.models.reports import DeliveryReport
from routewise.models.rules import Rule
from routewise.routing.destinations import BaseDestination
from routewise.routing.matching import rule_matches

logger = logging.getLogger(__name__)


class Subscription(BaseModel):
    """Binds a filter rule to the destination that receives matches."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    rule: Rule
    destination: BaseDestination

    @property
    def destination_name(self) -> str:
        return self.destination.destination_name


class Router:
    """Evaluates every subscription for an event and fans out delivery.

    The router holds no mutable state: ``route()`` may be called
    concurrently from several threads.

    Usage
    -----
    >>> router = Router([
    ...     Subscription(rule=Rule.allow("country", ["Ireland"]), destination=queue_a),
    ...     Subscription(rule=Rule.deny("country", ["Ireland"]), destination=rescue),
    ... ])
    >>> report = router.route(event)
    """

    def __init__(self, subscriptions: Iterable[Subscription]) -> None:
        self._subscriptions: tuple[Subscription, ...] = tuple(subscriptions)
        for sub in self._subscriptions:
            logger.info(
                "Subscription: %s -> %s", sub.rule.describe(), sub.destination_name
            )

    @property
    def subscriptions(self) -> tuple[Subscription, ...]:
        return self._subscriptions

    def matching(self, event: Event) -> list[Subscription]:
        """Return the subscriptions whose rule accepts *event*, without delivering."""
        return [
            sub for sub in self._subscriptions if rule_matches(sub.rule, event.attributes)
        ]

    # ------------------------------------------------------------------
    # Routing
    # ------------------------------------------------------------------

    def route(self, event: Event) -> DeliveryReport:
        """Deliver *event* to every matched destination.

        Returns a ``DeliveryReport`` naming the matched destinations, the
        ones that accepted delivery, and the error for each one that did
        not.  Never raises for a destination failure.
        """
        matched = self.matching(event)
        if not matched:
            logger.debug("Event %s matched no subscription", event.event_id)
            return DeliveryReport(event_id=event.event_id)

        delivered: set[str] = set()
        errors: dict[str, str] = {}

        for sub in matched:
            name = sub.destination_name
            try:
                sub.destination.deliver(event)
                delivered.add(name)
            except DeliveryError as exc:
                logger.error("Delivery to %s failed: %s", name, exc)
                errors[name] = str(exc)
            except Exception as exc:  # noqa: BLE001
                wrapped = DeliveryError(name, f"event {event.event_id} failed: {exc}")
                logger.error("Delivery to %s failed: %s", name, wrapped)
                errors[name] = str(wrapped)

        if errors:
            logger.warning(
                "Event %s: %d/%d destinations succeeded, %d failed",
                event.event_id,
                len(delivered),
                len(matched),
                len(errors),
            )
        else:
            logger.debug(
                "Event %s delivered to %s", event.event_id, ", ".join(sorted(delivered))
            )

        return DeliveryReport(
            event_id=event.event_id,
            matched=frozenset(sub.destination_name for sub in matched),
            delivered=frozenset(delivered),
            errors=errors,
        )

    def route_batch(self, events: Iterable[Event]) -> dict[str, DeliveryReport]:
        """Route several events, returning reports keyed by event_id."""
        return {event.event_id: self.route(event) for event in events}
