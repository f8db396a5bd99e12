"""Shared test fixtures for routewise."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import pytest

from routewise.config import RoutewiseConfig
from routewise.consumers.rescue import RescueConsumer
from routewise.models.events import Event
from routewise.models.rules import Rule
from routewise.routing.destinations.queue import DurableQueue

ROUTED_COUNTRIES = ["Ireland", "China"]


class FakeClock:
    """A manually advanced time source for visibility-timeout tests."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def primary_queue() -> DurableQueue:
    """An in-memory queue standing in for the allow-list destination."""
    return DurableQueue("queue-a")


@pytest.fixture
def secondary_queue() -> DurableQueue:
    """An in-memory queue standing in for the rescue target."""
    return DurableQueue("queue-b")


@pytest.fixture
def rescue_consumer(secondary_queue: DurableQueue) -> RescueConsumer:
    return RescueConsumer(secondary_queue)


@pytest.fixture
def allow_rule() -> Rule:
    return Rule.allow("country", ROUTED_COUNTRIES)


@pytest.fixture
def deny_rule(allow_rule: Rule) -> Rule:
    return allow_rule.complement()


@pytest.fixture
def config() -> RoutewiseConfig:
    """Config pointing both queues at in-memory storage."""
    return RoutewiseConfig(
        primary_queue_url="memory://queue-a",
        secondary_queue_url="memory://queue-b",
        consumer_timeout_seconds=5.0,
    )


# ---------------------------------------------------------------------------
# Event factories — shared across test modules
# ---------------------------------------------------------------------------


@pytest.fixture
def make_event() -> Callable[..., Event]:
    """Factory fixture: build an Event with a country attribute and JSON payload.

    Pass ``country=None`` to omit the attribute; pass ``raw`` to use an
    unparsed payload string instead of a dict.
    """

    def _factory(
        country: str | None = "France",
        payload: dict[str, Any] | None = None,
        raw: str | bytes | None = None,
        **overrides: Any,
    ) -> Event:
        attributes = {"country": country} if country is not None else {}
        if raw is not None:
            body: Any = raw
        else:
            body = json.dumps(payload if payload is not None else {"country": country})
        defaults: dict[str, Any] = {"attributes": attributes, "payload": body}
        defaults.update(overrides)
        return Event(**defaults)

    return _factory
