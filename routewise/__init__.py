"""Routewise: attribute-filtered event routing with a rescue queue.

  - Declarative allow-list / deny-list subscription rules
  - Independent per-destination fan-out (durable queues and active consumers)
  - SQLite-backed durable queues with visibility timeout and redrive
  - Inspect-and-forward rescue consumer with per-record batch isolation
  - Env-driven config via pydantic-settings, Typer + Rich CLI
"""

__version__ = "0.1.0"
__description__ = "Attribute-filtered event routing with a rescue queue"

from routewise.consumers.rescue import RescueConsumer
from routewise.models.events import Event
from routewise.models.rules import Rule, RuleMode
from routewise.routing.router import Router, Subscription

__all__ = [
    "Event",
    "Rule",
    "RuleMode",
    "Router",
    "Subscription",
    "RescueConsumer",
    "__version__",
]
