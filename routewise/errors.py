"""Error taxonomy for the routing pipeline.

Every error raised by routewise is attributable to exactly one record or
one destination, so callers can preserve partial success.  Nothing in this
package retries internally; redelivery is always left to the source queue
or broker.
"""

from __future__ import annotations


class RoutewiseError(RuntimeError):
    """Base class for all routewise errors."""


class ConfigurationError(RoutewiseError):
    """Raised at startup when required configuration is missing.

    This error is fatal.  It must not be caught and ignored; the process
    should exit.
    """


class MalformedPayloadError(RoutewiseError, ValueError):
    """Raised when an event payload cannot be parsed as a JSON object."""


class DeliveryError(RoutewiseError):
    """Raised when a push to one destination fails or times out."""

    def __init__(self, destination_name: str, message: str) -> None:
        super().__init__(f"{destination_name}: {message}")
        self.destination_name = destination_name


class ForwardError(RoutewiseError):
    """Raised when enqueueing a rescue record onto the secondary queue fails."""


class QueueFullError(RoutewiseError):
    """Raised when a durable queue is at its configured maximum depth."""
