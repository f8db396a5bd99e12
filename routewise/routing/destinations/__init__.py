"""Destination protocol for routewise event routing.

A destination is anything with a ``destination_name`` property and a
``deliver(event)`` method.  The router calls ``deliver`` on every
destination whose subscription rule matches, and treats durable queues
and active consumers identically.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from routewise.models.events import Event


@runtime_checkable
class BaseDestination(Protocol):
    """Protocol that every routewise destination must implement.

    Attributes
    ----------
    destination_name : str
        A unique human-readable identifier for this destination
        (e.g. ``"queue-a"``, ``"rescue-consumer"``).
    """

    @property
    def destination_name(self) -> str:
        """Return the unique name of this destination."""
        ...

    def deliver(self, event: Event) -> None:
        """Deliver an event.

        Durable queues enqueue a copy and return.  Active consumers run
        their logic synchronously.  Any exception is treated by the router
        as a failure of this destination only.
        """
        ...
