"""Active consumer destination — invokes logic synchronously per event.

An ``ActiveConsumer`` wraps a handler callable (or a subclass overriding
``handle``).  ``deliver()`` runs the handler and waits for it.  When a
``timeout_seconds`` is configured the handler runs on a worker thread and
an invocation that outlives the timeout is reported as a
``DeliveryError``.  The worker is not interrupted and nothing is retried;
its late result, or late failure, is logged when it finishes.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError

from routewise.errors import DeliveryError
from routewise.models.events import Event

logger = logging.getLogger(__name__)

EventHandler = Callable[[Event], None]


class ActiveConsumer:
    """A destination that pushes each event to a handler and awaits it.

    Parameters
    ----------
    name:
        Destination name used in logs and delivery reports.
    handler:
        Callable invoked with each delivered event.  Subclasses may
        override ``handle`` instead.
    timeout_seconds:
        Upper bound on one invocation.  ``None`` runs the handler inline.
    """

    def __init__(
        self,
        name: str,
        handler: EventHandler | None = None,
        *,
        timeout_seconds: float | None = None,
    ) -> None:
        self._name = name
        self._handler = handler
        self._timeout = timeout_seconds

    @property
    def destination_name(self) -> str:
        return self._name

    @property
    def timeout_seconds(self) -> float | None:
        return self._timeout

    def handle(self, event: Event) -> None:
        """Process one event.  The default forwards to the handler callable."""
        if self._handler is None:
            raise NotImplementedError(
                f"{type(self).__name__} {self._name} has no handler"
            )
        self._handler(event)

    def deliver(self, event: Event) -> None:
        """Invoke ``handle`` and wait for it.

        Raises
        ------
        DeliveryError
            If the handler raises or exceeds ``timeout_seconds``.
        """
        if self._timeout is None:
            self._invoke(event)
            return

        executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix=f"consumer-{self._name}"
        )
        try:
            future = executor.submit(self._invoke, event)
            try:
                future.result(timeout=self._timeout)
            except FutureTimeoutError as exc:
                future.add_done_callback(
                    lambda done: self._log_late_outcome(event, done)
                )
                raise DeliveryError(
                    self._name,
                    f"event {event.event_id} timed out after {self._timeout}s",
                ) from exc
        finally:
            executor.shutdown(wait=False)

    def _invoke(self, event: Event) -> None:
        try:
            self.handle(event)
        except DeliveryError:
            raise
        except Exception as exc:
            raise DeliveryError(
                self._name, f"event {event.event_id} failed: {exc}"
            ) from exc

    def _log_late_outcome(self, event: Event, future: Future[None]) -> None:
        exc = future.exception()
        if exc is None:
            logger.warning(
                "%s: event %s completed after its %ss timeout was reported",
                self._name,
                event.event_id,
                self._timeout,
            )
        else:
            logger.error(
                "%s: event %s failed after its %ss timeout was reported: %s",
                self._name,
                event.event_id,
                self._timeout,
                exc,
                exc_info=exc,
            )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self._name!r})"
