"""Durable queue destination — buffers routed events until a consumer pulls them.

Two storage backends share one interface:

1. **SQLite** (``db_path`` provided): persistent, crash-safe, survives
   process restart.  Recommended outside tests.
2. **In-memory** (``db_path`` is None): volatile, suitable for tests and
   single-process wiring.

Delivery is at-least-once.  ``dequeue()`` hides each returned message for
a visibility timeout; the consumer calls ``ack()`` once it has handled the
message.  A message that is not acked before its timeout expires becomes
visible again and is redelivered with an incremented ``receive_count``.

When ``max_receive_count`` is set and a ``dead_letter`` queue is attached,
a message received more than ``max_receive_count`` times is moved to the
dead-letter queue instead of being redelivered.  While the dead-letter
queue is full such a message stays put and is skipped; the rest of the
batch is still handed out.

Queues are bounded (default 1024 messages, in-flight included) to prevent
unbounded growth when no consumer is draining them.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
import time
import uuid
from collections import OrderedDict
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict

from routewise.core.hasher import body_digest
from routewise.errors import ConfigurationError, QueueFullError
from routewise.models.events import Event

logger = logging.getLogger(__name__)


class QueueMessage(BaseModel):
    """A message handed out by ``DurableQueue.dequeue()``.

    ``receipt_handle`` identifies this particular receive; it changes on
    every redelivery and is what ``ack()`` and ``release()`` expect.
    """

    model_config = ConfigDict(frozen=True)

    message_id: str
    body: bytes
    attributes: dict[str, str] = {}
    receipt_handle: str
    receive_count: int = 1
    digest: str = ""

    def to_event(self) -> Event:
        """Rebuild an event from the queued body and attributes."""
        return Event(
            event_id=self.message_id,
            attributes=self.attributes,
            payload=self.body,
        )


class _Entry:
    """Mutable bookkeeping for one in-memory message."""

    __slots__ = ("body", "attributes", "visible_at", "receive_count", "receipt_handle")

    def __init__(self, body: bytes, attributes: dict[str, str], now: float) -> None:
        self.body = body
        self.attributes = attributes
        self.visible_at = now
        self.receive_count = 0
        self.receipt_handle = ""


class DurableQueue:
    """A bounded at-least-once queue, and a routing destination.

    Parameters
    ----------
    name:
        Destination name used in logs and delivery reports.
    db_path:
        Path to a SQLite database file.  When ``None``, messages are kept
        in memory.
    max_depth:
        Maximum number of stored messages, visible and in flight.
    visibility_timeout:
        Default number of seconds a dequeued message stays hidden.
    max_receive_count:
        Receives allowed before a message is dead-lettered.  ``0`` disables
        the redrive policy.
    dead_letter:
        Queue that receives messages exceeding ``max_receive_count``.
    clock:
        Time source in seconds.  Defaults to ``time.time``.
    """

    def __init__(
        self,
        name: str,
        *,
        db_path: Path | str | None = None,
        max_depth: int = 1024,
        visibility_timeout: float = 30.0,
        max_receive_count: int = 0,
        dead_letter: DurableQueue | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if max_receive_count and dead_letter is None:
            raise ConfigurationError(
                f"Queue {name}: max_receive_count requires a dead_letter queue"
            )
        self._name = name
        self._max_depth = max_depth
        self._visibility_timeout = visibility_timeout
        self._max_receive_count = max_receive_count
        self._dead_letter = dead_letter
        self._clock = clock
        self._lock = threading.Lock()

        self._db: sqlite3.Connection | None = None
        self._entries: OrderedDict[str, _Entry] = OrderedDict()

        if db_path is not None:
            db_path = Path(db_path)
            db_path.parent.mkdir(parents=True, exist_ok=True)
            # Consumers with a timeout enqueue from a worker thread.
            self._db = sqlite3.connect(str(db_path), check_same_thread=False)
            self._db.execute(
                "CREATE TABLE IF NOT EXISTS messages ("
                "  seq INTEGER PRIMARY KEY AUTOINCREMENT,"
                "  message_id TEXT NOT NULL UNIQUE,"
                "  body BLOB NOT NULL,"
                "  attributes TEXT NOT NULL DEFAULT '{}',"
                "  visible_at REAL NOT NULL,"
                "  receive_count INTEGER NOT NULL DEFAULT 0,"
                "  receipt_handle TEXT NOT NULL DEFAULT ''"
                ")"
            )
            self._db.commit()
            logger.info(
                "DurableQueue %s: using SQLite at %s (max_depth=%d).",
                name,
                db_path,
                max_depth,
            )
        else:
            logger.info(
                "DurableQueue %s: using in-memory storage (max_depth=%d).",
                name,
                max_depth,
            )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def destination_name(self) -> str:
        return self._name

    @property
    def is_persistent(self) -> bool:
        return self._db is not None

    @property
    def dead_letter(self) -> DurableQueue | None:
        return self._dead_letter

    @property
    def depth(self) -> int:
        """Number of stored messages, in flight included."""
        with self._lock:
            return self._depth_locked()

    @property
    def visible_depth(self) -> int:
        """Number of messages a ``dequeue()`` call could return right now."""
        now = self._clock()
        with self._lock:
            if self._db is not None:
                row = self._db.execute(
                    "SELECT COUNT(*) FROM messages WHERE visible_at <= ?", (now,)
                ).fetchone()
                return row[0] if row else 0
            return sum(1 for e in self._entries.values() if e.visible_at <= now)

    # ------------------------------------------------------------------
    # Destination protocol
    # ------------------------------------------------------------------

    def deliver(self, event: Event) -> None:
        """Enqueue a durable copy of the event's payload and attributes."""
        message_id = self.enqueue(event.payload, attributes=event.attributes)
        logger.debug(
            "DurableQueue %s: event %s stored as message %s.",
            self._name,
            event.event_id,
            message_id,
        )

    # ------------------------------------------------------------------
    # Queue interface
    # ------------------------------------------------------------------

    def enqueue(
        self, message: bytes, *, attributes: Mapping[str, str] | None = None
    ) -> str:
        """Store *message* and return its message id (the ack).

        Raises
        ------
        QueueFullError
            If the queue already holds ``max_depth`` messages.
        """
        message_id = str(uuid.uuid4())
        attrs = dict(attributes or {})
        now = self._clock()

        with self._lock:
            depth = self._depth_locked()
            if depth >= self._max_depth:
                raise QueueFullError(
                    f"Queue {self._name} is full (depth={depth}). "
                    f"Message {message_id} rejected."
                )
            if self._db is not None:
                self._db.execute(
                    "INSERT INTO messages (message_id, body, attributes, visible_at) "
                    "VALUES (?, ?, ?, ?)",
                    (message_id, message, json.dumps(attrs, sort_keys=True), now),
                )
                self._db.commit()
            else:
                self._entries[message_id] = _Entry(message, attrs, now)

        logger.debug(
            "DurableQueue %s: enqueued %s (depth=%d).", self._name, message_id, depth + 1
        )
        return message_id

    def dequeue(
        self, max_messages: int = 10, *, visibility_timeout: float | None = None
    ) -> list[QueueMessage]:
        """Receive up to *max_messages* visible messages.

        Returned messages are hidden for *visibility_timeout* seconds
        (the queue default when ``None``).  No ordering is guaranteed to
        consumers, although both backends currently hand out the oldest
        visible messages first.
        """
        timeout = self._visibility_timeout if visibility_timeout is None else visibility_timeout
        now = self._clock()
        received: list[QueueMessage] = []

        with self._lock:
            for message_id, body, attrs, count in self._visible_locked(now):
                if len(received) >= max_messages:
                    break
                count += 1
                if self._max_receive_count and count > self._max_receive_count:
                    # Copy before delete so a full dead-letter queue loses nothing.
                    try:
                        self._redrive(message_id, body, attrs)
                    except QueueFullError as exc:
                        logger.error(
                            "DurableQueue %s: redrive of %s failed, message kept: %s",
                            self._name,
                            message_id,
                            exc,
                        )
                        continue
                    self._delete_locked(message_id)
                    continue
                handle = uuid.uuid4().hex
                self._mark_in_flight_locked(message_id, now + timeout, count, handle)
                received.append(
                    QueueMessage(
                        message_id=message_id,
                        body=body,
                        attributes=attrs,
                        receipt_handle=handle,
                        receive_count=count,
                        digest=body_digest(body),
                    )
                )

        if received:
            logger.debug(
                "DurableQueue %s: handed out %d message(s).", self._name, len(received)
            )
        return received

    def ack(self, receipt_handle: str) -> bool:
        """Delete the message received under *receipt_handle*.

        Returns ``False`` if the handle is stale (the message was already
        deleted, or was redelivered under a newer handle).
        """
        with self._lock:
            if self._db is not None:
                cur = self._db.execute(
                    "DELETE FROM messages WHERE receipt_handle = ? AND receipt_handle != ''",
                    (receipt_handle,),
                )
                self._db.commit()
                return cur.rowcount > 0
            for message_id, entry in self._entries.items():
                if receipt_handle and entry.receipt_handle == receipt_handle:
                    del self._entries[message_id]
                    return True
            return False

    def release(self, receipt_handle: str) -> bool:
        """Make an in-flight message visible again immediately."""
        now = self._clock()
        with self._lock:
            if self._db is not None:
                cur = self._db.execute(
                    "UPDATE messages SET visible_at = ?, receipt_handle = '' "
                    "WHERE receipt_handle = ? AND receipt_handle != ''",
                    (now, receipt_handle),
                )
                self._db.commit()
                return cur.rowcount > 0
            for entry in self._entries.values():
                if receipt_handle and entry.receipt_handle == receipt_handle:
                    entry.visible_at = now
                    entry.receipt_handle = ""
                    return True
            return False

    def purge(self) -> int:
        """Delete every stored message.  Returns how many were removed."""
        with self._lock:
            if self._db is not None:
                cur = self._db.execute("DELETE FROM messages")
                self._db.commit()
                return cur.rowcount
            count = len(self._entries)
            self._entries.clear()
            return count

    def close(self) -> None:
        """Release the SQLite connection, if any."""
        with self._lock:
            if self._db is not None:
                self._db.close()
                self._db = None
                logger.info("DurableQueue %s: closed.", self._name)

    # ------------------------------------------------------------------
    # Context manager
    # ------------------------------------------------------------------

    def __enter__(self) -> DurableQueue:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        backend = "sqlite" if self._db is not None else "memory"
        return f"DurableQueue(name={self._name!r}, backend={backend})"

    # ------------------------------------------------------------------
    # Internal: storage operations (caller holds the lock)
    # ------------------------------------------------------------------

    def _depth_locked(self) -> int:
        if self._db is not None:
            row = self._db.execute("SELECT COUNT(*) FROM messages").fetchone()
            return row[0] if row else 0
        return len(self._entries)

    def _visible_locked(self, now: float) -> list[tuple[str, bytes, dict[str, str], int]]:
        if self._db is not None:
            rows = self._db.execute(
                "SELECT message_id, body, attributes, receive_count FROM messages "
                "WHERE visible_at <= ? ORDER BY seq",
                (now,),
            ).fetchall()
            return [
                (mid, bytes(body), json.loads(attrs), count)
                for mid, body, attrs, count in rows
            ]
        return [
            (mid, e.body, dict(e.attributes), e.receive_count)
            for mid, e in self._entries.items()
            if e.visible_at <= now
        ]

    def _mark_in_flight_locked(
        self, message_id: str, visible_at: float, count: int, handle: str
    ) -> None:
        if self._db is not None:
            self._db.execute(
                "UPDATE messages SET visible_at = ?, receive_count = ?, receipt_handle = ? "
                "WHERE message_id = ?",
                (visible_at, count, handle, message_id),
            )
            self._db.commit()
            return
        entry = self._entries[message_id]
        entry.visible_at = visible_at
        entry.receive_count = count
        entry.receipt_handle = handle

    def _delete_locked(self, message_id: str) -> None:
        if self._db is not None:
            self._db.execute("DELETE FROM messages WHERE message_id = ?", (message_id,))
            self._db.commit()
            return
        self._entries.pop(message_id, None)

    def _redrive(self, message_id: str, body: bytes, attrs: dict[str, str]) -> None:
        dead_letter = self._dead_letter
        if dead_letter is None:
            raise ConfigurationError(f"Queue {self._name}: no dead_letter queue to redrive to")
        new_id = dead_letter.enqueue(body, attributes=attrs)
        logger.warning(
            "DurableQueue %s: message %s exceeded %d receives, moved to %s as %s.",
            self._name,
            message_id,
            self._max_receive_count,
            dead_letter.destination_name,
            new_id,
        )


def open_queue(url: str, **kwargs: Any) -> DurableQueue:
    """Build a ``DurableQueue`` from a queue URL.

    Supported forms: ``memory://<name>`` and ``sqlite:///<path>``.  Extra
    keyword arguments are forwarded to ``DurableQueue``.

    Raises
    ------
    ConfigurationError
        If the URL is empty or uses an unsupported scheme.
    """
    if not url:
        raise ConfigurationError("Queue URL must not be empty")

    scheme, sep, rest = url.partition("://")
    if not sep or not rest:
        raise ConfigurationError(f"Malformed queue URL: {url!r}")

    if scheme == "memory":
        return DurableQueue(rest, **kwargs)
    if scheme == "sqlite":
        path = Path(rest[1:] if rest.startswith("/") else rest)
        return DurableQueue(path.stem, db_path=path, **kwargs)

    raise ConfigurationError(f"Unsupported queue URL scheme {scheme!r} in {url!r}")
