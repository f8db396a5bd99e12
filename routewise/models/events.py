"""Published events and the records that carry them through a broker.

An ``Event`` is immutable once published.  Its payload is kept as raw
bytes; consumers decide whether and how to parse it.
"""

from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from routewise.core.hasher import canonical_json_bytes
from routewise.errors import MalformedPayloadError


class Event(BaseModel):
    """A published event: classification attributes plus an opaque payload.

    ``payload`` accepts raw bytes, a string, or any JSON-serializable value.
    Non-bytes values are normalised to canonical JSON bytes on construction
    (strings are encoded as UTF-8 as-is, so a string payload is passed
    through unparsed).
    """

    model_config = ConfigDict(frozen=True)

    event_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    attributes: dict[str, str] = {}
    payload: bytes = b""
    published_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @field_validator("payload", mode="before")
    @classmethod
    def _normalise_payload(cls, value: Any) -> bytes:
        if isinstance(value, (bytes, bytearray)):
            return bytes(value)
        if isinstance(value, str):
            return value.encode("utf-8")
        return canonical_json_bytes(value)

    def attribute(self, key: str) -> str | None:
        """Return the attribute value for *key*, or ``None`` if absent."""
        return self.attributes.get(key)

    def payload_json(self) -> dict[str, Any]:
        """Parse the payload as a JSON object.

        Raises
        ------
        MalformedPayloadError
            If the payload is not valid UTF-8 JSON, or is valid JSON but
            not an object.
        """
        try:
            data = json.loads(self.payload.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise MalformedPayloadError(
                f"Event {self.event_id}: payload is not valid JSON: {exc}"
            ) from exc

        if not isinstance(data, dict):
            raise MalformedPayloadError(
                f"Event {self.event_id}: payload must be a JSON object, "
                f"got {type(data).__name__}"
            )
        return data


class RescueRecord(BaseModel):
    """A payload re-emitted to the secondary queue for remediation.

    The record is the full original payload; ``source_event_id`` is kept
    for log correlation only and is not part of the queued body.
    """

    model_config = ConfigDict(frozen=True)

    source_event_id: str
    payload: dict[str, Any]
    missing_field: str

    def to_message(self) -> bytes:
        """Serialize the payload as the secondary-queue message body."""
        return canonical_json_bytes(self.payload)
