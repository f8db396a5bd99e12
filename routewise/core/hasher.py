"""Canonical JSON helpers shared by queues and consumers.

Every message body that crosses a queue boundary is serialized the same
way so that duplicate deliveries of the same payload produce identical
bytes and identical digests.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any


def canonical_json_bytes(obj: Any) -> bytes:
    """Produce canonical JSON bytes — deterministic, sorted, compact.

    - sorted keys
    - no whitespace separators (",", ":")
    - ensure_ascii=True
    - UTF-8 encoding
    """
    return json.dumps(
        obj, sort_keys=True, separators=(",", ":"), ensure_ascii=True
    ).encode("utf-8")


def sha256_hex(data: bytes) -> str:
    """Return the SHA-256 hex digest of raw bytes."""
    return hashlib.sha256(data).hexdigest()


def body_digest(body: bytes) -> str:
    """Digest of a raw message body, in ``"sha256:<hex>"`` form.

    Used as the MD5-of-body equivalent on queue messages: two deliveries
    of the same payload carry the same digest even though their message
    ids differ.
    """
    return f"sha256:{sha256_hex(body)}"
