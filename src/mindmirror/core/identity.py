"""Identity utilities.

- generate_blob_key: "video-<epoch ms>" keys for the local blob store
- generate_entry_id: opaque ids for journal entries
- sha256_bytes: payload checksums
"""

from __future__ import annotations

import hashlib
import threading
import time
import uuid

BLOB_KEY_PREFIX = "video-"

_key_lock = threading.Lock()
_last_key_ms = 0


def generate_blob_key(now_ms: int | None = None) -> str:
    """Generate a locally fresh blob key.

    Keys are "video-<epoch milliseconds>". Within one process keys are
    strictly increasing: a key requested in the same millisecond as the
    previous one is bumped forward. Nothing guarantees uniqueness across
    processes or devices.

    Args:
        now_ms: Override for the current time in milliseconds.

    Returns:
        Blob key string.
    """
    global _last_key_ms

    if now_ms is None:
        now_ms = int(time.time() * 1000)

    with _key_lock:
        if now_ms <= _last_key_ms:
            now_ms = _last_key_ms + 1
        _last_key_ms = now_ms

    return f"{BLOB_KEY_PREFIX}{now_ms}"


def generate_entry_id() -> str:
    """Generate a journal entry id (32 hex chars)."""
    return uuid.uuid4().hex


def sha256_bytes(data: bytes) -> str:
    """Compute SHA256 of an in-memory payload.

    Args:
        data: Payload bytes.

    Returns:
        64-character hex string.
    """
    return hashlib.sha256(data).hexdigest()
