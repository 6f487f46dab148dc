from __future__ import annotations

import secrets
import threading
import time
import uuid as _uuid

# Monotonic state for same-millisecond IDs (RFC 9562 Method 2)
_state_lock = threading.Lock()
_last_timestamp_ms = 0
_counter = 0

_USE_NATIVE = hasattr(_uuid, "uuid7")

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def uuid7() -> str:
    """Generate UUID v7 (time-ordered). Used as the request id of every call."""
    if _USE_NATIVE:
        return str(_uuid.uuid7())

    global _last_timestamp_ms, _counter

    with _state_lock:
        timestamp_ms = now_ms()

        if timestamp_ms == _last_timestamp_ms:
            _counter = (_counter + 1) & 0xFFF
        else:
            _counter = secrets.randbits(12)
            _last_timestamp_ms = timestamp_ms

        time_high = (timestamp_ms >> 16) & 0xFFFFFFFF
        time_low_and_version = ((timestamp_ms & 0xFFFF) << 16) | (7 << 12) | _counter
        variant_and_rand = (0b10 << 62) | secrets.randbits(62)

        uuid_int = (time_high << 96) | (time_low_and_version << 64) | variant_and_rand
        return str(_uuid.UUID(int=uuid_int))


def now_ms() -> int:
    return int(time.time() * 1000)


def base36(value: int) -> str:
    if value < 0:
        raise ValueError("base36 expects a non-negative integer")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


__all__ = ["base36", "now_ms", "uuid7"]
