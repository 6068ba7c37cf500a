"""Timing-safe equality for signatures.

Double HMAC verification: both inputs are HMAC'd under a key generated for this
single comparison, so the comparison runs over fixed-length digests whatever the
input lengths are and whatever the attacker controls.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets

_EPHEMERAL_KEY_BYTES = 32


def _to_bytes(value: str | bytes) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8", "surrogatepass")
    return bytes(value)


async def time_safe_compare(a: str | bytes, b: str | bytes) -> bool:
    """Return True iff ``a`` and ``b`` are byte-for-byte equal. Never raises."""
    buf_a = _to_bytes(a)
    buf_b = _to_bytes(b)

    key = secrets.token_bytes(_EPHEMERAL_KEY_BYTES)
    mac_a = hmac.new(key, buf_a, hashlib.sha256).digest()
    mac_b = hmac.new(key, buf_b, hashlib.sha256).digest()

    digests_equal = hmac.compare_digest(mac_a, mac_b)
    values_equal = hmac.compare_digest(buf_a, buf_b)
    return digests_equal and values_equal
