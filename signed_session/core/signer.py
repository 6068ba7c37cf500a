"""HMAC signing for session tokens.

Signatures are the raw HMAC digest in base64 rewritten to a cookie-safe
alphabet: ``/`` -> ``_``, ``+`` -> ``-``, ``=`` padding stripped.

The signature length depends only on the digest size and is what the token
codec uses to split a token, so tokens signed with one algorithm can never be
parsed under another.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
from enum import Enum

from signed_session.core.compare import time_safe_compare
from signed_session.utils.exceptions import InvalidArgumentError


class Algorithm(str, Enum):
    SHA1 = "sha1"  # legacy tokens, 27-char signatures
    SHA256 = "sha256"
    SHA512 = "sha512"


DEFAULT_ALGORITHM = Algorithm.SHA256

# Recommended minimum; not enforced by the signer.
MIN_SECRET_KEY_BYTES = 32

_SIGNATURE_ALPHABET = str.maketrans({"/": "_", "+": "-", "=": None})


def resolve_algorithm(algorithm: Algorithm | str) -> Algorithm:
    if isinstance(algorithm, Algorithm):
        return algorithm
    try:
        return Algorithm(algorithm.strip().lower())
    except ValueError as exc:
        raise InvalidArgumentError(
            "Unsupported signing algorithm",
            details={"algorithm": algorithm, "supported": [a.value for a in Algorithm]},
        ) from exc


def digest_size(algorithm: Algorithm | str) -> int:
    return hashlib.new(resolve_algorithm(algorithm).value).digest_size


def signature_length(algorithm: Algorithm | str = DEFAULT_ALGORITHM) -> int:
    """Number of characters of an encoded signature (unpadded base64 of the digest)."""
    return (4 * digest_size(algorithm) + 2) // 3


def decode_key(key: str | bytes) -> bytes:
    """Return raw key bytes.

    ``bytes`` keys are used as-is. ``str`` keys are standard base64, as printed by
    the key generator. No minimum length is enforced here.
    """
    if isinstance(key, (bytes, bytearray)):
        return bytes(key)
    try:
        return base64.b64decode(key.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as exc:
        raise InvalidArgumentError("Secret key must be base64-encoded") from exc


def _encode_signature(digest: bytes) -> str:
    return base64.b64encode(digest).decode("ascii").translate(_SIGNATURE_ALPHABET)


async def sign(
    data: str | bytes,
    key: str | bytes,
    algorithm: Algorithm | str = DEFAULT_ALGORITHM,
) -> str:
    if isinstance(data, str):
        data = data.encode("utf-8")
    digest = hmac.new(decode_key(key), data, resolve_algorithm(algorithm).value).digest()
    return _encode_signature(digest)


async def verify(
    key: str | bytes,
    data: str | bytes,
    signature: str,
    algorithm: Algorithm | str = DEFAULT_ALGORITHM,
) -> bool:
    """Recompute the signature over ``data`` and compare it in constant time."""
    expected = await sign(data, key, algorithm)
    return await time_safe_compare(signature, expected)
