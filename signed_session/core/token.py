"""Session token codec.

Token format: ``<signature><payload>``
- signature: HMAC of the canonical JSON bytes, cookie-safe base64, no padding.
  Its length is fixed by the algorithm (27 for sha1, 43 for sha256, 86 for sha512)
  and is the only thing separating it from the payload.
- payload: base64url (no padding) of the canonical JSON bytes.

Lifecycle: created by ``create_session``, checked by ``verify_session_string``,
and only then decoded by ``parse_session``.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from typing import Any, Mapping, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from signed_session.core import signer
from signed_session.core.canonical import canonical_json
from signed_session.core.signer import DEFAULT_ALGORITHM, Algorithm
from signed_session.utils.exceptions import DecodeError
from signed_session.utils.observability import time_token_op
from signed_session.utils.result import Err, Ok, Result

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64url_decode(text: str) -> Result[bytes]:
    """Strict base64url decode.

    Rejects characters outside the alphabet, impossible lengths and non-canonical
    spellings (e.g. altered unused trailing bits), so every distinct payload
    string maps to distinct bytes.
    """
    if not text:
        return Err(DecodeError("Session payload is empty"))
    if len(text) % 4 == 1:
        return Err(DecodeError("Session payload has an invalid base64 length"))
    try:
        padded = text.encode("ascii") + b"=" * (-len(text) % 4)
        raw = base64.b64decode(padded, altchars=b"-_", validate=True)
    except (UnicodeEncodeError, binascii.Error) as exc:
        return Err(DecodeError("Session payload is not valid base64", details={"reason": str(exc)}))
    if _b64url_encode(raw) != text:
        return Err(DecodeError("Session payload is not canonical base64url"))
    return Ok(raw)


def encode_token(signature: str, payload: bytes) -> str:
    return signature + _b64url_encode(payload)


def decode_token(token: str, signature_length: int) -> tuple[str, str]:
    """Split a token into ``(signature, payload_b64)`` at the fixed signature offset.

    No character validation happens here.
    """
    return token[:signature_length], token[signature_length:]


async def create_session(
    data: Mapping[str, Any],
    key: str | bytes,
    *,
    algorithm: Algorithm | str = DEFAULT_ALGORITHM,
) -> str:
    """Create a new session token: signature + base64url(canonical JSON of ``data``).

    Raises EncodingError when ``data`` has no canonical JSON form.
    """
    payload = canonical_json(data)
    with time_token_op(logger, "session.create", algorithm=algorithm, payload_bytes=len(payload)):
        signature = await signer.sign(payload, key, algorithm)
    return encode_token(signature, payload)


async def verify_session_string(
    token: str,
    key: str | bytes,
    *,
    algorithm: Algorithm | str = DEFAULT_ALGORITHM,
) -> bool:
    """Return True if the token's signature is valid for its payload.

    A malformed token and a bad signature are indistinguishable: both give False.
    Configuration problems (undecodable key, unknown algorithm) still raise.
    """
    key_bytes = signer.decode_key(key)
    signature, payload_b64 = decode_token(token, signer.signature_length(algorithm))

    decoded = _b64url_decode(payload_b64)
    if isinstance(decoded, Err):
        logger.debug("session rejected reason=%s", decoded.error.code)
        return False

    with time_token_op(logger, "session.verify", algorithm=algorithm, payload_bytes=len(decoded.value)):
        valid = await signer.verify(key_bytes, decoded.value, signature, algorithm)
    if not valid:
        logger.debug("session rejected reason=signature")
    return valid


def _decode_payload(payload_b64: str) -> Any:
    decoded = _b64url_decode(payload_b64)
    if isinstance(decoded, Err):
        raise decoded.error
    try:
        return json.loads(decoded.value.decode("utf-8"))
    except UnicodeDecodeError as exc:
        raise DecodeError("Session payload is not valid UTF-8") from exc
    except json.JSONDecodeError as exc:
        raise DecodeError("Session payload is not valid JSON", details={"reason": exc.msg}) from exc


def parse_session(
    token: str,
    *,
    algorithm: Algorithm | str = DEFAULT_ALGORITHM,
    model: Optional[type[ModelT]] = None,
) -> dict[str, Any] | ModelT:
    """Decode the data carried by a token WITHOUT checking its signature.

    Only call this on tokens that already passed ``verify_session_string``: on an
    unverified token the result is attacker-controlled. Pass ``model`` to validate
    the payload shape with pydantic.

    Raises DecodeError on malformed base64, invalid JSON, a non-object payload, or
    a payload that does not validate against ``model``.
    """
    _, payload_b64 = decode_token(token, signer.signature_length(algorithm))
    data = _decode_payload(payload_b64)
    if not isinstance(data, dict):
        raise DecodeError(
            "Session payload must be a JSON object",
            details={"type": type(data).__name__},
        )
    if model is None:
        return data
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise DecodeError(
            "Session payload does not match the expected shape",
            details={"model": model.__name__, "errors": exc.error_count()},
        ) from exc
