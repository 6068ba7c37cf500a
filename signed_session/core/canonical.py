from __future__ import annotations

import json
import math
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Mapping
from uuid import UUID

from signed_session.utils.exceptions import EncodingError

# Integral floats inside this range are emitted as JSON integers.
_MAX_SAFE_INTEGER = 2**53 - 1


def _format_decimal(value: Decimal) -> str:
    # Normalize to remove exponent and trailing zeros.
    q = value.normalize()
    s = format(q, "f")
    if "." in s:
        s = s.rstrip("0").rstrip(".")
    if s == "-0":
        s = "0"
    if "e" in s.lower():
        raise EncodingError(
            "Exponent notation is not allowed in canonical JSON",
            details={"value": str(value)},
        )
    return s


def _sort_key(item: tuple[str, Any]) -> bytes:
    # Object members are ordered by UTF-16 code units.
    return item[0].encode("utf-16-be")


def _check_text(value: str) -> str:
    # Lone surrogates have no UTF-8 form.
    try:
        value.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise EncodingError(
            "Strings must be valid Unicode in canonical JSON",
            details={"value": repr(value)},
        ) from exc
    return value


def _normalize(value: Any, seen: set[int]) -> Any:
    if value is None:
        return None

    if isinstance(value, Mapping):
        marker = id(value)
        if marker in seen:
            raise EncodingError("Circular reference is not allowed in canonical JSON")
        seen.add(marker)
        items: list[tuple[str, Any]] = []
        for k, v in value.items():
            if not isinstance(k, str):
                raise EncodingError(
                    "Object keys must be strings in canonical JSON",
                    details={"key": repr(k)},
                )
            items.append((_check_text(k), _normalize(v, seen)))
        seen.discard(marker)
        return {k: v for k, v in sorted(items, key=_sort_key)}

    if isinstance(value, (list, tuple)):
        marker = id(value)
        if marker in seen:
            raise EncodingError("Circular reference is not allowed in canonical JSON")
        seen.add(marker)
        out = [_normalize(v, seen) for v in value]
        seen.discard(marker)
        return out

    if isinstance(value, Decimal):
        if not value.is_finite():
            raise EncodingError(
                "Non-finite Decimal is not allowed in canonical JSON",
                details={"value": str(value)},
            )
        if "e" in str(value).lower():
            raise EncodingError(
                "Exponent notation is not allowed in canonical JSON",
                details={"value": str(value)},
            )
        return _format_decimal(value)

    if isinstance(value, UUID):
        return str(value)

    if isinstance(value, datetime):
        dt = value
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        dt = dt.astimezone(timezone.utc)
        return dt.isoformat().replace("+00:00", "Z")

    if isinstance(value, str):
        return _check_text(value)

    if isinstance(value, (bool, int)):
        return value

    if isinstance(value, float):
        if not math.isfinite(value):
            raise EncodingError(
                "Non-finite float is not allowed in canonical JSON",
                details={"value": repr(value)},
            )
        if value.is_integer() and abs(value) <= _MAX_SAFE_INTEGER:
            return int(value)
        return value

    raise EncodingError(
        "Unsupported type in canonical JSON",
        details={"type": type(value).__name__},
    )


def canonical_json(payload: Mapping[str, Any]) -> bytes:
    """Deterministic canonical JSON for signing.

    Rules:
    - object keys must be strings, sorted by UTF-16 code units
    - no extra whitespace
    - UTF-8, non-ASCII characters are not escaped
    - stable normalization for Decimal/UUID/datetime and integral floats

    Raises EncodingError for values that have no canonical form.
    """
    if not isinstance(payload, Mapping):
        raise EncodingError(
            "Session data must be a mapping",
            details={"type": type(payload).__name__},
        )
    normalized = _normalize(payload, set())
    return json.dumps(
        normalized,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    ).encode("utf-8")
