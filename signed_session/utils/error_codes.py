from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """Stable error codes for session token and cookie failures."""

    S001 = "S001"  # Encoding: payload is not canonically serializable
    S002 = "S002"  # Decode: token payload is not valid base64/JSON
    S003 = "S003"  # Validation: invalid argument (cookie field, key, option)
    S004 = "S004"  # Internal: internal error


ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.S001: "Session data cannot be encoded",
    ErrorCode.S002: "Session token cannot be decoded",
    ErrorCode.S003: "Invalid argument",
    ErrorCode.S004: "Internal error",
}
