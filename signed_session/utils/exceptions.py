from __future__ import annotations

from typing import Any, Optional

from signed_session.utils.error_codes import ERROR_MESSAGES, ErrorCode


def _normalize_error_code(value: ErrorCode | str | None) -> ErrorCode:
    if value is None:
        return ErrorCode.S004
    if isinstance(value, ErrorCode):
        return value
    try:
        return ErrorCode(str(value))
    except ValueError:
        return ErrorCode.S004


class SessionException(Exception):
    """Base exception for session token and cookie errors.

    Verification failures are never raised; see ``verify_session_string``.
    """

    def __init__(
        self,
        message: str | None = None,
        *,
        code: ErrorCode | str = ErrorCode.S004,
        details: Optional[dict[str, Any]] = None,
    ):
        normalized = _normalize_error_code(code)
        if message is None:
            message = ERROR_MESSAGES.get(normalized, ERROR_MESSAGES[ErrorCode.S004])

        self.message = message
        self.code = normalized.value
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": {"code": self.code, "message": self.message, "details": self.details}}


class EncodingError(SessionException):
    def __init__(self, message: str | None = None, *, details: Optional[dict[str, Any]] = None):
        super().__init__(message, code=ErrorCode.S001, details=details)


class DecodeError(SessionException):
    def __init__(self, message: str | None = None, *, details: Optional[dict[str, Any]] = None):
        super().__init__(message, code=ErrorCode.S002, details=details)


class InvalidArgumentError(SessionException):
    def __init__(self, message: str | None = None, *, details: Optional[dict[str, Any]] = None):
        super().__init__(message, code=ErrorCode.S003, details=details)
