import base64
import binascii
import logging
from typing import Any, ClassVar, FrozenSet, Literal, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from signed_session.core.cookie import (
    COOKIE_MAX_AGE_SPAN_DEFAULT,
    SESSION_COOKIE_NAME_DEFAULT,
    CookieOptions,
)
from signed_session.core.signer import (
    DEFAULT_ALGORITHM,
    MIN_SECRET_KEY_BYTES,
    Algorithm,
    resolve_algorithm,
)
from signed_session.utils.exceptions import InvalidArgumentError

_logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=True, extra="ignore"
    )

    # Session signing
    # NOTE: This default is intentionally insecure and must never be used outside dev/test.
    # base64 of b"dev-session-secret-change-me!!!!"
    DEFAULT_SESSION_SECRET_KEY: ClassVar[str] = "ZGV2LXNlc3Npb24tc2VjcmV0LWNoYW5nZS1tZSEhISE="
    SESSION_SECRET_KEY: str = DEFAULT_SESSION_SECRET_KEY
    # Tokens signed under one algorithm never verify under another.
    SESSION_ALGORITHM: Algorithm = DEFAULT_ALGORITHM
    SESSION_COOKIE_NAME: str = SESSION_COOKIE_NAME_DEFAULT

    # Session cookie attributes
    COOKIE_HTTPONLY: bool = True
    COOKIE_SECURE: bool = True
    COOKIE_SAMESITE: Literal["lax", "strict", "none"] = "lax"
    COOKIE_MAX_AGE_SPAN: int = COOKIE_MAX_AGE_SPAN_DEFAULT
    COOKIE_DOMAIN: Optional[str] = None
    COOKIE_PATH: str = "/"

    # Application
    LOG_LEVEL: str = "INFO"

    # Environment
    # Used for guardrails. Suggested values: dev|staging|prod.
    ENV: str = "dev"

    # --- Guardrails ---
    # Fail-fast on obviously insecure secrets outside dev/test.
    _SAFE_ENVS: ClassVar[FrozenSet[str]] = frozenset({"dev", "development", "test", "testing"})
    _UNSAFE_PLACEHOLDERS: ClassVar[FrozenSet[str]] = frozenset(
        {
            "change-me-in-production",
            "change-me",
            "changeme",
            "",
        }
    )

    @field_validator("SESSION_ALGORITHM", mode="before")
    @classmethod
    def _parse_algorithm(cls, value: Any) -> Any:
        if isinstance(value, str):
            try:
                return resolve_algorithm(value)
            except InvalidArgumentError as exc:
                raise ValueError(exc.message) from exc
        return value

    @field_validator("COOKIE_SAMESITE", mode="before")
    @classmethod
    def _lower_samesite(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value

    def model_post_init(self, __context: Any) -> None:
        # Runs on every Settings() instantiation (including module-level `settings = Settings()`).
        self._guardrail_session_secret()

    def _guardrail_session_secret(self) -> None:
        env = (self.ENV or "").strip().lower()
        secret = (self.SESSION_SECRET_KEY or "").strip()
        if env in self._SAFE_ENVS:
            if secret == self.DEFAULT_SESSION_SECRET_KEY:
                _logger.warning("Using the built-in development SESSION_SECRET_KEY (ENV=%s)", self.ENV)
            return

        if (
            secret == self.DEFAULT_SESSION_SECRET_KEY
            or secret.lower() in self._UNSAFE_PLACEHOLDERS
            or "change-me" in secret.lower()
        ):
            raise RuntimeError(
                "Refusing to start with an insecure default/placeholder SESSION_SECRET_KEY "
                f"outside dev/test. Got ENV={self.ENV!r}. "
                "Generate one with `signed-session-keygen`, or run with ENV=dev/test."
            )

        try:
            raw = base64.b64decode(secret.encode("ascii"), validate=True)
        except (binascii.Error, UnicodeEncodeError):
            raise RuntimeError("SESSION_SECRET_KEY must be base64-encoded.")

        if len(raw) < MIN_SECRET_KEY_BYTES:
            raise RuntimeError(
                f"SESSION_SECRET_KEY must decode to at least {MIN_SECRET_KEY_BYTES} bytes "
                f"(got {len(raw)})."
            )

    def cookie_options(self) -> CookieOptions:
        return CookieOptions(
            max_age=self.COOKIE_MAX_AGE_SPAN,
            domain=self.COOKIE_DOMAIN or None,
            path=self.COOKIE_PATH or None,
            http_only=self.COOKIE_HTTPONLY,
            secure=self.COOKIE_SECURE,
            same_site=self.COOKIE_SAMESITE,
        )


settings = Settings()


def get_settings() -> Settings:
    """Return the global settings instance.

    Provided as a callable for FastAPI Depends() and test mocking convenience.
    """
    return settings
