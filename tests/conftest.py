"""
signed-session: pytest fixtures and configuration.

Provides:
- Deterministic secret keys (base64, as emitted by the key generator)
- Settings instances isolated from the process environment
"""
import base64
import hashlib

import pytest

from signed_session.config import Settings

# =============================================================================
# Constants
# =============================================================================
SECRET_KEY = "/pQCobVcOc+ru0WVTx24+MlCL7fIAPcPTsgGqXvV8M0="
TEST_SEED = "2026-signed-session-test"


# =============================================================================
# Deterministic Key Generation
# =============================================================================
def deterministic_key(seed: str, index: int) -> str:
    """Derive a 32-byte base64 key from a seed, so failures are reproducible."""
    material = f"{seed}:{index}".encode()
    return base64.b64encode(hashlib.sha256(material).digest()).decode("ascii")


# =============================================================================
# Fixtures
# =============================================================================
@pytest.fixture
def secret_key() -> str:
    return SECRET_KEY


@pytest.fixture
def other_key() -> str:
    return deterministic_key(TEST_SEED, 1)


@pytest.fixture
def test_settings() -> Settings:
    """Settings with explicit values; cookies are not Secure so plain-http test clients keep them."""
    return Settings(
        _env_file=None,
        ENV="test",
        SESSION_SECRET_KEY=SECRET_KEY,
        COOKIE_SECURE=False,
    )
