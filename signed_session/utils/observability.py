from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Iterator

from signed_session.core.signer import Algorithm, resolve_algorithm


@contextmanager
def time_token_op(
    logger: logging.Logger,
    operation: str,
    *,
    algorithm: Algorithm | str,
    payload_bytes: int,
) -> Iterator[None]:
    """Log the digest time of a token operation at DEBUG.

    Only sizes and the algorithm are logged, never key or token contents.
    """
    if not logger.isEnabledFor(logging.DEBUG):
        yield
        return

    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000.0
        logger.debug(
            "op=%s alg=%s payload_bytes=%d duration_ms=%.2f",
            operation,
            resolve_algorithm(algorithm).value,
            payload_bytes,
            elapsed_ms,
        )
