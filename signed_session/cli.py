"""Generate a secret key for signing session cookies.

Prints ``--bytes`` random bytes (default 32) encoded as base64, suitable for
SESSION_SECRET_KEY with any supported HMAC algorithm.
"""

import argparse
import base64
import logging
import secrets
import sys
from typing import Optional, Sequence

from signed_session.core.signer import MIN_SECRET_KEY_BYTES

logger = logging.getLogger(__name__)


def generate_secret_key(num_bytes: int = MIN_SECRET_KEY_BYTES) -> str:
    if num_bytes < MIN_SECRET_KEY_BYTES:
        raise ValueError(f"secret key must be at least {MIN_SECRET_KEY_BYTES} bytes")
    return base64.b64encode(secrets.token_bytes(num_bytes)).decode("ascii")


def main(argv: Optional[Sequence[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Generate a base64 secret key for signed session cookies")
    ap.add_argument(
        "--bytes",
        dest="num_bytes",
        type=int,
        default=MIN_SECRET_KEY_BYTES,
        help=f"Number of random bytes (min {MIN_SECRET_KEY_BYTES})",
    )
    ap.add_argument("--log-level", default="WARNING")
    args = ap.parse_args(argv)

    logging.basicConfig(level=args.log_level.upper(), format="%(levelname)s %(name)s: %(message)s")

    if args.num_bytes < MIN_SECRET_KEY_BYTES:
        ap.error(f"--bytes must be at least {MIN_SECRET_KEY_BYTES}")

    key = generate_secret_key(args.num_bytes)
    logger.debug("generated secret key bytes=%d", args.num_bytes)
    sys.stdout.write(key + "\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
