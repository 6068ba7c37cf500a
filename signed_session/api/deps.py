"""FastAPI helpers for the signed session cookie.

An invalid, tampered or unparsable cookie is treated exactly like a missing one.
"""

import logging
from typing import Any, Mapping, Optional

from fastapi import Depends, HTTPException, Request, Response, status

from signed_session.config import Settings, get_settings
from signed_session.core.cookie import create_cookie, rm_cookie, set_cookie
from signed_session.core.token import parse_session, verify_session_string
from signed_session.utils.exceptions import DecodeError

logger = logging.getLogger(__name__)


async def get_session_data(
    request: Request,
    cfg: Settings = Depends(get_settings),
) -> Optional[dict[str, Any]]:
    token = request.cookies.get(cfg.SESSION_COOKIE_NAME)
    if not token:
        return None

    if not await verify_session_string(token, cfg.SESSION_SECRET_KEY, algorithm=cfg.SESSION_ALGORITHM):
        return None

    try:
        return parse_session(token, algorithm=cfg.SESSION_ALGORITHM)
    except DecodeError as exc:
        # Signed by us but not a JSON object; nothing a client can act on.
        logger.warning("verified session could not be decoded code=%s", exc.code)
        return None


async def require_session(
    data: Optional[dict[str, Any]] = Depends(get_session_data),
) -> dict[str, Any]:
    if data is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="No valid session")
    return data


async def issue_session(response: Response, data: Mapping[str, Any], cfg: Settings) -> str:
    """Sign ``data`` and attach it to ``response`` as the session cookie."""
    cookie = await create_cookie(
        data,
        cfg.SESSION_SECRET_KEY,
        cfg.SESSION_COOKIE_NAME,
        cfg.cookie_options(),
        algorithm=cfg.SESSION_ALGORITHM,
    )
    set_cookie(cookie, response.headers)
    return cookie


def clear_session(response: Response, cfg: Settings) -> None:
    rm_cookie(response.headers, cfg.SESSION_COOKIE_NAME, cfg.cookie_options())
