"""Set-Cookie formatting and parsing for session tokens.

serialize_cookie("session", "abc", CookieOptions(http_only=True))
    => "session=abc; HttpOnly"
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Any, Callable, Literal, Mapping, Optional, Union
from urllib.parse import quote, unquote

from starlette.datastructures import MutableHeaders

from signed_session.core.signer import DEFAULT_ALGORITHM, Algorithm
from signed_session.core.token import create_session
from signed_session.utils.exceptions import InvalidArgumentError

logger = logging.getLogger(__name__)

SESSION_COOKIE_NAME_DEFAULT = "session"
COOKIE_MAX_AGE_SPAN_DEFAULT = 60 * 60 * 24 * 7  # 1 week

_EXPIRED = datetime(1970, 1, 1, tzinfo=timezone.utc)

# field-content per RFC 7230 section 3.2:
#   field-content = field-vchar [ 1*( SP / HTAB ) field-vchar ]
#   field-vchar   = VCHAR / obs-text
#   obs-text      = %x80-FF
_FIELD_CONTENT_RE = re.compile(r"[\u0009\u0020-\u007e\u0080-\u00ff]+")

_LEADING_INT_RE = re.compile(r"\s*([+-]?\d+)")

SameSite = Union[bool, Literal["lax", "strict", "none"]]
Priority = Literal["low", "medium", "high"]

_SAME_SITE_ATTRS = {"lax": "Lax", "strict": "Strict", "none": "None"}
_PRIORITY_ATTRS = {"low": "Low", "medium": "Medium", "high": "High"}


@dataclass(frozen=True)
class CookieOptions:
    """Cookie attributes. Unset attributes are left out of the header."""

    max_age: Optional[int] = None
    domain: Optional[str] = None
    path: Optional[str] = None
    expires: Optional[datetime] = None
    http_only: bool = False
    secure: bool = False
    same_site: Optional[SameSite] = None
    priority: Optional[Priority] = None
    partitioned: bool = False

    @classmethod
    def session_defaults(cls) -> "CookieOptions":
        return cls(
            max_age=COOKIE_MAX_AGE_SPAN_DEFAULT,
            path="/",
            http_only=True,
            secure=True,
            same_site="lax",
        )


def _encode(value: str) -> str:
    # Same reserved set as JavaScript's encodeURIComponent.
    return quote(value, safe="!~*'()")


def _decode(value: str) -> str:
    return unquote(value, errors="strict") if "%" in value else value


def _is_field_content(value: str) -> bool:
    return _FIELD_CONTENT_RE.fullmatch(value) is not None


def serialize_cookie(
    name: str,
    value: str,
    options: Optional[CookieOptions] = None,
    *,
    encode: Optional[Callable[[str], str]] = None,
) -> str:
    """Serialize a name/value pair and its attributes into a Set-Cookie header value.

    Raises InvalidArgumentError when the name, value or an attribute cannot be
    carried in an HTTP header.
    """
    enc = encode if encode is not None else _encode
    if not callable(enc):
        raise InvalidArgumentError("option encode is invalid")

    if not isinstance(name, str) or not _is_field_content(name):
        raise InvalidArgumentError("argument name is invalid", details={"name": repr(name)})

    encoded = enc(value)
    if encoded and not _is_field_content(encoded):
        raise InvalidArgumentError("argument val is invalid")

    opts = options or CookieOptions()
    cookie = f"{name}={encoded}"

    if opts.max_age is not None:
        try:
            max_age = float(opts.max_age)
        except (TypeError, ValueError):
            raise InvalidArgumentError("option maxAge is invalid", details={"max_age": repr(opts.max_age)})
        if not math.isfinite(max_age):
            raise InvalidArgumentError("option maxAge is invalid", details={"max_age": repr(opts.max_age)})
        cookie += f"; Max-Age={math.floor(max_age)}"

    if opts.domain:
        if not _is_field_content(opts.domain):
            raise InvalidArgumentError("option domain is invalid", details={"domain": opts.domain})
        cookie += f"; Domain={opts.domain}"

    if opts.path:
        if not _is_field_content(opts.path):
            raise InvalidArgumentError("option path is invalid", details={"path": opts.path})
        cookie += f"; Path={opts.path}"

    if opts.expires is not None:
        if not isinstance(opts.expires, datetime):
            raise InvalidArgumentError("option expires is invalid", details={"expires": repr(opts.expires)})
        expires = opts.expires
        if expires.tzinfo is None:
            expires = expires.replace(tzinfo=timezone.utc)
        cookie += f"; Expires={format_datetime(expires.astimezone(timezone.utc), usegmt=True)}"

    if opts.http_only:
        cookie += "; HttpOnly"

    if opts.secure:
        cookie += "; Secure"

    if opts.partitioned:
        cookie += "; Partitioned"

    if opts.priority:
        priority = opts.priority.lower() if isinstance(opts.priority, str) else opts.priority
        attr = _PRIORITY_ATTRS.get(priority) if isinstance(priority, str) else None
        if attr is None:
            raise InvalidArgumentError("option priority is invalid", details={"priority": repr(opts.priority)})
        cookie += f"; Priority={attr}"

    if opts.same_site:
        if opts.same_site is True:
            attr = "Strict"
        elif isinstance(opts.same_site, str):
            attr = _SAME_SITE_ATTRS.get(opts.same_site.lower())
        else:
            attr = None
        if attr is None:
            raise InvalidArgumentError("option sameSite is invalid", details={"same_site": repr(opts.same_site)})
        cookie += f"; SameSite={attr}"

    return cookie


def parse_cookie(
    cookie: str,
    decode: Optional[Callable[[str], str]] = None,
    *,
    session_key: str = SESSION_COOKIE_NAME_DEFAULT,
) -> dict[str, str | bool]:
    """Parse a Cookie / Set-Cookie header value into a flat mapping.

    ``name=value`` pairs map to the decoded value, bare attributes (HttpOnly,
    Secure, ...) map to True. ``session_key`` is always present, as an empty
    string when the header does not carry it.
    """
    dec = decode if decode is not None else _decode
    parsed: dict[str, str | bool] = {session_key: ""}
    for segment in cookie.split(";"):
        segment = segment.strip()
        if not segment:
            continue
        key, sep, raw = segment.partition("=")
        key = key.strip()
        if not sep:
            parsed[key] = True
            continue
        raw = raw.strip()
        try:
            parsed[key] = dec(raw)
        except (UnicodeDecodeError, ValueError):
            parsed[key] = raw
    return parsed


async def create_cookie(
    session_data: Mapping[str, Any],
    secret_key: str | bytes,
    name: Optional[str] = None,
    options: Optional[CookieOptions] = None,
    *,
    algorithm: Algorithm | str = DEFAULT_ALGORITHM,
) -> str:
    """Create a signed session token and return it as a Set-Cookie header value."""
    session = await create_session(session_data, secret_key, algorithm=algorithm)
    return serialize_cookie(
        name or SESSION_COOKIE_NAME_DEFAULT,
        session,
        options if options is not None else CookieOptions.session_defaults(),
    )


def set_cookie(cookie: str, headers: Optional[MutableHeaders] = None) -> MutableHeaders:
    """Set the Set-Cookie header on ``headers`` (or on new headers) and return them."""
    target = headers if headers is not None else MutableHeaders()
    target["set-cookie"] = cookie
    return target


def rm_cookie(
    headers: Optional[MutableHeaders] = None,
    name: str = SESSION_COOKIE_NAME_DEFAULT,
    options: Optional[CookieOptions] = None,
) -> MutableHeaders:
    """Replace the session cookie with an already-expired one."""
    base = options if options is not None else CookieOptions.session_defaults()
    expired = serialize_cookie(name, "", replace(base, max_age=0, expires=_EXPIRED))
    logger.debug("session cookie cleared name=%s", name)
    return set_cookie(expired, headers)


def get_cookie_options(env: Optional[Mapping[str, str]] = None) -> CookieOptions:
    """Build session cookie options from defaults and an explicit settings mapping.

    The mapping is supplied by the caller (e.g. ``dict(os.environ)``); it is never
    read from the process environment here.

    - ``COOKIE_HTTPONLY``: "0" drops the HttpOnly attribute.
    - ``COOKIE_SECURE``: "0" drops the Secure attribute.
    - ``COOKIE_SAMESITE``: "Strict", "None" or "Lax" (default).
    - ``COOKIE_MAX_AGE_SPAN``: lifetime in seconds, defaults to 7 days.
    - ``COOKIE_DOMAIN``: value of the Domain attribute, unset by default.
    - ``COOKIE_PATH``: value of the Path attribute, defaults to "/".
    """
    env = env or {}
    options = CookieOptions.session_defaults()

    if env.get("COOKIE_HTTPONLY") == "0":
        options = replace(options, http_only=False)

    if env.get("COOKIE_SECURE") == "0":
        options = replace(options, secure=False)

    same_site = env.get("COOKIE_SAMESITE")
    if same_site in ("Strict", "Lax", "None"):
        options = replace(options, same_site=same_site.lower())

    max_age_span = env.get("COOKIE_MAX_AGE_SPAN")
    if max_age_span:
        match = _LEADING_INT_RE.match(max_age_span)
        if match:
            options = replace(options, max_age=int(match.group(1)))

    if env.get("COOKIE_DOMAIN"):
        options = replace(options, domain=env["COOKIE_DOMAIN"])

    if env.get("COOKIE_PATH"):
        options = replace(options, path=env["COOKIE_PATH"])

    return options
