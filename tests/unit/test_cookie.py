from datetime import datetime, timedelta, timezone

import pytest
from starlette.datastructures import MutableHeaders

from signed_session.core.cookie import (
    COOKIE_MAX_AGE_SPAN_DEFAULT,
    CookieOptions,
    create_cookie,
    get_cookie_options,
    parse_cookie,
    rm_cookie,
    serialize_cookie,
    set_cookie,
)
from signed_session.core.token import parse_session, verify_session_string
from signed_session.utils.exceptions import InvalidArgumentError

SESSION_COOKIE = "session=abc; Max-Age=604800; Path=/; HttpOnly; Secure; SameSite=Lax"


def test_serialize_session_cookie():
    cookie = serialize_cookie(
        "session",
        "abc",
        CookieOptions(max_age=604800, path="/", http_only=True, secure=True, same_site="lax"),
    )

    assert cookie == SESSION_COOKIE


def test_serialize_without_options():
    assert serialize_cookie("foo", "bar") == "foo=bar"


def test_serialize_all_attributes_in_order():
    cookie = serialize_cookie(
        "sid",
        "v",
        CookieOptions(
            max_age=10.9,
            domain="example.com",
            path="/app",
            expires=datetime(2030, 5, 6, 7, 8, 9, tzinfo=timezone.utc),
            http_only=True,
            secure=True,
            partitioned=True,
            priority="HIGH",
            same_site=True,
        ),
    )

    assert cookie == (
        "sid=v; Max-Age=10; Domain=example.com; Path=/app; "
        "Expires=Mon, 06 May 2030 07:08:09 GMT; HttpOnly; Secure; Partitioned; "
        "Priority=High; SameSite=Strict"
    )


def test_serialize_converts_expires_to_gmt():
    cest = timezone(timedelta(hours=2))
    cookie = serialize_cookie("a", "b", CookieOptions(expires=datetime(2030, 1, 1, 2, 0, tzinfo=cest)))

    assert cookie == "a=b; Expires=Tue, 01 Jan 2030 00:00:00 GMT"


def test_serialize_url_encodes_value():
    assert serialize_cookie("a", "x y;z") == "a=x%20y%3Bz"


@pytest.mark.parametrize(
    "name, value, options, encode",
    [
        ("bad\nname", "v", None, None),
        ("session\n", "v", None, None),
        ("a", "v\n", None, lambda s: s),
        ("a", "v", CookieOptions(domain="example.com\n"), None),
        ("a", "v", CookieOptions(path="/\n"), None),
        ("", "v", None, None),
        ("a", "line\nbreak", None, lambda s: s),
        ("a", "v", CookieOptions(max_age=float("inf")), None),
        ("a", "v", CookieOptions(domain="exa\nmple.com"), None),
        ("a", "v", CookieOptions(path="/\x00"), None),
        ("a", "v", CookieOptions(expires="tomorrow"), None),
        ("a", "v", CookieOptions(priority="urgent"), None),
        ("a", "v", CookieOptions(same_site="sometimes"), None),
    ],
)
def test_serialize_rejects_invalid_input(name, value, options, encode):
    with pytest.raises(InvalidArgumentError) as exc_info:
        serialize_cookie(name, value, options, encode=encode)

    assert exc_info.value.code == "S003"


def test_parse_session_cookie():
    assert parse_cookie(SESSION_COOKIE) == {
        "session": "abc",
        "Max-Age": "604800",
        "Path": "/",
        "HttpOnly": True,
        "Secure": True,
        "SameSite": "Lax",
    }


def test_parse_always_carries_session_key():
    assert parse_cookie("other=1") == {"session": "", "other": "1"}
    assert parse_cookie("sid=tok; Path=/", session_key="sid") == {"sid": "tok", "Path": "/"}


def test_parse_decodes_values_and_keeps_equals_signs():
    parsed = parse_cookie("a=x%20y; b=k=v==; c=%E0%A4")

    assert parsed["a"] == "x y"
    assert parsed["b"] == "k=v=="
    # Undecodable percent escapes are returned as-is.
    assert parsed["c"] == "%E0%A4"


def test_parse_uses_custom_decoder():
    assert parse_cookie("a=b", decode=str.upper)["a"] == "B"


@pytest.mark.asyncio
async def test_create_cookie_round_trip(secret_key):
    cookie = await create_cookie({"hello": "world"}, secret_key)

    assert cookie.startswith("session=")
    assert cookie.endswith("; Max-Age=604800; Path=/; HttpOnly; Secure; SameSite=Lax")

    parsed = parse_cookie(cookie)
    assert await verify_session_string(parsed["session"], secret_key)
    assert parse_session(parsed["session"]) == {"hello": "world"}


@pytest.mark.asyncio
async def test_create_cookie_with_name_and_options(secret_key):
    cookie = await create_cookie({"a": 1}, secret_key, "sid", CookieOptions(path="/api"))

    assert cookie.startswith("sid=")
    assert cookie.endswith("; Path=/api")


@pytest.mark.asyncio
async def test_set_cookie_creates_or_patches_headers(secret_key):
    cookie = await create_cookie({"hello": "world"}, secret_key)

    headers = set_cookie(cookie)
    assert isinstance(headers, MutableHeaders)
    assert headers["set-cookie"] == cookie

    existing = MutableHeaders()
    assert set_cookie(cookie, existing) is existing
    assert parse_cookie(existing["set-cookie"])["session"]


def test_set_cookie_replaces_previous_value():
    headers = set_cookie("session=old")
    set_cookie("session=new", headers)

    assert headers.getlist("set-cookie") == ["session=new"]


def test_rm_cookie_sets_expired_marker():
    headers = set_cookie("session=abc; Path=/")

    result = rm_cookie(headers)

    assert result is headers
    cleared = headers["set-cookie"]
    assert cleared.startswith("session=; Max-Age=0; Path=/; ")
    assert "Expires=Thu, 01 Jan 1970 00:00:00 GMT" in cleared


def test_rm_cookie_without_headers():
    headers = rm_cookie(name="sid")

    assert headers["set-cookie"].startswith("sid=;")
    assert "01 Jan 1970 00:00:00" in headers["set-cookie"]


def test_cookie_options_defaults():
    assert get_cookie_options() == CookieOptions(
        max_age=COOKIE_MAX_AGE_SPAN_DEFAULT,
        path="/",
        http_only=True,
        secure=True,
        same_site="lax",
    )


def test_cookie_options_from_explicit_mapping():
    options = get_cookie_options(
        {
            "COOKIE_HTTPONLY": "0",
            "COOKIE_SECURE": "0",
            "COOKIE_SAMESITE": "Strict",
            "COOKIE_MAX_AGE_SPAN": "3600s",
            "COOKIE_DOMAIN": "example.com",
            "COOKIE_PATH": "/app",
        }
    )

    assert options == CookieOptions(
        max_age=3600,
        domain="example.com",
        path="/app",
        http_only=False,
        secure=False,
        same_site="strict",
    )


@pytest.mark.parametrize(
    "env",
    [
        {"COOKIE_SAMESITE": "lax"},
        {"COOKIE_SAMESITE": "sometimes"},
        {"COOKIE_MAX_AGE_SPAN": "forever"},
        {"COOKIE_HTTPONLY": "false"},
    ],
)
def test_cookie_options_ignore_unrecognized_values(env):
    assert get_cookie_options(env) == get_cookie_options()
