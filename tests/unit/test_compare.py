import pytest

from signed_session.core.compare import time_safe_compare


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "a, b, expected",
    [
        ("abc", "abc", True),
        ("abc", "abd", False),
        ("abc", "abcd", False),
        ("", "", True),
        ("", "a", False),
        (b"abc", "abc", True),
        ("é", "é".encode("utf-8"), True),
        (b"\x00" * 32, b"\x00" * 31 + b"\x01", False),
    ],
)
async def test_time_safe_compare(a, b, expected):
    assert await time_safe_compare(a, b) is expected


@pytest.mark.asyncio
async def test_time_safe_compare_never_raises_on_odd_strings():
    assert await time_safe_compare("\ud800", "\ud800") is True
    assert await time_safe_compare("\ud800", "x") is False
