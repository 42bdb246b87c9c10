"""Tests for access tokens and the caller dependency."""

import pytest

from app.auth.dependencies import _extract_token, get_caller
from app.auth.tokens import create_access_token, verify_access_token
from app.envelope import ApiError


def test_token_round_trip():
    """Test that a freshly issued token yields its user id."""
    token = create_access_token("user-123")

    assert verify_access_token(token) == "user-123"


def test_expired_token_is_rejected():
    """Test that an expired token does not verify."""
    token = create_access_token("user-123", ttl_seconds=-10)

    assert verify_access_token(token) is None


def test_garbage_token_is_rejected():
    """Test that a malformed token does not verify."""
    assert verify_access_token("definitely.not.jwt") is None


@pytest.mark.parametrize(
    "cookie,header,expected",
    [
        ("cookie-token", "Bearer header-token", "cookie-token"),
        (None, "Bearer header-token", "header-token"),
        (None, "bearer header-token", "header-token"),
        (None, "Basic dXNlcjpwYXNz", None),
        (None, "Bearer ", None),
        (None, None, None),
    ],
)
def test_extract_token(cookie, header, expected):
    """Test that the cookie wins over the Authorization header."""
    assert _extract_token(cookie, header) == expected


@pytest.mark.asyncio
async def test_get_caller_returns_context(test_db, test_user):
    """Test that a valid token resolves to the caller context."""
    async with test_db() as db:
        caller = await get_caller(
            access_token=create_access_token(test_user.id), authorization=None, db=db
        )

    assert caller.user_id == "user-alice"
    assert caller.username == "alice"


@pytest.mark.asyncio
async def test_get_caller_without_token(test_db):
    """Test that a missing token is a 401."""
    async with test_db() as db:
        with pytest.raises(ApiError) as exc_info:
            await get_caller(access_token=None, authorization=None, db=db)

    assert exc_info.value.status == 401
