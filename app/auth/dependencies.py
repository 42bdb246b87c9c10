"""FastAPI dependency resolving the authenticated caller."""

import logging
from dataclasses import dataclass
from typing import Annotated

from fastapi import Cookie, Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.tokens import verify_access_token
from app.db import crud
from app.db.session import get_session
from app.envelope import ApiError

logger = logging.getLogger(__name__)

ACCESS_TOKEN_COOKIE = "accessToken"


@dataclass(frozen=True)
class CallerContext:
    """Identity of an already-verified caller, passed into handlers."""

    user_id: str
    username: str


def _extract_token(cookie_token: str | None, authorization: str | None) -> str | None:
    if cookie_token:
        return cookie_token
    if authorization and authorization.lower().startswith("bearer "):
        return authorization[7:].strip() or None
    return None


async def get_caller(
    access_token: Annotated[str | None, Cookie(alias=ACCESS_TOKEN_COOKIE)] = None,
    authorization: Annotated[str | None, Header()] = None,
    db: AsyncSession = Depends(get_session),
) -> CallerContext:
    """
    FastAPI dependency that requires a valid authenticated caller.

    The token is read from the accessToken cookie, falling back to an
    ``Authorization: Bearer`` header.

    Returns:
        CallerContext for the authenticated user

    Raises:
        ApiError: 401 if the token is missing or invalid or the user is gone
    """
    token = _extract_token(access_token, authorization)
    if not token:
        raise ApiError(status=401, message="Unauthorized request")

    user_id = verify_access_token(token)
    if not user_id:
        raise ApiError(status=401, message="Invalid access token")

    user = await crud.get_user_by_id(db, user_id)
    if not user:
        logger.info(f"Access token for unknown user_id={user_id}")
        raise ApiError(status=401, message="Invalid access token")

    return CallerContext(user_id=user.id, username=user.username)
