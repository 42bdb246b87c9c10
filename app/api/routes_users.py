"""User profile endpoints for the VidTube API."""

import logging
from pathlib import Path

from fastapi import APIRouter, Depends, File, Request, UploadFile
from pydantic import BaseModel, ConfigDict, Field
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncSession

from app import users
from app.api.uploads import stage_upload
from app.auth.dependencies import CallerContext, get_caller
from app.config import get_settings
from app.db.session import get_session
from app.media import MediaHost, get_media_host

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/users", tags=["users"])
limiter = Limiter(key_func=get_remote_address)


class AccountDetailsRequest(BaseModel):
    """Request model for updating profile fields."""

    model_config = ConfigDict(populate_by_name=True)

    full_name: str | None = Field(default=None, alias="fullName")
    username: str | None = None
    email: str | None = None


class ChangePasswordRequest(BaseModel):
    """Request model for changing the password."""

    model_config = ConfigDict(populate_by_name=True)

    current_password: str | None = Field(default=None, alias="currentPassword")
    new_password: str | None = Field(default=None, alias="newPassword")
    confirm_password: str | None = Field(default=None, alias="confirmPassword")


@router.get("/current-user")
@limiter.limit("120/minute")
async def get_current_user(
    request: Request,
    caller: CallerContext = Depends(get_caller),
    db: AsyncSession = Depends(get_session),
):
    """
    Get the current authenticated user's profile.

    Rate limit: 120 requests per minute per IP.
    """
    result = await users.get_current_user(db, caller)
    return result.to_body()


@router.patch("/update-account")
@limiter.limit("30/minute")
async def update_account_details(
    request: Request,
    body: AccountDetailsRequest,
    caller: CallerContext = Depends(get_caller),
    db: AsyncSession = Depends(get_session),
):
    """
    Update fullName, username and email of the current user.

    All three fields are required.

    Rate limit: 30 requests per minute per IP.
    """
    result = await users.update_account_details(
        db,
        caller,
        full_name=body.full_name,
        username=body.username,
        email=body.email,
    )
    return result.to_body()


@router.patch("/channel-images")
@limiter.limit("10/minute")
async def update_channel_images(
    request: Request,
    avatar: UploadFile | None = File(default=None),
    cover_image: UploadFile | None = File(default=None, alias="coverImage"),
    caller: CallerContext = Depends(get_caller),
    db: AsyncSession = Depends(get_session),
    media: MediaHost = Depends(get_media_host),
):
    """
    Replace the avatar and/or cover image of the current user.

    Accepts multipart fields ``avatar`` and ``coverImage``; at least one is
    required. Staged files are removed once the request is done.

    Rate limit: 10 requests per minute per IP.
    """
    settings = get_settings()
    staged: list[Path] = []
    try:
        avatar_path = None
        if avatar is not None and avatar.filename:
            avatar_path = await stage_upload(
                avatar, settings.upload_tmp_dir, settings.max_upload_bytes
            )
            staged.append(avatar_path)

        cover_image_path = None
        if cover_image is not None and cover_image.filename:
            cover_image_path = await stage_upload(
                cover_image, settings.upload_tmp_dir, settings.max_upload_bytes
            )
            staged.append(cover_image_path)

        result = await users.update_channel_images(
            db,
            caller,
            media,
            avatar_path=avatar_path,
            cover_image_path=cover_image_path,
        )
    finally:
        for path in staged:
            path.unlink(missing_ok=True)

    return result.to_body()


@router.post("/change-password")
@limiter.limit("10/minute")
async def change_password(
    request: Request,
    body: ChangePasswordRequest,
    caller: CallerContext = Depends(get_caller),
    db: AsyncSession = Depends(get_session),
):
    """
    Change the current user's password.

    Rate limit: 10 requests per minute per IP.
    """
    result = await users.change_password(
        db,
        caller,
        current_password=body.current_password,
        new_password=body.new_password,
        confirm_password=body.confirm_password,
    )
    return result.to_body()


@router.get("/c/{username}")
@limiter.limit("120/minute")
async def get_channel_profile(
    request: Request,
    username: str,
    caller: CallerContext = Depends(get_caller),
    db: AsyncSession = Depends(get_session),
):
    """
    Get a channel's profile with subscriber and subscription counts.

    Rate limit: 120 requests per minute per IP.
    """
    settings = get_settings()
    result = await users.get_channel_profile(
        db, caller, username, include_data=settings.channel_profile_include_data
    )
    return result.to_body()


@router.get("/history")
@limiter.limit("120/minute")
async def get_watch_history(
    request: Request,
    caller: CallerContext = Depends(get_caller),
    db: AsyncSession = Depends(get_session),
):
    """
    Get the current user's watched videos in history order.

    Rate limit: 120 requests per minute per IP.
    """
    result = await users.get_watch_history(db, caller)
    return result.to_body()
