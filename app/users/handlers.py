"""User profile handlers: profile, images, password, channel and history.

Each handler receives an already-verified CallerContext and an open database
session, performs its reads/writes in order, and either returns an
ApiResponse or raises ApiError for the envelope layer to render.
"""

import logging
from pathlib import Path
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import CallerContext
from app.db import crud
from app.db.models import User
from app.envelope import ApiError, ApiResponse
from app.media import MediaHost

logger = logging.getLogger(__name__)

AVATAR_FOLDER = "avatars"
COVER_IMAGE_FOLDER = "coverImages"


def serialize_user(user: User) -> dict[str, Any]:
    """Public view of a user record; password and refresh token are never included."""
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "fullName": user.full_name,
        "avatar": user.avatar,
        "avatarPublicId": user.avatar_public_id,
        "coverImage": user.cover_image,
        "coverImagePublicId": user.cover_image_public_id,
        "watchHistory": [entry.video_id for entry in user.watch_history],
        "createdAt": user.created_at.isoformat() if user.created_at else None,
        "updatedAt": user.updated_at.isoformat() if user.updated_at else None,
    }


async def get_current_user(db: AsyncSession, caller: CallerContext) -> ApiResponse:
    """Return the caller's own profile."""
    user = await crud.get_user_profile(db, caller.user_id)
    if not user:
        raise ApiError(status=500, message="Unable to fetch user")

    return ApiResponse(
        status=200, message="User fetched successfully", data=serialize_user(user)
    )


async def update_account_details(
    db: AsyncSession,
    caller: CallerContext,
    full_name: str | None,
    username: str | None,
    email: str | None,
) -> ApiResponse:
    """
    Replace the caller's display name, handle and email.

    All three fields are required; the updated record is not echoed back.

    Raises:
        ApiError: 400 if a field is missing or invalid or the user is gone,
            409 if the username or email is taken
    """
    if not full_name or not username or not email:
        raise ApiError(
            status=400,
            message="All fields (i.e. fullName, username, email) are required",
        )

    try:
        user = await crud.update_account_details(
            db, caller.user_id, full_name=full_name, username=username, email=email
        )
    except ValueError as e:
        raise ApiError(status=400, message=str(e))
    except crud.DuplicateUserError as e:
        raise ApiError(status=409, message=str(e))

    if not user:
        raise ApiError(
            status=400, message="Unable to retrieve or update user account details"
        )

    logger.info(f"Account details updated: user_id={caller.user_id}")
    return ApiResponse(status=200, message="User account details updated successfully")


async def update_channel_images(
    db: AsyncSession,
    caller: CallerContext,
    media: MediaHost,
    avatar_path: str | Path | None = None,
    cover_image_path: str | Path | None = None,
) -> ApiResponse:
    """
    Replace the caller's avatar and/or cover image.

    New files are uploaded first and the record is saved only once every
    upload succeeded. Previous assets of the replaced slots are destroyed
    after the save; a failed destroy is reported as 500 although the record
    already points at the new images.

    Raises:
        ApiError: 400 if no file was given or an upload failed,
            500 if an old asset could not be destroyed
    """
    if not avatar_path and not cover_image_path:
        raise ApiError(
            status=400, message="no changes made by user for avatar and coverImage"
        )

    user = await crud.get_user_by_id(db, caller.user_id)
    if not user:
        raise ApiError(status=400, message="Unable to retrieve user")

    old_avatar_public_id = user.avatar_public_id
    old_cover_image_public_id = user.cover_image_public_id

    new_avatar = None
    if avatar_path:
        new_avatar = await media.upload(avatar_path, "image", AVATAR_FOLDER)
        if not new_avatar:
            raise ApiError(status=400, message="Unable to upload avatar")

    new_cover_image = None
    if cover_image_path:
        new_cover_image = await media.upload(cover_image_path, "image", COVER_IMAGE_FOLDER)
        if not new_cover_image:
            raise ApiError(status=400, message="Unable to upload cover image")

    if new_avatar:
        user.avatar = new_avatar.url
        user.avatar_public_id = new_avatar.public_id
    if new_cover_image:
        user.cover_image = new_cover_image.url
        user.cover_image_public_id = new_cover_image.public_id
    await crud.save_user(db, user)

    if new_avatar and old_avatar_public_id:
        if not await media.destroy(old_avatar_public_id):
            raise ApiError(status=500, message="Unable to delete old avatar")
    if new_cover_image and old_cover_image_public_id:
        if not await media.destroy(old_cover_image_public_id):
            raise ApiError(status=500, message="Unable to delete old cover image")

    logger.info(
        f"Channel images updated: user_id={caller.user_id}, "
        f"avatar={bool(new_avatar)}, cover_image={bool(new_cover_image)}"
    )
    return ApiResponse(status=200, message="Avatar and cover image updated successfully")


async def change_password(
    db: AsyncSession,
    caller: CallerContext,
    current_password: str | None,
    new_password: str | None,
    confirm_password: str | None,
) -> ApiResponse:
    """
    Change the caller's password after verifying the current one.

    Raises:
        ApiError: 400 if a field is missing, the current password is wrong,
            or the new passwords differ (checked in that order)
    """
    if not current_password or not new_password or not confirm_password:
        raise ApiError(status=400, message="All password fields are required")

    user = await crud.get_user_by_id(db, caller.user_id)
    if not user:
        raise ApiError(status=400, message="Unable to retrieve user")

    if not user.is_password_correct(current_password):
        raise ApiError(status=400, message="Current Password is incorrect")

    if new_password != confirm_password:
        raise ApiError(status=400, message="New passwords do not match")

    user.password = new_password
    await crud.save_user(db, user)

    logger.info(f"Password changed: user_id={caller.user_id}")
    return ApiResponse(status=200, message="Password changed successfully")


async def get_channel_profile(
    db: AsyncSession,
    caller: CallerContext,
    username: str,
    include_data: bool = False,
) -> ApiResponse:
    """
    Look up a channel by handle with its subscription counts.

    The projected profile is only placed in the response when include_data
    is set; historically this endpoint answered without a data payload.

    Raises:
        ApiError: 400 if no channel has this handle
    """
    channel = await crud.get_channel_profile(db, username.lower(), caller.user_id)
    if not channel:
        raise ApiError(status=400, message="Channel does not exists")

    return ApiResponse(
        status=200,
        message="Channel fetched successfully",
        data=channel if include_data else None,
    )


async def get_watch_history(db: AsyncSession, caller: CallerContext) -> ApiResponse:
    """
    Return the caller's watched videos in history order.

    Raises:
        ApiError: 500 if the caller's record has disappeared
    """
    history = await crud.get_watch_history(db, caller.user_id)
    if history is None:
        raise ApiError(status=500, message="Unable to fetch watch history")

    return ApiResponse(
        status=200, message="Watch history fetched successfully", data=history
    )
