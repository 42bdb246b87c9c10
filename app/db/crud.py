"""CRUD utilities for database operations."""

import logging
from typing import Any

from sqlalchemy import exists, false, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased, selectinload

from app.db.models import Subscription, User, Video, WatchHistoryEntry

logger = logging.getLogger(__name__)


class DuplicateUserError(Exception):
    """Raised when a username or email is already taken by another user."""

    pass


async def get_user_by_id(db: AsyncSession, user_id: str) -> User | None:
    """Get a user by their ID."""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_profile(db: AsyncSession, user_id: str) -> User | None:
    """Get a user with their watch history entries loaded."""
    result = await db.execute(
        select(User)
        .options(selectinload(User.watch_history))
        .where(User.id == user_id)
    )
    return result.scalar_one_or_none()


async def update_account_details(
    db: AsyncSession,
    user_id: str,
    full_name: str,
    username: str,
    email: str,
) -> User | None:
    """Update a user's profile fields.

    Model validators run on assignment, so an invalid value raises ValueError
    before anything is flushed.

    Args:
        db: Database session
        user_id: The user's ID
        full_name: New display name
        username: New handle
        email: New email address

    Returns:
        The updated User, or None if the user doesn't exist

    Raises:
        ValueError: If a field fails validation
        DuplicateUserError: If the username or email belongs to another user
    """
    user = await get_user_by_id(db, user_id)
    if not user:
        return None

    try:
        user.full_name = full_name
        user.username = username
        user.email = email
        await db.commit()
    except ValueError:
        await db.rollback()
        raise
    except IntegrityError as e:
        await db.rollback()
        logger.info(f"Duplicate username/email for user_id={user_id}: {e.orig}")
        raise DuplicateUserError("username or email is already in use") from e

    return user


async def save_user(db: AsyncSession, user: User) -> User:
    """Flush pending attribute changes on a loaded user."""
    await db.commit()
    return user


async def get_channel_profile(
    db: AsyncSession, username: str, viewer_id: str | None
) -> dict[str, Any] | None:
    """Get a channel's public profile with subscription counts.

    Args:
        db: Database session
        username: Channel handle (matched lower-cased)
        viewer_id: The caller, used to compute isSubscribed

    Returns:
        Dict with fullName, username, avatar, coverImage, subscribersCount,
        subscribedCount and isSubscribed, or None if no such channel
    """
    # join: subscriptions where this user is the channel
    subscribers_count = (
        select(func.count(Subscription.id))
        .where(Subscription.channel_id == User.id)
        .correlate(User)
        .scalar_subquery()
    )
    # join: subscriptions where this user is the subscriber
    subscribed_count = (
        select(func.count(Subscription.id))
        .where(Subscription.subscriber_id == User.id)
        .correlate(User)
        .scalar_subquery()
    )
    if viewer_id:
        is_subscribed = (
            exists()
            .where(
                Subscription.channel_id == User.id,
                Subscription.subscriber_id == viewer_id,
            )
            .correlate(User)
        )
    else:
        is_subscribed = false()

    # match + project
    query = select(
        User.full_name,
        User.username,
        User.avatar,
        User.cover_image,
        subscribers_count.label("subscribers_count"),
        subscribed_count.label("subscribed_count"),
        is_subscribed.label("is_subscribed"),
    ).where(User.username == username.lower())

    row = (await db.execute(query)).one_or_none()
    if row is None:
        return None

    return {
        "fullName": row.full_name,
        "username": row.username,
        "avatar": row.avatar,
        "coverImage": row.cover_image,
        "subscribersCount": row.subscribers_count,
        "subscribedCount": row.subscribed_count,
        "isSubscribed": bool(row.is_subscribed),
    }


async def get_watch_history(
    db: AsyncSession, user_id: str
) -> list[dict[str, Any]] | None:
    """Get a user's watch history with each video's owner embedded.

    Entries come back in history order. Entries whose video no longer exists
    are dropped.

    Args:
        db: Database session
        user_id: The user's ID

    Returns:
        List of video dicts, or None if the user doesn't exist
    """
    # match
    found = await db.scalar(select(User.id).where(User.id == user_id))
    if found is None:
        return None

    # join videos, then each video's owner (public fields only)
    owner = aliased(User)
    query = (
        select(Video, owner.username, owner.full_name, owner.avatar)
        .join(WatchHistoryEntry, WatchHistoryEntry.video_id == Video.id)
        .outerjoin(owner, owner.id == Video.owner_id)
        .where(WatchHistoryEntry.user_id == user_id)
        .order_by(WatchHistoryEntry.position)
    )
    result = await db.execute(query)

    history = []
    for video, owner_username, owner_full_name, owner_avatar in result.all():
        history.append(
            {
                "id": video.id,
                "videoFile": video.video_file,
                "thumbnail": video.thumbnail,
                "title": video.title,
                "description": video.description,
                "duration": video.duration,
                "views": video.views,
                "isPublished": video.is_published,
                "createdAt": video.created_at.isoformat() if video.created_at else None,
                "updatedAt": video.updated_at.isoformat() if video.updated_at else None,
                # owner is flattened from a single-element join
                "owner": (
                    {
                        "username": owner_username,
                        "fullName": owner_full_name,
                        "avatar": owner_avatar,
                    }
                    if owner_username is not None
                    else None
                ),
            }
        )
    return history
