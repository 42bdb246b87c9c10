"""User profile handlers."""

from .handlers import (
    change_password,
    get_channel_profile,
    get_current_user,
    get_watch_history,
    update_account_details,
    update_channel_images,
)

__all__ = [
    "change_password",
    "get_channel_profile",
    "get_current_user",
    "get_watch_history",
    "update_account_details",
    "update_channel_images",
]
