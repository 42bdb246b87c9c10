"""Database module for the VidTube API."""

from app.db.models import Base, Subscription, User, Video, WatchHistoryEntry
from app.db.session import (
    dispose_engine,
    get_engine,
    get_session,
    get_sessionmaker,
    init_models,
)

__all__ = [
    "Base",
    "Subscription",
    "User",
    "Video",
    "WatchHistoryEntry",
    "dispose_engine",
    "get_session",
    "get_engine",
    "get_sessionmaker",
    "init_models",
]
