"""SQLAlchemy models for the VidTube API."""

import uuid
from datetime import datetime

from email_validator import EmailNotValidError, validate_email
from passlib.context import CryptContext
from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship, validates

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


def uid() -> str:
    """Generate a UUID string for primary keys."""
    return str(uuid.uuid4())


class User(Base):
    """Platform user; also acts as the channel other users subscribe to."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=uid)
    username: Mapped[str] = mapped_column(String, unique=True, index=True)
    email: Mapped[str] = mapped_column(String, unique=True, index=True)
    full_name: Mapped[str] = mapped_column(String, index=True)
    password: Mapped[str] = mapped_column(String)
    avatar: Mapped[str | None] = mapped_column(String, nullable=True)
    avatar_public_id: Mapped[str | None] = mapped_column(String, nullable=True)
    cover_image: Mapped[str | None] = mapped_column(String, nullable=True)
    cover_image_public_id: Mapped[str | None] = mapped_column(String, nullable=True)
    refresh_token: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )

    watch_history: Mapped[list["WatchHistoryEntry"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="WatchHistoryEntry.position",
    )

    @validates("username")
    def _normalize_username(self, key: str, value: str) -> str:
        value = (value or "").strip().lower()
        if not value:
            raise ValueError("username cannot be empty")
        return value

    @validates("email")
    def _normalize_email(self, key: str, value: str) -> str:
        value = (value or "").strip().lower()
        try:
            # Syntax only; no DNS lookups on assignment
            validated = validate_email(value, check_deliverability=False)
        except EmailNotValidError as e:
            raise ValueError(f"'{value}' is not a valid email address: {e}") from e
        return validated.normalized

    @validates("full_name")
    def _normalize_full_name(self, key: str, value: str) -> str:
        value = (value or "").strip()
        if not value:
            raise ValueError("fullName cannot be empty")
        return value

    @validates("password")
    def _hash_password(self, key: str, value: str) -> str:
        # Plaintext is hashed on assignment; rows loaded from the database
        # bypass validators and keep their stored hash.
        if not value:
            raise ValueError("password cannot be empty")
        return pwd_context.hash(value)

    def is_password_correct(self, password: str) -> bool:
        """Check a plaintext password against the stored hash."""
        if not password or not self.password:
            return False
        return pwd_context.verify(password, self.password)


class Subscription(Base):
    """A subscriber following a channel (both are users)."""

    __tablename__ = "subscriptions"
    __table_args__ = (UniqueConstraint("subscriber_id", "channel_id"),)

    id: Mapped[str] = mapped_column(String, primary_key=True, default=uid)
    subscriber_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    channel_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())


class Video(Base):
    """An uploaded video owned by a user."""

    __tablename__ = "videos"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=uid)
    owner_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    title: Mapped[str] = mapped_column(String)
    description: Mapped[str] = mapped_column(Text, default="")
    video_file: Mapped[str] = mapped_column(String)
    thumbnail: Mapped[str] = mapped_column(String)
    duration: Mapped[float] = mapped_column(Float, default=0.0)
    views: Mapped[int] = mapped_column(Integer, default=0)
    is_published: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )


class WatchHistoryEntry(Base):
    """One slot in a user's ordered watch history."""

    __tablename__ = "watch_history"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=uid)
    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), index=True
    )
    video_id: Mapped[str] = mapped_column(
        ForeignKey("videos.id", ondelete="CASCADE"), index=True
    )
    position: Mapped[int] = mapped_column(Integer)
    watched_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())

    user: Mapped["User"] = relationship(back_populates="watch_history")
