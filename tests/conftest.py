"""Shared fixtures for the VidTube API tests."""

import os
from pathlib import Path

os.environ.setdefault("VT_ACCESS_TOKEN_SECRET", "test-secret-key")

import pytest
import pytest_asyncio
from fastapi import FastAPI
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from app.api import health_router, users_router
from app.api.routes_users import limiter
from app.auth.dependencies import ACCESS_TOKEN_COOKIE, CallerContext
from app.auth.tokens import create_access_token
from app.db.models import Base, Subscription, User, Video, WatchHistoryEntry
from app.db.session import get_session
from app.envelope import register_exception_handlers
from app.media import MediaHost, UploadedAsset, get_media_host


class FakeMediaHost(MediaHost):
    """In-memory media host recording every call."""

    def __init__(self):
        self.uploads: list[tuple[str, str, str]] = []
        self.destroyed: list[str] = []
        self.fail_upload_folders: set[str] = set()
        self.fail_destroy = False

    async def upload(self, local_path, resource_type, folder):
        self.uploads.append((str(local_path), resource_type, folder))
        if folder in self.fail_upload_folders:
            return None
        n = len(self.uploads)
        return UploadedAsset(
            url=f"https://media.test/{folder}/new-{n}.png",
            public_id=f"{folder}/new-{n}",
        )

    async def destroy(self, public_id, resource_type="image"):
        self.destroyed.append(public_id)
        return not self.fail_destroy


@pytest.fixture(autouse=True)
def reset_rate_limits():
    """Keep rate limit counters from leaking between tests."""
    limiter.reset()
    yield


@pytest_asyncio.fixture
async def test_db():
    """Create an in-memory test database."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    sessionmaker = async_sessionmaker(engine, expire_on_commit=False)

    yield sessionmaker

    await engine.dispose()


@pytest_asyncio.fixture
async def test_user(test_db):
    """Create a test user with existing avatar and cover image."""
    async with test_db() as db:
        user = User(
            id="user-alice",
            username="alice",
            email="alice@example.com",
            full_name="Alice Liddell",
            password="wonderland",
            avatar="https://media.test/avatars/old.png",
            avatar_public_id="avatars/old",
            cover_image="https://media.test/coverImages/old.png",
            cover_image_public_id="coverImages/old",
            refresh_token="refresh-token-value",
        )
        db.add(user)
        await db.commit()
        await db.refresh(user)
    return user


@pytest_asyncio.fixture
async def other_user(test_db):
    """Create a second user without any images."""
    async with test_db() as db:
        user = User(
            id="user-bob",
            username="bob",
            email="bob@example.com",
            full_name="Bob Builder",
            password="canwefixit",
        )
        db.add(user)
        await db.commit()
        await db.refresh(user)
    return user


@pytest_asyncio.fixture
async def channel_graph(test_db, test_user, other_user):
    """Bob and Carol subscribe to Alice; Alice subscribes to Carol."""
    async with test_db() as db:
        carol = User(
            id="user-carol",
            username="carol",
            email="carol@example.com",
            full_name="Carol Singer",
            password="lalala",
        )
        db.add(carol)
        db.add_all(
            [
                Subscription(subscriber_id=other_user.id, channel_id=test_user.id),
                Subscription(subscriber_id=carol.id, channel_id=test_user.id),
                Subscription(subscriber_id=test_user.id, channel_id=carol.id),
            ]
        )
        await db.commit()
    return {"alice": test_user, "bob": other_user, "carol": carol}


@pytest_asyncio.fixture
async def watched_videos(test_db, test_user, other_user):
    """Three videos by Bob, watched by Alice in the order v3, v1, v2."""
    async with test_db() as db:
        videos = [
            Video(
                id=f"video-{i}",
                owner_id=other_user.id,
                title=f"Video {i}",
                description=f"Description {i}",
                video_file=f"https://media.test/videos/{i}.mp4",
                thumbnail=f"https://media.test/thumbnails/{i}.png",
                duration=60.0 * i,
                views=10 * i,
            )
            for i in (1, 2, 3)
        ]
        db.add_all(videos)
        db.add_all(
            [
                WatchHistoryEntry(user_id=test_user.id, video_id="video-3", position=0),
                WatchHistoryEntry(user_id=test_user.id, video_id="video-1", position=1),
                WatchHistoryEntry(user_id=test_user.id, video_id="video-2", position=2),
            ]
        )
        await db.commit()
    return ["video-3", "video-1", "video-2"]


@pytest.fixture
def alice(test_user):
    """Caller context for the test user."""
    return CallerContext(user_id=test_user.id, username=test_user.username)


@pytest.fixture
def media():
    """Fake media host."""
    return FakeMediaHost()


@pytest.fixture
def image_files(tmp_path: Path):
    """Two small staged image files."""
    avatar = tmp_path / "avatar.png"
    avatar.write_bytes(b"\x89PNG avatar")
    cover = tmp_path / "cover.png"
    cover.write_bytes(b"\x89PNG cover")
    return avatar, cover


def override_get_session(sessionmaker):
    """Create a dependency override for get_session."""

    async def _override():
        async with sessionmaker() as session:
            yield session

    return _override


@pytest_asyncio.fixture
async def test_app(test_db, media):
    """Create a test FastAPI app with the user router and envelope handlers."""
    app = FastAPI()
    app.state.limiter = limiter
    register_exception_handlers(app)
    app.include_router(health_router)
    app.include_router(users_router)
    app.dependency_overrides[get_session] = override_get_session(test_db)
    app.dependency_overrides[get_media_host] = lambda: media
    return app


@pytest.fixture
def auth_cookies(test_user):
    """Access token cookie for the test user."""
    return {ACCESS_TOKEN_COOKIE: create_access_token(test_user.id)}
