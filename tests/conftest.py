"""
Shared fixtures for Vidora tests.

Every test gets its own sqlite database file (aiosqlite) and an in-memory
media store that records which assets are live, so tests can assert on
net-new assets after rejected mutations.
"""
from __future__ import annotations

import uuid
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set

import pytest
import pytest_asyncio
from sqlalchemy import func, select

from vidora.core.config import Settings
from vidora.core.database import build_engine, build_session_factory, init_db
from vidora.core.errors import UpstreamFailure
from vidora.models.models import (
    Comment, Like, LikeTarget, MediaAsset, Playlist, PlaylistEntry, User, Video,
    WatchHistoryEntry,
)
from vidora.services.cascade.cascade_engine import CascadeEngine
from vidora.services.comments.comment_service import CommentService
from vidora.services.likes.like_service import LikeService
from vidora.services.media.media_store import MediaStore, StoredAsset
from vidora.services.videos.video_service import VideoService


class FakeMediaStore(MediaStore):
    """In-memory asset store with failure switches."""

    def __init__(self):
        self.assets: Dict[str, str] = {}
        self.store_calls: List[str] = []
        self.delete_calls: List[str] = []
        self.fail_store_for: Set[str] = set()
        self.store_errors: Dict[str, Exception] = {}
        self.fail_delete_for: Set[str] = set()

    async def store(self, local_path) -> StoredAsset:
        path = Path(local_path)
        self.store_calls.append(str(path))
        if path.name in self.fail_store_for:
            raise UpstreamFailure("Media store rejected the upload.")
        if path.name in self.store_errors:
            raise self.store_errors[path.name]
        asset_id = f"{uuid.uuid4().hex}{path.suffix}"
        self.assets[asset_id] = str(path)
        duration = 42.0 if path.suffix == ".mp4" else None
        return StoredAsset(url=f"https://media.test/{asset_id}", asset_id=asset_id, duration=duration)

    async def delete(self, asset_id: str) -> bool:
        self.delete_calls.append(asset_id)
        if asset_id in self.fail_delete_for:
            return False
        return self.assets.pop(asset_id, None) is not None

    def put(self, asset_id: str) -> MediaAsset:
        self.assets[asset_id] = asset_id
        return MediaAsset(url=f"https://media.test/{asset_id}", asset_id=asset_id)

    @property
    def live(self) -> Set[str]:
        return set(self.assets)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        database_url_override=f"sqlite+aiosqlite:///{tmp_path / 'vidora.db'}",
        media_root=str(tmp_path / "media"),
        upload_temp_dir=str(tmp_path / "uploads"),
        cascade_max_concurrency=1,
        max_page_size=10,
        search_case_sensitive=False,
    )


@pytest_asyncio.fixture
async def engine(settings):
    eng = build_engine(settings)
    await init_db(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def media() -> FakeMediaStore:
    return FakeMediaStore()


@pytest.fixture
def cascade(session_factory, media) -> CascadeEngine:
    return CascadeEngine(session_factory, media, max_concurrency=1)


@pytest.fixture
def video_service(media, cascade, settings) -> VideoService:
    return VideoService(media, cascade, settings)


@pytest.fixture
def comment_service(cascade, settings) -> CommentService:
    return CommentService(cascade, settings)


@pytest.fixture
def like_service() -> LikeService:
    return LikeService()


# ── Seeding ──────────────────────────────────────────────────────────────

class Seeder:
    """Writes fixture rows directly, bypassing services."""

    def __init__(self, session_factory, media: FakeMediaStore):
        self._factory = session_factory
        self._media = media

    async def _add(self, *objs):
        async with self._factory() as db:
            db.add_all(objs)
            await db.commit()
        return objs[0] if len(objs) == 1 else objs

    async def user(self, username: str, avatar_url: Optional[str] = None) -> User:
        return await self._add(User(username=username, avatar_url=avatar_url))

    async def video(self, owner: User, title: str = "A video", is_published: bool = True) -> Video:
        tag = uuid.uuid4().hex[:8]
        return await self._add(Video(
            owner_id=owner.id,
            title=title,
            description="desc",
            video_file=self._media.put(f"file-{tag}.mp4"),
            thumbnail=self._media.put(f"thumb-{tag}.jpg"),
            duration=10.0,
            is_published=is_published,
        ))

    async def comment(self, video: Video, owner: User, content: str = "nice") -> Comment:
        return await self._add(Comment(video_id=video.id, owner_id=owner.id, content=content))

    async def like(self, user: User, target: LikeTarget) -> Like:
        return await self._add(Like(liked_by=user.id, target=target))

    async def playlist(self, owner: User, videos: Iterable[Video], name: str = "Favourites") -> Playlist:
        playlist = Playlist(owner_id=owner.id, name=name)
        playlist.entries = [
            PlaylistEntry(video_id=v.id, position=i) for i, v in enumerate(videos)
        ]
        return await self._add(playlist)

    async def history(self, user: User, videos: Iterable[Video]) -> None:
        await self._add(*[WatchHistoryEntry(user_id=user.id, video_id=v.id) for v in videos])

    async def count(self, model, *criteria) -> int:
        async with self._factory() as db:
            return await db.scalar(select(func.count()).select_from(model).where(*criteria)) or 0

    async def get(self, model, entity_id):
        async with self._factory() as db:
            return await db.get(model, entity_id)


@pytest.fixture
def seed(session_factory, media) -> Seeder:
    return Seeder(session_factory, media)
