"""
Vidora Entity Store — per-collection CRUD, query and pagination over an AsyncSession.

Stores never commit: the caller owns the unit of work. Bulk deletes bypass the
identity map (``synchronize_session=False``); callers that keep ORM objects
around across a bulk delete must not rely on them afterwards.
"""
from __future__ import annotations

import dataclasses
import math
import uuid
from datetime import datetime, timezone
from typing import Any, Generic, Iterable, List, Mapping, Optional, Sequence, Type, TypeVar

from sqlalchemy import Select, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from vidora.models.models import (
    Comment, Like, LikeTarget, LikeTargetKind, Playlist, PlaylistEntry, User,
    Video, WatchHistoryEntry,
)

ModelT = TypeVar("ModelT")
ItemT = TypeVar("ItemT")


@dataclasses.dataclass
class PageResult(Generic[ItemT]):
    items: List[ItemT]
    total_count: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.page_size) if self.page_size else 0


class EntityStore(Generic[ModelT]):
    """Generic collection access for one mapped model with an ``id`` primary key."""

    model: Type[ModelT]

    def __init__(self, db: AsyncSession, model: Optional[Type[ModelT]] = None):
        self.db = db
        if model is not None:
            self.model = model

    # ── Single document ──────────────────────────────────────────────────

    async def find_by_id(self, entity_id: uuid.UUID) -> Optional[ModelT]:
        return await self.db.get(self.model, entity_id)

    async def create(self, **fields: Any) -> ModelT:
        return await self.add(self.model(**fields))

    async def add(self, obj: ModelT) -> ModelT:
        self.db.add(obj)
        await self.db.flush()
        return obj

    async def update_by_id(self, entity_id: uuid.UUID, patch: Mapping[str, Any]) -> Optional[ModelT]:
        """Apply a ``$set``-style partial replacement; returns the updated row or None."""
        obj = await self.find_by_id(entity_id)
        if obj is None:
            return None
        for key, value in patch.items():
            setattr(obj, key, value)
        await self.db.flush()
        return obj

    async def delete_by_id(self, entity_id: uuid.UUID) -> bool:
        result = await self.db.execute(
            delete(self.model)
            .where(self.model.id == entity_id)
            .execution_options(synchronize_session=False)
        )
        return (result.rowcount or 0) > 0

    # ── Queries ──────────────────────────────────────────────────────────

    async def find(self, *criteria: Any, order_by: Sequence[Any] = ()) -> List[ModelT]:
        query = select(self.model).where(*criteria)
        if order_by:
            query = query.order_by(*order_by)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def find_ids(self, *criteria: Any) -> List[uuid.UUID]:
        result = await self.db.execute(select(self.model.id).where(*criteria))
        return list(result.scalars().all())

    async def exists(self, entity_id: uuid.UUID) -> bool:
        found = await self.db.scalar(select(self.model.id).where(self.model.id == entity_id))
        return found is not None

    async def count(self, *criteria: Any) -> int:
        return await self.db.scalar(
            select(func.count()).select_from(self.model).where(*criteria)
        ) or 0

    async def delete_many(self, *criteria: Any) -> int:
        result = await self.db.execute(
            delete(self.model).where(*criteria).execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def paginate(
        self, query: Select, page: int, page_size: int, scalars: bool = True,
    ) -> PageResult:
        """Run ``query`` for one page; ``total_count`` counts the unpaginated query."""
        total = await self.db.scalar(
            select(func.count()).select_from(query.order_by(None).subquery())
        ) or 0
        if total == 0:
            return PageResult(items=[], total_count=0, page=page, page_size=page_size)

        result = await self.db.execute(query.offset((page - 1) * page_size).limit(page_size))
        items = list(result.scalars().all()) if scalars else list(result.all())
        return PageResult(items=items, total_count=total, page=page, page_size=page_size)


# ═══════════════════════════════════════════════════════════════════════
# Collections
# ═══════════════════════════════════════════════════════════════════════

class UserStore(EntityStore[User]):
    model = User


class VideoStore(EntityStore[Video]):
    model = Video


class CommentStore(EntityStore[Comment]):
    model = Comment

    async def ids_for_video(self, video_id: uuid.UUID) -> List[uuid.UUID]:
        return await self.find_ids(Comment.video_id == video_id)

    async def delete_for_video(self, video_id: uuid.UUID) -> int:
        return await self.delete_many(Comment.video_id == video_id)


class LikeStore(EntityStore[Like]):
    model = Like

    async def find_for(self, liked_by: uuid.UUID, target: LikeTarget) -> Optional[Like]:
        matches = await self.find(
            Like.liked_by == liked_by,
            Like.target_kind == target.kind,
            Like.target_id == target.target_id,
        )
        return matches[0] if matches else None

    async def count_for_target(self, target: LikeTarget) -> int:
        return await self.count(Like.target_kind == target.kind, Like.target_id == target.target_id)

    async def delete_for_targets(self, kind: LikeTargetKind, target_ids: Iterable[uuid.UUID]) -> int:
        target_ids = list(target_ids)
        if not target_ids:
            return 0
        return await self.delete_many(Like.target_kind == kind, Like.target_id.in_(target_ids))


class PlaylistStore(EntityStore[Playlist]):
    model = Playlist

    async def ids_containing(self, video_id: uuid.UUID) -> List[uuid.UUID]:
        result = await self.db.execute(
            select(PlaylistEntry.playlist_id)
            .where(PlaylistEntry.video_id == video_id)
            .distinct()
        )
        return list(result.scalars().all())

    async def pull_video(self, playlist_id: uuid.UUID, video_id: uuid.UUID) -> int:
        """Remove every occurrence of ``video_id`` from one playlist."""
        result = await self.db.execute(
            delete(PlaylistEntry)
            .where(PlaylistEntry.playlist_id == playlist_id, PlaylistEntry.video_id == video_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0


class WatchHistoryStore(EntityStore[WatchHistoryEntry]):
    model = WatchHistoryEntry

    async def user_ids_containing(self, video_id: uuid.UUID) -> List[uuid.UUID]:
        result = await self.db.execute(
            select(WatchHistoryEntry.user_id)
            .where(WatchHistoryEntry.video_id == video_id)
            .distinct()
        )
        return list(result.scalars().all())

    async def pull_video(self, user_id: uuid.UUID, video_id: uuid.UUID) -> int:
        return await self.delete_many(
            WatchHistoryEntry.user_id == user_id, WatchHistoryEntry.video_id == video_id,
        )

    async def add_to_set(self, user_id: uuid.UUID, video_id: uuid.UUID) -> WatchHistoryEntry:
        """Insert (user, video) once; a repeat view only refreshes ``watched_at``."""
        matches = await self.find(
            WatchHistoryEntry.user_id == user_id, WatchHistoryEntry.video_id == video_id,
        )
        entry = matches[0] if matches else None
        if entry is None:
            entry = WatchHistoryEntry(user_id=user_id, video_id=video_id)
            self.db.add(entry)
        else:
            entry.watched_at = datetime.now(timezone.utc)
        await self.db.flush()
        return entry
