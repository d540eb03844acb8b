"""
Vidora Like Service — toggle a user's like on a video or comment.
"""
from __future__ import annotations

import logging
from typing import Any, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from vidora.core.errors import Conflict, NotFound, UpstreamFailure, parse_id
from vidora.models.models import Like, LikeTarget, LikeTargetKind
from vidora.services.store.entity_store import CommentStore, LikeStore, VideoStore

logger = logging.getLogger(__name__)


class LikeService:
    """At most one Like per (user, target); a second toggle removes it."""

    async def toggle_like(
        self, db: AsyncSession, target: LikeTarget, principal_id: Any,
    ) -> Tuple[bool, int]:
        """Returns ``(liked, likes_count)`` after the toggle."""
        principal = parse_id(principal_id, "user_id")
        target_store = VideoStore(db) if target.kind == LikeTargetKind.VIDEO else CommentStore(db)
        if not await target_store.exists(target.target_id):
            raise NotFound(
                f"{target.kind.value.capitalize()} not found.",
                {f"{target.kind.value}_id": str(target.target_id)},
            )

        likes = LikeStore(db)
        existing = await likes.find_for(principal, target)
        try:
            if existing is not None:
                await likes.delete_by_id(existing.id)
                liked = False
            else:
                await likes.add(Like(liked_by=principal, target=target))
                liked = True
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            raise Conflict("Like was toggled concurrently; retry.") from e
        except SQLAlchemyError as e:
            await db.rollback()
            raise UpstreamFailure("Something went wrong while toggling the like.") from e

        return liked, await likes.count_for_target(target)

    async def toggle_video_like(self, db: AsyncSession, video_id: Any, principal_id: Any) -> Tuple[bool, int]:
        return await self.toggle_like(db, LikeTarget.video(parse_id(video_id, "video_id")), principal_id)

    async def toggle_comment_like(self, db: AsyncSession, comment_id: Any, principal_id: Any) -> Tuple[bool, int]:
        return await self.toggle_like(db, LikeTarget.comment(parse_id(comment_id, "comment_id")), principal_id)


like_service = LikeService()
