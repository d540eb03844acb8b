"""
Vidora Comment Service

Responsibilities:
  - Comment aggregation view: newest-first page of a video's comments, each
    with the author's public profile, like count and the viewer's liked flag
  - Add / update comments (video must exist at creation time)
  - Delete comments through the cascade engine (likes on the comment go too)
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy import literal, select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from vidora.core.config import Settings, get_settings
from vidora.core.errors import (
    NotFound, UpstreamFailure, parse_id, require_text, validate_pagination,
)
from vidora.models.models import Comment, Like, LikeTargetKind, User
from vidora.schemas.schemas import CommentOwnerSchema, CommentPage, CommentView
from vidora.services.cascade.cascade_engine import CascadeEngine, CascadeReport
from vidora.services.ownership import require_owner
from vidora.services.store.entity_store import CommentStore, VideoStore

logger = logging.getLogger(__name__)


class CommentService:
    """Comment view and ownership-gated comment mutations."""

    def __init__(self, cascade: CascadeEngine, settings: Optional[Settings] = None):
        self._cascade = cascade
        self._settings = settings or get_settings()

    # ── Aggregation View ─────────────────────────────────────────────────

    async def list_video_comments(
        self,
        db: AsyncSession,
        video_id: Any,
        viewer_id: Any = None,
        page: int = 1,
        page_size: int = 10,
    ) -> CommentPage:
        validate_pagination(page, page_size, self._settings.max_page_size)
        video_id = parse_id(video_id, "video_id")
        viewer = parse_id(viewer_id, "user_id") if viewer_id is not None else None

        if not await VideoStore(db).exists(video_id):
            raise NotFound("Video not found.", {"video_id": str(video_id)})

        comment_likes = (Like.target_kind == LikeTargetKind.COMMENT, Like.target_id == Comment.id)
        likes_count = (
            select(func.count(Like.id)).where(*comment_likes).scalar_subquery()
        )
        if viewer is not None:
            is_liked = select(Like.id).where(*comment_likes, Like.liked_by == viewer).exists()
        else:
            is_liked = literal(False)

        stmt = (
            select(
                Comment,
                User.username,
                User.avatar_url,
                likes_count.label("likes_count"),
                is_liked.label("is_liked"),
            )
            .outerjoin(User, User.id == Comment.owner_id)
            .where(Comment.video_id == video_id)
            .order_by(Comment.created_at.desc(), Comment.id.desc())
        )

        result = await CommentStore(db).paginate(stmt, page, page_size, scalars=False)
        items = []
        for comment, username, avatar_url, n_likes, liked in result.items:
            items.append(CommentView(
                id=str(comment.id),
                content=comment.content,
                created_at=comment.created_at,
                owner=CommentOwnerSchema(username=username, avatar_url=avatar_url) if username else None,
                likes_count=n_likes or 0,
                is_liked=bool(liked),
            ))

        return CommentPage(
            items=items,
            total_count=result.total_count,
            page=result.page,
            page_size=result.page_size,
            total_pages=result.total_pages,
        )

    # ── Mutations ────────────────────────────────────────────────────────

    async def add_comment(
        self, db: AsyncSession, video_id: Any, owner_id: Any, content: Optional[str],
    ) -> Comment:
        content = require_text(content, "content")
        video_id = parse_id(video_id, "video_id")
        owner = parse_id(owner_id, "owner_id")

        if not await VideoStore(db).exists(video_id):
            raise NotFound("Video not found.", {"video_id": str(video_id)})

        try:
            comment = await CommentStore(db).create(video_id=video_id, owner_id=owner, content=content)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise UpstreamFailure("Error creating comment.") from e

        logger.info(f"Comment {comment.id} added to video {video_id}")
        return comment

    async def update_comment(
        self, db: AsyncSession, comment_id: Any, principal_id: Any, content: Optional[str],
    ) -> Comment:
        content = require_text(content, "content")
        comment_id = parse_id(comment_id, "comment_id")

        store = CommentStore(db)
        comment = await store.find_by_id(comment_id)
        if comment is None:
            raise NotFound("Comment not found.", {"comment_id": str(comment_id)})
        await require_owner(comment, principal_id, action="update")

        try:
            comment = await store.update_by_id(comment_id, {"content": content})
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise UpstreamFailure("Something went wrong while updating the comment.") from e
        return comment

    async def delete_comment(self, comment_id: Any, principal_id: Any) -> CascadeReport:
        return await self._cascade.delete_comment(comment_id, principal_id)
