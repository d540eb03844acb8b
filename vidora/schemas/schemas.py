"""
Vidora API Schemas — Pydantic v2 models for request/response validation.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from vidora.models.models import Comment, Video


# ═══════════════════════════════════════════════════════════════════════
# Errors
# ═══════════════════════════════════════════════════════════════════════

class ErrorResponse(BaseModel):
    kind: str
    message: str
    details: Dict[str, Any] = {}


# ═══════════════════════════════════════════════════════════════════════
# Video
# ═══════════════════════════════════════════════════════════════════════

class MediaAssetSchema(BaseModel):
    url: str
    asset_id: str


class VideoSchema(BaseModel):
    id: str
    owner_id: str
    title: str
    description: str
    video_file: MediaAssetSchema
    thumbnail: MediaAssetSchema
    duration: Optional[float] = None
    is_published: bool = True
    created_at: datetime
    updated_at: Optional[datetime] = None


class VideoPage(BaseModel):
    items: List[VideoSchema]
    total_count: int
    page: int
    page_size: int
    total_pages: int = 0


# ═══════════════════════════════════════════════════════════════════════
# Comments
# ═══════════════════════════════════════════════════════════════════════

class CommentCreate(BaseModel):
    content: str = Field(..., max_length=5000)


class CommentUpdate(BaseModel):
    content: str = Field(..., max_length=5000)


class CommentSchema(BaseModel):
    id: str
    video_id: str
    owner_id: str
    content: str
    created_at: datetime
    updated_at: Optional[datetime] = None


class CommentOwnerSchema(BaseModel):
    """Public profile of a comment's author."""
    username: str
    avatar_url: Optional[str] = None


class CommentView(BaseModel):
    id: str
    content: str
    created_at: datetime
    owner: Optional[CommentOwnerSchema] = None
    likes_count: int = 0
    is_liked: bool = False


class CommentPage(BaseModel):
    items: List[CommentView]
    total_count: int
    page: int
    page_size: int
    total_pages: int = 0


# ═══════════════════════════════════════════════════════════════════════
# Likes / Deletes
# ═══════════════════════════════════════════════════════════════════════

class LikeToggleResponse(BaseModel):
    target_kind: str
    target_id: str
    liked: bool
    likes_count: int


class DeleteResponse(BaseModel):
    id: str
    status: str = "deleted"


# ═══════════════════════════════════════════════════════════════════════
# Converters
# ═══════════════════════════════════════════════════════════════════════

def video_schema(video: Video) -> VideoSchema:
    return VideoSchema(
        id=str(video.id),
        owner_id=str(video.owner_id),
        title=video.title,
        description=video.description,
        video_file=MediaAssetSchema(url=video.video_file.url, asset_id=video.video_file.asset_id),
        thumbnail=MediaAssetSchema(url=video.thumbnail.url, asset_id=video.thumbnail.asset_id),
        duration=video.duration,
        is_published=video.is_published,
        created_at=video.created_at,
        updated_at=video.updated_at,
    )


def comment_schema(comment: Comment) -> CommentSchema:
    return CommentSchema(
        id=str(comment.id),
        video_id=str(comment.video_id),
        owner_id=str(comment.owner_id),
        content=comment.content,
        created_at=comment.created_at,
        updated_at=comment.updated_at,
    )
