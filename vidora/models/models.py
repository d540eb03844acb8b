"""
Vidora ORM Models — content data layer.

References between content entities (owner, video, like target, history and
playlist members) are plain indexed id columns, never foreign keys: the
cascade engine, not the database, owns their deletion lifecycle.
"""
from __future__ import annotations

import dataclasses
import enum
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import (
    Boolean, CheckConstraint, DateTime, Enum, Float, ForeignKey, Index,
    Integer, String, Text, UniqueConstraint, Uuid,
)
from sqlalchemy.orm import Mapped, composite, mapped_column, relationship

from vidora.core.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ═══════════════════════════════════════════════════════════════════════
# Value types
# ═══════════════════════════════════════════════════════════════════════

@dataclasses.dataclass
class MediaAsset:
    """An externally stored binary, referenced by public url + store id."""
    url: str
    asset_id: str


class LikeTargetKind(str, enum.Enum):
    VIDEO = "video"
    COMMENT = "comment"


@dataclasses.dataclass(frozen=True)
class LikeTarget:
    """The one thing a Like points at: a video XOR a comment."""
    kind: LikeTargetKind
    target_id: uuid.UUID

    @classmethod
    def video(cls, video_id: uuid.UUID) -> "LikeTarget":
        return cls(LikeTargetKind.VIDEO, video_id)

    @classmethod
    def comment(cls, comment_id: uuid.UUID) -> "LikeTarget":
        return cls(LikeTargetKind.COMMENT, comment_id)


# ═══════════════════════════════════════════════════════════════════════
# Users
# ═══════════════════════════════════════════════════════════════════════

class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    username: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    full_name: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    avatar_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    watch_history: Mapped[List["WatchHistoryEntry"]] = relationship(
        "WatchHistoryEntry", lazy="selectin", cascade="all, delete-orphan",
        order_by="WatchHistoryEntry.watched_at",
    )


class WatchHistoryEntry(Base):
    """One video in a user's watch history; at most one row per (user, video)."""
    __tablename__ = "watch_history"
    __table_args__ = (
        UniqueConstraint("user_id", "video_id", name="uq_watch_history_user_video"),
        Index("ix_watch_history_video", "video_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    video_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    watched_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


# ═══════════════════════════════════════════════════════════════════════
# Core Content Models
# ═══════════════════════════════════════════════════════════════════════

class Video(Base):
    __tablename__ = "videos"
    __table_args__ = (
        Index("ix_videos_owner", "owner_id"),
        Index("ix_videos_created_at", "created_at"),
        CheckConstraint(
            "video_file_asset_id <> thumbnail_asset_id", name="ck_videos_distinct_assets",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)

    title: Mapped[str] = mapped_column(String(512))
    description: Mapped[str] = mapped_column(Text)
    video_file: Mapped[MediaAsset] = composite(
        mapped_column("video_file_url", String(1024)),
        mapped_column("video_file_asset_id", String(256)),
    )
    thumbnail: Mapped[MediaAsset] = composite(
        mapped_column("thumbnail_url", String(1024)),
        mapped_column("thumbnail_asset_id", String(256)),
    )
    duration: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    is_published: Mapped[bool] = mapped_column(Boolean, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class Comment(Base):
    __tablename__ = "comments"
    __table_args__ = (
        Index("ix_comments_video_created", "video_id", "created_at"),
        Index("ix_comments_owner", "owner_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    video_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    owner_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    content: Mapped[str] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class Like(Base):
    """A user's like on a video or a comment (see ``LikeTarget``)."""
    __tablename__ = "likes"
    __table_args__ = (
        UniqueConstraint("liked_by", "target_kind", "target_id", name="uq_likes_user_target"),
        Index("ix_likes_target", "target_kind", "target_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    liked_by: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    target_kind: Mapped[LikeTargetKind] = mapped_column(Enum(LikeTargetKind), nullable=False)
    target_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    def __init__(self, *, liked_by: uuid.UUID, target: LikeTarget, **kwargs):
        if not isinstance(target, LikeTarget):
            raise TypeError(f"Like target must be a LikeTarget, got {type(target).__name__}")
        super().__init__(
            liked_by=liked_by, target_kind=target.kind, target_id=target.target_id, **kwargs
        )

    @property
    def target(self) -> LikeTarget:
        return LikeTarget(self.target_kind, self.target_id)


# ═══════════════════════════════════════════════════════════════════════
# Playlists
# ═══════════════════════════════════════════════════════════════════════

class Playlist(Base):
    """User playlist, an ordered collection of videos."""
    __tablename__ = "playlists"
    __table_args__ = (
        Index("ix_playlists_owner", "owner_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    name: Mapped[str] = mapped_column(String(256))
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    entries: Mapped[List["PlaylistEntry"]] = relationship(
        "PlaylistEntry", back_populates="playlist", lazy="selectin",
        cascade="all, delete-orphan", order_by="PlaylistEntry.position",
    )

    @property
    def video_ids(self) -> List[uuid.UUID]:
        return [e.video_id for e in self.entries]


class PlaylistEntry(Base):
    __tablename__ = "playlist_entries"
    __table_args__ = (
        Index("ix_playlist_entries_video", "video_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    playlist_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("playlists.id", ondelete="CASCADE"), index=True)
    video_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    position: Mapped[int] = mapped_column(Integer, default=0)
    added_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    playlist: Mapped["Playlist"] = relationship("Playlist", back_populates="entries")
