"""
Vidora Video Service — publish, view, update, toggle, delete and search videos.

Every write follows the same protocol: validate (no I/O) → speculative asset
upload, if any → fetch → NotFound → ownership guard → partial update →
commit. Speculative assets are deleted again on every rejection path so a
refused request leaves the media store with zero net new assets.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from vidora.core.config import Settings, get_settings
from vidora.core.errors import (
    InvalidArgument, NotFound, UpstreamFailure,
    parse_id, require_text, validate_pagination,
)
from vidora.models.models import Video
from vidora.schemas.schemas import VideoPage, video_schema
from vidora.services.cascade.cascade_engine import CascadeEngine, CascadeReport
from vidora.services.media.media_store import MediaStore, StoredAsset, discard_assets
from vidora.services.ownership import require_owner
from vidora.services.store.entity_store import UserStore, VideoStore, WatchHistoryStore

logger = logging.getLogger(__name__)

SORTABLE_COLUMNS = {
    "created_at": Video.created_at,
    "title": Video.title,
    "duration": Video.duration,
}


class VideoService:
    """Ownership-gated video lifecycle."""

    def __init__(
        self,
        media_store: MediaStore,
        cascade: CascadeEngine,
        settings: Optional[Settings] = None,
    ):
        self._media = media_store
        self._cascade = cascade
        self._settings = settings or get_settings()

    # ── Publish ──────────────────────────────────────────────────────────

    async def publish_video(
        self,
        db: AsyncSession,
        owner_id: Any,
        title: Optional[str],
        description: Optional[str],
        video_path: Optional[str | Path],
        thumbnail_path: Optional[str | Path],
    ) -> Video:
        title = require_text(title, "title")
        description = require_text(description, "description")
        owner = parse_id(owner_id, "owner_id")
        if not video_path:
            raise InvalidArgument("Video file not found.", {"field": "video_file"})
        if not thumbnail_path:
            raise InvalidArgument("Thumbnail file not found.", {"field": "thumbnail"})

        video_asset = await self._media.store(video_path)
        try:
            thumbnail_asset = await self._media.store(thumbnail_path)
        except Exception:
            await discard_assets(self._media, [video_asset.asset_id])
            raise

        try:
            video = await VideoStore(db).create(
                owner_id=owner,
                title=title,
                description=description,
                video_file=video_asset.as_media_asset(),
                thumbnail=thumbnail_asset.as_media_asset(),
                duration=video_asset.duration,
            )
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            await discard_assets(self._media, [video_asset.asset_id, thumbnail_asset.asset_id])
            logger.error(f"Video insert failed for owner {owner}: {e}")
            raise UpstreamFailure("Something went wrong while uploading the video.") from e
        except Exception:
            await discard_assets(self._media, [video_asset.asset_id, thumbnail_asset.asset_id])
            raise

        logger.info(f"Published video {video.id} for owner {owner}")
        return video

    # ── View ─────────────────────────────────────────────────────────────

    async def get_video(self, db: AsyncSession, video_id: Any, viewer_id: Any = None) -> Video:
        """Fetch a video; the viewer's watch history gains it (set semantics)."""
        video_id = parse_id(video_id, "video_id")
        viewer = parse_id(viewer_id, "user_id") if viewer_id is not None else None

        video = await VideoStore(db).find_by_id(video_id)
        if video is None:
            raise NotFound("Video not found.", {"video_id": str(video_id)})

        if viewer is not None:
            try:
                await WatchHistoryStore(db).add_to_set(viewer, video_id)
                await db.commit()
            except SQLAlchemyError as e:
                # The video is still served; only the history entry is lost
                await db.rollback()
                await db.refresh(video)
                logger.warning(f"Watch history update failed for user {viewer}: {e}")
        return video

    # ── Update ───────────────────────────────────────────────────────────

    async def update_video(
        self,
        db: AsyncSession,
        video_id: Any,
        principal_id: Any,
        title: Optional[str] = None,
        description: Optional[str] = None,
        thumbnail_path: Optional[str | Path] = None,
    ) -> Video:
        video_id = parse_id(video_id, "video_id")
        patch: Dict[str, Any] = {}
        if title is not None:
            patch["title"] = require_text(title, "title")
        if description is not None:
            patch["description"] = require_text(description, "description")
        if not patch and not thumbnail_path:
            raise InvalidArgument("Nothing to update.")

        new_thumbnail: Optional[StoredAsset] = None
        if thumbnail_path:
            new_thumbnail = await self._media.store(thumbnail_path)
        speculative = [new_thumbnail.asset_id] if new_thumbnail else []

        store = VideoStore(db)
        try:
            video = await store.find_by_id(video_id)
        except Exception:
            await discard_assets(self._media, speculative)
            raise
        if video is None:
            await discard_assets(self._media, speculative)
            raise NotFound("Video not found.", {"video_id": str(video_id)})
        await require_owner(video, principal_id, self._media, speculative, action="update")

        old_thumbnail_id = video.thumbnail.asset_id
        if new_thumbnail is not None:
            patch["thumbnail"] = new_thumbnail.as_media_asset()

        try:
            video = await store.update_by_id(video_id, patch)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            await discard_assets(self._media, speculative)
            raise UpstreamFailure("Something went wrong while updating the video.") from e
        except Exception:
            await discard_assets(self._media, speculative)
            raise

        if new_thumbnail is not None and await discard_assets(self._media, [old_thumbnail_id]):
            logger.warning(f"Video {video_id}: previous thumbnail {old_thumbnail_id} not deleted")

        logger.info(f"Updated video {video_id}: fields={sorted(patch)}")
        return video

    async def toggle_publish_status(self, db: AsyncSession, video_id: Any, principal_id: Any) -> Video:
        """
        Flip ``is_published`` relative to the fetched snapshot.

        There is no compare-and-swap: two concurrent toggles may both read the
        same value and cancel out to a single flip.
        """
        video_id = parse_id(video_id, "video_id")
        store = VideoStore(db)
        video = await store.find_by_id(video_id)
        if video is None:
            raise NotFound("Video not found.", {"video_id": str(video_id)})
        await require_owner(video, principal_id, action="toggle-publish")

        try:
            video = await store.update_by_id(video_id, {"is_published": not video.is_published})
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise UpstreamFailure("Something went wrong while toggling the video.") from e
        return video

    # ── Delete ───────────────────────────────────────────────────────────

    async def delete_video(self, video_id: Any, principal_id: Any) -> CascadeReport:
        return await self._cascade.delete_video(video_id, principal_id)

    # ── Search ───────────────────────────────────────────────────────────

    async def search_videos(
        self,
        db: AsyncSession,
        owner_id: Any,
        query: Optional[str] = None,
        page: int = 1,
        page_size: int = 10,
        sort_by: str = "created_at",
        sort_type: str = "desc",
        case_sensitive: Optional[bool] = None,
    ) -> VideoPage:
        """Owner's videos, optionally filtered by a title substring. Empty → empty page."""
        validate_pagination(page, page_size, self._settings.max_page_size)
        owner = parse_id(owner_id, "owner_id")
        if sort_by not in SORTABLE_COLUMNS:
            raise InvalidArgument("Invalid sort field.", {"sort_by": sort_by})
        if sort_type not in ("asc", "desc"):
            raise InvalidArgument("Invalid sort direction.", {"sort_type": sort_type})

        if not await UserStore(db).exists(owner):
            raise NotFound("User not found.", {"owner_id": str(owner)})

        stmt = select(Video).where(Video.owner_id == owner)
        if query and query.strip():
            needle = query.strip()
            if case_sensitive is None:
                case_sensitive = self._settings.search_case_sensitive
            if case_sensitive:
                stmt = stmt.where(Video.title.contains(needle, autoescape=True))
            else:
                stmt = stmt.where(Video.title.icontains(needle, autoescape=True))

        column = SORTABLE_COLUMNS[sort_by]
        stmt = stmt.order_by(column.asc() if sort_type == "asc" else column.desc(), Video.id)

        result = await VideoStore(db).paginate(stmt, page, page_size)
        return VideoPage(
            items=[video_schema(v) for v in result.items],
            total_count=result.total_count,
            page=result.page,
            page_size=result.page_size,
            total_pages=result.total_pages,
        )
