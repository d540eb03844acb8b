"""
Vidora Cascade Engine — referential integrity for video and comment deletion.

There are no cross-collection transactions. A deletion runs as:

  1. precondition fetch + ownership check (fail → NotFound / Forbidden, nothing touched)
  2. asset cleanup (videos only; best-effort)
  3. primary delete in its own unit of work (fail → UpstreamFailure, cascade aborted)
  4. snapshot of dependent ids (collect)
  5. independent fan-out steps, each in its own session and committed on its own (apply)

Fan-out steps are keyed only off ids captured before they start, so they can
run in any order and concurrently, bounded by ``cascade_max_concurrency``.
A failed step (any exception, not only database errors) is logged, counted
and reported; sibling steps still run and earlier steps are never rolled
back. Orphan references left by a failed step are not repaired automatically.
"""
from __future__ import annotations

import asyncio
import dataclasses
import logging
import time
import uuid
from typing import Any, Awaitable, Callable, Dict, List, Optional

from prometheus_client import Counter
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from vidora.core.config import get_settings
from vidora.core.errors import NotFound, UpstreamFailure, parse_id
from vidora.models.models import LikeTargetKind
from vidora.services.media.media_store import MediaStore, discard_assets
from vidora.services.ownership import require_owner
from vidora.services.store.entity_store import (
    CommentStore, LikeStore, PlaylistStore, VideoStore, WatchHistoryStore,
)

logger = logging.getLogger(__name__)

CASCADE_RUNS = Counter(
    "vidora_cascade_runs_total", "Cascading deletes started", ["entity"],
)
CASCADE_STEP_FAILURES = Counter(
    "vidora_cascade_step_failures_total", "Cascade steps that failed", ["entity", "step"],
)

StepWork = Callable[[AsyncSession], Awaitable[int]]


@dataclasses.dataclass
class CascadeReport:
    """Outcome of one cascading delete."""
    entity: str
    entity_id: str
    removed: Dict[str, int] = dataclasses.field(default_factory=dict)
    failed_steps: List[str] = dataclasses.field(default_factory=list)
    orphaned_assets: List[str] = dataclasses.field(default_factory=list)
    elapsed_ms: float = 0.0

    @property
    def complete(self) -> bool:
        return not self.failed_steps and not self.orphaned_assets

    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)


class CascadeEngine:
    """Deletes a video or comment together with everything that references it."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        media_store: MediaStore,
        max_concurrency: Optional[int] = None,
    ):
        self._session_factory = session_factory
        self._media = media_store
        self._max_concurrency = max(1, max_concurrency or get_settings().cascade_max_concurrency)

    # ── Video ────────────────────────────────────────────────────────────

    async def delete_video(self, video_id: Any, principal_id: Any) -> CascadeReport:
        video_id = parse_id(video_id, "video_id")
        started = time.monotonic()

        async with self._session_factory() as db:
            video = await VideoStore(db).find_by_id(video_id)
        if video is None:
            raise NotFound("Video not found.", {"video_id": str(video_id)})
        await require_owner(video, principal_id, action="delete")

        CASCADE_RUNS.labels("video").inc()
        report = CascadeReport(entity="video", entity_id=str(video_id))

        # Missing assets never block metadata cleanup
        report.orphaned_assets = await discard_assets(
            self._media, [video.video_file.asset_id, video.thumbnail.asset_id],
        )
        if report.orphaned_assets:
            CASCADE_STEP_FAILURES.labels("video", "assets").inc()
            logger.warning(f"Video {video_id}: assets not deleted: {report.orphaned_assets}")

        await self._delete_primary(report, lambda db: VideoStore(db).delete_by_id(video_id))

        comment_ids = await self._snapshot(
            report, "snapshot_comments", lambda db: CommentStore(db).ids_for_video(video_id),
        )

        steps: Dict[str, StepWork] = {
            "likes_on_video": lambda db: LikeStore(db).delete_for_targets(
                LikeTargetKind.VIDEO, [video_id]),
            "comments": lambda db: CommentStore(db).delete_for_video(video_id),
            "playlists": lambda db: self._pull_from_playlists(db, video_id),
            "watch_history": lambda db: self._pull_from_watch_history(db, video_id),
        }
        if comment_ids is not None:
            steps["likes_on_comments"] = lambda db: LikeStore(db).delete_for_targets(
                LikeTargetKind.COMMENT, comment_ids)
        else:
            report.failed_steps.append("likes_on_comments")

        await self._fan_out(report, steps)
        return self._finish(report, started)

    # ── Comment ──────────────────────────────────────────────────────────

    async def delete_comment(self, comment_id: Any, principal_id: Any) -> CascadeReport:
        comment_id = parse_id(comment_id, "comment_id")
        started = time.monotonic()

        async with self._session_factory() as db:
            comment = await CommentStore(db).find_by_id(comment_id)
        if comment is None:
            raise NotFound("Comment not found.", {"comment_id": str(comment_id)})
        await require_owner(comment, principal_id, action="delete")

        CASCADE_RUNS.labels("comment").inc()
        report = CascadeReport(entity="comment", entity_id=str(comment_id))

        await self._delete_primary(report, lambda db: CommentStore(db).delete_by_id(comment_id))
        await self._fan_out(report, {
            "likes_on_comment": lambda db: LikeStore(db).delete_for_targets(
                LikeTargetKind.COMMENT, [comment_id]),
        })
        return self._finish(report, started)

    # ── Steps ────────────────────────────────────────────────────────────

    async def _delete_primary(
        self, report: CascadeReport, work: Callable[[AsyncSession], Awaitable[bool]],
    ) -> None:
        try:
            async with self._session_factory() as db:
                deleted = await work(db)
                await db.commit()
        except Exception as e:
            CASCADE_STEP_FAILURES.labels(report.entity, "primary").inc()
            logger.error(f"Deleting {report.entity} {report.entity_id} failed, cascade aborted: {e}")
            raise UpstreamFailure(
                f"Something went wrong while deleting the {report.entity}.",
                {f"{report.entity}_id": report.entity_id},
            ) from e

        if not deleted:
            # Lost a race with another delete of the same row
            raise NotFound(
                f"{report.entity.capitalize()} not found.",
                {f"{report.entity}_id": report.entity_id},
            )
        report.removed[report.entity] = 1

    async def _snapshot(
        self, report: CascadeReport, name: str,
        work: Callable[[AsyncSession], Awaitable[List[uuid.UUID]]],
    ) -> Optional[List[uuid.UUID]]:
        try:
            async with self._session_factory() as db:
                return await work(db)
        except Exception as e:
            CASCADE_STEP_FAILURES.labels(report.entity, name).inc()
            logger.error(f"{report.entity} {report.entity_id}: {name} failed: {e}")
            report.failed_steps.append(name)
            return None

    async def _fan_out(self, report: CascadeReport, steps: Dict[str, StepWork]) -> None:
        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def run(name: str, work: StepWork) -> None:
            async with semaphore:
                try:
                    async with self._session_factory() as db:
                        count = await work(db)
                        await db.commit()
                except Exception as e:
                    CASCADE_STEP_FAILURES.labels(report.entity, name).inc()
                    logger.error(f"{report.entity} {report.entity_id}: step {name} failed: {e}")
                    report.failed_steps.append(name)
                    return
            report.removed[name] = count
            logger.debug(f"{report.entity} {report.entity_id}: step {name} removed {count}")

        await asyncio.gather(*(run(name, work) for name, work in steps.items()))

    @staticmethod
    async def _pull_from_playlists(db: AsyncSession, video_id: uuid.UUID) -> int:
        store = PlaylistStore(db)
        pulled = 0
        for playlist_id in await store.ids_containing(video_id):
            pulled += await store.pull_video(playlist_id, video_id)
            await db.commit()
        return pulled

    @staticmethod
    async def _pull_from_watch_history(db: AsyncSession, video_id: uuid.UUID) -> int:
        store = WatchHistoryStore(db)
        pulled = 0
        for user_id in await store.user_ids_containing(video_id):
            pulled += await store.pull_video(user_id, video_id)
            await db.commit()
        return pulled

    @staticmethod
    def _finish(report: CascadeReport, started: float) -> CascadeReport:
        report.elapsed_ms = round((time.monotonic() - started) * 1000, 2)
        if report.complete:
            logger.info(
                f"Deleted {report.entity} {report.entity_id}: removed={report.removed} "
                f"({report.elapsed_ms} ms)"
            )
        else:
            logger.warning(
                f"Deleted {report.entity} {report.entity_id} with partial cascade: "
                f"failed={report.failed_steps} orphaned_assets={report.orphaned_assets} "
                f"removed={report.removed}"
            )
        return report
