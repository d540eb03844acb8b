"""
Vidora Media Store — boundary to the binary asset store.

The content service never looks inside assets: it stores a local upload and
gets back ``{url, asset_id, duration}``, and later deletes by ``asset_id``.
``LocalMediaStore`` keeps assets on a filesystem volume served under
``media_base_url``; other backends implement the same two calls.
"""
from __future__ import annotations

import abc
import asyncio
import dataclasses
import json
import logging
import shutil
import subprocess
import uuid
from pathlib import Path
from typing import Iterable, List, Optional

from vidora.core.config import Settings, get_settings
from vidora.core.errors import InvalidArgument, UpstreamFailure
from vidora.models.models import MediaAsset

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class StoredAsset:
    url: str
    asset_id: str
    duration: Optional[float] = None

    def as_media_asset(self) -> MediaAsset:
        return MediaAsset(url=self.url, asset_id=self.asset_id)


class MediaStore(abc.ABC):
    """Abstract binary asset store."""

    @abc.abstractmethod
    async def store(self, local_path: str | Path) -> StoredAsset:
        """Persist a local file. Raises UpstreamFailure if the store rejects it."""

    @abc.abstractmethod
    async def delete(self, asset_id: str) -> bool:
        """Remove an asset. Returns False (never raises) when it could not be removed."""


async def discard_assets(store: MediaStore, asset_ids: Iterable[Optional[str]]) -> List[str]:
    """Delete assets concurrently, best-effort. Returns the ids that could not be deleted."""
    asset_ids = [a for a in asset_ids if a]
    if not asset_ids:
        return []
    results = await asyncio.gather(
        *(store.delete(a) for a in asset_ids), return_exceptions=True,
    )
    failed = []
    for asset_id, outcome in zip(asset_ids, results):
        if outcome is True:
            continue
        if isinstance(outcome, Exception):
            logger.warning(f"Asset delete raised for {asset_id}: {outcome}")
        else:
            logger.warning(f"Asset delete reported failure for {asset_id}")
        failed.append(asset_id)
    return failed


class LocalMediaStore(MediaStore):
    """
    Filesystem-backed media store.

    Each upload is copied to ``<root>/<asset_id>`` where ``asset_id`` is a
    fresh uuid hex plus the original suffix. Video durations are probed with
    ffprobe when it is available.
    """

    VIDEO_SUFFIXES = {".mp4", ".mkv", ".webm", ".mov", ".avi", ".m4v"}

    def __init__(
        self,
        root: str | Path,
        base_url: str,
        ffprobe_binary: str = "ffprobe",
        probe_timeout: int = 30,
    ):
        self._root = Path(root).resolve()
        self._base_url = base_url.rstrip("/")
        self._ffprobe = ffprobe_binary
        self._probe_timeout = probe_timeout

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "LocalMediaStore":
        settings = settings or get_settings()
        return cls(
            root=settings.media_root,
            base_url=settings.media_base_url,
            ffprobe_binary=settings.ffprobe_binary,
            probe_timeout=settings.ffprobe_timeout_seconds,
        )

    @property
    def root(self) -> Path:
        return self._root

    # ── Store ────────────────────────────────────────────────────────────

    async def store(self, local_path: str | Path) -> StoredAsset:
        return await asyncio.to_thread(self._store_sync, Path(local_path))

    def _store_sync(self, source: Path) -> StoredAsset:
        if not source.is_file():
            raise InvalidArgument("Upload file not found.", {"path": str(source)})

        asset_id = f"{uuid.uuid4().hex}{source.suffix.lower()}"
        target = self._root / asset_id
        try:
            self._root.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(source, target)
            size = target.stat().st_size
        except OSError as e:
            logger.error(f"Storing {source.name} failed: {e}")
            raise UpstreamFailure("Media store rejected the upload.", {"error": str(e)}) from e

        duration = None
        if target.suffix in self.VIDEO_SUFFIXES:
            duration = self._probe_duration(target)

        logger.info(f"Stored asset {asset_id} ({size} bytes)")
        return StoredAsset(url=f"{self._base_url}/{asset_id}", asset_id=asset_id, duration=duration)

    def _probe_duration(self, media_path: Path) -> Optional[float]:
        try:
            probe_out = subprocess.run(
                [
                    self._ffprobe, "-v", "quiet", "-print_format", "json",
                    "-show_format", str(media_path),
                ],
                capture_output=True, text=True, timeout=self._probe_timeout,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.warning(f"ffprobe unavailable for {media_path.name}: {e}")
            return None

        if probe_out.returncode != 0:
            return None
        try:
            probe = json.loads(probe_out.stdout or "{}")
            raw = probe.get("format", {}).get("duration")
            return round(float(raw), 3) if raw is not None else None
        except (ValueError, TypeError):
            return None

    # ── Delete ───────────────────────────────────────────────────────────

    async def delete(self, asset_id: str) -> bool:
        return await asyncio.to_thread(self._delete_sync, asset_id)

    def _delete_sync(self, asset_id: str) -> bool:
        target = (self._root / asset_id).resolve()
        if target.parent != self._root:
            logger.warning(f"Refusing to delete asset outside media root: {asset_id}")
            return False
        try:
            target.unlink()
        except FileNotFoundError:
            logger.warning(f"Asset already gone: {asset_id}")
            return False
        except OSError as e:
            logger.error(f"Asset delete failed for {asset_id}: {e}")
            return False
        logger.info(f"Deleted asset {asset_id}")
        return True
