"""
Shared request dependencies.
"""
from __future__ import annotations

import asyncio
import shutil
import tempfile
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, List, Optional

from fastapi import Header, Request, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from vidora.core.errors import InvalidArgument, parse_id
from vidora.services.comments.comment_service import CommentService
from vidora.services.likes.like_service import LikeService
from vidora.services.videos.video_service import VideoService


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """One session per request, committed on success."""
    async with request.app.state.session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_principal(x_user_id: Optional[str] = Header(None)) -> uuid.UUID:
    """The authenticated user id, forwarded by the auth layer as ``X-User-Id``."""
    if not x_user_id:
        raise InvalidArgument("Missing X-User-Id header.")
    return parse_id(x_user_id, "user_id")


async def get_optional_principal(x_user_id: Optional[str] = Header(None)) -> Optional[uuid.UUID]:
    return parse_id(x_user_id, "user_id") if x_user_id else None


def get_video_service(request: Request) -> VideoService:
    return request.app.state.video_service


def get_comment_service(request: Request) -> CommentService:
    return request.app.state.comment_service


def get_like_service(request: Request) -> LikeService:
    return request.app.state.like_service


def get_upload_dir(request: Request) -> Path:
    return Path(request.app.state.settings.upload_temp_dir)


def _copy_upload(upload: UploadFile, target: Path) -> None:
    upload.file.seek(0)
    with target.open("wb") as fh:
        shutil.copyfileobj(upload.file, fh, 1024 * 1024)


@asynccontextmanager
async def spooled_uploads(
    root: Path, *uploads: Optional[UploadFile],
) -> AsyncIterator[List[Optional[Path]]]:
    """Write uploads to a private temp dir for the media store; removed on exit."""
    root.mkdir(parents=True, exist_ok=True)
    work_dir = Path(tempfile.mkdtemp(prefix="vidora_", dir=root))
    try:
        paths: List[Optional[Path]] = []
        for upload in uploads:
            if upload is None or not upload.filename:
                paths.append(None)
                continue
            target = work_dir / f"{uuid.uuid4().hex}{Path(upload.filename).suffix.lower()}"
            await asyncio.to_thread(_copy_upload, upload, target)
            paths.append(target)
        yield paths
    finally:
        await asyncio.to_thread(shutil.rmtree, work_dir, ignore_errors=True)
