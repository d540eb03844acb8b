"""
Vidora API — Video routes.
"""
from __future__ import annotations

import uuid
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from vidora.api.deps import (
    get_db, get_optional_principal, get_principal, get_upload_dir, get_video_service,
    spooled_uploads,
)
from vidora.schemas.schemas import DeleteResponse, VideoPage, VideoSchema, video_schema
from vidora.services.videos.video_service import VideoService

router = APIRouter(prefix="/videos", tags=["Videos"])


@router.get("", response_model=VideoPage)
async def search_videos(
    owner_id: str,
    query: Optional[str] = None,
    page: int = 1,
    page_size: int = 10,
    sort_by: str = "created_at",
    sort_type: str = "desc",
    case_sensitive: Optional[bool] = None,
    db: AsyncSession = Depends(get_db),
    service: VideoService = Depends(get_video_service),
):
    """An owner's videos, filtered by title substring and paginated."""
    return await service.search_videos(
        db, owner_id, query=query, page=page, page_size=page_size,
        sort_by=sort_by, sort_type=sort_type, case_sensitive=case_sensitive,
    )


@router.post("", response_model=VideoSchema, status_code=201)
async def publish_video(
    title: str = Form(""),
    description: str = Form(""),
    video_file: Optional[UploadFile] = File(None),
    thumbnail: Optional[UploadFile] = File(None),
    upload_dir: Path = Depends(get_upload_dir),
    principal: uuid.UUID = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
    service: VideoService = Depends(get_video_service),
):
    async with spooled_uploads(upload_dir, video_file, thumbnail) as (video_path, thumbnail_path):
        video = await service.publish_video(
            db, principal, title, description, video_path, thumbnail_path,
        )
    return video_schema(video)


@router.get("/{video_id}", response_model=VideoSchema)
async def get_video(
    video_id: str,
    principal: Optional[uuid.UUID] = Depends(get_optional_principal),
    db: AsyncSession = Depends(get_db),
    service: VideoService = Depends(get_video_service),
):
    """Fetch a video and record it in the viewer's watch history."""
    return video_schema(await service.get_video(db, video_id, principal))


@router.patch("/{video_id}", response_model=VideoSchema)
async def update_video(
    video_id: str,
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    thumbnail: Optional[UploadFile] = File(None),
    upload_dir: Path = Depends(get_upload_dir),
    principal: uuid.UUID = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
    service: VideoService = Depends(get_video_service),
):
    async with spooled_uploads(upload_dir, thumbnail) as (thumbnail_path,):
        video = await service.update_video(
            db, video_id, principal,
            title=title, description=description, thumbnail_path=thumbnail_path,
        )
    return video_schema(video)


@router.delete("/{video_id}", response_model=DeleteResponse)
async def delete_video(
    video_id: str,
    principal: uuid.UUID = Depends(get_principal),
    service: VideoService = Depends(get_video_service),
):
    """Delete a video with its likes, comments, comment likes, playlist and history entries."""
    report = await service.delete_video(video_id, principal)
    return DeleteResponse(id=report.entity_id)


@router.patch("/{video_id}/toggle-publish", response_model=VideoSchema)
async def toggle_publish_status(
    video_id: str,
    principal: uuid.UUID = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
    service: VideoService = Depends(get_video_service),
):
    return video_schema(await service.toggle_publish_status(db, video_id, principal))
