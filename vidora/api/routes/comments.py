"""
Vidora API — Comment Routes

Endpoints for the comment view of a video and comment mutations.
"""
from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from vidora.api.deps import get_comment_service, get_db, get_optional_principal, get_principal
from vidora.schemas.schemas import (
    CommentCreate, CommentPage, CommentSchema, CommentUpdate, DeleteResponse, comment_schema,
)
from vidora.services.comments.comment_service import CommentService

router = APIRouter(prefix="/comments", tags=["Comments"])


@router.get("/{video_id}", response_model=CommentPage)
async def list_video_comments(
    video_id: str,
    page: int = 1,
    page_size: int = 10,
    principal: Optional[uuid.UUID] = Depends(get_optional_principal),
    db: AsyncSession = Depends(get_db),
    service: CommentService = Depends(get_comment_service),
):
    """Newest-first comments with author profile, like count and the caller's liked flag."""
    return await service.list_video_comments(db, video_id, principal, page=page, page_size=page_size)


@router.post("/{video_id}", response_model=CommentSchema, status_code=201)
async def add_comment(
    video_id: str,
    data: CommentCreate,
    principal: uuid.UUID = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
    service: CommentService = Depends(get_comment_service),
):
    return comment_schema(await service.add_comment(db, video_id, principal, data.content))


@router.patch("/c/{comment_id}", response_model=CommentSchema)
async def update_comment(
    comment_id: str,
    data: CommentUpdate,
    principal: uuid.UUID = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
    service: CommentService = Depends(get_comment_service),
):
    return comment_schema(await service.update_comment(db, comment_id, principal, data.content))


@router.delete("/c/{comment_id}", response_model=DeleteResponse)
async def delete_comment(
    comment_id: str,
    principal: uuid.UUID = Depends(get_principal),
    service: CommentService = Depends(get_comment_service),
):
    report = await service.delete_comment(comment_id, principal)
    return DeleteResponse(id=report.entity_id)
