"""
Vidora API — Like routes.
"""
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from vidora.api.deps import get_db, get_like_service, get_principal
from vidora.models.models import LikeTargetKind
from vidora.schemas.schemas import LikeToggleResponse
from vidora.services.likes.like_service import LikeService

router = APIRouter(prefix="/likes", tags=["Likes"])


@router.post("/videos/{video_id}", response_model=LikeToggleResponse)
async def toggle_video_like(
    video_id: str,
    principal: uuid.UUID = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
    service: LikeService = Depends(get_like_service),
):
    liked, count = await service.toggle_video_like(db, video_id, principal)
    return LikeToggleResponse(
        target_kind=LikeTargetKind.VIDEO.value, target_id=video_id, liked=liked, likes_count=count,
    )


@router.post("/comments/{comment_id}", response_model=LikeToggleResponse)
async def toggle_comment_like(
    comment_id: str,
    principal: uuid.UUID = Depends(get_principal),
    db: AsyncSession = Depends(get_db),
    service: LikeService = Depends(get_like_service),
):
    liked, count = await service.toggle_comment_like(db, comment_id, principal)
    return LikeToggleResponse(
        target_kind=LikeTargetKind.COMMENT.value, target_id=comment_id, liked=liked, likes_count=count,
    )
