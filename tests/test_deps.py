"""
Tests for request dependencies that run outside a request.
"""
import asyncio
import io

import pytest
from fastapi import UploadFile

from vidora.api import deps
from vidora.api.deps import spooled_uploads


@pytest.mark.asyncio
async def test_spooled_uploads_copies_and_cleans_up(tmp_path):
    clip = UploadFile(file=io.BytesIO(b"frames"), filename="Clip.MP4")
    unnamed = UploadFile(file=io.BytesIO(b"ignored"), filename="")

    async with spooled_uploads(tmp_path / "uploads", clip, None, unnamed) as paths:
        video_path, missing, blank = paths
        assert video_path.suffix == ".mp4"
        assert video_path.read_bytes() == b"frames"
        assert missing is None
        assert blank is None
        work_dir = video_path.parent

    assert not work_dir.exists()
    assert (tmp_path / "uploads").exists()


@pytest.mark.asyncio
async def test_spooled_uploads_copy_runs_in_a_worker_thread(tmp_path, monkeypatch):
    offloaded = []
    real_to_thread = asyncio.to_thread

    async def recording_to_thread(func, *args, **kwargs):
        offloaded.append(func)
        return await real_to_thread(func, *args, **kwargs)

    monkeypatch.setattr(deps.asyncio, "to_thread", recording_to_thread)
    thumb = UploadFile(file=io.BytesIO(b"\x89PNG"), filename="thumb.png")

    async with spooled_uploads(tmp_path, thumb) as (path,):
        assert path.read_bytes() == b"\x89PNG"

    assert deps._copy_upload in offloaded


@pytest.mark.asyncio
async def test_spooled_uploads_removed_when_body_raises(tmp_path):
    clip = UploadFile(file=io.BytesIO(b"frames"), filename="clip.mp4")

    with pytest.raises(RuntimeError):
        async with spooled_uploads(tmp_path, clip) as (path,):
            work_dir = path.parent
            raise RuntimeError("handler failed")

    assert not work_dir.exists()
