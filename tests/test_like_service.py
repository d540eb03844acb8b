"""
Tests for LikeService and the Like target variant.
"""
import uuid

import pytest

from vidora.core.errors import InvalidArgument, NotFound
from vidora.models.models import Like, LikeTarget, LikeTargetKind


def test_like_requires_a_typed_target():
    with pytest.raises(TypeError):
        Like(liked_by=uuid.uuid4(), target=uuid.uuid4())


def test_like_target_round_trips_through_columns():
    comment_id = uuid.uuid4()
    like = Like(liked_by=uuid.uuid4(), target=LikeTarget.comment(comment_id))

    assert like.target_kind == LikeTargetKind.COMMENT
    assert like.target_id == comment_id
    assert like.target == LikeTarget(LikeTargetKind.COMMENT, comment_id)


@pytest.mark.asyncio
async def test_toggle_video_like_on_and_off(like_service, session_factory, seed):
    alice = await seed.user("alice")
    bob = await seed.user("bob")
    v = await seed.video(alice)

    async with session_factory() as db:
        assert await like_service.toggle_video_like(db, v.id, bob.id) == (True, 1)
    async with session_factory() as db:
        assert await like_service.toggle_video_like(db, v.id, alice.id) == (True, 2)
    async with session_factory() as db:
        assert await like_service.toggle_video_like(db, str(v.id), str(bob.id)) == (False, 1)

    assert await seed.count(Like) == 1


@pytest.mark.asyncio
async def test_video_and_comment_likes_are_separate(like_service, session_factory, seed):
    alice = await seed.user("alice")
    v = await seed.video(alice)
    c = await seed.comment(v, alice)

    async with session_factory() as db:
        await like_service.toggle_video_like(db, v.id, alice.id)
    async with session_factory() as db:
        liked, count = await like_service.toggle_comment_like(db, c.id, alice.id)

    assert (liked, count) == (True, 1)
    assert await seed.count(Like, Like.target_kind == LikeTargetKind.COMMENT) == 1
    assert await seed.count(Like, Like.target_kind == LikeTargetKind.VIDEO) == 1


@pytest.mark.asyncio
async def test_missing_target(like_service, session_factory, seed):
    alice = await seed.user("alice")
    async with session_factory() as db:
        with pytest.raises(NotFound):
            await like_service.toggle_comment_like(db, uuid.uuid4(), alice.id)
    assert await seed.count(Like) == 0


@pytest.mark.asyncio
async def test_malformed_ids(like_service, session_factory):
    async with session_factory() as db:
        with pytest.raises(InvalidArgument):
            await like_service.toggle_video_like(db, "nope", uuid.uuid4())
