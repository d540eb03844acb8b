"""
Tests for the collection stores the services and cascade engine build on.
"""
import uuid

import pytest

from vidora.models.models import Comment, LikeTarget, LikeTargetKind, Video, WatchHistoryEntry
from vidora.services.store.entity_store import (
    CommentStore, EntityStore, LikeStore, PageResult, PlaylistStore, VideoStore,
    WatchHistoryStore,
)


def test_page_result_arithmetic():
    assert PageResult(items=[1, 2], total_count=5, page=2, page_size=2).total_pages == 3
    assert PageResult(items=[1, 2], total_count=4, page=2, page_size=2).total_pages == 2
    assert PageResult(items=[], total_count=0, page=1, page_size=10).total_pages == 0


@pytest.mark.asyncio
async def test_single_document_operations(session_factory, seed):
    alice = await seed.user("alice")
    v = await seed.video(alice, title="Before")

    async with session_factory() as db:
        store = VideoStore(db)
        updated = await store.update_by_id(v.id, {"title": "After"})
        assert updated.title == "After"
        assert await store.update_by_id(uuid.uuid4(), {"title": "x"}) is None
        await db.commit()

    async with session_factory() as db:
        store = EntityStore(db, Video)
        assert (await store.find_by_id(v.id)).title == "After"
        assert await store.delete_by_id(v.id) is True
        assert await store.delete_by_id(v.id) is False
        await db.commit()


@pytest.mark.asyncio
async def test_find_and_delete_many(session_factory, seed):
    alice = await seed.user("alice")
    v1 = await seed.video(alice)
    v2 = await seed.video(alice)
    for text in ("a", "b", "c"):
        await seed.comment(v1, alice, text)
    await seed.comment(v2, alice, "other")

    async with session_factory() as db:
        store = CommentStore(db)
        found = await store.find(Comment.video_id == v1.id, order_by=[Comment.content])
        assert [c.content for c in found] == ["a", "b", "c"]
        assert sorted(await store.ids_for_video(v1.id)) == sorted(c.id for c in found)
        assert await store.delete_for_video(v1.id) == 3
        await db.commit()

    assert await seed.count(Comment) == 1


@pytest.mark.asyncio
async def test_like_target_queries(session_factory, seed):
    alice = await seed.user("alice")
    bob = await seed.user("bob")
    v = await seed.video(alice)
    c = await seed.comment(v, alice)
    await seed.like(alice, LikeTarget.video(v.id))
    await seed.like(bob, LikeTarget.video(v.id))
    await seed.like(bob, LikeTarget.comment(c.id))

    async with session_factory() as db:
        store = LikeStore(db)
        assert await store.count_for_target(LikeTarget.video(v.id)) == 2
        assert (await store.find_for(bob.id, LikeTarget.comment(c.id))) is not None
        assert (await store.find_for(alice.id, LikeTarget.comment(c.id))) is None
        # Kind is part of the match: a comment id never matches video likes
        assert await store.delete_for_targets(LikeTargetKind.VIDEO, [c.id]) == 0
        assert await store.delete_for_targets(LikeTargetKind.COMMENT, []) == 0
        assert await store.delete_for_targets(LikeTargetKind.COMMENT, [c.id]) == 1


@pytest.mark.asyncio
async def test_playlist_pull_removes_every_occurrence(session_factory, seed):
    alice = await seed.user("alice")
    v1 = await seed.video(alice)
    v2 = await seed.video(alice)
    playlist = await seed.playlist(alice, [v1, v2, v1])
    await seed.playlist(alice, [v2], name="Other")

    async with session_factory() as db:
        store = PlaylistStore(db)
        assert await store.ids_containing(v1.id) == [playlist.id]
        assert await store.pull_video(playlist.id, v1.id) == 2
        await db.commit()

    async with session_factory() as db:
        refreshed = await PlaylistStore(db).find_by_id(playlist.id)
        assert refreshed.video_ids == [v2.id]


@pytest.mark.asyncio
async def test_watch_history_set_semantics(session_factory, seed):
    alice = await seed.user("alice")
    v = await seed.video(alice)

    async with session_factory() as db:
        store = WatchHistoryStore(db)
        first = await store.add_to_set(alice.id, v.id)
        again = await store.add_to_set(alice.id, v.id)
        assert first.id == again.id
        await db.commit()

    async with session_factory() as db:
        store = WatchHistoryStore(db)
        assert await store.user_ids_containing(v.id) == [alice.id]
        assert await store.pull_video(alice.id, v.id) == 1
        await db.commit()

    assert await seed.count(WatchHistoryEntry) == 0
