"""
Tests for the engagement ledger.

Covers the engage guard sequence (owner, per-post window, canonical window),
clips, collaborators, concurrent engages and storage failures.
"""

import asyncio
from datetime import timedelta
from types import SimpleNamespace

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from streamhouse.core.exceptions import (
    ForbiddenError,
    InvalidURLError,
    NotFoundError,
    SelfActionError,
    StorageUnavailableError,
)
from streamhouse.db.models import Clip, EngagementEvent, House, Post, PostCollaborator, User
from streamhouse.db.sqlite_adapter import SQLiteAdapter
from streamhouse.db.time import utcnow
from streamhouse.services.engagement_ledger import EngagementLedger


class LockedAdapter(SQLiteAdapter):
    """Adapter whose row lock always times out."""
    
    async def lock_user_for_ledger_write(self, session, user_id):
        raise OperationalError("SELECT ... FOR UPDATE", {}, Exception("database is locked"))


class ExplodingAdapter(SQLiteAdapter):
    """Adapter that fails the test if the ledger touches storage."""
    
    async def lock_user_for_ledger_write(self, session, user_id):
        raise AssertionError("storage consulted")


@pytest.fixture
async def cast(factory):
    owner = await factory.user("owner")
    viewer = await factory.user("viewer")
    house = await factory.house(owner)
    post = await factory.post(owner, house)
    return SimpleNamespace(owner=owner, viewer=viewer, house=house, post=post)


class TestEngage:
    
    @pytest.mark.asyncio
    async def test_repeat_engage_scores_once(self, session, cast, points_of, events_of):
        ledger = EngagementLedger(session)
        
        assert await ledger.record_engage_or_skip(cast.viewer.id, cast.post) is True
        assert await ledger.record_engage_or_skip(cast.viewer.id, cast.post) is False
        
        assert await events_of(session, cast.viewer.id, "engage") == 1
        assert await points_of(session, cast.viewer.id) == 1
    
    @pytest.mark.asyncio
    async def test_same_canonical_url_across_posts_scores_once(self, session, factory, cast, points_of, events_of):
        other_owner = await factory.user("other")
        other_house = await factory.house(other_owner)
        same_video = await factory.post(other_owner, other_house, url="https://youtu.be/abc123?t=5")
        assert same_video.canonical_url == cast.post.canonical_url
        
        ledger = EngagementLedger(session)
        assert await ledger.record_engage_or_skip(cast.viewer.id, cast.post) is True
        assert await ledger.record_engage_or_skip(cast.viewer.id, same_video) is False
        
        assert await events_of(session, cast.viewer.id, "engage") == 1
        assert await points_of(session, cast.viewer.id) == 1
    
    @pytest.mark.asyncio
    async def test_owner_never_scores(self, session, cast, points_of, events_of):
        ledger = EngagementLedger(session)
        
        for _ in range(3):
            assert await ledger.record_engage_or_skip(cast.owner.id, cast.post) is False
        
        assert await events_of(session, cast.owner.id) == 0
        assert await points_of(session, cast.owner.id) == 0
    
    @pytest.mark.asyncio
    async def test_owner_check_runs_before_storage(self, session, cast):
        ledger = EngagementLedger(session, adapter=ExplodingAdapter())
        assert await ledger.record_engage_or_skip(cast.owner.id, cast.post) is False
    
    @pytest.mark.asyncio
    async def test_unknown_actor_does_not_score(self, session, cast):
        ledger = EngagementLedger(session)
        assert await ledger.record_engage_or_skip("no-such-user", cast.post) is False
        
        count = (await session.execute(select(func.count(EngagementEvent.id)))).scalar_one()
        assert count == 0
    
    @pytest.mark.asyncio
    async def test_event_copies_post_fields(self, session, cast):
        await EngagementLedger(session).record_engage_or_skip(cast.viewer.id, cast.post)
        
        event = (await session.execute(select(EngagementEvent))).scalar_one()
        assert event.user_id == cast.viewer.id
        assert event.post_id == cast.post.id
        assert event.canonical_url == cast.post.canonical_url
        assert event.type == "engage"
        assert event.points == 1


class TestDedupWindows:
    
    @pytest.mark.asyncio
    async def test_canonical_window_outlasts_post_window(self, session, cast, points_of):
        ledger = EngagementLedger(session)
        t0 = utcnow()
        
        assert await ledger.record_engage_or_skip(cast.viewer.id, cast.post, now=t0)
        assert not await ledger.record_engage_or_skip(cast.viewer.id, cast.post, now=t0 + timedelta(hours=25))
        assert not await ledger.record_engage_or_skip(cast.viewer.id, cast.post, now=t0 + timedelta(days=7))
        assert await ledger.record_engage_or_skip(
            cast.viewer.id, cast.post, now=t0 + timedelta(days=7, seconds=1)
        )
        
        assert await points_of(session, cast.viewer.id) == 2
    
    @pytest.mark.asyncio
    async def test_post_window_alone(self, session, cast, points_of):
        """With the canonical window disabled, only the per-post window applies."""
        ledger = EngagementLedger(session, canonical_dedup_days=0)
        t0 = utcnow()
        
        assert await ledger.record_engage_or_skip(cast.viewer.id, cast.post, now=t0)
        assert not await ledger.record_engage_or_skip(cast.viewer.id, cast.post, now=t0 + timedelta(hours=23))
        # Window is inclusive at exactly ENGAGE_DEDUP_HOURS
        assert not await ledger.record_engage_or_skip(cast.viewer.id, cast.post, now=t0 + timedelta(hours=24))
        assert await ledger.record_engage_or_skip(
            cast.viewer.id, cast.post, now=t0 + timedelta(hours=24, seconds=1)
        )
        
        assert await points_of(session, cast.viewer.id) == 2
    
    @pytest.mark.asyncio
    async def test_windows_are_per_user(self, session, factory, cast, points_of):
        second_viewer = await factory.user("second")
        ledger = EngagementLedger(session)
        
        assert await ledger.record_engage_or_skip(cast.viewer.id, cast.post)
        assert await ledger.record_engage_or_skip(second_viewer.id, cast.post)
        
        assert await points_of(session, cast.viewer.id) == 1
        assert await points_of(session, second_viewer.id) == 1
    
    @pytest.mark.asyncio
    async def test_clip_events_do_not_block_engage(self, session, cast, points_of):
        ledger = EngagementLedger(session)
        await ledger.record_clip(cast.viewer.id, cast.post, "https://clips.example.com/1")
        
        assert await ledger.record_engage_or_skip(cast.viewer.id, cast.post)
        assert await points_of(session, cast.viewer.id) == 3


class TestClips:
    
    @pytest.mark.asyncio
    async def test_every_clip_scores(self, session, cast, points_of, events_of):
        ledger = EngagementLedger(session)
        
        first = await ledger.record_clip(cast.viewer.id, cast.post, "https://clips.example.com/1")
        second = await ledger.record_clip(cast.viewer.id, cast.post, "https://clips.example.com/1")
        
        assert first.id != second.id
        assert await events_of(session, cast.viewer.id, "clip") == 2
        assert await points_of(session, cast.viewer.id) == 4
        
        points = (await session.execute(
            select(EngagementEvent.points).where(EngagementEvent.type == "clip")
        )).scalars().all()
        assert points == [2, 2]
        
        clips = (await session.execute(select(func.count(Clip.id)))).scalar_one()
        assert clips == 2
    
    @pytest.mark.asyncio
    async def test_clipping_own_post_rejected(self, session, cast, events_of):
        with pytest.raises(SelfActionError):
            await EngagementLedger(session).record_clip(cast.owner.id, cast.post, "https://clips.example.com/1")
        assert await events_of(session, cast.owner.id) == 0
    
    @pytest.mark.asyncio
    async def test_invalid_clip_url_rejected(self, session, cast, events_of):
        with pytest.raises(InvalidURLError):
            await EngagementLedger(session).record_clip(cast.viewer.id, cast.post, "javascript:alert(1)")
        assert await events_of(session, cast.viewer.id) == 0
    
    @pytest.mark.asyncio
    async def test_unknown_clipper_rejected(self, session, cast):
        with pytest.raises(NotFoundError):
            await EngagementLedger(session).record_clip("no-such-user", cast.post, "https://clips.example.com/1")


class TestCollaborators:
    
    @pytest.mark.asyncio
    async def test_new_collaborators_credited_once(self, session, factory, cast, points_of, events_of):
        alice = await factory.user("alice")
        bob = await factory.user("bob")
        carol = await factory.user("carol")
        ledger = EngagementLedger(session)
        
        added = await ledger.record_collab(cast.owner.id, cast.post, [alice.id, bob.id, alice.id])
        assert added == [alice.id, bob.id]
        
        added = await ledger.record_collab(cast.owner.id, cast.post, [alice.id, carol.id])
        assert added == [carol.id]
        
        for user in (alice, bob, carol):
            assert await points_of(session, user.id) == 3
            assert await events_of(session, user.id, "collab") == 1
        assert await points_of(session, cast.owner.id) == 0
    
    @pytest.mark.asyncio
    async def test_only_owner_may_add(self, session, factory, cast):
        alice = await factory.user("alice")
        with pytest.raises(ForbiddenError) as exc_info:
            await EngagementLedger(session).record_collab(cast.viewer.id, cast.post, [alice.id])
        assert exc_info.type is ForbiddenError
    
    @pytest.mark.asyncio
    async def test_owner_cannot_collaborate_on_own_post(self, session, cast):
        with pytest.raises(SelfActionError):
            await EngagementLedger(session).record_collab(cast.owner.id, cast.post, [cast.owner.id])
    
    @pytest.mark.asyncio
    async def test_unknown_collaborator_writes_nothing(self, session, factory, cast, points_of):
        alice = await factory.user("alice")
        with pytest.raises(NotFoundError):
            await EngagementLedger(session).record_collab(cast.owner.id, cast.post, [alice.id, "no-such-user"])
        
        assert await points_of(session, alice.id) == 0
        rows = (await session.execute(select(func.count(PostCollaborator.id)))).scalar_one()
        assert rows == 0


class TestFailureAndConcurrency:
    
    @pytest.mark.asyncio
    async def test_storage_timeout_is_raised_not_skipped(self, session, cast, points_of, events_of):
        viewer_id = cast.viewer.id
        post = cast.post
        ledger = EngagementLedger(session, adapter=LockedAdapter())
        
        with pytest.raises(StorageUnavailableError):
            await ledger.record_engage_or_skip(viewer_id, post)
        
        assert await events_of(session, viewer_id) == 0
        assert await points_of(session, viewer_id) == 0
    
    @pytest.mark.asyncio
    async def test_concurrent_engages_award_once(self, file_session_maker):
        async with file_session_maker() as session:
            owner = User(username="owner", display_name="Owner")
            viewer = User(username="viewer", display_name="Viewer")
            session.add_all([owner, viewer])
            await session.flush()
            house = House(name="House", owner_user_id=owner.id)
            session.add(house)
            await session.flush()
            canonical = "https://www.youtube.com/watch?v=race"
            first = Post(owner_user_id=owner.id, house_id=house.id, original_url=canonical,
                         canonical_url=canonical, title="One", provider="youtube")
            second = Post(owner_user_id=owner.id, house_id=house.id, original_url=canonical + "&list=x",
                          canonical_url=canonical, title="Two", provider="youtube")
            session.add_all([first, second])
            await session.commit()
            viewer_id, post_ids = viewer.id, [first.id, second.id]
        
        async def engage(post_id):
            async with file_session_maker() as session:
                post = await session.get(Post, post_id)
                return await EngagementLedger(session).record_engage_or_skip(viewer_id, post)
        
        results = await asyncio.gather(*(engage(post_ids[i % 2]) for i in range(10)))
        assert results.count(True) == 1
        
        async with file_session_maker() as session:
            events = (await session.execute(
                select(func.count(EngagementEvent.id)).where(EngagementEvent.user_id == viewer_id)
            )).scalar_one()
            total = (await session.execute(
                select(User.total_points).where(User.id == viewer_id)
            )).scalar_one()
        assert events == 1
        assert total == 1
