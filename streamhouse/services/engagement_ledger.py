"""
Engagement Ledger

The authoritative gate for awarding points. Every point a user earns enters
through one of the three methods here, and each of them writes the ledger
row and the running total in the same transaction.

- record_engage_or_skip: click-through on someone else's post, deduplicated
  per post (ENGAGE_DEDUP_HOURS) and per canonical URL (CANONICAL_DEDUP_DAYS)
- record_clip: a clip of someone else's post, no dedup window
- record_collab: owner credits collaborators on a post, once per (post, user)

Concurrency:
- engage writes for one actor are serialized by an in-process keyed lock and
  by the adapter's row lock on the actor; the dedup checks, insert, counter
  increment and commit all happen before the lock is released, so a losing
  request sees the winner's event and skips
- counters are incremented with UPDATE ... SET total_points = total_points + n
- storage errors roll back and propagate; an engagement is never silently
  dropped or double-counted
"""

import logging
from datetime import datetime, timedelta
from typing import Iterable, Optional

from sqlalchemy import exists, select, update
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from streamhouse.core.exceptions import (
    ConflictError,
    DatabaseError,
    ForbiddenError,
    InvalidURLError,
    NotFoundError,
    SelfActionError,
    StorageUnavailableError,
)
from streamhouse.core.locks import KeyedLock
from streamhouse.core.setting import settings
from streamhouse.core.validators import is_valid_url
from streamhouse.db.interface import DatabaseAdapter
from streamhouse.db.models import Clip, EngagementEvent, EngagementType, Post, PostCollaborator, User
from streamhouse.db.sqlite_adapter import get_database_adapter
from streamhouse.db.time import as_utc, utcnow

logger = logging.getLogger(__name__)

# Shared by every ledger instance in this process
ledger_locks = KeyedLock()


class EngagementLedger:
    """
    Records scored actions and keeps User.total_points in step with them.

    The session is committed by the ledger itself on every write path, since
    the commit has to land while the actor's lock is still held.
    """

    def __init__(
        self,
        session: AsyncSession,
        engage_dedup_hours: Optional[float] = None,
        canonical_dedup_days: Optional[float] = None,
        adapter: Optional[DatabaseAdapter] = None,
        locks: Optional[KeyedLock] = None,
    ):
        """
        Initialize the ledger.

        Args:
            session: Database session
            engage_dedup_hours: Per-post window (default: settings.ENGAGE_DEDUP_HOURS)
            canonical_dedup_days: Per-canonical-URL window (default: settings.CANONICAL_DEDUP_DAYS)
            adapter: Database adapter providing the actor row lock
            locks: Keyed lock registry (default: the process-wide one)
        """
        self.session = session
        self.engage_dedup_hours = (
            engage_dedup_hours if engage_dedup_hours is not None else settings.ENGAGE_DEDUP_HOURS
        )
        self.canonical_dedup_days = (
            canonical_dedup_days if canonical_dedup_days is not None else settings.CANONICAL_DEDUP_DAYS
        )
        self.adapter = adapter or get_database_adapter()
        self.locks = locks or ledger_locks

    async def record_engage_or_skip(
        self,
        actor_user_id: str,
        post: Post,
        now: Optional[datetime] = None
    ) -> bool:
        """
        Award engage points for a click-through unless a guard says otherwise.

        Guards, in order:
        1. actor owns the post: never scores, dedup state is not consulted
        2. actor has an engage event on this post within ENGAGE_DEDUP_HOURS
        3. actor has an engage event on this canonical URL (any post) within
           CANONICAL_DEDUP_DAYS
        Either of 2 or 3 firing skips the award. Unknown actors never score.

        Args:
            actor_user_id: User who clicked through
            post: The post being opened
            now: Evaluation time (default: current UTC time)

        Returns:
            True if points were awarded, False if skipped

        Raises:
            StorageUnavailableError: Storage locked or unreachable (retryable)
            DatabaseError: Any other storage failure
        """
        if actor_user_id == post.owner_user_id:
            logger.debug(f"Owner {actor_user_id} opened own post {post.id}, not scored")
            return False

        post_id = post.id
        canonical_url = post.canonical_url
        now = as_utc(now) if now is not None else utcnow()

        # Skip paths commit the read-only transaction so it ends before the lock is released
        async with self.locks.hold(f"engage:{actor_user_id}"):
            try:
                actor = await self.adapter.lock_user_for_ledger_write(self.session, actor_user_id)
                if actor is None:
                    await self.session.commit()
                    logger.debug(f"Unknown user {actor_user_id} opened post {post_id}, not scored")
                    return False

                post_cutoff = now - timedelta(hours=self.engage_dedup_hours)
                if await self._has_engage_since(actor_user_id, post_cutoff, post_id=post_id):
                    await self.session.commit()
                    logger.info(f"Engage skipped: user={actor_user_id} post={post_id} reason=post_window")
                    return False

                canonical_cutoff = now - timedelta(days=self.canonical_dedup_days)
                if await self._has_engage_since(
                    actor_user_id, canonical_cutoff, canonical_url=canonical_url
                ):
                    await self.session.commit()
                    logger.info(
                        f"Engage skipped: user={actor_user_id} post={post_id} reason=canonical_window"
                    )
                    return False

                await self._append_event(
                    user_id=actor_user_id,
                    post=post,
                    event_type=EngagementType.ENGAGE,
                    points=settings.ENGAGE_POINTS,
                    now=now,
                )
                await self.session.commit()
            except SQLAlchemyError as e:
                await self.session.rollback()
                raise self._storage_error("record engagement", e)

        logger.info(f"Engage awarded: user={actor_user_id} post={post_id} points={settings.ENGAGE_POINTS}")
        return True

    async def record_clip(
        self,
        clipper_user_id: str,
        post: Post,
        clip_url: str,
        now: Optional[datetime] = None
    ) -> Clip:
        """
        Store a clip and award clip points.

        Every clip scores; there is no dedup window because each clip is a
        separate artifact.

        Args:
            clipper_user_id: User who made the clip
            post: Post the clip was made from
            clip_url: Link to the clip
            now: Creation time (default: current UTC time)

        Returns:
            The stored Clip

        Raises:
            SelfActionError: Clipper owns the post
            InvalidURLError: clip_url is not an http(s) URL
            NotFoundError: Clipper does not exist
        """
        if clipper_user_id == post.owner_user_id:
            raise SelfActionError("clip")

        if not is_valid_url(clip_url):
            raise InvalidURLError(clip_url, reason="Clip URL must use http:// or https:// and have a valid domain")

        now = as_utc(now) if now is not None else utcnow()

        try:
            clipper = await self.session.get(User, clipper_user_id)
            if clipper is None:
                raise NotFoundError("user", clipper_user_id)

            clip = Clip(
                post_id=post.id,
                creator_user_id=clipper_user_id,
                clip_url=clip_url,
                created_at=now,
            )
            self.session.add(clip)
            await self._append_event(
                user_id=clipper_user_id,
                post=post,
                event_type=EngagementType.CLIP,
                points=settings.CLIP_POINTS,
                now=now,
            )
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise self._storage_error("record clip", e)

        logger.info(f"Clip recorded: user={clipper_user_id} post={post.id} points={settings.CLIP_POINTS}")
        return clip

    async def record_collab(
        self,
        actor_user_id: str,
        post: Post,
        collaborator_user_ids: Iterable[str],
        now: Optional[datetime] = None
    ) -> list[str]:
        """
        Attach collaborators to a post and credit each new one.

        Args:
            actor_user_id: Caller; must own the post
            post: Post to attach collaborators to
            collaborator_user_ids: Users to credit
            now: Creation time (default: current UTC time)

        Returns:
            Ids of collaborators newly attached (already attached ones are skipped)

        Raises:
            ForbiddenError: Caller is not the post owner
            SelfActionError: Owner listed as their own collaborator
            NotFoundError: A collaborator does not exist (nothing is written)
        """
        if actor_user_id != post.owner_user_id:
            raise ForbiddenError("Only the post owner can add collaborators")

        requested = list(dict.fromkeys(collaborator_user_ids))
        if post.owner_user_id in requested:
            raise SelfActionError("collaborate on")

        now = as_utc(now) if now is not None else utcnow()
        added: list[str] = []

        async with self.locks.hold(f"collab:{post.id}"):
            try:
                for user_id in requested:
                    if await self.session.get(User, user_id) is None:
                        raise NotFoundError("user", user_id)

                statement = select(PostCollaborator.user_id).where(PostCollaborator.post_id == post.id)
                result = await self.session.execute(statement)
                existing = set(result.scalars().all())

                for user_id in requested:
                    if user_id in existing:
                        continue
                    self.session.add(PostCollaborator(post_id=post.id, user_id=user_id, created_at=now))
                    await self._append_event(
                        user_id=user_id,
                        post=post,
                        event_type=EngagementType.COLLAB,
                        points=settings.COLLAB_POINTS,
                        now=now,
                    )
                    added.append(user_id)

                await self.session.commit()
            except IntegrityError as e:
                await self.session.rollback()
                raise ConflictError("Collaborator already attached by a concurrent request") from e
            except SQLAlchemyError as e:
                await self.session.rollback()
                raise self._storage_error("record collaborators", e)

        if added:
            logger.info(f"Collaborators added: post={post.id} users={added} points={settings.COLLAB_POINTS}")
        return added

    async def _has_engage_since(
        self,
        user_id: str,
        since: datetime,
        post_id: Optional[str] = None,
        canonical_url: Optional[str] = None
    ) -> bool:
        """True if the user has an engage event at or after `since` for the given target."""
        conditions = [
            EngagementEvent.user_id == user_id,
            EngagementEvent.type == EngagementType.ENGAGE.value,
            EngagementEvent.created_at >= since,
        ]
        if post_id is not None:
            conditions.append(EngagementEvent.post_id == post_id)
        if canonical_url is not None:
            conditions.append(EngagementEvent.canonical_url == canonical_url)

        statement = select(exists().where(*conditions))
        result = await self.session.execute(statement)
        return bool(result.scalar())

    async def _append_event(
        self,
        user_id: str,
        post: Post,
        event_type: EngagementType,
        points: int,
        now: datetime
    ) -> EngagementEvent:
        """Insert one ledger row and bump the user's total by the same amount."""
        event = EngagementEvent(
            user_id=user_id,
            post_id=post.id,
            canonical_url=post.canonical_url,
            type=event_type.value,
            points=points,
            created_at=now,
        )
        self.session.add(event)

        if points:
            statement = (
                update(User)
                .where(User.id == user_id)
                .values(total_points=User.total_points + points)
            )
            await self.session.execute(statement)

        await self.session.flush()
        return event

    @staticmethod
    def _storage_error(action: str, error: SQLAlchemyError) -> DatabaseError:
        logger.error(f"Failed to {action}: {error}", exc_info=True)
        if isinstance(error, OperationalError):
            return StorageUnavailableError(f"storage unavailable while trying to {action}", original_error=error)
        return DatabaseError(f"failed to {action}", original_error=error)
