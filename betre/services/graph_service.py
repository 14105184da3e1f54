"""
Social graph: follow edges, maintained follower/following counters and the
feed index back-fill that goes with them.

Rules:
  follow:   cannot follow self; idempotent; notifies the followee on a new edge
  unfollow: idempotent; notifies the followee only when an edge was removed
  counts:   read from users.followers_count / users.following_count, which are
            updated in the same transaction as the edge
"""
import logging
from uuid import UUID

from sqlalchemy import Uuid, delete, insert, literal, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from betre.core.exceptions import InvalidArgument, NotFound
from betre.core.roles import NotificationType
from betre.db.counters import decremented, incremented
from betre.db.session import insert_ignore
from betre.models.engagement import FeedEntry, Follow
from betre.models.post import Post
from betre.models.user import User
from betre.services.notification_service import create_notification

logger = logging.getLogger(__name__)


async def get_user(db: AsyncSession, user_id: UUID) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFound("User not found")
    return user


async def is_following(db: AsyncSession, follower_id: UUID, following_id: UUID) -> bool:
    result = await db.execute(
        select(Follow.follower_id).where(
            Follow.follower_id == follower_id,
            Follow.following_id == following_id,
        )
    )
    return result.first() is not None


async def get_following_ids(db: AsyncSession, follower_id: UUID, candidate_ids: list[UUID]) -> set[UUID]:
    """Return the subset of candidate_ids the follower follows."""
    if not candidate_ids:
        return set()
    result = await db.execute(
        select(Follow.following_id).where(
            Follow.follower_id == follower_id,
            Follow.following_id.in_(candidate_ids),
        )
    )
    return {row[0] for row in result.all()}


async def follow(db: AsyncSession, follower_id: UUID, followee_id: UUID) -> bool:
    """Follow a user. Returns True if a new edge was created, False if it already existed."""
    if follower_id == followee_id:
        raise InvalidArgument("Cannot follow yourself")
    follower = await get_user(db, follower_id)
    await get_user(db, followee_id)

    created = await insert_ignore(
        db, Follow.__table__, {"follower_id": follower_id, "following_id": followee_id}
    )
    if not created:
        logger.debug("Follow %s -> %s already exists", follower_id, followee_id)
        return False

    await db.execute(
        update(User)
        .where(User.id == followee_id)
        .values(followers_count=incremented(User.followers_count))
        .execution_options(synchronize_session=False)
    )
    await db.execute(
        update(User)
        .where(User.id == follower_id)
        .values(following_count=incremented(User.following_count))
        .execution_options(synchronize_session=False)
    )
    await _backfill_feed(db, follower_id, followee_id)
    await create_notification(
        db,
        user_id=followee_id,
        actor_id=follower_id,
        notification_type=NotificationType.FOLLOW,
        text=f"{follower.username} started following you",
    )
    await db.flush()
    logger.info("User %s followed %s", follower_id, followee_id)
    return True


async def unfollow(db: AsyncSession, follower_id: UUID, followee_id: UUID) -> bool:
    """Unfollow a user. Returns True if an edge was removed."""
    result = await db.execute(
        delete(Follow).where(
            Follow.follower_id == follower_id,
            Follow.following_id == followee_id,
        ).execution_options(synchronize_session=False)
    )
    if not result.rowcount:
        return False

    await db.execute(
        update(User)
        .where(User.id == followee_id)
        .values(followers_count=decremented(User.followers_count))
        .execution_options(synchronize_session=False)
    )
    await db.execute(
        update(User)
        .where(User.id == follower_id)
        .values(following_count=decremented(User.following_count))
        .execution_options(synchronize_session=False)
    )
    await db.execute(
        delete(FeedEntry).where(
            FeedEntry.user_id == follower_id,
            FeedEntry.post_id.in_(select(Post.id).where(Post.user_id == followee_id)),
        ).execution_options(synchronize_session=False)
    )
    follower_name = await db.scalar(select(User.username).where(User.id == follower_id))
    await create_notification(
        db,
        user_id=followee_id,
        actor_id=follower_id,
        notification_type=NotificationType.UNFOLLOW,
        text=f"{follower_name or 'Someone'} unfollowed you",
    )
    await db.flush()
    logger.info("User %s unfollowed %s", follower_id, followee_id)
    return True


async def _backfill_feed(db: AsyncSession, follower_id: UUID, followee_id: UUID) -> None:
    """Copy the followee's existing posts into the follower's feed index."""
    already = select(FeedEntry.post_id).where(FeedEntry.user_id == follower_id)
    posts = select(literal(follower_id, Uuid), Post.id, Post.created_at).where(
        Post.user_id == followee_id,
        Post.id.not_in(already),
    )
    await db.execute(
        insert(FeedEntry).from_select(["user_id", "post_id", "created_at"], posts)
    )


async def count_followers(db: AsyncSession, user_id: UUID) -> int:
    count = await db.scalar(select(User.followers_count).where(User.id == user_id))
    if count is None:
        raise NotFound("User not found")
    return count


async def count_following(db: AsyncSession, user_id: UUID) -> int:
    count = await db.scalar(select(User.following_count).where(User.id == user_id))
    if count is None:
        raise NotFound("User not found")
    return count


async def list_followers(db: AsyncSession, user_id: UUID, *, skip: int = 0, limit: int = 50) -> list[User]:
    """Users who follow user_id, newest edge first."""
    await get_user(db, user_id)
    result = await db.execute(
        select(User)
        .join(Follow, Follow.follower_id == User.id)
        .where(Follow.following_id == user_id)
        .order_by(Follow.created_at.desc())
        .offset(skip)
        .limit(limit)
    )
    return list(result.scalars().all())


async def list_following(db: AsyncSession, user_id: UUID, *, skip: int = 0, limit: int = 50) -> list[User]:
    """Users that user_id follows, newest edge first."""
    await get_user(db, user_id)
    result = await db.execute(
        select(User)
        .join(Follow, Follow.following_id == User.id)
        .where(Follow.follower_id == user_id)
        .order_by(Follow.created_at.desc())
        .offset(skip)
        .limit(limit)
    )
    return list(result.scalars().all())


async def remove_all_edges(db: AsyncSession, user_id: UUID) -> None:
    """Drop every edge touching user_id and repair the counters on the other side."""
    await db.execute(
        update(User)
        .where(User.id.in_(select(Follow.following_id).where(Follow.follower_id == user_id)))
        .values(followers_count=decremented(User.followers_count))
        .execution_options(synchronize_session=False)
    )
    await db.execute(
        update(User)
        .where(User.id.in_(select(Follow.follower_id).where(Follow.following_id == user_id)))
        .values(following_count=decremented(User.following_count))
        .execution_options(synchronize_session=False)
    )
    await db.execute(
        delete(FeedEntry)
        .where(FeedEntry.user_id == user_id)
        .execution_options(synchronize_session=False)
    )
    await db.execute(
        delete(Follow)
        .where((Follow.follower_id == user_id) | (Follow.following_id == user_id))
        .execution_options(synchronize_session=False)
    )
