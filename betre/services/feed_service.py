"""Post, like, comment and feed business logic."""
import logging
from uuid import UUID

from sqlalchemy import delete, desc, insert, literal, or_, select, update, Uuid
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from betre.core.exceptions import Forbidden, InvalidArgument, NotFound
from betre.core.roles import NotificationType, ReportTargetKind
from betre.db.counters import decremented, incremented
from betre.db.session import insert_ignore
from betre.models.comment import Comment
from betre.models.engagement import FeedEntry, Follow, Like
from betre.models.moderation import Report
from betre.models.post import Post
from betre.models.user import User
from betre.schemas.post import PostCreate, PostResponse, PostUpdate
from betre.schemas.comment import CommentResponse
from betre.schemas.user import UserPublic
from betre.services import notification_service
from betre.services.notification_service import create_notification

logger = logging.getLogger(__name__)


def _blank(value: str | None) -> bool:
    return value is None or not value.strip()


async def get_post(db: AsyncSession, post_id: UUID) -> Post:
    result = await db.execute(
        select(Post)
        .where(Post.id == post_id)
        .options(selectinload(Post.user))
        .execution_options(populate_existing=True)
    )
    post = result.scalar_one_or_none()
    if post is None:
        raise NotFound("Post not found")
    return post


async def create_post(db: AsyncSession, author_id: UUID, data: PostCreate) -> Post:
    if _blank(data.content) and _blank(data.image_url):
        raise InvalidArgument("A post needs text or an image")
    post = Post(
        user_id=author_id,
        content=data.content,
        image_url=data.image_url,
        location=data.location,
    )
    db.add(post)
    await db.flush()
    await db.refresh(post)

    # Fan the new post out to the author's feed and every follower's feed.
    followers = select(Follow.follower_id, literal(post.id, Uuid), literal(post.created_at)).where(
        Follow.following_id == author_id
    )
    db.add(FeedEntry(user_id=author_id, post_id=post.id, created_at=post.created_at))
    await db.execute(insert(FeedEntry).from_select(["user_id", "post_id", "created_at"], followers))
    await db.flush()
    logger.info("User %s created post %s", author_id, post.id)
    return post


async def update_post(db: AsyncSession, requester_id: UUID, post_id: UUID, data: PostUpdate) -> Post:
    post = await get_post(db, post_id)
    if post.user_id != requester_id:
        raise Forbidden("Only the author can edit this post")
    fields = data.model_dump(exclude_unset=True)
    content = fields.get("content", post.content)
    image_url = fields.get("image_url", post.image_url)
    if _blank(content) and _blank(image_url):
        raise InvalidArgument("A post needs text or an image")
    for name, value in fields.items():
        setattr(post, name, value)
    await db.flush()
    return await get_post(db, post_id)


async def delete_post(db: AsyncSession, requester_id: UUID, post_id: UUID) -> None:
    post = await get_post(db, post_id)
    if post.user_id != requester_id:
        raise Forbidden("Only the author can delete this post")
    await purge_posts(db, [post.id])
    logger.info("User %s deleted post %s", requester_id, post_id)


async def purge_posts(db: AsyncSession, post_ids: list[UUID]) -> None:
    """Delete posts together with everything that references them."""
    if not post_ids:
        return
    comment_ids = list(
        (await db.execute(select(Comment.id).where(Comment.post_id.in_(post_ids)))).scalars().all()
    )
    await notification_service.delete_for_comments(db, comment_ids)
    await notification_service.delete_for_posts(db, post_ids)
    await db.execute(
        delete(Report)
        .where(
            or_(
                (Report.target_kind == ReportTargetKind.POST.value) & Report.target_id.in_(post_ids),
                (Report.target_kind == ReportTargetKind.COMMENT.value) & Report.target_id.in_(comment_ids),
            )
        )
        .execution_options(synchronize_session=False)
    )
    await db.execute(delete(Comment).where(Comment.post_id.in_(post_ids)).execution_options(synchronize_session=False))
    await db.execute(delete(Like).where(Like.post_id.in_(post_ids)).execution_options(synchronize_session=False))
    await db.execute(delete(FeedEntry).where(FeedEntry.post_id.in_(post_ids)).execution_options(synchronize_session=False))
    await db.execute(delete(Post).where(Post.id.in_(post_ids)).execution_options(synchronize_session=False))
    await db.flush()


async def toggle_like(db: AsyncSession, user_id: UUID, post_id: UUID) -> tuple[bool, int]:
    """Flip the user's like on a post. Returns (liked, likes_count) after the flip.

    Membership and counter change in the same transaction; the counter is
    adjusted by the database, so concurrent likers never lose an update.
    """
    post = await get_post(db, post_id)
    removed = await db.execute(
        delete(Like)
        .where(Like.user_id == user_id, Like.post_id == post_id)
        .execution_options(synchronize_session=False)
    )
    if removed.rowcount:
        liked = False
        await db.execute(
            update(Post)
            .where(Post.id == post_id)
            .values(likes_count=decremented(Post.likes_count))
            .execution_options(synchronize_session=False)
        )
    else:
        liked = True
        created = await insert_ignore(db, Like.__table__, {"user_id": user_id, "post_id": post_id})
        if created:
            await db.execute(
                update(Post)
                .where(Post.id == post_id)
                .values(likes_count=incremented(Post.likes_count))
                .execution_options(synchronize_session=False)
            )
            username = await db.scalar(select(User.username).where(User.id == user_id))
            await create_notification(
                db,
                user_id=post.user_id,
                actor_id=user_id,
                notification_type=NotificationType.LIKE,
                text=f"{username} liked your post",
                target_post_id=post_id,
            )
        else:
            logger.debug("Concurrent like by %s on %s absorbed", user_id, post_id)
    await db.flush()
    likes_count = await db.scalar(select(Post.likes_count).where(Post.id == post_id))
    return liked, likes_count or 0


async def get_liked_by(db: AsyncSession, post_id: UUID) -> set[UUID]:
    result = await db.execute(select(Like.user_id).where(Like.post_id == post_id))
    return {row[0] for row in result.all()}


async def get_user_liked_post_ids(
    db: AsyncSession,
    user_id: UUID,
    post_ids: list[UUID],
) -> set[UUID]:
    """Return set of post IDs that the user has liked."""
    if not post_ids:
        return set()
    result = await db.execute(
        select(Like.post_id).where(
            Like.user_id == user_id,
            Like.post_id.in_(post_ids),
        )
    )
    return set(row[0] for row in result.all() if row[0])


async def add_comment(db: AsyncSession, user_id: UUID, post_id: UUID, content: str) -> Comment:
    if _blank(content):
        raise InvalidArgument("Comment cannot be empty")
    post = await get_post(db, post_id)
    comment = Comment(user_id=user_id, post_id=post_id, content=content.strip())
    db.add(comment)
    await db.flush()
    await db.execute(
        update(Post)
        .where(Post.id == post_id)
        .values(comments_count=incremented(Post.comments_count))
        .execution_options(synchronize_session=False)
    )
    username = await db.scalar(select(User.username).where(User.id == user_id))
    preview = comment.content[:50] + "..." if len(comment.content) > 50 else comment.content
    await create_notification(
        db,
        user_id=post.user_id,
        actor_id=user_id,
        notification_type=NotificationType.COMMENT,
        text=f'{username} commented: "{preview}"',
        target_post_id=post_id,
        target_comment_id=comment.id,
    )
    await db.flush()
    return comment


async def get_comment(db: AsyncSession, comment_id: UUID) -> Comment:
    result = await db.execute(
        select(Comment)
        .where(Comment.id == comment_id)
        .options(selectinload(Comment.user))
        .execution_options(populate_existing=True)
    )
    comment = result.scalar_one_or_none()
    if comment is None:
        raise NotFound("Comment not found")
    return comment


async def delete_comment(db: AsyncSession, requester_id: UUID, comment_id: UUID) -> None:
    comment = await get_comment(db, comment_id)
    if comment.user_id != requester_id:
        raise Forbidden("Only the author can delete this comment")
    await purge_comment(db, comment)


async def purge_comment(db: AsyncSession, comment: Comment) -> None:
    """Delete one comment, its notifications and reports, and decrement the post counter."""
    await notification_service.delete_for_comments(db, [comment.id])
    await db.execute(
        delete(Report)
        .where(Report.target_kind == ReportTargetKind.COMMENT.value, Report.target_id == comment.id)
        .execution_options(synchronize_session=False)
    )
    await db.execute(
        update(Post)
        .where(Post.id == comment.post_id)
        .values(comments_count=decremented(Post.comments_count))
        .execution_options(synchronize_session=False)
    )
    await db.delete(comment)
    await db.flush()


async def list_comments(db: AsyncSession, post_id: UUID, *, skip: int = 0, limit: int = 50) -> list[Comment]:
    await get_post(db, post_id)
    result = await db.execute(
        select(Comment)
        .where(Comment.post_id == post_id)
        .order_by(Comment.created_at)
        .offset(skip)
        .limit(limit)
        .options(selectinload(Comment.user))
    )
    return list(result.scalars().all())


async def get_feed_posts(
    db: AsyncSession,
    user_id: UUID,
    skip: int = 0,
    limit: int = 50,
) -> list[Post]:
    """Posts in the user's feed index: their own plus everyone they follow, newest first."""
    result = await db.execute(
        select(Post)
        .join(FeedEntry, FeedEntry.post_id == Post.id)
        .where(FeedEntry.user_id == user_id)
        .order_by(desc(Post.created_at))
        .offset(skip)
        .limit(limit)
        .options(selectinload(Post.user))
    )
    return list(result.scalars().all())


async def get_user_posts(
    db: AsyncSession,
    author_id: UUID,
    skip: int = 0,
    limit: int = 50,
) -> list[Post]:
    result = await db.execute(
        select(Post)
        .where(Post.user_id == author_id)
        .order_by(desc(Post.created_at))
        .offset(skip)
        .limit(limit)
        .options(selectinload(Post.user))
    )
    return list(result.scalars().all())


async def remove_user_engagement(db: AsyncSession, user_id: UUID) -> None:
    """Remove a user's likes, comments and posts, repairing counters on other people's posts."""
    await db.execute(
        update(Post)
        .where(Post.id.in_(select(Like.post_id).where(Like.user_id == user_id)))
        .values(likes_count=decremented(Post.likes_count))
        .execution_options(synchronize_session=False)
    )
    await db.execute(delete(Like).where(Like.user_id == user_id).execution_options(synchronize_session=False))

    comments = (await db.execute(select(Comment).where(Comment.user_id == user_id))).scalars().all()
    for comment in comments:
        await purge_comment(db, comment)

    post_ids = list((await db.execute(select(Post.id).where(Post.user_id == user_id))).scalars().all())
    await purge_posts(db, post_ids)


def user_to_public(user: User, is_following: bool = False) -> UserPublic:
    return UserPublic(
        id=user.id,
        username=user.username,
        bio=user.bio,
        gender=user.gender,
        profile_image_url=user.profile_image_url,
        role=user.role,
        warning_count=user.warning_count or 0,
        followers_count=user.followers_count or 0,
        following_count=user.following_count or 0,
        is_following=is_following,
        created_at=user.created_at,
    )


def post_to_response(post: Post, is_liked: bool = False, is_following_author: bool = False) -> PostResponse:
    user = post.user
    return PostResponse(
        id=post.id,
        user_id=post.user_id,
        content=post.content,
        image_url=post.image_url,
        location=post.location,
        likes_count=post.likes_count or 0,
        comments_count=post.comments_count or 0,
        created_at=post.created_at,
        user=user_to_public(user, is_following=is_following_author) if user else None,
        is_liked=is_liked,
    )


def comment_to_response(comment: Comment) -> CommentResponse:
    user = comment.user
    return CommentResponse(
        id=comment.id,
        post_id=comment.post_id,
        user_id=comment.user_id,
        content=comment.content,
        created_at=comment.created_at,
        user=user_to_public(user) if user else None,
    )
