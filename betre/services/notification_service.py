"""
Notification creation and queries.

Push delivery is queued on the session and handed to Celery only after the
transaction commits. A rolled back request sends nothing, and a broker outage
is logged without failing the request.
"""
import logging
from uuid import UUID

from kombu.exceptions import OperationalError as BrokerError
from sqlalchemy import delete, desc, event, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from betre.core.roles import NotificationType
from betre.models.notification import Notification
from betre.models.user import User
from betre.workers.notifications import send_push_notification

logger = logging.getLogger(__name__)

PENDING_PUSHES = "pending_pushes"


def _dispatch_push(user_id: str, title: str, body: str) -> None:
    try:
        send_push_notification.delay(user_id, title, body)
    except BrokerError:
        logger.warning("Push to %s not queued, broker unavailable", user_id, exc_info=True)


@event.listens_for(Session, "after_commit")
def _send_pending_pushes(session: Session) -> None:
    for push in session.info.pop(PENDING_PUSHES, []):
        _dispatch_push(*push)


@event.listens_for(Session, "after_soft_rollback")
def _drop_pending_pushes(session: Session, previous_transaction) -> None:
    session.info.pop(PENDING_PUSHES, None)


async def create_notification(
    db: AsyncSession,
    *,
    user_id: UUID,
    actor_id: UUID,
    notification_type: NotificationType,
    text: str,
    content: str | None = None,
    target_post_id: UUID | None = None,
    target_comment_id: UUID | None = None,
) -> Notification | None:
    """Create a notification. Skips if actor is the same as user (no self-notify)."""
    if user_id == actor_id:
        return None
    notification = Notification(
        user_id=user_id,
        actor_id=actor_id,
        type=notification_type.value,
        text=text,
        content=content,
        target_post_id=target_post_id,
        target_comment_id=target_comment_id,
    )
    db.add(notification)
    db.info.setdefault(PENDING_PUSHES, []).append((str(user_id), "bEtre", text))
    logger.debug("Queued %s notification for %s", notification_type.value, user_id)
    return notification


async def get_notifications(
    db: AsyncSession,
    user_id: UUID,
    *,
    skip: int = 0,
    limit: int = 50,
) -> list[tuple[Notification, User]]:
    """Get notifications for user, most recent first."""
    result = await db.execute(
        select(Notification, User)
        .join(User, Notification.actor_id == User.id)
        .where(Notification.user_id == user_id)
        .order_by(desc(Notification.created_at))
        .offset(skip)
        .limit(limit)
    )
    return list(result.all())


async def get_unread_count(db: AsyncSession, user_id: UUID) -> int:
    result = await db.execute(
        select(func.count(Notification.id)).where(
            Notification.user_id == user_id,
            Notification.is_read.is_(False),
        )
    )
    return result.scalar() or 0


async def mark_all_read(db: AsyncSession, user_id: UUID) -> int:
    """Mark all notifications as read. Returns count updated."""
    stmt = (
        update(Notification)
        .where(Notification.user_id == user_id, Notification.is_read.is_(False))
        .values(is_read=True)
    )
    result = await db.execute(stmt)
    return result.rowcount or 0


async def mark_one_read(db: AsyncSession, user_id: UUID, notification_id: UUID) -> bool:
    stmt = (
        update(Notification)
        .where(
            Notification.id == notification_id,
            Notification.user_id == user_id,
            Notification.is_read.is_(False),
        )
        .values(is_read=True)
    )
    result = await db.execute(stmt)
    return (result.rowcount or 0) > 0


async def delete_for_posts(db: AsyncSession, post_ids: list[UUID]) -> None:
    if post_ids:
        await db.execute(
            delete(Notification)
            .where(Notification.target_post_id.in_(post_ids))
            .execution_options(synchronize_session=False)
        )


async def delete_for_comments(db: AsyncSession, comment_ids: list[UUID]) -> None:
    if comment_ids:
        await db.execute(
            delete(Notification)
            .where(Notification.target_comment_id.in_(comment_ids))
            .execution_options(synchronize_session=False)
        )


async def delete_for_user(db: AsyncSession, user_id: UUID) -> None:
    """Remove notifications received or caused by a user."""
    await db.execute(
        delete(Notification)
        .where(or_(Notification.user_id == user_id, Notification.actor_id == user_id))
        .execution_options(synchronize_session=False)
    )
