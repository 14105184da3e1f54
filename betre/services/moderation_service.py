"""
Moderation workflow: reports, warnings, suspension, role management and
admin deletion of accounts.

Report lifecycle:
  pending -> reviewed   dismiss_report
  pending -> (deleted)  issue_warning with report_id, optionally removing the content
  pending -> (deleted)  remove_reported_content

Reviewed reports are final; every transition re-checks the status in SQL.

Every action re-checks the caller's role against the database, so a stale
token for a demoted moderator is refused.
"""
import logging
from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import case, delete, desc, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from betre.core.config import settings
from betre.core.exceptions import Conflict, Forbidden, InvalidArgument, NotFound, PreconditionFailed
from betre.core.roles import (
    ADMIN_ROLES,
    ASSIGNABLE_ROLES,
    STAFF_ROLES,
    NotificationType,
    ReportStatus,
    ReportTargetKind,
    Role,
)
from betre.db.counters import incremented
from betre.db.session import insert_ignore
from betre.models.comment import Comment
from betre.models.moderation import ModerationWarning, Report
from betre.models.post import Post
from betre.models.user import User
from betre.services import feed_service, graph_service, notification_service
from betre.services.notification_service import create_notification
from betre.services.role_service import require_role, role_of

logger = logging.getLogger(__name__)


async def _get_user(db: AsyncSession, user_id: UUID) -> User:
    user = await db.scalar(select(User).where(User.id == user_id))
    if user is None:
        raise NotFound("User not found")
    return user


async def _get_report(db: AsyncSession, report_id: UUID) -> Report:
    report = await db.scalar(select(Report).where(Report.id == report_id))
    if report is None:
        raise NotFound("Report not found")
    return report


def _require_pending(report: Report) -> None:
    if report.status != ReportStatus.PENDING.value:
        raise PreconditionFailed("Report has already been reviewed")


async def _target_owner(db: AsyncSession, kind: ReportTargetKind, target_id: UUID) -> UUID:
    if kind == ReportTargetKind.POST:
        owner = await db.scalar(select(Post.user_id).where(Post.id == target_id))
        missing = "Post not found"
    elif kind == ReportTargetKind.COMMENT:
        owner = await db.scalar(select(Comment.user_id).where(Comment.id == target_id))
        missing = "Comment not found"
    else:
        owner = await db.scalar(select(User.id).where(User.id == target_id))
        missing = "User not found"
    if owner is None:
        raise NotFound(missing)
    return owner


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


async def submit_report(
    db: AsyncSession,
    reporter_id: UUID,
    target_kind: ReportTargetKind | str,
    target_id: UUID,
    reason: str,
) -> Report:
    """File a report against a post, a comment or a profile.

    A second pending report by the same reporter on the same target returns
    the report already on file instead of creating a new one.
    """
    try:
        kind = ReportTargetKind(target_kind)
    except ValueError:
        raise InvalidArgument(f"Unknown report target: {target_kind}") from None
    if not reason or not reason.strip():
        raise InvalidArgument("A report needs a reason")

    owner_id = await _target_owner(db, kind, target_id)
    if owner_id == reporter_id:
        raise InvalidArgument("You cannot report yourself or your own content")

    report_id = uuid4()
    created = await insert_ignore(
        db,
        Report.__table__,
        {
            "id": report_id,
            "target_kind": kind.value,
            "target_id": target_id,
            "target_user_id": owner_id,
            "reporter_id": reporter_id,
            "reason": reason.strip(),
            "status": ReportStatus.PENDING.value,
        },
    )
    if not created:
        logger.debug("Pending report by %s on %s %s already on file", reporter_id, kind.value, target_id)
        return await db.scalar(
            select(Report).where(
                Report.reporter_id == reporter_id,
                Report.target_kind == kind.value,
                Report.target_id == target_id,
                Report.status == ReportStatus.PENDING.value,
            )
        )

    await db.execute(
        update(User)
        .where(User.id == owner_id)
        .values(reported_count=incremented(User.reported_count))
        .execution_options(synchronize_session=False)
    )
    logger.info("User %s reported %s %s", reporter_id, kind.value, target_id)
    return await _get_report(db, report_id)


async def list_reports(
    db: AsyncSession,
    moderator_id: UUID,
    *,
    status: ReportStatus | None = ReportStatus.PENDING,
    target_kind: ReportTargetKind | None = None,
    skip: int = 0,
    limit: int = 50,
) -> list[Report]:
    await require_role(db, moderator_id, STAFF_ROLES)
    query = select(Report)
    if status is not None:
        query = query.where(Report.status == ReportStatus(status).value)
    if target_kind is not None:
        query = query.where(Report.target_kind == ReportTargetKind(target_kind).value)
    result = await db.execute(query.order_by(desc(Report.created_at)).offset(skip).limit(limit))
    return list(result.scalars().all())


async def dismiss_report(db: AsyncSession, moderator_id: UUID, report_id: UUID) -> Report:
    """Mark a report reviewed without acting on it."""
    await require_role(db, moderator_id, STAFF_ROLES)
    _require_pending(await _get_report(db, report_id))
    result = await db.execute(
        update(Report)
        .where(Report.id == report_id, Report.status == ReportStatus.PENDING.value)
        .values(
            status=ReportStatus.REVIEWED.value,
            reviewed_by=moderator_id,
            reviewed_at=datetime.utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    if not result.rowcount:
        raise PreconditionFailed("Report has already been reviewed")
    logger.info("Moderator %s dismissed report %s", moderator_id, report_id)
    return await db.scalar(
        select(Report).where(Report.id == report_id).execution_options(populate_existing=True)
    )


def _check_removable(report: Report) -> None:
    if report.target_kind == ReportTargetKind.PROFILE.value:
        raise InvalidArgument("Profiles cannot be removed through a report; suspend or delete the user")


async def _remove_target(db: AsyncSession, report: Report) -> None:
    if report.target_kind == ReportTargetKind.POST.value:
        if await db.scalar(select(Post.id).where(Post.id == report.target_id)) is not None:
            await feed_service.purge_posts(db, [report.target_id])
    else:
        comment = await db.scalar(select(Comment).where(Comment.id == report.target_id))
        if comment is not None:
            await feed_service.purge_comment(db, comment)


async def _delete_report(db: AsyncSession, report_id: UUID) -> None:
    result = await db.execute(
        delete(Report)
        .where(Report.id == report_id, Report.status == ReportStatus.PENDING.value)
        .execution_options(synchronize_session=False)
    )
    if not result.rowcount:
        raise PreconditionFailed("Report has already been reviewed")


async def remove_reported_content(db: AsyncSession, moderator_id: UUID, report_id: UUID) -> None:
    """Close the report and delete the reported post or comment with its full cascade."""
    await require_role(db, moderator_id, STAFF_ROLES)
    report = await _get_report(db, report_id)
    _require_pending(report)
    _check_removable(report)
    await _delete_report(db, report.id)
    await _remove_target(db, report)
    await db.flush()
    logger.info(
        "Moderator %s removed %s %s (report %s)",
        moderator_id,
        report.target_kind,
        report.target_id,
        report_id,
    )


# ---------------------------------------------------------------------------
# Warnings
# ---------------------------------------------------------------------------


async def issue_warning(
    db: AsyncSession,
    moderator_id: UUID,
    target_user_id: UUID,
    reason: str,
    *,
    report_id: UUID | None = None,
    remove_content: bool = False,
) -> ModerationWarning:
    """Warn a user.

    warning_count is raised by a conditional UPDATE that only matches while
    the count is below the cap. If it matches nothing the call raises
    PreconditionFailed before touching anything else, so a linked report
    stays pending.
    """
    await require_role(db, moderator_id, STAFF_ROLES)
    if not reason or not reason.strip():
        raise InvalidArgument("A warning needs a reason")
    await _get_user(db, target_user_id)

    report = None
    if report_id is not None:
        report = await _get_report(db, report_id)
        _require_pending(report)
        if report.target_user_id != target_user_id:
            raise InvalidArgument("Report does not concern this user")
        if remove_content:
            _check_removable(report)

    result = await db.execute(
        update(User)
        .where(User.id == target_user_id, User.warning_count < settings.WARNING_CAP)
        .values(warning_count=incremented(User.warning_count))
        .execution_options(synchronize_session=False)
    )
    if not result.rowcount:
        raise PreconditionFailed(f"User already has the maximum of {settings.WARNING_CAP} warnings")

    warning = ModerationWarning(user_id=target_user_id, issuer_id=moderator_id, reason=reason.strip())
    db.add(warning)
    await create_notification(
        db,
        user_id=target_user_id,
        actor_id=moderator_id,
        notification_type=NotificationType.REPORT,
        text="You received a warning from a moderator",
        content=reason.strip(),
    )
    if report is not None:
        await _delete_report(db, report.id)
        if remove_content:
            await _remove_target(db, report)
    await db.flush()
    await db.refresh(warning)
    logger.info("Moderator %s warned user %s", moderator_id, target_user_id)
    return warning


async def list_warnings(db: AsyncSession, user_id: UUID) -> list[ModerationWarning]:
    await _get_user(db, user_id)
    result = await db.execute(
        select(ModerationWarning)
        .where(ModerationWarning.user_id == user_id)
        .order_by(desc(ModerationWarning.created_at))
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Suspension, roles, deletion
# ---------------------------------------------------------------------------


async def suspend_user(db: AsyncSession, moderator_id: UUID, target_user_id: UUID) -> User:
    await require_role(db, moderator_id, STAFF_ROLES)
    user = await _get_user(db, target_user_id)
    role = role_of(user)
    if role == Role.ADMIN:
        raise Forbidden("Admins cannot be suspended")
    if role == Role.SUSPENDED:
        return user
    user.role = Role.SUSPENDED.value
    await db.flush()
    logger.info("Moderator %s suspended user %s (was %s)", moderator_id, target_user_id, role.value)
    return user


async def unsuspend_user(db: AsyncSession, moderator_id: UUID, target_user_id: UUID) -> User:
    """Lift a suspension. The user always comes back as a plain user, whatever they were before."""
    await require_role(db, moderator_id, STAFF_ROLES)
    user = await _get_user(db, target_user_id)
    if role_of(user) != Role.SUSPENDED:
        raise PreconditionFailed("User is not suspended")
    user.role = Role.USER.value
    await db.flush()
    logger.info("Moderator %s lifted suspension of user %s", moderator_id, target_user_id)
    return user


async def set_role(db: AsyncSession, admin_id: UUID, target_user_id: UUID, role: Role | str) -> User:
    await require_role(db, admin_id, ADMIN_ROLES)
    try:
        new_role = Role(role)
    except ValueError:
        raise InvalidArgument(f"Unknown role: {role}") from None
    if new_role not in ASSIGNABLE_ROLES:
        raise InvalidArgument("Role must be user or moderator")
    user = await _get_user(db, target_user_id)
    current = role_of(user)
    if current == Role.ADMIN:
        raise Forbidden("Admin accounts cannot be changed")
    if current == Role.SUSPENDED:
        raise PreconditionFailed("Lift the suspension first")
    user.role = new_role.value
    await db.flush()
    logger.info("Admin %s set role of %s to %s", admin_id, target_user_id, new_role.value)
    return user


async def admin_update_user(
    db: AsyncSession,
    admin_id: UUID,
    target_user_id: UUID,
    *,
    username: str | None = None,
    profile_image_url: str | None = None,
) -> User:
    """Edit another account's username or profile image from the admin panel."""
    await require_role(db, admin_id, ADMIN_ROLES)
    user = await _get_user(db, target_user_id)
    if username is not None:
        username = username.strip()
        if not username:
            raise InvalidArgument("Username cannot be empty")
        if username != user.username:
            taken = await db.scalar(select(User.id).where(User.username == username))
            if taken is not None:
                raise Conflict("Username already taken")
            user.username = username
    if profile_image_url is not None:
        user.profile_image_url = profile_image_url or None
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise Conflict("Username already taken") from None
    logger.info("Admin %s edited profile of user %s", admin_id, target_user_id)
    return user


async def delete_user(db: AsyncSession, admin_id: UUID, target_user_id: UUID) -> None:
    """Remove an account and everything hanging off it in one transaction.

    Counters on other users and on posts the account touched are repaired
    before the rows go away.
    """
    await require_role(db, admin_id, ADMIN_ROLES)
    if admin_id == target_user_id:
        raise InvalidArgument("You cannot delete your own account")
    await _get_user(db, target_user_id)

    await feed_service.remove_user_engagement(db, target_user_id)
    await graph_service.remove_all_edges(db, target_user_id)
    await notification_service.delete_for_user(db, target_user_id)
    await db.execute(
        delete(ModerationWarning)
        .where(ModerationWarning.user_id == target_user_id)
        .execution_options(synchronize_session=False)
    )
    await db.execute(
        update(ModerationWarning)
        .where(ModerationWarning.issuer_id == target_user_id)
        .values(issuer_id=None)
        .execution_options(synchronize_session=False)
    )
    await db.execute(
        delete(Report)
        .where(or_(Report.reporter_id == target_user_id, Report.target_user_id == target_user_id))
        .execution_options(synchronize_session=False)
    )
    await db.execute(
        update(Report)
        .where(Report.reviewed_by == target_user_id)
        .values(reviewed_by=None)
        .execution_options(synchronize_session=False)
    )
    await db.execute(
        delete(User).where(User.id == target_user_id).execution_options(synchronize_session=False)
    )
    await db.flush()
    logger.info("Admin %s deleted user %s", admin_id, target_user_id)


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------


async def list_reported_users(
    db: AsyncSession, moderator_id: UUID, *, skip: int = 0, limit: int = 50
) -> list[User]:
    """Users with at least one report against them, suspended first, then most reported."""
    await require_role(db, moderator_id, STAFF_ROLES)
    suspended_first = case((User.role == Role.SUSPENDED.value, 0), else_=1)
    result = await db.execute(
        select(User)
        .where(User.reported_count > 0)
        .order_by(suspended_first, desc(User.reported_count), User.username)
        .offset(skip)
        .limit(limit)
    )
    return list(result.scalars().all())


async def list_users(
    db: AsyncSession,
    requester_id: UUID,
    *,
    role: Role | None = None,
    skip: int = 0,
    limit: int = 50,
) -> list[User]:
    """List accounts, optionally by role. Suspended listings are open to moderators, the rest to admins."""
    allowed = STAFF_ROLES if role == Role.SUSPENDED else ADMIN_ROLES
    await require_role(db, requester_id, allowed)
    query = select(User)
    if role is not None:
        query = query.where(User.role == Role(role).value)
    result = await db.execute(query.order_by(User.username).offset(skip).limit(limit))
    return list(result.scalars().all())


async def dashboard_stats(db: AsyncSession, admin_id: UUID) -> dict[str, int]:
    await require_role(db, admin_id, ADMIN_ROLES)

    async def count(query) -> int:
        return (await db.scalar(query)) or 0

    return {
        "users": await count(select(func.count(User.id))),
        "posts": await count(select(func.count(Post.id))),
        "comments": await count(select(func.count(Comment.id))),
        "pending_reports": await count(
            select(func.count(Report.id)).where(Report.status == ReportStatus.PENDING.value)
        ),
        "suspended_users": await count(
            select(func.count(User.id)).where(User.role == Role.SUSPENDED.value)
        ),
        "moderators": await count(select(func.count(User.id)).where(User.role == Role.MODERATOR.value)),
    }
