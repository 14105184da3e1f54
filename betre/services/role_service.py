"""Identity & role gate: resolves a caller to a role and guards privileged actions."""
from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from betre.core.exceptions import Forbidden, NotFound
from betre.core.roles import Role
from betre.models.user import User


def role_of(user: User) -> Role:
    """Role of a loaded user; an empty stored value means a plain user."""
    return Role(user.role) if user.role else Role.USER


async def resolve_role(db: AsyncSession, user_id: UUID) -> Role:
    result = await db.execute(select(User.role).where(User.id == user_id))
    row = result.one_or_none()
    if row is None:
        raise NotFound("User not found")
    return Role(row[0]) if row[0] else Role.USER


async def require_role(db: AsyncSession, user_id: UUID, allowed: Iterable[Role]) -> Role:
    """Return the caller's role, or raise Forbidden. Unknown callers are denied, never crash."""
    try:
        role = await resolve_role(db, user_id)
    except NotFound:
        raise Forbidden() from None
    if role not in set(allowed):
        raise Forbidden()
    return role
