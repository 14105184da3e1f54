"""API dependencies: db session, current user and role guards."""
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from betre.core.exceptions import Forbidden
from betre.core.roles import ADMIN_ROLES, STAFF_ROLES, Role
from betre.core.security import subject_from_token
from betre.db.session import get_db
from betre.models.user import User
from betre.services.auth_service import get_user_by_id
from betre.services.role_service import role_of

security = HTTPBearer(auto_error=False)

SUSPENDED_DETAIL = (
    "Your account has been suspended by the moderators. "
    "If you believe this is a mistake, please contact support."
)


async def get_current_user_optional(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User | None:
    if not credentials:
        return None
    user_id = subject_from_token(credentials.credentials)
    if user_id is None:
        return None
    return await get_user_by_id(db, user_id)


async def get_current_user(
    user: User | None = Depends(get_current_user_optional),
) -> User:
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if role_of(user) == Role.SUSPENDED:
        raise Forbidden(SUSPENDED_DETAIL)
    return user


async def get_current_moderator(
    user: User = Depends(get_current_user),
) -> User:
    if role_of(user) not in STAFF_ROLES:
        raise Forbidden()
    return user


async def get_current_admin(
    user: User = Depends(get_current_user),
) -> User:
    if role_of(user) not in ADMIN_ROLES:
        raise Forbidden()
    return user
