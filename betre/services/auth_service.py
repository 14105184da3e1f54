"""Account creation, login and profile updates."""
import logging
import re
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from betre.core.exceptions import Conflict, InvalidArgument
from betre.core.security import create_access_token, create_refresh_token, get_password_hash, verify_password
from betre.models.user import User
from betre.schemas.user import UserCreate, UserResponse, UserUpdate

logger = logging.getLogger(__name__)

PHONE_RE = re.compile(r"^\+?[0-9]{7,15}$")


async def _flush_unique(db: AsyncSession) -> None:
    # Another request can take the username or email between the lookup and the flush.
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise Conflict("Username or email already taken") from None


def _check_phone(phone_number: str | None) -> None:
    if phone_number and not PHONE_RE.match(phone_number):
        raise InvalidArgument("Invalid phone number")


async def get_user_by_id(db: AsyncSession, user_id: UUID) -> User | None:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email.lower()))
    return result.scalar_one_or_none()


async def get_user_by_username(db: AsyncSession, username: str) -> User | None:
    result = await db.execute(select(User).where(User.username == username))
    return result.scalar_one_or_none()


async def create_user(db: AsyncSession, data: UserCreate) -> User:
    _check_phone(data.phone_number)
    if await get_user_by_email(db, data.email):
        raise Conflict("Email already registered")
    if await get_user_by_username(db, data.username):
        raise Conflict("Username already taken")
    user = User(
        username=data.username,
        email=data.email.lower(),
        password_hash=get_password_hash(data.password),
        phone_number=data.phone_number,
        gender=data.gender,
        bio=data.bio,
        profile_image_url=data.profile_image_url,
    )
    db.add(user)
    await _flush_unique(db)
    await db.refresh(user)
    logger.info("Registered user %s (%s)", user.id, user.username)
    return user


async def update_profile(db: AsyncSession, user: User, data: UserUpdate) -> User:
    fields = data.model_dump(exclude_unset=True)
    if "phone_number" in fields:
        _check_phone(fields["phone_number"])
    username = fields.get("username")
    if username and username != user.username and await get_user_by_username(db, username):
        raise Conflict("Username already taken")
    for name, value in fields.items():
        if name == "username" and not value:
            continue
        setattr(user, name, value)
    await _flush_unique(db)
    await db.refresh(user)
    return user


async def change_password(db: AsyncSession, user: User, current_password: str, new_password: str) -> None:
    if not verify_password(current_password, user.password_hash):
        raise InvalidArgument("Current password is incorrect")
    user.password_hash = get_password_hash(new_password)
    await db.flush()


async def authenticate_user(db: AsyncSession, email: str, password: str) -> User | None:
    user = await get_user_by_email(db, email)
    if not user or not verify_password(password, user.password_hash):
        return None
    return user


async def authenticate_user_by_username(db: AsyncSession, username: str, password: str) -> User | None:
    user = await get_user_by_username(db, username)
    if not user or not verify_password(password, user.password_hash):
        return None
    return user


def user_to_response(user: User, include_private: bool = False) -> UserResponse:
    return UserResponse(
        id=user.id,
        username=user.username,
        email=user.email if include_private else None,
        phone_number=user.phone_number if include_private else None,
        gender=user.gender,
        bio=user.bio,
        profile_image_url=user.profile_image_url,
        role=user.role,
        warning_count=user.warning_count or 0,
        followers_count=user.followers_count or 0,
        following_count=user.following_count or 0,
        created_at=user.created_at,
    )


def create_tokens_for_user(user: User) -> tuple[str, str]:
    return create_access_token(user.id), create_refresh_token(user.id)
