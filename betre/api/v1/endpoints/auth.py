"""Auth endpoints: register, login, refresh."""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from betre.api.deps import get_current_user, get_db
from betre.core.security import REFRESH, subject_from_token
from betre.models.user import User
from betre.schemas.user import LoginByUsernameRequest, LoginRequest, Token, TokenRefresh, UserCreate, UserResponse
from betre.services.auth_service import (
    authenticate_user,
    authenticate_user_by_username,
    create_tokens_for_user,
    create_user,
    get_user_by_id,
    user_to_response,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _token_for(user: User) -> Token:
    access_token, refresh_token = create_tokens_for_user(user)
    return Token(
        access_token=access_token,
        refresh_token=refresh_token,
        user=user_to_response(user, include_private=True),
    )


@router.post("/register", response_model=Token, status_code=status.HTTP_201_CREATED)
async def register(
    data: UserCreate,
    db: AsyncSession = Depends(get_db),
):
    user = await create_user(db, data)
    await db.commit()
    return _token_for(user)


@router.post("/login", response_model=Token)
async def login(
    data: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    user = await authenticate_user(db, data.email, data.password)
    if not user:
        logger.info("Login failed for email %s", data.email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )
    return _token_for(user)


@router.post("/login/username", response_model=Token)
async def login_by_username(
    data: LoginByUsernameRequest,
    db: AsyncSession = Depends(get_db),
):
    user = await authenticate_user_by_username(db, data.username, data.password)
    if not user:
        logger.info("Login failed for username %s", data.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
        )
    return _token_for(user)


@router.post("/refresh", response_model=Token)
async def refresh_token(
    body: TokenRefresh,
    db: AsyncSession = Depends(get_db),
):
    user_id = subject_from_token(body.refresh_token, REFRESH)
    if user_id is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token")
    user = await get_user_by_id(db, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    return _token_for(user)


@router.get("/me", response_model=UserResponse)
async def me(current_user: User = Depends(get_current_user)):
    return user_to_response(current_user, include_private=True)
