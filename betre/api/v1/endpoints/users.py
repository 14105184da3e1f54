"""User profile and follow endpoints."""
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from betre.api.deps import get_current_user, get_current_user_optional, get_db
from betre.models.user import User
from betre.schemas.moderation import WarningResponse
from betre.schemas.post import PostResponse
from betre.schemas.user import ChangePasswordRequest, UserPublic, UserResponse, UserUpdate
from betre.services import auth_service, feed_service, graph_service, moderation_service
from betre.services.auth_service import user_to_response
from betre.services.feed_service import post_to_response, user_to_public

router = APIRouter(prefix="/users", tags=["users"])


async def _public_list(db: AsyncSession, users: list[User], viewer: User | None) -> list[UserPublic]:
    following = set()
    if viewer is not None:
        following = await graph_service.get_following_ids(db, viewer.id, [u.id for u in users])
    return [user_to_public(u, is_following=u.id in following) for u in users]


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    return user_to_response(current_user, include_private=True)


@router.patch("/me", response_model=UserResponse)
async def update_me(
    data: UserUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    user = await auth_service.update_profile(db, current_user, data)
    await db.commit()
    return user_to_response(user, include_private=True)


@router.post("/me/change-password", response_model=dict)
async def change_password(
    data: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await auth_service.change_password(db, current_user, data.current_password, data.new_password)
    await db.commit()
    return {"success": True, "message": "Password changed successfully"}


@router.get("/me/warnings", response_model=list[WarningResponse])
async def my_warnings(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    warnings = await moderation_service.list_warnings(db, current_user.id)
    return [WarningResponse.model_validate(w) for w in warnings]


@router.get("/{user_id}", response_model=UserPublic)
async def get_user(
    user_id: UUID,
    current_user: User | None = Depends(get_current_user_optional),
    db: AsyncSession = Depends(get_db),
):
    user = await graph_service.get_user(db, user_id)
    is_following = False
    if current_user is not None and current_user.id != user_id:
        is_following = await graph_service.is_following(db, current_user.id, user_id)
    return user_to_public(user, is_following=is_following)


@router.get("/{user_id}/posts", response_model=list[PostResponse])
async def get_user_posts(
    user_id: UUID,
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=50),
    current_user: User | None = Depends(get_current_user_optional),
    db: AsyncSession = Depends(get_db),
):
    await graph_service.get_user(db, user_id)
    posts = await feed_service.get_user_posts(db, user_id, skip=skip, limit=limit)
    liked_ids = set()
    if current_user is not None:
        liked_ids = await feed_service.get_user_liked_post_ids(db, current_user.id, [p.id for p in posts])
    return [post_to_response(p, is_liked=p.id in liked_ids) for p in posts]


@router.get("/{user_id}/followers", response_model=list[UserPublic])
async def get_followers(
    user_id: UUID,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    current_user: User | None = Depends(get_current_user_optional),
    db: AsyncSession = Depends(get_db),
):
    users = await graph_service.list_followers(db, user_id, skip=skip, limit=limit)
    return await _public_list(db, users, current_user)


@router.get("/{user_id}/following", response_model=list[UserPublic])
async def get_following(
    user_id: UUID,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    current_user: User | None = Depends(get_current_user_optional),
    db: AsyncSession = Depends(get_db),
):
    users = await graph_service.list_following(db, user_id, skip=skip, limit=limit)
    return await _public_list(db, users, current_user)


@router.post("/{user_id}/follow", response_model=dict)
async def follow_user(
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Follow a user. Idempotent."""
    created = await graph_service.follow(db, current_user.id, user_id)
    await db.commit()
    return {
        "follows": True,
        "created": created,
        "followers_count": await graph_service.count_followers(db, user_id),
    }


@router.delete("/{user_id}/follow", response_model=dict)
async def unfollow_user(
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Unfollow a user. Idempotent."""
    removed = await graph_service.unfollow(db, current_user.id, user_id)
    await db.commit()
    return {
        "follows": False,
        "removed": removed,
        "followers_count": await graph_service.count_followers(db, user_id),
    }
