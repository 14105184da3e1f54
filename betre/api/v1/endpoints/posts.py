"""Posts CRUD, feed, likes and comments."""
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from betre.api.deps import get_current_user, get_current_user_optional, get_db
from betre.models.user import User
from betre.schemas.comment import CommentCreate, CommentResponse
from betre.schemas.post import LikeToggleResponse, PostCreate, PostResponse, PostUpdate
from betre.schemas.user import UserPublic
from betre.services import feed_service
from betre.services.feed_service import comment_to_response, post_to_response, user_to_public

router = APIRouter(prefix="/posts", tags=["posts"])


@router.post("", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
    data: PostCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    post = await feed_service.create_post(db, current_user.id, data)
    await db.commit()
    post = await feed_service.get_post(db, post.id)
    return post_to_response(post, is_liked=False)


@router.get("", response_model=list[PostResponse])
async def list_feed(
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=50),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    posts = await feed_service.get_feed_posts(db, current_user.id, skip=skip, limit=limit)
    liked_ids = await feed_service.get_user_liked_post_ids(db, current_user.id, [p.id for p in posts])
    return [post_to_response(p, is_liked=p.id in liked_ids) for p in posts]


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(
    post_id: UUID,
    current_user: User | None = Depends(get_current_user_optional),
    db: AsyncSession = Depends(get_db),
):
    post = await feed_service.get_post(db, post_id)
    is_liked = False
    if current_user:
        liked_ids = await feed_service.get_user_liked_post_ids(db, current_user.id, [post.id])
        is_liked = post.id in liked_ids
    return post_to_response(post, is_liked=is_liked)


@router.patch("/{post_id}", response_model=PostResponse)
async def update_post(
    post_id: UUID,
    data: PostUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    post = await feed_service.update_post(db, current_user.id, post_id, data)
    liked_ids = await feed_service.get_user_liked_post_ids(db, current_user.id, [post.id])
    await db.commit()
    return post_to_response(post, is_liked=post.id in liked_ids)


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post(
    post_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await feed_service.delete_post(db, current_user.id, post_id)
    await db.commit()
    return None


@router.post("/{post_id}/toggle-like", response_model=LikeToggleResponse)
async def toggle_like(
    post_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    liked, likes_count = await feed_service.toggle_like(db, current_user.id, post_id)
    await db.commit()
    return LikeToggleResponse(post_id=post_id, liked=liked, likes_count=likes_count)


@router.get("/{post_id}/liked-by", response_model=list[UserPublic])
async def liked_by(
    post_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await feed_service.get_post(db, post_id)
    user_ids = await feed_service.get_liked_by(db, post_id)
    if not user_ids:
        return []
    result = await db.execute(select(User).where(User.id.in_(user_ids)).order_by(User.username))
    return [user_to_public(u) for u in result.scalars().all()]


@router.get("/{post_id}/comments", response_model=list[CommentResponse])
async def list_comments(
    post_id: UUID,
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    comments = await feed_service.list_comments(db, post_id, skip=skip, limit=limit)
    return [comment_to_response(c) for c in comments]


@router.post("/{post_id}/comments", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def create_comment(
    post_id: UUID,
    data: CommentCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    comment = await feed_service.add_comment(db, current_user.id, post_id, data.content)
    await db.commit()
    comment = await feed_service.get_comment(db, comment.id)
    return comment_to_response(comment)


@router.delete("/comments/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(
    comment_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await feed_service.delete_comment(db, current_user.id, comment_id)
    await db.commit()
    return None
