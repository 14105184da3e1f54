"""Pydantic schemas for Post."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from betre.schemas.user import UserPublic


class PostBase(BaseModel):
    content: str | None = None
    image_url: str | None = None
    location: str | None = Field(None, max_length=255)


class PostCreate(PostBase):
    pass


class PostUpdate(PostBase):
    pass


class PostResponse(PostBase):
    id: UUID
    user_id: UUID
    likes_count: int = 0
    comments_count: int = 0
    created_at: datetime
    user: UserPublic | None = None
    is_liked: bool = False

    model_config = {"from_attributes": True}


class LikeToggleResponse(BaseModel):
    post_id: UUID
    liked: bool
    likes_count: int
