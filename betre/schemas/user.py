"""Pydantic schemas for User."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


class UserBase(BaseModel):
    username: str = Field(..., min_length=1, max_length=50)
    bio: str | None = None
    gender: str | None = Field(None, max_length=30)
    profile_image_url: str | None = None


class UserCreate(UserBase):
    email: EmailStr
    password: str = Field(..., min_length=8)
    phone_number: str | None = None


class UserUpdate(BaseModel):
    """Profile fields the owner may change. Email is fixed after signup."""
    username: str | None = Field(None, min_length=1, max_length=50)
    bio: str | None = None
    gender: str | None = Field(None, max_length=30)
    phone_number: str | None = None
    profile_image_url: str | None = None


class UserResponse(UserBase):
    id: UUID
    email: str | None = None  # Only in own profile
    phone_number: str | None = None  # Only in own profile
    role: str = "user"
    warning_count: int = 0
    followers_count: int = 0
    following_count: int = 0
    created_at: datetime

    model_config = {"from_attributes": True}


class UserPublic(UserBase):
    id: UUID
    role: str = "user"
    warning_count: int = 0
    followers_count: int = 0
    following_count: int = 0
    is_following: bool = False  # Set by API when viewer is authenticated
    created_at: datetime

    model_config = {"from_attributes": True}


class Token(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: UserResponse


class TokenRefresh(BaseModel):
    refresh_token: str


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class LoginByUsernameRequest(BaseModel):
    username: str
    password: str


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8)
