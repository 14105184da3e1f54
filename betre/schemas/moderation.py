"""Pydantic schemas for reports, warnings and moderation actions."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from betre.core.roles import ReportTargetKind


class ReportCreate(BaseModel):
    target_kind: ReportTargetKind
    target_id: UUID
    reason: str


class ReportResponse(BaseModel):
    id: UUID
    target_kind: str
    target_id: UUID
    target_user_id: UUID
    reporter_id: UUID
    reason: str
    status: str
    reviewed_by: UUID | None = None
    reviewed_at: datetime | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class WarningCreate(BaseModel):
    reason: str
    report_id: UUID | None = None
    remove_content: bool = False


class WarningResponse(BaseModel):
    id: UUID
    user_id: UUID
    issuer_id: UUID | None = None
    reason: str
    created_at: datetime

    model_config = {"from_attributes": True}


class ModeratedUser(BaseModel):
    id: UUID
    username: str
    email: str
    role: str
    profile_image_url: str | None = None
    warning_count: int = 0
    reported_count: int = 0

    model_config = {"from_attributes": True}


class RoleUpdate(BaseModel):
    role: str


class AdminUserUpdate(BaseModel):
    username: str | None = Field(None, min_length=1, max_length=50)
    profile_image_url: str | None = None
