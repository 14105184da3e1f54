"""Admin dashboard: totals, user listings, profile edits, roles and account deletion."""
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from betre.api import deps
from betre.core.roles import Role
from betre.models.user import User
from betre.schemas.moderation import AdminUserUpdate, ModeratedUser, RoleUpdate
from betre.services import moderation_service

router = APIRouter(prefix="/admin", tags=["admin"])


class DashboardStats(BaseModel):
    users: int
    posts: int
    comments: int
    pending_reports: int
    suspended_users: int
    moderators: int


@router.get("/stats", response_model=DashboardStats)
async def get_dashboard_stats(
    db: AsyncSession = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_admin),
) -> Any:
    """Aggregated totals for the dashboard."""
    return DashboardStats(**await moderation_service.dashboard_stats(db, current_user.id))


@router.get("/users", response_model=list[ModeratedUser])
async def list_users(
    role: Role | None = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_admin),
) -> Any:
    users = await moderation_service.list_users(db, current_user.id, role=role, skip=skip, limit=limit)
    return [ModeratedUser.model_validate(u) for u in users]


@router.put("/users/{user_id}/role", response_model=ModeratedUser)
async def set_role(
    user_id: UUID,
    body: RoleUpdate,
    db: AsyncSession = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_admin),
) -> Any:
    user = await moderation_service.set_role(db, current_user.id, user_id, body.role)
    await db.commit()
    return ModeratedUser.model_validate(user)


@router.patch("/users/{user_id}", response_model=ModeratedUser)
async def update_user(
    user_id: UUID,
    body: AdminUserUpdate,
    db: AsyncSession = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_admin),
) -> Any:
    """Change another account's username or profile image."""
    user = await moderation_service.admin_update_user(
        db,
        current_user.id,
        user_id,
        username=body.username,
        profile_image_url=body.profile_image_url,
    )
    await db.commit()
    return ModeratedUser.model_validate(user)


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: UUID,
    db: AsyncSession = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_admin),
) -> None:
    await moderation_service.delete_user(db, current_user.id, user_id)
    await db.commit()
