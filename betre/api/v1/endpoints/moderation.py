"""Reports, warnings and suspension."""
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from betre.api.deps import get_current_moderator, get_current_user, get_db
from betre.core.roles import ReportStatus, ReportTargetKind, Role
from betre.models.user import User
from betre.schemas.moderation import (
    ModeratedUser,
    ReportCreate,
    ReportResponse,
    WarningCreate,
    WarningResponse,
)
from betre.services import moderation_service

router = APIRouter(prefix="/moderation", tags=["moderation"])


@router.post("/reports", response_model=ReportResponse, status_code=status.HTTP_201_CREATED)
async def submit_report(
    data: ReportCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    report = await moderation_service.submit_report(
        db, current_user.id, data.target_kind, data.target_id, data.reason
    )
    await db.commit()
    return ReportResponse.model_validate(report)


@router.get("/reports", response_model=list[ReportResponse])
async def list_reports(
    report_status: ReportStatus | None = Query(ReportStatus.PENDING, alias="status"),
    target_kind: ReportTargetKind | None = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    moderator: User = Depends(get_current_moderator),
    db: AsyncSession = Depends(get_db),
):
    reports = await moderation_service.list_reports(
        db, moderator.id, status=report_status, target_kind=target_kind, skip=skip, limit=limit
    )
    return [ReportResponse.model_validate(r) for r in reports]


@router.post("/reports/{report_id}/dismiss", response_model=ReportResponse)
async def dismiss_report(
    report_id: UUID,
    moderator: User = Depends(get_current_moderator),
    db: AsyncSession = Depends(get_db),
):
    report = await moderation_service.dismiss_report(db, moderator.id, report_id)
    await db.commit()
    return ReportResponse.model_validate(report)


@router.delete("/reports/{report_id}/content", status_code=status.HTTP_204_NO_CONTENT)
async def remove_reported_content(
    report_id: UUID,
    moderator: User = Depends(get_current_moderator),
    db: AsyncSession = Depends(get_db),
):
    await moderation_service.remove_reported_content(db, moderator.id, report_id)
    await db.commit()
    return None


@router.post("/users/{user_id}/warnings", response_model=WarningResponse, status_code=status.HTTP_201_CREATED)
async def issue_warning(
    user_id: UUID,
    data: WarningCreate,
    moderator: User = Depends(get_current_moderator),
    db: AsyncSession = Depends(get_db),
):
    warning = await moderation_service.issue_warning(
        db,
        moderator.id,
        user_id,
        data.reason,
        report_id=data.report_id,
        remove_content=data.remove_content,
    )
    await db.commit()
    return WarningResponse.model_validate(warning)


@router.get("/users/{user_id}/warnings", response_model=list[WarningResponse])
async def list_warnings(
    user_id: UUID,
    moderator: User = Depends(get_current_moderator),
    db: AsyncSession = Depends(get_db),
):
    warnings = await moderation_service.list_warnings(db, user_id)
    return [WarningResponse.model_validate(w) for w in warnings]


@router.post("/users/{user_id}/suspend", response_model=ModeratedUser)
async def suspend_user(
    user_id: UUID,
    moderator: User = Depends(get_current_moderator),
    db: AsyncSession = Depends(get_db),
):
    user = await moderation_service.suspend_user(db, moderator.id, user_id)
    await db.commit()
    return ModeratedUser.model_validate(user)


@router.post("/users/{user_id}/unsuspend", response_model=ModeratedUser)
async def unsuspend_user(
    user_id: UUID,
    moderator: User = Depends(get_current_moderator),
    db: AsyncSession = Depends(get_db),
):
    user = await moderation_service.unsuspend_user(db, moderator.id, user_id)
    await db.commit()
    return ModeratedUser.model_validate(user)


@router.get("/reported-users", response_model=list[ModeratedUser])
async def reported_users(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    moderator: User = Depends(get_current_moderator),
    db: AsyncSession = Depends(get_db),
):
    users = await moderation_service.list_reported_users(db, moderator.id, skip=skip, limit=limit)
    return [ModeratedUser.model_validate(u) for u in users]


@router.get("/suspended-users", response_model=list[ModeratedUser])
async def suspended_users(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=100),
    moderator: User = Depends(get_current_moderator),
    db: AsyncSession = Depends(get_db),
):
    users = await moderation_service.list_users(db, moderator.id, role=Role.SUSPENDED, skip=skip, limit=limit)
    return [ModeratedUser.model_validate(u) for u in users]
