"""Team routes: barista administration and self-service profile."""

from typing import List

from fastapi import APIRouter, Request, status

from cafestock.core.rate_limit import limiter
from cafestock.core.rbac import CurrentUser, RequireManager
from cafestock.core.validators import PositiveIntId
from cafestock.db.session import DbSession
from cafestock.schemas.archive import ArchivedEntry, CleanupResponse, MessageResponse
from cafestock.schemas.user import (
    BaristaCount,
    BaristaCreate,
    PasswordChange,
    PasswordReset,
    UserResponse,
    UsernameChange,
)
from cafestock.services.lifecycle import EntityKind, LifecycleManager
from cafestock.services.team_service import TeamService

router = APIRouter()


@router.get("/baristas/count", response_model=BaristaCount)
@limiter.limit("60/minute")
def count_baristas(request: Request, db: DbSession, current_user: CurrentUser):
    return BaristaCount(count=TeamService(db).count_baristas())


@router.get("/baristas", response_model=List[UserResponse])
@limiter.limit("60/minute")
def list_baristas(request: Request, db: DbSession, current_user: RequireManager):
    return TeamService(db).list_baristas(current_user)


@router.get("/baristas/archived", response_model=List[ArchivedEntry])
@limiter.limit("30/minute")
def list_archived_baristas(request: Request, db: DbSession, current_user: RequireManager):
    return [
        ArchivedEntry(id=user.id, name=user.username, deleted_at=user.deleted_at, days_until_purge=days)
        for user, days in LifecycleManager(db).list_archived(EntityKind.USER, current_user)
    ]


@router.post("/baristas", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_barista(request: Request, body: BaristaCreate, db: DbSession, current_user: RequireManager):
    return TeamService(db).create_barista(body.username, body.password, current_user)


@router.put("/baristas/{user_id}/password", response_model=MessageResponse)
@limiter.limit("10/minute")
def reset_barista_password(
    request: Request, user_id: PositiveIntId, body: PasswordReset, db: DbSession, current_user: RequireManager
):
    TeamService(db).set_barista_password(user_id, body.new_password, current_user)
    return {"message": "Password updated successfully"}


@router.delete("/baristas/{user_id}", response_model=MessageResponse)
@limiter.limit("30/minute")
def archive_barista(request: Request, user_id: PositiveIntId, db: DbSession, current_user: RequireManager):
    TeamService(db).archive_barista(user_id, current_user)
    return {"message": "Barista archived"}


@router.post("/baristas/{user_id}/restore", response_model=MessageResponse)
@limiter.limit("30/minute")
def restore_barista(request: Request, user_id: PositiveIntId, db: DbSession, current_user: RequireManager):
    TeamService(db).restore_barista(user_id, current_user)
    return {"message": "Barista restored"}


@router.delete("/baristas/{user_id}/permanent", response_model=MessageResponse)
@limiter.limit("30/minute")
def purge_barista(request: Request, user_id: PositiveIntId, db: DbSession, current_user: RequireManager):
    TeamService(db).purge_barista(user_id, current_user)
    return {"message": "Barista permanently deleted"}


@router.post("/cleanup-archived", response_model=CleanupResponse)
@limiter.limit("10/minute")
def cleanup_archived_users(request: Request, db: DbSession, current_user: RequireManager):
    result = LifecycleManager(db).sweep_expired(EntityKind.USER, current_user)
    return CleanupResponse(
        message=f"Permanently deleted {result.count} expired account(s)",
        count=result.count,
        failed=result.failed,
    )


@router.get("/{user_id}", response_model=UserResponse)
@limiter.limit("60/minute")
def get_profile(request: Request, user_id: PositiveIntId, db: DbSession, current_user: CurrentUser):
    return TeamService(db).get_profile(user_id, current_user)


@router.put("/{user_id}/password", response_model=MessageResponse)
@limiter.limit("10/minute")
def change_password(
    request: Request, user_id: PositiveIntId, body: PasswordChange, db: DbSession, current_user: CurrentUser
):
    TeamService(db).change_password(user_id, body.current_password, body.new_password, current_user)
    return {"message": "Password updated successfully"}


@router.put("/{user_id}/username", response_model=UserResponse)
@limiter.limit("10/minute")
def change_username(
    request: Request, user_id: PositiveIntId, body: UsernameChange, db: DbSession, current_user: CurrentUser
):
    return TeamService(db).change_username(user_id, body.username, current_user)
