from __future__ import annotations

import math
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from college_notes.core.auth_deps import require_min_role
from college_notes.core.deps import get_reconcile_service, get_request_id, get_user_admin_service
from college_notes.core.errors import envelope
from college_notes.db.session import get_db
from college_notes.models.enums import UserRole
from college_notes.policies.rbac import Principal
from college_notes.schemas.admin import (
    ReconcileReportOut,
    ReconcileRequest,
    RoleChangeRequest,
    SiteSettingsOut,
    SiteSettingsPatch,
    StatusChangeRequest,
    UserOut,
)
from college_notes.services.audit_service import AuditAction, AuditService
from college_notes.services.reconcile_service import ReconcileService
from college_notes.services.settings_service import SettingsService
from college_notes.services.user_admin_service import UserAdminService
from college_notes.services.user_stats_service import UserStatsService

router = APIRouter(prefix="/admin")

moderator_only = require_min_role(UserRole.MODERATOR, "Moderator access required")
admin_only = require_min_role(UserRole.ADMIN, "Admin access required")


def _user(u) -> dict:
    return UserOut.model_validate(u).model_dump(mode="json")


# ------------------------------------------------------------------
# USERS
# ------------------------------------------------------------------
@router.get("/users")
def list_users(
    role: Optional[UserRole] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    principal: Principal = Depends(moderator_only),
    svc: UserAdminService = Depends(get_user_admin_service),
):
    rows, total = svc.list_users(
        db, principal, role=role.value if role else None, search=search, page=page, limit=limit
    )
    return envelope(
        data={
            "users": [_user(u) for u in rows],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": math.ceil(total / limit) if total else 0,
            },
        }
    )


@router.patch("/users/{user_id}/role")
def change_user_role(
    user_id: uuid.UUID,
    body: RoleChangeRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(moderator_only),
    svc: UserAdminService = Depends(get_user_admin_service),
    request_id: Optional[str] = Depends(get_request_id),
):
    user = svc.change_role(db, principal, user_id, body.role, request_id=request_id)
    return envelope(data=_user(user), message=f"User role updated to {user.role}")


@router.patch("/users/{user_id}/status")
def change_user_status(
    user_id: uuid.UUID,
    body: StatusChangeRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(moderator_only),
    svc: UserAdminService = Depends(get_user_admin_service),
    request_id: Optional[str] = Depends(get_request_id),
):
    user = svc.set_active(db, principal, user_id, body.is_active, request_id=request_id)
    state = "activated" if user.is_active else "deactivated"
    return envelope(data=_user(user), message=f"User {state}")


@router.post("/users/sync-stats")
def sync_user_stats(
    db: Session = Depends(get_db),
    principal: Principal = Depends(admin_only),
):
    count = UserStatsService().recompute_all(db)
    return envelope(data={"users": count}, message="User statistics recomputed")


# ------------------------------------------------------------------
# SITE SETTINGS
# ------------------------------------------------------------------
@router.get("/settings")
def get_site_settings(
    db: Session = Depends(get_db),
    principal: Principal = Depends(admin_only),
):
    row = SettingsService().get(db)
    return envelope(data=SiteSettingsOut.model_validate(row).model_dump(mode="json"))


@router.patch("/settings")
def update_site_settings(
    body: SiteSettingsPatch,
    db: Session = Depends(get_db),
    principal: Principal = Depends(admin_only),
    request_id: Optional[str] = Depends(get_request_id),
):
    changes = body.model_dump(exclude_unset=True)
    row = SettingsService().update(db, changes)

    AuditService().write(
        db,
        actor=principal,
        action=AuditAction.SETTINGS_UPDATED,
        target_type="site_settings",
        target_id=row.id,
        request_id=request_id,
        details={"changed": sorted(changes)},
    )
    db.commit()
    return envelope(
        data=SiteSettingsOut.model_validate(row).model_dump(mode="json"),
        message="Settings updated",
    )


# ------------------------------------------------------------------
# STORAGE
# ------------------------------------------------------------------
@router.post("/storage/reconcile")
def reconcile_storage(
    body: Optional[ReconcileRequest] = None,
    db: Session = Depends(get_db),
    principal: Principal = Depends(admin_only),
    svc: ReconcileService = Depends(get_reconcile_service),
    request_id: Optional[str] = Depends(get_request_id),
):
    dry_run = body.dry_run if body else True
    report = svc.sweep(db, principal, dry_run=dry_run, request_id=request_id)
    out = ReconcileReportOut(
        scanned=report.scanned,
        orphaned_keys=report.orphaned_keys,
        deleted_keys=report.deleted_keys,
        recent_keys=report.recent_keys,
        dry_run=report.dry_run,
    )
    return envelope(data=out.model_dump())
