from __future__ import annotations

import math
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from college_notes.core.auth_deps import get_current_principal, require_min_role
from college_notes.core.deps import get_moderator_request_service, get_request_id
from college_notes.core.errors import envelope
from college_notes.db.session import get_db
from college_notes.models.enums import UserRole
from college_notes.policies.rbac import Principal
from college_notes.schemas.moderator_requests import (
    ModeratorRequestCreate,
    ModeratorRequestDecision,
    ModeratorRequestOut,
)
from college_notes.services.moderator_request_service import ModeratorRequestService

router = APIRouter(prefix="/moderator-requests")

moderator_only = require_min_role(UserRole.MODERATOR, "Moderator access required")
senior_only = require_min_role(UserRole.SENIOR_MODERATOR, "Senior moderator or admin access required")


def _dump(req) -> dict:
    return ModeratorRequestOut.model_validate(req).model_dump(mode="json")


@router.post("", status_code=201)
def submit_moderator_request(
    body: ModeratorRequestCreate,
    request: Request,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    svc: ModeratorRequestService = Depends(get_moderator_request_service),
):
    ip = request.client.host if request.client else None
    req = svc.submit(db, actor=principal, data=body, ip_address=ip)
    message = (
        "Your application was approved automatically"
        if req.status == "approved"
        else "Moderator application submitted successfully"
    )
    return envelope(data=_dump(req), message=message)


@router.get("/mine")
def my_moderator_request(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    svc: ModeratorRequestService = Depends(get_moderator_request_service),
):
    req = svc.mine(db, principal)
    return envelope(data=_dump(req) if req else None)


@router.get("")
def list_moderator_requests(
    status: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    principal: Principal = Depends(moderator_only),
    svc: ModeratorRequestService = Depends(get_moderator_request_service),
):
    rows, total = svc.list(db, principal, status=status, page=page, limit=limit)
    return envelope(
        data={
            "requests": [_dump(r) for r in rows],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": math.ceil(total / limit) if total else 0,
            },
            "stats": svc.status_counts(db),
        }
    )


@router.get("/{request_id}")
def get_moderator_request(
    request_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(moderator_only),
    svc: ModeratorRequestService = Depends(get_moderator_request_service),
):
    return envelope(data=_dump(svc.get(db, request_id, principal)))


@router.patch("/{request_id}/approve")
def approve_moderator_request(
    request_id: uuid.UUID,
    body: Optional[ModeratorRequestDecision] = None,
    db: Session = Depends(get_db),
    principal: Principal = Depends(senior_only),
    svc: ModeratorRequestService = Depends(get_moderator_request_service),
    rid: Optional[str] = Depends(get_request_id),
):
    feedback = body.admin_feedback if body else None
    req = svc.approve(db, request_id, principal, feedback=feedback, audit_request_id=rid)
    return envelope(data=_dump(req), message="Moderator request approved")


@router.patch("/{request_id}/reject")
def reject_moderator_request(
    request_id: uuid.UUID,
    body: ModeratorRequestDecision,
    db: Session = Depends(get_db),
    principal: Principal = Depends(senior_only),
    svc: ModeratorRequestService = Depends(get_moderator_request_service),
    rid: Optional[str] = Depends(get_request_id),
):
    req = svc.reject(db, request_id, principal, body.admin_feedback, audit_request_id=rid)
    return envelope(data=_dump(req), message="Moderator request rejected")


@router.delete("/{request_id}")
def delete_moderator_request(
    request_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(senior_only),
    svc: ModeratorRequestService = Depends(get_moderator_request_service),
):
    svc.delete(db, request_id, principal)
    return envelope(message="Moderator request deleted")
