from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from college_notes.core.auth_deps import require_min_role
from college_notes.core.deps import get_delete_request_service, get_request_id
from college_notes.core.errors import envelope
from college_notes.db.session import get_db
from college_notes.models.enums import UserRole
from college_notes.policies.rbac import Principal
from college_notes.schemas.delete_requests import (
    DeleteRequestCreate,
    DeleteRequestDecision,
    DeleteRequestOut,
)
from college_notes.services.delete_request_service import DeleteRequestService

router = APIRouter(prefix="/delete-requests")

moderator_only = require_min_role(UserRole.MODERATOR, "Moderator access required")
senior_only = require_min_role(UserRole.SENIOR_MODERATOR, "Senior moderator or admin access required")


def _dump(req) -> dict:
    return DeleteRequestOut.model_validate(req).model_dump(mode="json")


@router.post("", status_code=201)
def create_delete_request(
    body: DeleteRequestCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(moderator_only),
    svc: DeleteRequestService = Depends(get_delete_request_service),
    request_id: Optional[str] = Depends(get_request_id),
):
    req = svc.create(db, note_id=body.note_id, actor=principal, reason=body.reason, request_id=request_id)
    return envelope(data=_dump(req), message="Delete request submitted for review")


@router.get("")
def list_delete_requests(
    status: str = Query("pending"),
    db: Session = Depends(get_db),
    principal: Principal = Depends(moderator_only),
    svc: DeleteRequestService = Depends(get_delete_request_service),
):
    rows = svc.list(db, principal, status=status)
    return envelope(data=[_dump(r) for r in rows])


@router.patch("/{request_id}/approve")
def approve_delete_request(
    request_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(senior_only),
    svc: DeleteRequestService = Depends(get_delete_request_service),
    rid: Optional[str] = Depends(get_request_id),
):
    req = svc.approve(db, request_id, principal, audit_request_id=rid)
    return envelope(data=_dump(req), message="Delete request approved and note deleted")


@router.patch("/{request_id}/reject")
def reject_delete_request(
    request_id: uuid.UUID,
    body: DeleteRequestDecision,
    db: Session = Depends(get_db),
    principal: Principal = Depends(senior_only),
    svc: DeleteRequestService = Depends(get_delete_request_service),
    rid: Optional[str] = Depends(get_request_id),
):
    req = svc.reject(db, request_id, principal, body.reason, audit_request_id=rid)
    return envelope(data=_dump(req), message="Delete request rejected")
