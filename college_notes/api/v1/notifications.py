from __future__ import annotations

import math
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import StreamingResponse
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from college_notes.core.auth_deps import principal_from_token, bearer, get_current_principal
from college_notes.core.config import get_settings
from college_notes.core.deps import get_broker, get_notification_service
from college_notes.core.errors import AuthError, envelope
from college_notes.core.pubsub import Broker
from college_notes.core.streaming import sse_stream
from college_notes.db.session import get_db
from college_notes.policies.rbac import Principal
from college_notes.schemas.notifications import NotificationOut
from college_notes.services.notification_service import NotificationService

router = APIRouter(prefix="/notifications")


def _dump(n) -> dict:
    return NotificationOut.model_validate(n).model_dump(mode="json")


@router.get("")
def list_notifications(
    unread_only: bool = Query(False),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    svc: NotificationService = Depends(get_notification_service),
):
    rows, total = svc.list_for_user(db, principal.uuid, unread_only=unread_only, page=page, limit=limit)
    return envelope(
        data={
            "notifications": [_dump(n) for n in rows],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "pages": math.ceil(total / limit) if total else 0,
            },
        }
    )


@router.get("/unread-count")
def unread_count(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    svc: NotificationService = Depends(get_notification_service),
):
    return envelope(data={"count": svc.unread_count(db, principal.uuid)})


@router.patch("/read-all")
def mark_all_read(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    svc: NotificationService = Depends(get_notification_service),
):
    updated = svc.mark_all_read(db, principal.uuid)
    return envelope(data={"updated": updated}, message="All notifications marked as read")


@router.patch("/{notification_id}/read")
def mark_read(
    notification_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    svc: NotificationService = Depends(get_notification_service),
):
    n = svc.mark_read(db, principal.uuid, notification_id)
    return envelope(data=_dump(n))


def _stream_principal(
    request: Request,
    access_token: Optional[str] = Query(None),
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    db: Session = Depends(get_db),
) -> Principal:
    # browsers' EventSource cannot send headers, so the token may come as a query param
    token = creds.credentials if creds else access_token
    if not token:
        raise AuthError("Not authorized, no token")
    return principal_from_token(request, db, token)


@router.get("/stream")
async def stream(
    request: Request,
    principal: Principal = Depends(_stream_principal),
    broker: Broker = Depends(get_broker),
):
    subscription = broker.subscribe(principal.user_id)
    return StreamingResponse(
        sse_stream(
            subscription,
            keepalive_seconds=get_settings().sse_keepalive_seconds,
            is_disconnected=request.is_disconnected,
        ),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
