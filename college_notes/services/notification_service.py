from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import event, func, select, update
from sqlalchemy.orm import Session

from college_notes.core.errors import NotFoundError
from college_notes.core.pubsub import Broker, Event
from college_notes.models.notification import Notification

logger = logging.getLogger(__name__)

_PENDING_PUSH = "pending_push"


class NotificationType:
    NOTE_APPROVED = "note_approved"
    NOTE_REJECTED = "note_rejected"
    NOTE_DELETED = "note_deleted"
    DELETE_REQUEST_CREATED = "delete_request_created"
    DELETE_REQUEST_EXECUTED = "delete_request_executed"
    DELETE_REQUEST_REJECTED = "delete_request_rejected"
    MODERATOR_REQUEST_APPROVED = "moderator_request_approved"
    MODERATOR_REQUEST_REJECTED = "moderator_request_rejected"
    ROLE_CHANGED = "role_changed"


def to_payload(n: Notification) -> Dict[str, Any]:
    return {
        "id": str(n.id),
        "type": n.type,
        "title": n.title,
        "message": n.message,
        "link": n.link,
        "metadata": n.metadata_json or {},
        "is_read": n.is_read,
        "read_at": n.read_at.isoformat() if n.read_at else None,
        "created_at": n.created_at.isoformat() if n.created_at else None,
    }


@event.listens_for(Session, "after_commit")
def _flush_pending_push(session: Session) -> None:
    pending: List[Tuple[Broker, str, Event]] = session.info.pop(_PENDING_PUSH, [])
    for broker, user_id, ev in pending:
        try:
            broker.publish(user_id, ev)
        except Exception:
            logger.exception("notification push failed", extra={"user_id": user_id})


@event.listens_for(Session, "after_rollback")
def _drop_pending_push(session: Session) -> None:
    session.info.pop(_PENDING_PUSH, None)


class NotificationService:
    """
    Notifications are advisory. notify() never raises into the workflow that
    triggered it; persistence rides the caller's transaction and the live
    push is released only once that transaction commits.
    """

    def __init__(self, broker: Optional[Broker] = None):
        self.broker = broker

    def notify(
        self,
        db: Session,
        *,
        user_id: Optional[uuid.UUID],
        type: str,
        title: str,
        message: str,
        link: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[Notification]:
        if user_id is None or not message:
            return None

        n = Notification(
            id=uuid.uuid4(),
            user_id=user_id,
            type=type,
            title=title or "",
            message=message,
            link=link,
            metadata_json=metadata or {},
            is_read=False,
            created_at=datetime.now(timezone.utc),
        )
        db.add(n)

        if self.broker is not None:
            db.info.setdefault(_PENDING_PUSH, []).append(
                (self.broker, str(user_id), Event("notification", to_payload(n)))
            )
        return n

    # ------------------------------------------------------------------
    # inbox
    # ------------------------------------------------------------------
    def list_for_user(
        self,
        db: Session,
        user_id: uuid.UUID,
        *,
        unread_only: bool = False,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[Notification], int]:
        base = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            base = base.where(Notification.is_read.is_(False))

        total = db.execute(select(func.count()).select_from(base.subquery())).scalar_one()
        rows = db.execute(
            base.order_by(Notification.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        ).scalars().all()
        return list(rows), int(total)

    def unread_count(self, db: Session, user_id: uuid.UUID) -> int:
        return int(
            db.execute(
                select(func.count())
                .select_from(Notification)
                .where(Notification.user_id == user_id, Notification.is_read.is_(False))
            ).scalar_one()
        )

    def mark_read(self, db: Session, user_id: uuid.UUID, notification_id: uuid.UUID) -> Notification:
        n = db.get(Notification, notification_id)
        # another user's notification is reported as missing
        if n is None or n.user_id != user_id:
            raise NotFoundError("Notification not found")
        if not n.is_read:
            n.is_read = True
            n.read_at = datetime.now(timezone.utc)
            db.commit()
        return n

    def mark_all_read(self, db: Session, user_id: uuid.UUID) -> int:
        res = db.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True, read_at=datetime.now(timezone.utc))
        )
        db.commit()
        return int(res.rowcount or 0)
