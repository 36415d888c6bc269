from __future__ import annotations

from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from college_notes.models.audit_log import AuditLog
from college_notes.policies.rbac import Principal


class AuditAction:
    # Note lifecycle
    NOTE_UPLOADED = "NOTE_UPLOADED"
    NOTE_APPROVED = "NOTE_APPROVED"
    NOTE_AUTO_APPROVED = "NOTE_AUTO_APPROVED"
    NOTE_REJECTED = "NOTE_REJECTED"
    NOTE_DELETED = "NOTE_DELETED"

    # Delete requests
    DELETE_REQUEST_CREATED = "DELETE_REQUEST_CREATED"
    DELETE_REQUEST_EXECUTED = "DELETE_REQUEST_EXECUTED"
    DELETE_REQUEST_REJECTED = "DELETE_REQUEST_REJECTED"

    # Moderator requests
    MODERATOR_REQUEST_APPROVED = "MODERATOR_REQUEST_APPROVED"
    MODERATOR_REQUEST_REJECTED = "MODERATOR_REQUEST_REJECTED"

    # Administration
    USER_ROLE_CHANGED = "USER_ROLE_CHANGED"
    USER_STATUS_CHANGED = "USER_STATUS_CHANGED"
    SETTINGS_UPDATED = "SETTINGS_UPDATED"
    STORAGE_RECONCILED = "STORAGE_RECONCILED"


class AuditService:
    def write(
        self,
        db: Session,
        *,
        actor: Optional[Principal],
        action: str,
        target_type: str,
        target_id: Any,
        request_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> AuditLog:
        """
        Append-only insert. Joins the caller's transaction; the caller commits,
        so the audit row lands atomically with the change it describes.
        """
        row = AuditLog(
            actor_id=actor.user_id if actor else None,
            actor_role=actor.role.value if actor else None,
            action=action,
            target_type=target_type,
            target_id=str(target_id),
            request_id=request_id,
            details_json=details or {},
        )
        db.add(row)
        return row

    def history(self, db: Session, *, target_type: str, target_id: Any) -> list[AuditLog]:
        return list(
            db.execute(
                select(AuditLog)
                .where(AuditLog.target_type == target_type, AuditLog.target_id == str(target_id))
                .order_by(AuditLog.created_at.asc())
            ).scalars().all()
        )
