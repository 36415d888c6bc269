from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from college_notes.core.errors import ConflictError, NotFoundError, ValidationError
from college_notes.models.delete_request import DeleteRequest
from college_notes.models.enums import (
    DeleteRequestStatus,
    ModerationAction,
    NoteStatus,
    UserRole,
)
from college_notes.models.note import Note
from college_notes.policies.rbac import Principal, require_role
from college_notes.services.audit_service import AuditAction
from college_notes.services.moderation_service import ModerationService, conflict_guard
from college_notes.services.notification_service import NotificationType

logger = logging.getLogger(__name__)

DUPLICATE_PENDING_MESSAGE = "A pending delete request already exists for this note"


class DeleteRequestService:
    """
    Two-person removal of approved notes: a moderator proposes, a senior
    moderator or admin decides. Execution goes through the moderation engine.
    """

    def __init__(self, moderation: ModerationService):
        self.moderation = moderation
        self.notifier = moderation.notifier
        self.audit = moderation.audit

    def _get(self, db: Session, request_id: uuid.UUID) -> DeleteRequest:
        req = db.get(DeleteRequest, request_id)
        if req is None:
            raise NotFoundError("Delete request not found")
        return req

    def _pending_for_note(self, db: Session, note_id: uuid.UUID) -> Optional[DeleteRequest]:
        return db.execute(
            select(DeleteRequest).where(
                DeleteRequest.note_id == note_id,
                DeleteRequest.status == DeleteRequestStatus.pending.value,
            )
        ).scalar_one_or_none()

    def create(
        self,
        db: Session,
        *,
        note_id: uuid.UUID,
        actor: Principal,
        reason: Optional[str] = None,
        request_id: Optional[str] = None,
    ) -> DeleteRequest:
        require_role(actor, UserRole.MODERATOR, "Moderator access required")
        note = self.moderation.get_note(db, note_id)
        if note.status != NoteStatus.approved.value:
            raise ValidationError("Delete requests can only be filed for approved notes")

        if self._pending_for_note(db, note.id) is not None:
            raise ConflictError(DUPLICATE_PENDING_MESSAGE)

        reason = (reason or "").strip() or None
        req = DeleteRequest(
            id=uuid.uuid4(),
            note_id=note.id,
            note_title=note.title,
            requester_id=actor.uuid,
            reason=reason,
            status=DeleteRequestStatus.pending.value,
        )
        try:
            with conflict_guard(db):
                db.add(req)
                note.record_event(ModerationAction.delete_requested, actor.uuid, reason)
                self.audit.write(
                    db,
                    actor=actor,
                    action=AuditAction.DELETE_REQUEST_CREATED,
                    target_type="note",
                    target_id=note.id,
                    request_id=request_id,
                    details={"delete_request_id": str(req.id), "reason": reason},
                )
        except IntegrityError:
            # lost the race against a concurrent request for the same note
            db.rollback()
            raise ConflictError(DUPLICATE_PENDING_MESSAGE)
        return req

    def list(
        self,
        db: Session,
        actor: Principal,
        status: Optional[str] = DeleteRequestStatus.pending.value,
    ) -> List[DeleteRequest]:
        require_role(actor, UserRole.MODERATOR, "Moderator access required")
        q = select(DeleteRequest)
        if status and status != "all":
            q = q.where(DeleteRequest.status == status)
        return list(db.execute(q.order_by(DeleteRequest.created_at.desc())).scalars().all())

    def approve(
        self,
        db: Session,
        request_id: uuid.UUID,
        actor: Principal,
        audit_request_id: Optional[str] = None,
    ) -> DeleteRequest:
        require_role(actor, UserRole.SENIOR_MODERATOR, "Senior moderator or admin access required")
        req = self._get(db, request_id)
        if req.status != DeleteRequestStatus.pending.value:
            raise ValidationError(f"Delete request already {req.status}")

        note = db.get(Note, req.note_id)
        with conflict_guard(db):
            if note is not None:
                self.moderation.destroy(
                    db,
                    note,
                    actor=actor,
                    request_id=audit_request_id,
                    audit_action=AuditAction.DELETE_REQUEST_EXECUTED,
                )
            else:
                logger.info(
                    "delete request target already gone", extra={"note_id": str(req.note_id)}
                )

            req.status = DeleteRequestStatus.executed.value
            req.decided_by = actor.uuid
            req.decided_at = datetime.now(timezone.utc)

            self.notifier.notify(
                db,
                user_id=req.requester_id,
                type=NotificationType.DELETE_REQUEST_EXECUTED,
                title="Delete request approved",
                message=f'Your delete request for "{req.note_title}" was approved and the note removed.',
                metadata={"delete_request_id": str(req.id), "note_id": str(req.note_id)},
            )
        return req

    def reject(
        self,
        db: Session,
        request_id: uuid.UUID,
        actor: Principal,
        reason: Optional[str],
        audit_request_id: Optional[str] = None,
    ) -> DeleteRequest:
        require_role(actor, UserRole.SENIOR_MODERATOR, "Senior moderator or admin access required")
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("Rejection reason is required")

        req = self._get(db, request_id)
        if req.status != DeleteRequestStatus.pending.value:
            raise ValidationError(f"Delete request already {req.status}")

        note = db.get(Note, req.note_id)
        with conflict_guard(db):
            req.status = DeleteRequestStatus.rejected.value
            req.decided_by = actor.uuid
            req.decided_at = datetime.now(timezone.utc)
            req.decision_reason = reason
            if note is not None:
                note.record_event(ModerationAction.delete_request_rejected, actor.uuid, reason)

            self.audit.write(
                db,
                actor=actor,
                action=AuditAction.DELETE_REQUEST_REJECTED,
                target_type="note",
                target_id=req.note_id,
                request_id=audit_request_id,
                details={"delete_request_id": str(req.id), "reason": reason},
            )
            self.notifier.notify(
                db,
                user_id=req.requester_id,
                type=NotificationType.DELETE_REQUEST_REJECTED,
                title="Delete request rejected",
                message=f'Your delete request for "{req.note_title}" was rejected: {reason}',
                metadata={"delete_request_id": str(req.id), "note_id": str(req.note_id)},
            )
        return req
