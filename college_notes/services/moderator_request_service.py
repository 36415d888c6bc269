from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from college_notes.core.errors import ConflictError, NotFoundError, ValidationError
from college_notes.models.enums import ModeratorRequestStatus, UserRole
from college_notes.models.moderator_request import ModeratorRequest
from college_notes.models.user import User
from college_notes.policies.rbac import (
    Principal,
    check_permission,
    require_can_assign,
    require_role,
    role_level,
)
from college_notes.schemas.moderator_requests import ModeratorRequestCreate
from college_notes.services.audit_service import AuditAction, AuditService
from college_notes.services.notification_service import NotificationService, NotificationType
from college_notes.services.settings_service import SettingsService

logger = logging.getLogger(__name__)

DUPLICATE_PENDING_MESSAGE = "You already have a pending moderator application"


class ModeratorRequestService:
    def __init__(
        self,
        notifier: Optional[NotificationService] = None,
        settings_service: Optional[SettingsService] = None,
        audit: Optional[AuditService] = None,
    ):
        self.notifier = notifier or NotificationService()
        self.settings_service = settings_service or SettingsService()
        self.audit = audit or AuditService()

    def _get(self, db: Session, request_id: uuid.UUID) -> ModeratorRequest:
        req = db.get(ModeratorRequest, request_id)
        if req is None:
            raise NotFoundError("Moderator request not found")
        return req

    def _promote(self, db: Session, req: ModeratorRequest, reviewer_id: uuid.UUID) -> User:
        applicant = db.get(User, req.applicant_id)
        if applicant is None:
            raise NotFoundError("Applicant no longer exists")
        # approval never demotes someone who was promoted in the meantime
        if role_level(applicant.role) < role_level(UserRole.MODERATOR):
            applicant.role = UserRole.MODERATOR.value

        req.status = ModeratorRequestStatus.approved.value
        req.reviewed_by = reviewer_id
        req.reviewed_at = datetime.now(timezone.utc)
        return applicant

    def submit(
        self,
        db: Session,
        *,
        actor: Principal,
        data: ModeratorRequestCreate,
        ip_address: Optional[str] = None,
    ) -> ModeratorRequest:
        if check_permission(actor.role, UserRole.MODERATOR):
            raise ValidationError("You already have moderator privileges or higher")

        site = self.settings_service.get(db)

        existing = db.execute(
            select(ModeratorRequest.id).where(
                ModeratorRequest.applicant_id == actor.uuid,
                ModeratorRequest.status == ModeratorRequestStatus.pending.value,
            )
        ).first()
        if existing is not None:
            raise ConflictError(DUPLICATE_PENDING_MESSAGE)

        req = ModeratorRequest(
            id=uuid.uuid4(),
            applicant_id=actor.uuid,
            ip_address=ip_address,
            status=ModeratorRequestStatus.pending.value,
            **data.model_dump(),
        )
        db.add(req)

        if site.moderator_auto_approval:
            self._promote(db, req, reviewer_id=actor.uuid)
            req.admin_feedback = "Auto-approved"
            self.notifier.notify(
                db,
                user_id=actor.uuid,
                type=NotificationType.MODERATOR_REQUEST_APPROVED,
                title="Moderator application approved",
                message="Your moderator application was approved automatically. Welcome aboard!",
                metadata={"moderator_request_id": str(req.id)},
            )

        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConflictError(DUPLICATE_PENDING_MESSAGE)
        return req

    def mine(self, db: Session, actor: Principal) -> Optional[ModeratorRequest]:
        return db.execute(
            select(ModeratorRequest)
            .where(ModeratorRequest.applicant_id == actor.uuid)
            .order_by(ModeratorRequest.created_at.desc())
            .limit(1)
        ).scalar_one_or_none()

    def status_counts(self, db: Session) -> Dict[str, int]:
        rows = db.execute(
            select(ModeratorRequest.status, func.count()).group_by(ModeratorRequest.status)
        ).all()
        counts = {s.value: 0 for s in ModeratorRequestStatus}
        counts.update({status: int(n) for status, n in rows})
        counts["total"] = sum(counts.values())
        return counts

    def list(
        self,
        db: Session,
        actor: Principal,
        *,
        status: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[ModeratorRequest], int]:
        require_role(actor, UserRole.MODERATOR, "Moderator access required")
        base = select(ModeratorRequest)
        if status and status != "all":
            base = base.where(ModeratorRequest.status == status)

        total = db.execute(select(func.count()).select_from(base.subquery())).scalar_one()
        rows = db.execute(
            base.order_by(ModeratorRequest.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        ).scalars().all()
        return list(rows), int(total)

    def get(self, db: Session, request_id: uuid.UUID, actor: Principal) -> ModeratorRequest:
        require_role(actor, UserRole.MODERATOR, "Moderator access required")
        return self._get(db, request_id)

    def approve(
        self,
        db: Session,
        request_id: uuid.UUID,
        actor: Principal,
        feedback: Optional[str] = None,
        audit_request_id: Optional[str] = None,
    ) -> ModeratorRequest:
        require_role(actor, UserRole.SENIOR_MODERATOR, "Senior moderator or admin access required")
        require_can_assign(actor, UserRole.MODERATOR)

        req = self._get(db, request_id)
        if req.status != ModeratorRequestStatus.pending.value:
            raise ValidationError("This request has already been processed")

        self._promote(db, req, reviewer_id=actor.uuid)
        req.admin_feedback = (feedback or "").strip() or None

        self.audit.write(
            db,
            actor=actor,
            action=AuditAction.MODERATOR_REQUEST_APPROVED,
            target_type="user",
            target_id=req.applicant_id,
            request_id=audit_request_id,
            details={"moderator_request_id": str(req.id)},
        )
        self.notifier.notify(
            db,
            user_id=req.applicant_id,
            type=NotificationType.MODERATOR_REQUEST_APPROVED,
            title="Moderator application approved",
            message="Congratulations! Your moderator application has been approved.",
            metadata={"moderator_request_id": str(req.id)},
        )
        db.commit()
        logger.info("moderator request approved", extra={"moderator_request_id": str(req.id)})
        return req

    def reject(
        self,
        db: Session,
        request_id: uuid.UUID,
        actor: Principal,
        feedback: Optional[str],
        audit_request_id: Optional[str] = None,
    ) -> ModeratorRequest:
        require_role(actor, UserRole.SENIOR_MODERATOR, "Senior moderator or admin access required")
        feedback = (feedback or "").strip()
        if not feedback:
            raise ValidationError("Admin feedback is required for rejection")

        req = self._get(db, request_id)
        if req.status != ModeratorRequestStatus.pending.value:
            raise ValidationError("This request has already been processed")

        req.status = ModeratorRequestStatus.rejected.value
        req.reviewed_by = actor.uuid
        req.reviewed_at = datetime.now(timezone.utc)
        req.admin_feedback = feedback

        self.audit.write(
            db,
            actor=actor,
            action=AuditAction.MODERATOR_REQUEST_REJECTED,
            target_type="user",
            target_id=req.applicant_id,
            request_id=audit_request_id,
            details={"moderator_request_id": str(req.id), "feedback": feedback},
        )
        self.notifier.notify(
            db,
            user_id=req.applicant_id,
            type=NotificationType.MODERATOR_REQUEST_REJECTED,
            title="Moderator application not approved",
            message=f"Your moderator application was not approved: {feedback}",
            metadata={"moderator_request_id": str(req.id)},
        )
        db.commit()
        return req

    def delete(self, db: Session, request_id: uuid.UUID, actor: Principal) -> None:
        require_role(actor, UserRole.SENIOR_MODERATOR, "Senior moderator or admin access required")
        req = self._get(db, request_id)
        db.delete(req)
        db.commit()
