from __future__ import annotations

import logging
import uuid
from typing import List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from college_notes.core.errors import AccessDeniedError, NotFoundError
from college_notes.models.enums import UserRole
from college_notes.models.user import User
from college_notes.policies.rbac import (
    Principal,
    require_can_assign,
    require_can_manage,
    require_role,
)
from college_notes.services.audit_service import AuditAction, AuditService
from college_notes.services.notification_service import NotificationService, NotificationType

logger = logging.getLogger(__name__)


class UserAdminService:
    def __init__(
        self,
        notifier: Optional[NotificationService] = None,
        audit: Optional[AuditService] = None,
    ):
        self.notifier = notifier or NotificationService()
        self.audit = audit or AuditService()

    def _target(self, db: Session, actor: Principal, user_id: uuid.UUID) -> User:
        if str(user_id) == actor.user_id:
            raise AccessDeniedError("You cannot modify your own account here")
        user = db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        require_can_manage(actor, user.role)
        return user

    def list_users(
        self,
        db: Session,
        actor: Principal,
        *,
        role: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[User], int]:
        require_role(actor, UserRole.MODERATOR, "Moderator access required")
        base = select(User)
        if role:
            base = base.where(User.role == role)
        if search:
            pattern = f"%{search.strip().lower()}%"
            base = base.where(or_(func.lower(User.name).like(pattern), User.email.like(pattern)))

        total = db.execute(select(func.count()).select_from(base.subquery())).scalar_one()
        rows = db.execute(
            base.order_by(User.created_at.desc()).offset((page - 1) * limit).limit(limit)
        ).scalars().all()
        return list(rows), int(total)

    def change_role(
        self,
        db: Session,
        actor: Principal,
        user_id: uuid.UUID,
        new_role: UserRole,
        request_id: Optional[str] = None,
    ) -> User:
        """
        The target must sit strictly below the actor, and the new role may
        not exceed the actor's own.
        """
        require_role(actor, UserRole.MODERATOR, "Moderator access required")
        user = self._target(db, actor, user_id)
        require_can_assign(actor, new_role)

        old_role = user.role
        if old_role == new_role.value:
            return user

        user.role = new_role.value
        self.audit.write(
            db,
            actor=actor,
            action=AuditAction.USER_ROLE_CHANGED,
            target_type="user",
            target_id=user.id,
            request_id=request_id,
            details={"from": old_role, "to": new_role.value},
        )
        self.notifier.notify(
            db,
            user_id=user.id,
            type=NotificationType.ROLE_CHANGED,
            title="Role updated",
            message=f"Your role has been changed from {old_role} to {new_role.value}.",
            metadata={"from": old_role, "to": new_role.value},
        )
        db.commit()
        logger.info("user role changed", extra={"user_id": str(user.id), "to": new_role.value})
        return user

    def set_active(
        self,
        db: Session,
        actor: Principal,
        user_id: uuid.UUID,
        is_active: bool,
        request_id: Optional[str] = None,
    ) -> User:
        require_role(actor, UserRole.MODERATOR, "Moderator access required")
        user = self._target(db, actor, user_id)

        user.is_active = is_active
        self.audit.write(
            db,
            actor=actor,
            action=AuditAction.USER_STATUS_CHANGED,
            target_type="user",
            target_id=user.id,
            request_id=request_id,
            details={"is_active": is_active},
        )
        db.commit()
        return user
