#college_notes/policies/rbac.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Optional
import uuid

from college_notes.core.errors import AccessDeniedError
from college_notes.models.enums import UserRole


@dataclass(frozen=True)
class Principal:
    user_id: str
    role: UserRole
    name: str

    @property
    def uuid(self) -> uuid.UUID:
        return uuid.UUID(self.user_id)


# Total order over roles
ROLE_LEVELS: Dict[UserRole, int] = {
    UserRole.USER: 0,
    UserRole.MODERATOR: 1,
    UserRole.SENIOR_MODERATOR: 2,
    UserRole.ADMIN: 3,
}


def role_level(role: UserRole | str) -> int:
    try:
        return ROLE_LEVELS[UserRole(role)]
    except ValueError:
        # unknown role strings rank lowest
        return 0


def check_permission(actor_role: UserRole | str, required_role: UserRole | str) -> bool:
    return role_level(actor_role) >= role_level(required_role)


def is_moderator(principal: Optional[Principal]) -> bool:
    return principal is not None and check_permission(principal.role, UserRole.MODERATOR)


def require_role(principal: Principal, required_role: UserRole, message: Optional[str] = None) -> None:
    if not check_permission(principal.role, required_role):
        raise AccessDeniedError(message or f"{required_role.value.title()} access required")


def require_can_manage(actor: Principal, target_role: UserRole | str) -> None:
    """
    An actor may only change the role or status of someone strictly below them.
    """
    if role_level(target_role) >= role_level(actor.role):
        raise AccessDeniedError("Cannot modify a user with an equal or higher role.")


def require_can_assign(actor: Principal, new_role: UserRole | str) -> None:
    """
    An actor may never grant a role above their own level.
    """
    if role_level(new_role) > role_level(actor.role):
        raise AccessDeniedError("Cannot assign a role above your own.")
