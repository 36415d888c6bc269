#college_notes/core/auth_deps.py
from __future__ import annotations

import uuid
from typing import Callable, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from college_notes.core.errors import AuthError
from college_notes.core.security import decode_token
from college_notes.db.session import get_db
from college_notes.models.enums import UserRole
from college_notes.models.user import User
from college_notes.policies.rbac import Principal, require_role

bearer = HTTPBearer(auto_error=False)


def principal_from_token(request: Request, db: Session, token: str) -> Principal:
    payload = decode_token(token)

    sub = payload.get("sub")
    if not sub:
        raise AuthError("Token missing required claims.")
    try:
        user_id = uuid.UUID(str(sub))
    except ValueError:
        raise AuthError("Token subject is not a valid user id.")

    # role comes from the database so changes apply without re-login
    user = db.get(User, user_id)
    if user is None:
        raise AuthError("User no longer exists.")
    if not user.is_active:
        raise AuthError("Account is deactivated.")

    principal = Principal(user_id=str(user.id), role=user.role_enum, name=user.name)
    request.state.principal = principal
    return principal


def get_current_principal(
    request: Request,
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    db: Session = Depends(get_db),
) -> Principal:
    """
    Canonical authentication dependency.

    Guarantees:
    - bearer JWT is present and valid
    - the subject is an existing, active user
    - the principal's role is the user's current role
    """
    if creds is None or not creds.credentials:
        raise AuthError("Not authorized, no token")
    return principal_from_token(request, db, creds.credentials)


def get_optional_principal(
    request: Request,
    creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    db: Session = Depends(get_db),
) -> Optional[Principal]:
    """Like get_current_principal, but anonymous (or badly authenticated) callers get None."""
    if creds is None or not creds.credentials:
        return None
    try:
        return principal_from_token(request, db, creds.credentials)
    except AuthError:
        return None


def require_min_role(required: UserRole, message: Optional[str] = None) -> Callable[..., Principal]:
    def dependency(principal: Principal = Depends(get_current_principal)) -> Principal:
        require_role(principal, required, message)
        return principal

    return dependency
