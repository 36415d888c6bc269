# college_notes/services/auth_service.py
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from college_notes.core.errors import AuthError, ConflictError
from college_notes.core.security import create_access_token, hash_password, verify_password
from college_notes.models.enums import UserRole
from college_notes.models.user import User
from college_notes.schemas.auth import SignupRequest


def _find_by_email(db: Session, email: str) -> User | None:
    return db.execute(select(User).where(User.email == email.strip().lower())).scalar_one_or_none()


def signup(db: Session, req: SignupRequest) -> User:
    """New accounts always start as plain users; roles are granted, never claimed."""
    email = req.email.strip().lower()
    if _find_by_email(db, email) is not None:
        raise ConflictError("An account with this email already exists")

    user = User(
        email=email,
        name=req.name.strip(),
        password_hash=hash_password(req.password),
        role=UserRole.USER.value,
        is_active=True,
        college_name=req.college_name,
        course=req.course,
        semester=req.semester,
        student_type=req.student_type.value if req.student_type else None,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("An account with this email already exists")
    db.refresh(user)
    return user


def authenticate(db: Session, email: str, password: str) -> User:
    user = _find_by_email(db, email)
    if user is None or not verify_password(password, user.password_hash):
        raise AuthError("Invalid email or password")
    if not user.is_active:
        raise AuthError("Account is deactivated")
    return user


def issue_token(user: User) -> str:
    return create_access_token(user_id=str(user.id), role=user.role, name=user.name)
