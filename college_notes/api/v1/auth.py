#college_notes/api/v1/auth.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from college_notes.core.auth_deps import get_current_principal
from college_notes.core.errors import NotFoundError, envelope
from college_notes.db.session import get_db
from college_notes.models.user import User
from college_notes.schemas.admin import UserOut
from college_notes.schemas.auth import LoginRequest, SignupRequest, TokenResponse
from college_notes.services.auth_service import authenticate, issue_token, signup

router = APIRouter(prefix="/auth")


@router.post("/signup", status_code=201)
def register(req: SignupRequest, db: Session = Depends(get_db)):
    user = signup(db, req)
    return envelope(
        data={
            "token": TokenResponse(access_token=issue_token(user)).model_dump(),
            "user": UserOut.model_validate(user).model_dump(mode="json"),
        },
        message="Account created",
    )


@router.post("/login")
def login(req: LoginRequest, db: Session = Depends(get_db)):
    user = authenticate(db, req.email, req.password)
    return envelope(
        data={
            "token": TokenResponse(access_token=issue_token(user)).model_dump(),
            "user": UserOut.model_validate(user).model_dump(mode="json"),
        }
    )


@router.get("/me")
def get_me(db: Session = Depends(get_db), principal=Depends(get_current_principal)):
    user = db.get(User, principal.uuid)
    if user is None:
        raise NotFoundError("User not found")
    return envelope(data=UserOut.model_validate(user).model_dump(mode="json"))
