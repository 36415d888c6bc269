from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, model_validator

from college_notes.core.security import MIN_PASSWORD_LENGTH
from college_notes.models.enums import StudentType


EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class SignupRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    email: str = Field(..., max_length=254, pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH)
    confirm_password: str
    college_name: Optional[str] = Field(None, max_length=128)
    course: Optional[str] = Field(None, max_length=128)
    semester: Optional[int] = Field(None, ge=1, le=10)
    student_type: Optional[StudentType] = None

    @model_validator(mode="after")
    def passwords_match(self) -> "SignupRequest":
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class LoginRequest(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
