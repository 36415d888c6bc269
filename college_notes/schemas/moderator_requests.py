from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ModeratorRequestCreate(BaseModel):
    """
    Application to become a moderator. Lengths mirror what reviewers expect
    to read: a real motivation, not a one-liner.
    """
    reason: str = Field(..., min_length=50, max_length=1000)
    experience: str = Field(..., min_length=20, max_length=500)
    additional_info: Optional[str] = Field(None, max_length=1000)
    college: str = Field(..., min_length=1, max_length=128)
    course: str = Field(..., min_length=1, max_length=128)
    semester: Optional[str] = Field(None, max_length=8)
    previous_contributions: Optional[str] = Field(None, max_length=1000)
    linkedin_profile: Optional[str] = Field(None, max_length=256)
    github_profile: Optional[str] = Field(None, max_length=256)


class ModeratorRequestDecision(BaseModel):
    admin_feedback: Optional[str] = Field(None, max_length=1000)


class ModeratorRequestOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    applicant_id: uuid.UUID
    reason: str
    experience: str
    additional_info: Optional[str] = None
    college: str
    course: str
    semester: Optional[str] = None
    previous_contributions: Optional[str] = None
    linkedin_profile: Optional[str] = None
    github_profile: Optional[str] = None
    status: str
    reviewed_by: Optional[uuid.UUID] = None
    reviewed_at: Optional[datetime] = None
    admin_feedback: Optional[str] = None
    created_at: datetime
    updated_at: datetime
