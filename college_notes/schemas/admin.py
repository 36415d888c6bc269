from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from college_notes.models.enums import UserRole


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
    name: str
    role: str
    is_active: bool
    college_name: Optional[str] = None
    course: Optional[str] = None
    semester: Optional[int] = None
    student_type: Optional[str] = None
    total_uploads: int = 0
    approved_uploads: int = 0
    rejected_uploads: int = 0
    created_at: datetime


class RoleChangeRequest(BaseModel):
    role: UserRole


class StatusChangeRequest(BaseModel):
    is_active: bool


class SiteSettingsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    site_name: str
    max_upload_size_mb: int
    allowed_file_types: List[str]
    auto_approval: bool
    moderator_auto_approval: bool
    require_login_for_upload: bool
    updated_at: Optional[datetime] = None


class SiteSettingsPatch(BaseModel):
    site_name: Optional[str] = Field(None, min_length=1, max_length=128)
    max_upload_size_mb: Optional[int] = None
    allowed_file_types: Optional[List[str]] = None
    auto_approval: Optional[bool] = None
    moderator_auto_approval: Optional[bool] = None
    require_login_for_upload: Optional[bool] = None


class ReconcileRequest(BaseModel):
    dry_run: bool = True


class ReconcileReportOut(BaseModel):
    scanned: int
    orphaned_keys: List[str]
    deleted_keys: List[str]
    recent_keys: List[str] = Field(default_factory=list)
    dry_run: bool
