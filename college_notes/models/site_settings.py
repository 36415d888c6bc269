# college_notes/models/site_settings.py
from __future__ import annotations

from datetime import datetime
from typing import List

from sqlalchemy import Boolean, DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from college_notes.db.base import Base, JSONType, utcnow

DEFAULT_ALLOWED_FILE_TYPES = ["pdf", "doc", "docx", "ppt", "pptx", "txt", "jpg", "png"]


class SiteSettings(Base):
    """
    Single-row table of runtime-editable site policy.
    """
    __tablename__ = "site_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=1)

    site_name: Mapped[str] = mapped_column(String(128), nullable=False, default="College Notes")
    max_upload_size_mb: Mapped[int] = mapped_column(Integer, nullable=False, default=50)
    allowed_file_types: Mapped[List[str]] = mapped_column(
        JSONType, nullable=False, default=lambda: list(DEFAULT_ALLOWED_FILE_TYPES)
    )

    auto_approval: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    moderator_auto_approval: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    require_login_for_upload: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow, server_default=func.now()
    )
