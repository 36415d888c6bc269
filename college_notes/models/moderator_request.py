# college_notes/models/moderator_request.py
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Index, String, Uuid, func, text
from sqlalchemy.orm import Mapped, mapped_column

from college_notes.db.base import Base, utcnow
from college_notes.models.enums import ModeratorRequestStatus


class ModeratorRequest(Base):
    __tablename__ = "moderator_requests"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    applicant_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)

    reason: Mapped[str] = mapped_column(String(1000), nullable=False)
    experience: Mapped[str] = mapped_column(String(500), nullable=False)
    additional_info: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    college: Mapped[str] = mapped_column(String(128), nullable=False)
    course: Mapped[str] = mapped_column(String(128), nullable=False)
    semester: Mapped[Optional[str]] = mapped_column(String(8), nullable=True)

    previous_contributions: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    linkedin_profile: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    github_profile: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    ip_address: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    status: Mapped[str] = mapped_column(String(16), nullable=False, default=ModeratorRequestStatus.pending.value)
    reviewed_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    admin_feedback: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow, server_default=func.now()
    )

    __table_args__ = (
        Index(
            "uq_moderator_request_pending_applicant",
            "applicant_id",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
        Index("ix_moderator_requests_status_created", "status", "created_at"),
    )
