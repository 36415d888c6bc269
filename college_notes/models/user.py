# college_notes/models/user.py
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from college_notes.db.base import Base, utcnow
from college_notes.models.enums import UserRole


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    email: Mapped[str] = mapped_column(String(254), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(256), nullable=False)

    role: Mapped[str] = mapped_column(String(32), nullable=False, default=UserRole.USER.value)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # academic profile
    college_name: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    course: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    semester: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    student_type: Mapped[Optional[str]] = mapped_column(String(8), nullable=True)

    # Upload counters. Cache only: written exclusively by UserStatsService.recompute.
    total_uploads: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    approved_uploads: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    rejected_uploads: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow, server_default=func.now()
    )

    __table_args__ = (Index("ix_users_role", "role"),)

    @property
    def role_enum(self) -> UserRole:
        return UserRole(self.role)
