# college_notes/models/delete_request.py
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Index, String, Uuid, func, text
from sqlalchemy.orm import Mapped, mapped_column

from college_notes.db.base import Base, utcnow
from college_notes.models.enums import DeleteRequestStatus


class DeleteRequest(Base):
    """
    A moderator's proposal to remove an approved note.
    At most one pending request per note (partial unique index).
    """
    __tablename__ = "delete_requests"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # plain reference: the note row is gone once the request executes
    note_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    note_title: Mapped[str] = mapped_column(String(200), nullable=False, default="")

    requester_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    status: Mapped[str] = mapped_column(String(16), nullable=False, default=DeleteRequestStatus.pending.value)
    decided_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    decided_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    decision_reason: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow, server_default=func.now()
    )

    __table_args__ = (
        Index(
            "uq_delete_request_pending_note",
            "note_id",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
        Index("ix_delete_requests_status_created", "status", "created_at"),
    )
