from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import String, DateTime, Index, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from college_notes.db.base import Base, JSONType, utcnow


class AuditLog(Base):
    """
    Append-only trail of moderation and administration actions.
    Outlives the notes it refers to (target_id is a plain reference).
    """
    __tablename__ = "audit_logs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    actor_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)  # None = system
    actor_role: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    action: Mapped[str] = mapped_column(String(64), nullable=False)

    target_type: Mapped[str] = mapped_column(String(32), nullable=False)
    target_id: Mapped[str] = mapped_column(String(64), nullable=False)

    request_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    details_json: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    __table_args__ = (
        Index("ix_audit_target", "target_type", "target_id"),
        Index("ix_audit_created_at", "created_at"),
    )
