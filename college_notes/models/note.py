# college_notes/models/note.py
from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    BigInteger,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    event,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from college_notes.db.base import Base, JSONType, utcnow
from college_notes.models.enums import ModerationAction, NoteStatus


class Note(Base):
    """
    A submitted document. Holds a pointer into the object store, never the bytes.
    """
    __tablename__ = "notes"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(String(1000), nullable=False, default="")

    college: Mapped[str] = mapped_column(String(16), nullable=False)
    course: Mapped[str] = mapped_column(String(128), nullable=False)
    subcourse: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    semester: Mapped[str] = mapped_column(String(2), nullable=False)  # "1".."8"
    subject: Mapped[str] = mapped_column(String(128), nullable=False)
    program_level: Mapped[str] = mapped_column(String(2), nullable=False, default="")
    upload_type: Mapped[str] = mapped_column(String(32), nullable=False)

    professor: Mapped[str] = mapped_column(String(128), nullable=False, default="")
    year: Mapped[str] = mapped_column(String(16), nullable=False, default="")
    tags: Mapped[List[str]] = mapped_column(JSONType, nullable=False, default=list)

    # object store reference
    file_original_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_key: Mapped[str] = mapped_column(String(1024), nullable=False, unique=True)
    file_bucket: Mapped[str] = mapped_column(String(255), nullable=False)
    file_mime_type: Mapped[str] = mapped_column(String(128), nullable=False)
    file_size: Mapped[int] = mapped_column(BigInteger, nullable=False)
    file_uploaded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    uploaded_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    status: Mapped[str] = mapped_column(String(16), nullable=False, default=NoteStatus.pending.value)

    approved_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    rejected_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    rejected_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    download_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    search_keywords: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # optimistic concurrency token, bumped by the ORM on every UPDATE
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow, server_default=func.now()
    )

    moderation_events: Mapped[List["NoteModerationEvent"]] = relationship(
        back_populates="note",
        order_by="NoteModerationEvent.seq",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("ix_notes_browse", "college", "course", "semester", "subject"),
        Index("ix_notes_status", "status"),
        Index("ix_notes_uploaded_by", "uploaded_by"),
    )

    def record_event(
        self,
        action: ModerationAction,
        actor_id: Optional[uuid.UUID],
        reason: Optional[str] = None,
    ) -> "NoteModerationEvent":
        """Append one entry to the moderation log. Entries are never edited."""
        ev = NoteModerationEvent(
            seq=len(self.moderation_events) + 1,
            action=action.value,
            actor_id=actor_id,
            reason=reason,
            created_at=utcnow(),
        )
        self.moderation_events.append(ev)
        return ev

    def refresh_search_keywords(self) -> None:
        parts = [self.title, self.subject, self.course, self.subcourse, *(self.tags or [])]
        self.search_keywords = " ".join(p for p in parts if p).lower()

    def path_metadata(self) -> dict:
        return {
            "college": self.college,
            "program_level": self.program_level,
            "course": self.course,
            "subcourse": self.subcourse,
            "semester": self.semester,
            "subject": self.subject,
            "upload_type": self.upload_type,
        }


class NoteModerationEvent(Base):
    """
    Append-only moderation log entry (never UPDATE).
    """
    __tablename__ = "note_moderation_events"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    note_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("notes.id", ondelete="CASCADE"), nullable=False
    )
    seq: Mapped[int] = mapped_column(Integer, nullable=False)

    action: Mapped[str] = mapped_column(String(32), nullable=False)
    actor_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    reason: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    note: Mapped[Note] = relationship(back_populates="moderation_events")

    __table_args__ = (UniqueConstraint("note_id", "seq", name="uq_note_event_seq"),)


@event.listens_for(Note, "before_insert")
@event.listens_for(Note, "before_update")
def _regenerate_keywords(mapper, connection, target: Note) -> None:
    target.refresh_search_keywords()
