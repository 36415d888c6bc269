from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from college_notes.storage.keys import display_name_from_key


class ModerationEventOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    seq: int
    action: str
    actor_id: Optional[uuid.UUID] = None
    reason: Optional[str] = None
    created_at: datetime


class NoteFileOut(BaseModel):
    original_name: str
    display_name: str
    key: str
    bucket: str
    mime_type: str
    size: int
    uploaded_at: Optional[datetime] = None


class NoteOut(BaseModel):
    id: uuid.UUID
    title: str
    description: str
    college: str
    course: str
    subcourse: str
    semester: str
    subject: str
    program_level: str
    upload_type: str
    professor: str
    year: str
    tags: List[str] = Field(default_factory=list)

    file: NoteFileOut

    uploaded_by: Optional[uuid.UUID] = None
    status: str
    approved_by: Optional[uuid.UUID] = None
    approved_at: Optional[datetime] = None
    rejected_by: Optional[uuid.UUID] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    download_count: int = 0
    version: int

    moderation_history: List[ModerationEventOut] = Field(default_factory=list)

    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_note(cls, note, include_history: bool = True) -> "NoteOut":
        return cls(
            id=note.id,
            title=note.title,
            description=note.description,
            college=note.college,
            course=note.course,
            subcourse=note.subcourse,
            semester=note.semester,
            subject=note.subject,
            program_level=note.program_level,
            upload_type=note.upload_type,
            professor=note.professor,
            year=note.year,
            tags=list(note.tags or []),
            file=NoteFileOut(
                original_name=note.file_original_name,
                display_name=display_name_from_key(note.file_key),
                key=note.file_key,
                bucket=note.file_bucket,
                mime_type=note.file_mime_type,
                size=note.file_size,
                uploaded_at=note.file_uploaded_at,
            ),
            uploaded_by=note.uploaded_by,
            status=note.status,
            approved_by=note.approved_by,
            approved_at=note.approved_at,
            rejected_by=note.rejected_by,
            rejected_at=note.rejected_at,
            rejection_reason=note.rejection_reason,
            download_count=note.download_count,
            version=note.version,
            moderation_history=(
                [ModerationEventOut.model_validate(e) for e in note.moderation_events]
                if include_history
                else []
            ),
            created_at=note.created_at,
            updated_at=note.updated_at,
        )


class NoteListQuery(BaseModel):
    status: Optional[str] = None
    college: Optional[str] = None
    course: Optional[str] = None
    subcourse: Optional[str] = None
    semester: Optional[str] = None
    subject: Optional[str] = None
    upload_type: Optional[str] = None
    program_level: Optional[str] = None
    search: Optional[str] = None
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=100)
    sort_by: Literal["created_at", "updated_at", "title", "download_count"] = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"


class ApproveRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=1000)


class RejectRequest(BaseModel):
    # emptiness is checked by the moderation engine so the error names the rule
    reason: Optional[str] = Field(None, max_length=1000)


class DownloadOut(BaseModel):
    download_url: str
    file_name: str
    expires_in: int
    download_count: int


class DeletedNoteOut(BaseModel):
    note_id: uuid.UUID
    title: str
    previous_state: str
    state: str
