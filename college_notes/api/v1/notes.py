#college_notes/api/v1/notes.py
from __future__ import annotations

import math
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session

from college_notes.core.auth_deps import get_current_principal, get_optional_principal, require_min_role
from college_notes.core.config import get_settings
from college_notes.core.deps import get_moderation_service, get_object_store, get_request_id
from college_notes.core.errors import envelope
from college_notes.db.session import get_db
from college_notes.models.enums import UserRole
from college_notes.models.note import Note
from college_notes.policies.rbac import Principal, is_moderator
from college_notes.schemas.notes import (
    ApproveRequest,
    DeletedNoteOut,
    DownloadOut,
    NoteListQuery,
    NoteOut,
    RejectRequest,
)
from college_notes.services.moderation_service import ModerationService, NoteDraft, UploadedFile
from college_notes.services.note_query_service import NoteQueryService
from college_notes.services.user_stats_service import UserStatsService
from college_notes.storage.object_store import ObjectStore

router = APIRouter(prefix="/notes")

_queries = NoteQueryService()


def _pagination(query: NoteListQuery, total: int) -> dict:
    return {
        "page": query.page,
        "limit": query.limit,
        "total": total,
        "pages": math.ceil(total / query.limit) if total else 0,
    }


def _dump(note: Note, include_history: bool = True) -> dict:
    return NoteOut.from_note(note, include_history=include_history).model_dump(mode="json")


def _split_tags(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    return [t for t in (part.strip() for part in raw.split(",")) if t]


@router.post("/upload", status_code=201)
def upload_note(
    title: str = Form(""),
    description: str = Form(""),
    college: str = Form(""),
    course: str = Form(""),
    subcourse: str = Form(""),
    semester: str = Form(""),
    subject: str = Form(""),
    upload_type: str = Form(""),
    program_level: str = Form(""),
    professor: str = Form(""),
    year: str = Form(""),
    tags: str = Form(""),
    file: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    principal: Optional[Principal] = Depends(get_optional_principal),
    svc: ModerationService = Depends(get_moderation_service),
    request_id: Optional[str] = Depends(get_request_id),
):
    uploaded = None
    if file is not None:
        uploaded = UploadedFile(
            filename=file.filename or "",
            content_type=file.content_type,
            data=file.file.read(),
        )

    draft = NoteDraft(
        title=title,
        description=description,
        college=college,
        course=course,
        subcourse=subcourse,
        semester=semester,
        subject=subject,
        upload_type=upload_type,
        program_level=program_level,
        professor=professor,
        year=year,
        tags=_split_tags(tags),
    )
    note = svc.upload(db, draft=draft, file=uploaded, uploader=principal, request_id=request_id)

    message = (
        "Note uploaded and approved"
        if note.status == "approved"
        else "Note uploaded successfully and is pending review"
    )
    return envelope(data=_dump(note), message=message)


@router.get("")
def list_notes(
    query: NoteListQuery = Depends(),
    db: Session = Depends(get_db),
    principal: Optional[Principal] = Depends(get_optional_principal),
):
    notes, total = _queries.list_notes(db, principal, query)
    items = [_dump(n, include_history=False) for n in notes]

    # moderators see the uploader's track record next to each note
    if is_moderator(principal):
        stats = UserStatsService().count_many(db, [n.uploaded_by for n in notes])
        for item, n in zip(items, notes):
            s = stats.get(n.uploaded_by)
            item["uploader_stats"] = s.as_dict() if s else None

    return envelope(data={"notes": items, "pagination": _pagination(query, total)})


@router.get("/my")
def my_notes(
    query: NoteListQuery = Depends(),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
):
    notes, total = _queries.my_notes(db, principal, query)
    return envelope(
        data={
            "notes": [_dump(n) for n in notes],
            "pagination": _pagination(query, total),
        }
    )


@router.get("/stats")
def moderation_stats(
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_min_role(UserRole.MODERATOR, "Moderator access required")),
):
    return envelope(data=_queries.moderation_stats(db, principal))


@router.get("/{note_id}")
def get_note(
    note_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Optional[Principal] = Depends(get_optional_principal),
):
    note = _queries.get_visible(db, note_id, principal)
    return envelope(data=_dump(note))


@router.get("/{note_id}/download")
def download_note(
    note_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Optional[Principal] = Depends(get_optional_principal),
    store: ObjectStore = Depends(get_object_store),
):
    ttl = get_settings().presign_ttl_seconds
    link = _queries.download(db, note_id, principal, store, ttl)
    out = DownloadOut(
        download_url=link.url,
        file_name=link.file_name,
        expires_in=link.expires_in,
        download_count=link.download_count,
    )
    return envelope(data=out.model_dump())


@router.patch("/{note_id}/approve")
def approve_note(
    note_id: uuid.UUID,
    body: Optional[ApproveRequest] = None,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_min_role(UserRole.MODERATOR, "Moderator access required")),
    svc: ModerationService = Depends(get_moderation_service),
    request_id: Optional[str] = Depends(get_request_id),
):
    reason = body.reason if body else None
    note = svc.approve(db, note_id, principal, reason=reason, request_id=request_id)
    return envelope(data=_dump(note), message="Note approved successfully")


@router.patch("/{note_id}/reject")
def reject_note(
    note_id: uuid.UUID,
    body: RejectRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_min_role(UserRole.MODERATOR, "Moderator access required")),
    svc: ModerationService = Depends(get_moderation_service),
    request_id: Optional[str] = Depends(get_request_id),
):
    note = svc.reject(db, note_id, principal, body.reason, request_id=request_id)
    return envelope(data=_dump(note), message="Note rejected")


@router.delete("/{note_id}")
def delete_note(
    note_id: uuid.UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal),
    svc: ModerationService = Depends(get_moderation_service),
    request_id: Optional[str] = Depends(get_request_id),
):
    deleted = svc.delete(db, note_id, principal, request_id=request_id)
    out = DeletedNoteOut(
        note_id=deleted.note_id,
        title=deleted.title,
        previous_state=deleted.previous_state.value,
        state=deleted.state.value,
    )
    return envelope(data=out.model_dump(mode="json"), message="Note deleted successfully")
