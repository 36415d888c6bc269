from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, or_, select, update
from sqlalchemy.orm import Session

from college_notes.core.errors import AccessDeniedError, NotFoundError, StoreError
from college_notes.models.enums import NoteStatus, UserRole
from college_notes.models.note import Note
from college_notes.policies.rbac import Principal, require_role
from college_notes.policies.visibility import can_view, effective_status_filter
from college_notes.schemas.notes import NoteListQuery
from college_notes.storage.keys import display_name_from_key
from college_notes.storage.object_store import ObjectStore

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    "created_at": Note.created_at,
    "updated_at": Note.updated_at,
    "title": Note.title,
    "download_count": Note.download_count,
}


def _like(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


@dataclass(frozen=True)
class DownloadLink:
    url: str
    file_name: str
    expires_in: int
    download_count: int


class NoteQueryService:
    def _filtered(self, q, query: NoteListQuery):
        if query.college:
            q = q.where(Note.college == query.college.lower())
        if query.semester:
            q = q.where(Note.semester == str(query.semester))
        if query.upload_type:
            q = q.where(Note.upload_type == query.upload_type.lower())
        if query.program_level:
            q = q.where(Note.program_level == query.program_level.upper())
        # free-text fields match case-insensitively anywhere in the value
        if query.course:
            q = q.where(Note.course.ilike(_like(query.course), escape="\\"))
        if query.subcourse:
            q = q.where(Note.subcourse.ilike(_like(query.subcourse), escape="\\"))
        if query.subject:
            q = q.where(Note.subject.ilike(_like(query.subject), escape="\\"))
        if query.search:
            terms = [t for t in query.search.lower().split() if t]
            for term in terms:
                pattern = _like(term)
                q = q.where(
                    or_(
                        Note.search_keywords.like(pattern, escape="\\"),
                        func.lower(Note.description).like(pattern, escape="\\"),
                    )
                )
        return q

    def _page(self, db: Session, base, query: NoteListQuery) -> Tuple[List[Note], int]:
        total = db.execute(select(func.count()).select_from(base.subquery())).scalar_one()

        col = SORT_COLUMNS[query.sort_by]
        order = col.asc() if query.sort_order == "asc" else col.desc()
        rows = db.execute(
            base.order_by(order, Note.id)
            .offset((query.page - 1) * query.limit)
            .limit(query.limit)
        ).scalars().all()
        return list(rows), int(total)

    def list_notes(
        self, db: Session, viewer: Optional[Principal], query: NoteListQuery
    ) -> Tuple[List[Note], int]:
        """
        Browse notes. Visibility is enforced here, not by the caller: anyone
        below moderator only ever sees approved notes.
        """
        base = self._filtered(select(Note), query)
        status = effective_status_filter(query.status, viewer)
        if status:
            base = base.where(Note.status == status)
        return self._page(db, base, query)

    def my_notes(
        self, db: Session, viewer: Principal, query: NoteListQuery
    ) -> Tuple[List[Note], int]:
        base = self._filtered(select(Note).where(Note.uploaded_by == viewer.uuid), query)
        if query.status and query.status != "all":
            base = base.where(Note.status == query.status)
        return self._page(db, base, query)

    def get_visible(self, db: Session, note_id: uuid.UUID, viewer: Optional[Principal]) -> Note:
        note = db.get(Note, note_id)
        if note is None:
            raise NotFoundError("Note not found")
        if not can_view(note, viewer):
            raise AccessDeniedError("Access denied. This note is not yet approved.")
        return note

    def download(
        self,
        db: Session,
        note_id: uuid.UUID,
        viewer: Optional[Principal],
        store: ObjectStore,
        ttl_seconds: int,
    ) -> DownloadLink:
        note = self.get_visible(db, note_id, viewer)

        url = store.try_presigned_get_url(note.file_key, ttl_seconds)
        if not url:
            raise StoreError("Failed to generate download link")

        # atomic increment; never decreases
        db.execute(
            update(Note)
            .where(Note.id == note.id)
            .values(download_count=Note.download_count + 1)
            .execution_options(synchronize_session=False)
        )
        db.commit()
        db.refresh(note)

        return DownloadLink(
            url=url,
            file_name=note.file_original_name or display_name_from_key(note.file_key),
            expires_in=ttl_seconds,
            download_count=note.download_count,
        )

    def moderation_stats(self, db: Session, viewer: Principal, recent_limit: int = 10) -> Dict[str, Any]:
        require_role(viewer, UserRole.MODERATOR, "Moderator access required")
        rows = db.execute(select(Note.status, func.count()).group_by(Note.status)).all()
        counts = {s.value: 0 for s in NoteStatus}
        counts.update({status: int(n) for status, n in rows})
        counts["total"] = sum(counts.values())

        recent = db.execute(
            select(Note)
            .where(Note.status != NoteStatus.pending.value)
            .order_by(Note.updated_at.desc())
            .limit(recent_limit)
        ).scalars().all()

        return {
            "counts": counts,
            "recent_activity": [
                {
                    "id": str(n.id),
                    "title": n.title,
                    "status": n.status,
                    "approved_by": str(n.approved_by) if n.approved_by else None,
                    "rejected_by": str(n.rejected_by) if n.rejected_by else None,
                    "updated_at": n.updated_at.isoformat() if n.updated_at else None,
                }
                for n in recent
            ],
        }
