from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from college_notes.models.enums import NoteStatus
from college_notes.models.note import Note
from college_notes.models.user import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadStats:
    total: int = 0
    approved: int = 0
    rejected: int = 0

    @property
    def pending(self) -> int:
        return self.total - self.approved - self.rejected

    def as_dict(self) -> Dict[str, int]:
        return {
            "total_uploads": self.total,
            "approved_uploads": self.approved,
            "rejected_uploads": self.rejected,
            "pending_uploads": self.pending,
        }


def _fold(rows) -> UploadStats:
    by_status = {status: int(n) for status, n in rows}
    return UploadStats(
        total=sum(by_status.values()),
        approved=by_status.get(NoteStatus.approved.value, 0),
        rejected=by_status.get(NoteStatus.rejected.value, 0),
    )


class UserStatsService:
    """
    The upload counters on User are a cache of Note counts.
    recompute() is the only write path; nothing increments them in place.
    """

    def count(self, db: Session, user_id: uuid.UUID) -> UploadStats:
        rows = db.execute(
            select(Note.status, func.count())
            .where(Note.uploaded_by == user_id)
            .group_by(Note.status)
        ).all()
        return _fold(rows)

    def count_many(self, db: Session, user_ids: Iterable[uuid.UUID]) -> Dict[uuid.UUID, UploadStats]:
        ids = list({u for u in user_ids if u is not None})
        if not ids:
            return {}
        rows = db.execute(
            select(Note.uploaded_by, Note.status, func.count())
            .where(Note.uploaded_by.in_(ids))
            .group_by(Note.uploaded_by, Note.status)
        ).all()
        grouped: Dict[uuid.UUID, list] = {}
        for uid, status, n in rows:
            grouped.setdefault(uid, []).append((status, n))
        return {uid: _fold(grouped.get(uid, [])) for uid in ids}

    def recompute(self, db: Session, user_id: Optional[uuid.UUID]) -> Optional[UploadStats]:
        """
        Overwrite the user's counters from a fresh count. Flushes pending
        changes first so the count sees the caller's own transition.
        Does not commit.
        """
        if user_id is None:
            return None
        user = db.get(User, user_id)
        if user is None:
            return None

        db.flush()
        stats = self.count(db, user_id)
        user.total_uploads = stats.total
        user.approved_uploads = stats.approved
        user.rejected_uploads = stats.rejected
        return stats

    def recompute_all(self, db: Session) -> int:
        user_ids = db.execute(select(User.id)).scalars().all()
        for uid in user_ids:
            self.recompute(db, uid)
        db.commit()
        logger.info("user stats recomputed", extra={"users": len(user_ids)})
        return len(user_ids)
