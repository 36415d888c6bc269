from __future__ import annotations

from typing import Optional

from college_notes.models.enums import NoteStatus
from college_notes.models.note import Note
from college_notes.policies.rbac import Principal, is_moderator


def can_view(note: Note, viewer: Optional[Principal]) -> bool:
    if note.status == NoteStatus.approved.value:
        return True
    if viewer is None:
        return False
    if note.uploaded_by is not None and str(note.uploaded_by) == viewer.user_id:
        return True
    return is_moderator(viewer)


def effective_status_filter(requested: Optional[str], viewer: Optional[Principal]) -> Optional[str]:
    """
    Status filter actually applied to a listing.
    Non-moderators always get approved notes only, whatever they asked for.
    Returns None for "no status filter".
    """
    if not is_moderator(viewer):
        return NoteStatus.approved.value
    if not requested or requested == "all":
        return None
    return requested
