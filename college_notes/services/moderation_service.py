# college_notes/services/moderation_service.py
"""
Moderation engine.

Owns every status transition of a Note and keeps the object store in step
with the database. Store operations that follow a decision (relocation on
approve, blob removal on reject/delete) are best-effort: a store failure is
logged and the decision is still committed.
"""
from __future__ import annotations

import logging
import mimetypes
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, FrozenSet, Iterator, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from college_notes.core.errors import (
    AccessDeniedError,
    AppError,
    AuthError,
    ConflictError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from college_notes.models.enums import (
    College,
    ModerationAction,
    NoteStatus,
    ProgramLevel,
    UploadType,
    UserRole,
)
from college_notes.models.note import Note
from college_notes.models.site_settings import SiteSettings
from college_notes.policies.rbac import Principal, check_permission, require_role
from college_notes.services.audit_service import AuditAction, AuditService
from college_notes.services.notification_service import NotificationService, NotificationType
from college_notes.services.settings_service import (
    EXT_TO_MIME,
    SettingsService,
    allowed_mime_types,
    max_upload_bytes,
)
from college_notes.services.user_stats_service import UserStatsService
from college_notes.storage.keys import (
    PENDING_PREFIX,
    approved_key_for,
    build_object_key,
    split_filename,
)
from college_notes.storage.object_store import ObjectStore

logger = logging.getLogger(__name__)


class ModerationState(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    # terminal; the record no longer exists once reached
    DELETED = "deleted"


ALLOWED_TRANSITIONS: Dict[ModerationState, FrozenSet[ModerationState]] = {
    ModerationState.PENDING: frozenset(
        {ModerationState.APPROVED, ModerationState.REJECTED, ModerationState.DELETED}
    ),
    ModerationState.APPROVED: frozenset({ModerationState.REJECTED, ModerationState.DELETED}),
    ModerationState.REJECTED: frozenset({ModerationState.APPROVED, ModerationState.DELETED}),
    ModerationState.DELETED: frozenset(),
}

SYSTEM_AUTO_APPROVAL_REASON = "Auto-approval enabled"
REQUIRED_FIELDS = ("title", "college", "course", "semester", "subject", "upload_type")


@dataclass(frozen=True)
class DeletedNote:
    note_id: uuid.UUID
    title: str
    previous_state: ModerationState
    file_key: str
    uploaded_by: Optional[uuid.UUID]
    state: ModerationState = ModerationState.DELETED


@dataclass
class NoteDraft:
    """Client-supplied descriptive metadata for an upload, not yet validated."""
    title: str = ""
    description: str = ""
    college: str = ""
    course: str = ""
    subcourse: str = ""
    semester: str = ""
    subject: str = ""
    upload_type: str = ""
    program_level: str = ""
    professor: str = ""
    year: str = ""
    tags: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class UploadedFile:
    filename: str
    content_type: Optional[str]
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _state(note: Note) -> ModerationState:
    return ModerationState(note.status)


def check_transition(note: Note, target: ModerationState) -> None:
    current = _state(note)
    if target not in ALLOWED_TRANSITIONS[current]:
        raise ValidationError(f"Note is already {current.value}")


@contextmanager
def conflict_guard(db: Session) -> Iterator[None]:
    """
    Commit the work done inside the block. A version mismatch, whether hit
    on an intermediate flush or on commit, rolls back and becomes a 409.
    """
    try:
        yield
        db.commit()
    except StaleDataError:
        db.rollback()
        raise ConflictError("Note was modified by another request, reload and retry")


def validate_draft(draft: NoteDraft) -> NoteDraft:
    """
    Normalise and validate upload metadata. Raises ValidationError.
    """
    cleaned = NoteDraft(
        title=(draft.title or "").strip(),
        description=(draft.description or "").strip(),
        college=(draft.college or "").strip().lower(),
        course=(draft.course or "").strip(),
        subcourse=(draft.subcourse or "").strip(),
        semester=str(draft.semester or "").strip(),
        subject=(draft.subject or "").strip(),
        upload_type=(draft.upload_type or "").strip().lower(),
        program_level=(draft.program_level or "").strip().upper(),
        professor=(draft.professor or "").strip(),
        year=(draft.year or "").strip(),
        tags=[t.strip().lower() for t in (draft.tags or []) if t and t.strip()],
    )

    missing = [f for f in REQUIRED_FIELDS if not getattr(cleaned, f)]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    if len(cleaned.title) > 200:
        raise ValidationError("Title cannot exceed 200 characters")
    if len(cleaned.description) > 1000:
        raise ValidationError("Description cannot exceed 1000 characters")

    if cleaned.college not in {c.value for c in College}:
        raise ValidationError(f"Invalid college: {cleaned.college}")
    if cleaned.upload_type not in {u.value for u in UploadType}:
        raise ValidationError(f"Invalid upload type: {cleaned.upload_type}")
    if cleaned.program_level not in {p.value for p in ProgramLevel}:
        raise ValidationError("Program level must be UG or PG")

    if not cleaned.semester.isdigit() or not 1 <= int(cleaned.semester) <= 8:
        raise ValidationError("Semester must be between 1 and 8")
    cleaned.semester = str(int(cleaned.semester))

    return cleaned


def resolve_mime_type(file: UploadedFile) -> str:
    """
    Browsers often send application/octet-stream; fall back to the extension.
    """
    declared = (file.content_type or "").split(";")[0].strip().lower()
    if declared and declared != "application/octet-stream":
        return declared
    _, ext = split_filename(file.filename)
    return EXT_TO_MIME.get(ext) or mimetypes.guess_type(file.filename)[0] or "application/octet-stream"


def validate_file(file: Optional[UploadedFile], site: SiteSettings) -> str:
    """Check presence, size and type against site settings. Returns the MIME type."""
    if file is None or not file.filename or not file.data:
        raise ValidationError("Please upload a file")

    limit = max_upload_bytes(site)
    if file.size > limit:
        raise ValidationError(f"File too large. Maximum size is {site.max_upload_size_mb}MB")

    mime = resolve_mime_type(file)
    _, ext = split_filename(file.filename)
    allowed = allowed_mime_types(site)
    if mime not in allowed or (ext and ext not in site.allowed_file_types):
        raise ValidationError(
            f"Invalid file type. Allowed types: {', '.join(site.allowed_file_types)}"
        )
    return mime


class ModerationService:
    def __init__(
        self,
        store: ObjectStore,
        notifier: Optional[NotificationService] = None,
        stats: Optional[UserStatsService] = None,
        settings_service: Optional[SettingsService] = None,
        audit: Optional[AuditService] = None,
    ):
        self.store = store
        self.notifier = notifier or NotificationService()
        self.stats = stats or UserStatsService()
        self.settings_service = settings_service or SettingsService()
        self.audit = audit or AuditService()

    # ------------------------------------------------------------------
    # lookups
    # ------------------------------------------------------------------
    def get_note(self, db: Session, note_id: uuid.UUID) -> Note:
        note = db.get(Note, note_id)
        if note is None:
            raise NotFoundError("Note not found")
        return note

    # ------------------------------------------------------------------
    # upload
    # ------------------------------------------------------------------
    def upload(
        self,
        db: Session,
        *,
        draft: NoteDraft,
        file: Optional[UploadedFile],
        uploader: Optional[Principal],
        request_id: Optional[str] = None,
    ) -> Note:
        site = self.settings_service.get(db)
        if uploader is None and site.require_login_for_upload:
            raise AuthError("Login required to upload notes")

        meta = validate_draft(draft)
        mime = validate_file(file, site)

        note_id = uuid.uuid4()
        key = build_object_key(
            {
                "college": meta.college,
                "program_level": meta.program_level,
                "course": meta.course,
                "subcourse": meta.subcourse,
                "semester": meta.semester,
                "subject": meta.subject,
                "upload_type": meta.upload_type,
            },
            file.filename,
            is_pending=True,
        )

        put = self.store.put(
            key,
            file.data,
            mime,
            metadata={
                "note-id": str(note_id),
                "uploaded-by": uploader.user_id if uploader else "anonymous",
            },
        )

        try:
            note = Note(
                id=note_id,
                title=meta.title,
                description=meta.description,
                college=meta.college,
                course=meta.course,
                subcourse=meta.subcourse,
                semester=meta.semester,
                subject=meta.subject,
                program_level=meta.program_level,
                upload_type=meta.upload_type,
                professor=meta.professor,
                year=meta.year,
                tags=meta.tags,
                file_original_name=file.filename,
                file_key=put.key,
                file_bucket=put.bucket,
                file_mime_type=mime,
                file_size=file.size,
                file_uploaded_at=_now(),
                uploaded_by=uploader.uuid if uploader else None,
                status=NoteStatus.pending.value,
            )
            note.record_event(ModerationAction.uploaded, note.uploaded_by, "Initial upload")
            db.add(note)
            self.stats.recompute(db, note.uploaded_by)
            self.audit.write(
                db,
                actor=uploader,
                action=AuditAction.NOTE_UPLOADED,
                target_type="note",
                target_id=note_id,
                request_id=request_id,
                details={"file_key": put.key, "file_size": file.size},
            )
            db.commit()
        except Exception:
            db.rollback()
            if not self.store.delete_quietly(put.key):
                logger.error("orphaned pending object after failed upload", extra={"key": put.key})
            raise

        logger.info("note uploaded", extra={"note_id": str(note_id), "key": put.key})

        if site.auto_approval:
            try:
                self._publish(db, note, actor=None, reason=SYSTEM_AUTO_APPROVAL_REASON, request_id=request_id)
            except (AppError, SQLAlchemyError):
                db.rollback()
                logger.exception("auto-approval failed, note left pending", extra={"note_id": str(note_id)})
                db.refresh(note)

        return note

    # ------------------------------------------------------------------
    # approve
    # ------------------------------------------------------------------
    def approve(
        self,
        db: Session,
        note_id: uuid.UUID,
        actor: Principal,
        reason: Optional[str] = None,
        request_id: Optional[str] = None,
    ) -> Note:
        require_role(actor, UserRole.MODERATOR, "Moderator access required")
        note = self.get_note(db, note_id)
        check_transition(note, ModerationState.APPROVED)

        self._publish(db, note, actor=actor, reason=reason or "Note approved by moderator", request_id=request_id)
        return note

    def _copy_to_published(self, note: Note) -> Optional[str]:
        """
        Copy a pending blob to its published location. Returns the new key,
        or None when the note keeps its current key.
        """
        old_key = note.file_key
        if not old_key.startswith(PENDING_PREFIX + "/"):
            return None

        new_key = approved_key_for(old_key, note.path_metadata())
        try:
            self.store.copy(old_key, new_key)
        except StoreError:
            logger.exception(
                "relocation failed, keeping pending key",
                extra={"note_id": str(note.id), "key": old_key},
            )
            return None
        return new_key

    def _publish(
        self,
        db: Session,
        note: Note,
        *,
        actor: Optional[Principal],
        reason: str,
        request_id: Optional[str],
    ) -> None:
        """
        Approve and commit. The pending source is removed only once the new
        key is committed; a failed commit removes the published copy instead.
        """
        if _state(note) is ModerationState.REJECTED:
            # reject already removed the blob, so there is nothing to copy
            logger.warning(
                "approving a rejected note whose file was removed on rejection",
                extra={"note_id": str(note.id), "key": note.file_key},
            )

        old_key = note.file_key
        new_key = self._copy_to_published(note)
        try:
            with conflict_guard(db):
                self._approve(
                    db, note, actor=actor, reason=reason, request_id=request_id, file_key=new_key or old_key
                )
        except Exception:
            if new_key is not None and not self.store.delete_quietly(new_key):
                logger.error("published copy orphaned after failed approval", extra={"key": new_key})
            raise

        if new_key is not None and not self.store.delete_quietly(old_key):
            logger.warning("pending copy left behind after relocation", extra={"key": old_key})

    def _approve(
        self,
        db: Session,
        note: Note,
        *,
        actor: Optional[Principal],
        reason: str,
        request_id: Optional[str],
        file_key: str,
    ) -> None:
        actor_id = actor.uuid if actor else None

        note.file_key = file_key
        note.status = NoteStatus.approved.value
        note.approved_by = actor_id
        note.approved_at = _now()
        note.record_event(ModerationAction.approved, actor_id, reason)

        self.stats.recompute(db, note.uploaded_by)
        self.audit.write(
            db,
            actor=actor,
            action=AuditAction.NOTE_APPROVED if actor else AuditAction.NOTE_AUTO_APPROVED,
            target_type="note",
            target_id=note.id,
            request_id=request_id,
            details={"file_key": note.file_key},
        )
        self.notifier.notify(
            db,
            user_id=note.uploaded_by,
            type=NotificationType.NOTE_APPROVED,
            title="Note approved",
            message=f'Your note "{note.title}" has been approved and is now public.',
            link=f"/notes/{note.id}",
            metadata={"note_id": str(note.id)},
        )

    # ------------------------------------------------------------------
    # reject
    # ------------------------------------------------------------------
    def reject(
        self,
        db: Session,
        note_id: uuid.UUID,
        actor: Principal,
        reason: Optional[str],
        request_id: Optional[str] = None,
    ) -> Note:
        require_role(actor, UserRole.MODERATOR, "Moderator access required")
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("Rejection reason is required")

        note = self.get_note(db, note_id)
        check_transition(note, ModerationState.REJECTED)

        with conflict_guard(db):
            self._reject(db, note, actor=actor, reason=reason, request_id=request_id)

        if not self.store.delete_quietly(note.file_key):
            logger.warning("rejected note blob not removed", extra={"key": note.file_key})
        return note

    def _reject(
        self,
        db: Session,
        note: Note,
        *,
        actor: Principal,
        reason: str,
        request_id: Optional[str],
    ) -> None:
        note.status = NoteStatus.rejected.value
        note.rejected_by = actor.uuid
        note.rejected_at = _now()
        note.rejection_reason = reason
        note.record_event(ModerationAction.rejected, actor.uuid, reason)

        self.stats.recompute(db, note.uploaded_by)
        self.audit.write(
            db,
            actor=actor,
            action=AuditAction.NOTE_REJECTED,
            target_type="note",
            target_id=note.id,
            request_id=request_id,
            details={"reason": reason},
        )
        self.notifier.notify(
            db,
            user_id=note.uploaded_by,
            type=NotificationType.NOTE_REJECTED,
            title="Note rejected",
            message=f'Your note "{note.title}" was rejected: {reason}',
            link=f"/notes/{note.id}",
            metadata={"note_id": str(note.id), "reason": reason},
        )

    # ------------------------------------------------------------------
    # delete
    # ------------------------------------------------------------------
    def delete(
        self,
        db: Session,
        note_id: uuid.UUID,
        actor: Principal,
        request_id: Optional[str] = None,
    ) -> DeletedNote:
        note = self.get_note(db, note_id)

        is_owner = note.uploaded_by is not None and str(note.uploaded_by) == actor.user_id
        if not is_owner and not check_permission(actor.role, UserRole.SENIOR_MODERATOR):
            raise AccessDeniedError(
                "Only the owner can delete directly. Moderators should create a "
                "delete request for senior moderator or admin approval."
            )

        with conflict_guard(db):
            deleted = self.destroy(db, note, actor=actor, request_id=request_id)
        logger.info("note deleted", extra={"note_id": str(deleted.note_id)})
        return deleted

    def destroy(
        self,
        db: Session,
        note: Note,
        *,
        actor: Principal,
        request_id: Optional[str] = None,
        audit_action: str = AuditAction.NOTE_DELETED,
    ) -> DeletedNote:
        """
        Remove the blob (best-effort) and the record. Does not commit.
        """
        check_transition(note, ModerationState.DELETED)
        deleted = DeletedNote(
            note_id=note.id,
            title=note.title,
            previous_state=_state(note),
            file_key=note.file_key,
            uploaded_by=note.uploaded_by,
        )

        if not self.store.delete_quietly(note.file_key):
            logger.warning("deleted note blob not removed", extra={"key": note.file_key})

        db.delete(note)
        self.stats.recompute(db, deleted.uploaded_by)
        self.audit.write(
            db,
            actor=actor,
            action=audit_action,
            target_type="note",
            target_id=deleted.note_id,
            request_id=request_id,
            details={"title": deleted.title, "previous_state": deleted.previous_state.value},
        )

        if deleted.uploaded_by is not None and str(deleted.uploaded_by) != actor.user_id:
            self.notifier.notify(
                db,
                user_id=deleted.uploaded_by,
                type=NotificationType.NOTE_DELETED,
                title="Note deleted",
                message=f'Your note "{deleted.title}" has been removed by a moderator.',
                metadata={"note_id": str(deleted.note_id)},
            )
        return deleted
