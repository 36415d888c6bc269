# college_notes/services/reconcile_service.py
"""
Orphan sweep for the pending prefix.

A pending object becomes orphaned when an upload's DB commit fails and the
compensating delete fails too, or when relocation copied a blob but could not
remove the source. Nothing references such objects; this sweep finds them.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from college_notes.core.config import get_settings
from college_notes.models.note import Note
from college_notes.models.enums import UserRole
from college_notes.policies.rbac import Principal, require_role
from college_notes.services.audit_service import AuditAction, AuditService
from college_notes.storage.keys import PENDING_PREFIX, key_timestamp_ms
from college_notes.storage.object_store import ObjectStore

logger = logging.getLogger(__name__)


@dataclass
class ReconcileReport:
    scanned: int = 0
    orphaned_keys: List[str] = field(default_factory=list)
    deleted_keys: List[str] = field(default_factory=list)
    recent_keys: List[str] = field(default_factory=list)
    dry_run: bool = True


class ReconcileService:
    def __init__(
        self,
        store: ObjectStore,
        audit: Optional[AuditService] = None,
        grace_seconds: Optional[int] = None,
    ):
        self.store = store
        self.audit = audit or AuditService()
        if grace_seconds is None:
            grace_seconds = get_settings().reconcile_grace_seconds
        self.grace_seconds = grace_seconds

    def _is_recent(self, key: str, now_ms: int) -> bool:
        # an upload writes its blob before the note row commits
        stamp = key_timestamp_ms(key)
        return stamp is not None and now_ms - stamp < self.grace_seconds * 1000

    def sweep(
        self,
        db: Session,
        actor: Principal,
        *,
        dry_run: bool = True,
        request_id: Optional[str] = None,
    ) -> ReconcileReport:
        require_role(actor, UserRole.ADMIN, "Admin access required")
        keys = self.store.list_keys(PENDING_PREFIX + "/")
        referenced = set(
            db.execute(
                select(Note.file_key).where(Note.file_key.startswith(PENDING_PREFIX + "/"))
            ).scalars().all()
        )

        report = ReconcileReport(scanned=len(keys), dry_run=dry_run)
        now_ms = int(time.time() * 1000)
        for key in sorted(k for k in keys if k not in referenced):
            if self._is_recent(key, now_ms):
                report.recent_keys.append(key)
            else:
                report.orphaned_keys.append(key)

        if not dry_run:
            for key in report.orphaned_keys:
                if self.store.delete_quietly(key):
                    report.deleted_keys.append(key)

        self.audit.write(
            db,
            actor=actor,
            action=AuditAction.STORAGE_RECONCILED,
            target_type="storage",
            target_id=PENDING_PREFIX,
            request_id=request_id,
            details={
                "scanned": report.scanned,
                "orphaned": len(report.orphaned_keys),
                "deleted": len(report.deleted_keys),
                "recent": len(report.recent_keys),
                "dry_run": dry_run,
            },
        )
        db.commit()
        logger.info(
            "storage reconciled",
            extra={"scanned": report.scanned, "orphaned": len(report.orphaned_keys), "dry_run": dry_run},
        )
        return report
