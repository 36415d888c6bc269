# college_notes/services/settings_service.py
from __future__ import annotations

from typing import Any, Dict, Set

from sqlalchemy.orm import Session

from college_notes.core.errors import ValidationError
from college_notes.models.site_settings import SiteSettings

# extension -> MIME type accepted for that extension
EXT_TO_MIME = {
    "pdf": "application/pdf",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "ppt": "application/vnd.ms-powerpoint",
    "pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "txt": "text/plain",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
}

EDITABLE_FIELDS = {
    "site_name",
    "max_upload_size_mb",
    "allowed_file_types",
    "auto_approval",
    "moderator_auto_approval",
    "require_login_for_upload",
}


def allowed_mime_types(settings: SiteSettings) -> Set[str]:
    return {EXT_TO_MIME[ext] for ext in settings.allowed_file_types if ext in EXT_TO_MIME}


def max_upload_bytes(settings: SiteSettings) -> int:
    return settings.max_upload_size_mb * 1024 * 1024


class SettingsService:
    def get(self, db: Session) -> SiteSettings:
        """Return the single settings row, creating it with defaults on first use."""
        row = db.get(SiteSettings, 1)
        if row is None:
            row = SiteSettings(id=1)
            db.add(row)
            db.commit()
            db.refresh(row)
        return row

    def update(self, db: Session, updates: Dict[str, Any]) -> SiteSettings:
        row = self.get(db)
        changes = {k: v for k, v in updates.items() if k in EDITABLE_FIELDS and v is not None}

        if "max_upload_size_mb" in changes:
            size = int(changes["max_upload_size_mb"])
            if size < 1 or size > 100:
                raise ValidationError("max_upload_size_mb must be between 1 and 100 MB")
            changes["max_upload_size_mb"] = size

        if "allowed_file_types" in changes:
            exts = [str(x).lower().lstrip(".") for x in changes["allowed_file_types"]]
            exts = [x for x in dict.fromkeys(exts) if x]
            unknown = [x for x in exts if x not in EXT_TO_MIME]
            if unknown:
                raise ValidationError(f"Unsupported file types: {', '.join(unknown)}")
            if not exts:
                raise ValidationError("allowed_file_types cannot be empty")
            changes["allowed_file_types"] = exts

        for k, v in changes.items():
            setattr(row, k, v)

        db.commit()
        db.refresh(row)
        return row
