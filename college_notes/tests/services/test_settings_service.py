import pytest

from college_notes.core.errors import ValidationError
from college_notes.services.settings_service import SettingsService, allowed_mime_types, max_upload_bytes


def test_defaults_created_on_first_read(db):
    row = SettingsService().get(db)
    assert row.id == 1
    assert row.max_upload_size_mb == 50
    assert row.auto_approval is False
    assert row.require_login_for_upload is True
    assert "application/pdf" in allowed_mime_types(row)
    assert max_upload_bytes(row) == 50 * 1024 * 1024


def test_update_normalises_extensions(db):
    row = SettingsService().update(db, {"allowed_file_types": [".PDF", "pdf", "png"]})
    assert row.allowed_file_types == ["pdf", "png"]
    assert allowed_mime_types(row) == {"application/pdf", "image/png"}


def test_update_ignores_unknown_fields_and_nulls(db):
    row = SettingsService().update(db, {"id": 7, "site_name": None, "auto_approval": True})
    assert row.id == 1
    assert row.site_name == "College Notes"
    assert row.auto_approval is True


@pytest.mark.parametrize(
    "updates",
    [
        {"max_upload_size_mb": 0},
        {"max_upload_size_mb": 101},
        {"allowed_file_types": ["exe"]},
        {"allowed_file_types": []},
    ],
)
def test_invalid_updates_rejected(db, updates):
    with pytest.raises(ValidationError):
        SettingsService().update(db, updates)
