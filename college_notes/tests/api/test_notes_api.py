import uuid

import pytest

from college_notes.models.enums import UserRole
from college_notes.tests.helpers import PDF_UPLOAD, auth_headers, upload_form



def upload(client, user, **overrides):
    return client.post(
        "/api/v1/notes/upload",
        data=upload_form(**overrides),
        files={"file": PDF_UPLOAD},
        headers=auth_headers(user) if user is not None else {},
    )


@pytest.fixture()
def pending_note(client, make_user):
    uploader = make_user()
    r = upload(client, uploader)
    assert r.status_code == 201, r.text
    return uploader, r.json()["data"]


def test_upload_returns_pending_note(client, store, pending_note):
    uploader, note = pending_note
    assert note["status"] == "pending"
    assert note["uploaded_by"] == str(uploader.id)
    assert note["tags"] == ["scheduling", "threads"]
    assert note["file"]["key"].startswith("pending/nitk/UG/cse/sem6/os/notes/unit1_notes_")
    assert note["file"]["display_name"] == "unit1_notes.pdf"
    assert note["moderation_history"][0]["action"] == "uploaded"
    assert note["file"]["key"] in store.objects


def test_anonymous_upload_rejected(client):
    r = upload(client, None)
    assert r.status_code == 401
    assert r.json() == {"success": False, "message": "Login required to upload notes", "data": None}


def test_upload_validation_error_envelope(client, make_user):
    r = upload(client, make_user(), semester="12")
    assert r.status_code == 400
    assert r.json()["message"] == "Semester must be between 1 and 8"


def test_pending_note_hidden_from_public(client, make_user, pending_note):
    uploader, note = pending_note

    r = client.get(f"/api/v1/notes/{note['id']}")
    assert r.status_code == 403
    assert r.json()["message"] == "Access denied. This note is not yet approved."

    assert client.get(f"/api/v1/notes/{note['id']}", headers=auth_headers(uploader)).status_code == 200
    assert client.get("/api/v1/notes").json()["data"]["pagination"]["total"] == 0


def test_unknown_note_is_404(client):
    r = client.get(f"/api/v1/notes/{uuid.uuid4()}")
    assert r.status_code == 404
    assert r.json()["message"] == "Note not found"


def test_moderation_flow(client, store, make_user, pending_note):
    _, note = pending_note
    user = make_user()
    moderator = make_user(UserRole.MODERATOR)

    r = client.patch(f"/api/v1/notes/{note['id']}/approve", headers=auth_headers(user))
    assert r.status_code == 403
    assert r.json()["message"] == "Moderator access required"

    r = client.patch(
        f"/api/v1/notes/{note['id']}/approve",
        json={"reason": "Clear and complete"},
        headers=auth_headers(moderator),
    )
    assert r.status_code == 200, r.text
    approved = r.json()["data"]
    assert approved["status"] == "approved"
    assert approved["file"]["key"].startswith("college-notes/")
    assert approved["moderation_history"][-1]["reason"] == "Clear and complete"

    r = client.patch(f"/api/v1/notes/{note['id']}/approve", headers=auth_headers(moderator))
    assert r.status_code == 400
    assert r.json()["message"] == "Note is already approved"

    listing = client.get("/api/v1/notes").json()["data"]
    assert listing["pagination"]["total"] == 1
    assert "uploader_stats" not in listing["notes"][0]

    mod_listing = client.get("/api/v1/notes", headers=auth_headers(moderator)).json()["data"]
    assert mod_listing["notes"][0]["uploader_stats"]["approved_uploads"] == 1


def test_reject_requires_reason(client, make_user, pending_note):
    _, note = pending_note
    moderator = auth_headers(make_user(UserRole.MODERATOR))

    r = client.patch(f"/api/v1/notes/{note['id']}/reject", json={}, headers=moderator)
    assert r.status_code == 400
    assert r.json()["message"] == "Rejection reason is required"

    r = client.patch(f"/api/v1/notes/{note['id']}/reject", json={"reason": "Wrong subject"}, headers=moderator)
    assert r.status_code == 200
    assert r.json()["data"]["rejection_reason"] == "Wrong subject"


def test_download_link(client, store, make_user, pending_note):
    _, note = pending_note
    client.patch(
        f"/api/v1/notes/{note['id']}/approve",
        headers=auth_headers(make_user(UserRole.MODERATOR)),
    )

    r = client.get(f"/api/v1/notes/{note['id']}/download")
    assert r.status_code == 200, r.text
    data = r.json()["data"]
    assert data["download_url"].startswith("https://signed.example.test/college-notes/")
    assert data["file_name"] == "unit1 notes.pdf"
    assert data["download_count"] == 1

    store.fail_on.add("presign")
    r = client.get(f"/api/v1/notes/{note['id']}/download")
    assert r.status_code == 502
    assert r.json() == {"success": False, "message": "Failed to generate download link", "data": None}


def test_owner_deletes_note(client, store, pending_note):
    uploader, note = pending_note

    r = client.delete(f"/api/v1/notes/{note['id']}", headers=auth_headers(uploader))
    assert r.status_code == 200
    assert r.json()["data"]["state"] == "deleted"
    assert r.json()["data"]["previous_state"] == "pending"
    assert store.objects == {}

    assert client.delete(f"/api/v1/notes/{note['id']}", headers=auth_headers(uploader)).status_code == 404


def test_moderator_direct_delete_forbidden(client, make_user, pending_note):
    _, note = pending_note
    r = client.delete(f"/api/v1/notes/{note['id']}", headers=auth_headers(make_user(UserRole.MODERATOR)))
    assert r.status_code == 403


def test_my_notes(client, pending_note):
    uploader, note = pending_note
    r = client.get("/api/v1/notes/my", headers=auth_headers(uploader))
    assert r.status_code == 200
    assert [n["id"] for n in r.json()["data"]["notes"]] == [note["id"]]


def test_list_query_validation(client):
    assert client.get("/api/v1/notes", params={"limit": 1000}).status_code == 400
    assert client.get("/api/v1/notes", params={"sort_by": "password"}).status_code == 400
