import uuid

import pytest

from college_notes.core.errors import AccessDeniedError, NotFoundError, StoreError
from college_notes.models.enums import UserRole
from college_notes.schemas.notes import NoteListQuery
from college_notes.services.note_query_service import NoteQueryService
from college_notes.tests.helpers import principal_of

queries = NoteQueryService()


@pytest.fixture()
def catalogue(db, make_user, moderation, upload_note):
    """Two approved notes, one pending, one rejected."""
    uploader = make_user()
    moderator = principal_of(make_user(UserRole.MODERATOR))

    os_notes = upload_note(uploader, title="Operating Systems Unit 1", tags=["scheduling"])
    dbms = upload_note(uploader, title="DBMS Normal Forms", subject="DBMS", course="CSE", tags=["bcnf"])
    pending = upload_note(uploader, title="Compiler Design PYQ", subject="CD", upload_type="pyqs")
    rejected = upload_note(uploader, title="Blurry scan", subject="OS")

    moderation.approve(db, os_notes.id, moderator)
    moderation.approve(db, dbms.id, moderator)
    moderation.reject(db, rejected.id, moderator, "Unreadable")
    return {
        "uploader": uploader,
        "os": os_notes,
        "dbms": dbms,
        "pending": pending,
        "rejected": rejected,
    }


def titles(notes):
    return sorted(n.title for n in notes)


def test_anonymous_sees_only_approved(db, catalogue):
    notes, total = queries.list_notes(db, None, NoteListQuery(status="pending"))
    assert total == 2
    assert titles(notes) == ["DBMS Normal Forms", "Operating Systems Unit 1"]


def test_moderator_can_filter_by_status(db, catalogue, make_user):
    moderator = principal_of(make_user(UserRole.MODERATOR))

    pending, _ = queries.list_notes(db, moderator, NoteListQuery(status="pending"))
    assert titles(pending) == ["Compiler Design PYQ"]

    everything, total = queries.list_notes(db, moderator, NoteListQuery(status="all"))
    assert total == 4


def test_search_matches_title_and_tags(db, catalogue):
    by_tag, _ = queries.list_notes(db, None, NoteListQuery(search="BCNF"))
    assert titles(by_tag) == ["DBMS Normal Forms"]

    by_words, _ = queries.list_notes(db, None, NoteListQuery(search="operating unit"))
    assert titles(by_words) == ["Operating Systems Unit 1"]


def test_partial_subject_filter_is_case_insensitive(db, catalogue):
    notes, _ = queries.list_notes(db, None, NoteListQuery(subject="dbm"))
    assert titles(notes) == ["DBMS Normal Forms"]


def test_like_wildcards_are_literal(db, catalogue):
    notes, total = queries.list_notes(db, None, NoteListQuery(subject="%"))
    assert total == 0


def test_sorting_and_paging(db, catalogue):
    page1, total = queries.list_notes(db, None, NoteListQuery(sort_by="title", sort_order="asc", limit=1))
    page2, _ = queries.list_notes(db, None, NoteListQuery(sort_by="title", sort_order="asc", limit=1, page=2))
    assert total == 2
    assert [n.title for n in page1 + page2] == ["DBMS Normal Forms", "Operating Systems Unit 1"]


def test_my_notes_lists_every_status(db, catalogue):
    mine, total = queries.my_notes(db, principal_of(catalogue["uploader"]), NoteListQuery())
    assert total == 4


def test_pending_note_visibility(db, catalogue, make_user):
    pending = catalogue["pending"]
    with pytest.raises(AccessDeniedError):
        queries.get_visible(db, pending.id, None)
    with pytest.raises(AccessDeniedError):
        queries.get_visible(db, pending.id, principal_of(make_user()))

    assert queries.get_visible(db, pending.id, principal_of(catalogue["uploader"])).id == pending.id
    with pytest.raises(NotFoundError):
        queries.get_visible(db, uuid.uuid4(), None)


def test_download_counts_each_link(db, store, catalogue):
    note = catalogue["os"]
    first = queries.download(db, note.id, None, store, ttl_seconds=300)
    second = queries.download(db, note.id, None, store, ttl_seconds=300)

    assert note.file_key in first.url
    assert first.expires_in == 300
    assert first.file_name == "Operating Systems Unit 1.pdf"
    assert (first.download_count, second.download_count) == (1, 2)


def test_download_presign_failure_leaves_count(db, store, catalogue):
    note = catalogue["os"]
    store.fail_on.add("presign")

    with pytest.raises(StoreError):
        queries.download(db, note.id, None, store, ttl_seconds=300)
    db.refresh(note)
    assert note.download_count == 0


def test_moderation_stats(db, catalogue, make_user):
    stats = queries.moderation_stats(db, principal_of(make_user(UserRole.MODERATOR)))
    assert stats["counts"] == {"pending": 1, "approved": 2, "rejected": 1, "total": 4}
    assert len(stats["recent_activity"]) == 3

    with pytest.raises(AccessDeniedError):
        queries.moderation_stats(db, principal_of(make_user()))
