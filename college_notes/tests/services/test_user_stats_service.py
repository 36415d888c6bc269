from college_notes.models.enums import UserRole
from college_notes.services.user_stats_service import UploadStats, UserStatsService
from college_notes.tests.helpers import principal_of


def test_counts_follow_moderation(db, make_user, moderation, upload_note):
    uploader = make_user()
    moderator = principal_of(make_user(UserRole.MODERATOR))
    a = upload_note(uploader, title="A")
    b = upload_note(uploader, title="B")
    upload_note(uploader, title="C")

    moderation.approve(db, a.id, moderator)
    moderation.reject(db, b.id, moderator, "Incomplete")

    stats = UserStatsService().count(db, uploader.id)
    assert stats == UploadStats(total=3, approved=1, rejected=1)
    assert stats.pending == 1

    db.refresh(uploader)
    assert (uploader.total_uploads, uploader.approved_uploads, uploader.rejected_uploads) == (3, 1, 1)


def test_recompute_all_repairs_drifted_counters(db, make_user, upload_note):
    uploader = make_user()
    upload_note(uploader)
    uploader.total_uploads = 99
    uploader.approved_uploads = 42
    db.commit()

    assert UserStatsService().recompute_all(db) >= 1

    db.refresh(uploader)
    assert uploader.total_uploads == 1
    assert uploader.approved_uploads == 0


def test_count_many_includes_users_without_notes(db, make_user, upload_note):
    busy, idle = make_user(), make_user()
    upload_note(busy)

    stats = UserStatsService().count_many(db, [busy.id, idle.id, None])
    assert stats[busy.id].total == 1
    assert stats[idle.id] == UploadStats()
    assert stats[busy.id].as_dict() == {
        "total_uploads": 1,
        "approved_uploads": 0,
        "rejected_uploads": 0,
        "pending_uploads": 1,
    }


def test_recompute_ignores_anonymous(db):
    assert UserStatsService().recompute(db, None) is None
