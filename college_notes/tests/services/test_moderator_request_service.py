import pytest

from college_notes.core.errors import AccessDeniedError, ConflictError, ValidationError
from college_notes.models.enums import UserRole
from college_notes.schemas.moderator_requests import ModeratorRequestCreate
from college_notes.services.moderator_request_service import ModeratorRequestService
from college_notes.services.settings_service import SettingsService
from college_notes.tests.helpers import principal_of


def application(**overrides) -> ModeratorRequestCreate:
    fields = dict(
        reason="I have been sharing organised notes with my batch for two years and want to help review uploads.",
        experience="Class representative, ran the CSE notes drive",
        college="NITK",
        course="CSE",
        semester="6",
    )
    fields.update(overrides)
    return ModeratorRequestCreate(**fields)


@pytest.fixture()
def svc(notifier):
    return ModeratorRequestService(notifier)


def test_submit_creates_pending_request(db, svc, make_user):
    user = make_user()
    req = svc.submit(db, actor=principal_of(user), data=application(), ip_address="10.0.0.1")

    assert req.status == "pending"
    assert req.applicant_id == user.id
    assert req.ip_address == "10.0.0.1"
    assert svc.mine(db, principal_of(user)).id == req.id


def test_one_pending_application_per_user(db, svc, make_user):
    user = principal_of(make_user())
    svc.submit(db, actor=user, data=application())
    with pytest.raises(ConflictError):
        svc.submit(db, actor=user, data=application())


def test_moderators_cannot_apply(db, svc, make_user):
    with pytest.raises(ValidationError):
        svc.submit(db, actor=principal_of(make_user(UserRole.MODERATOR)), data=application())


def test_auto_approval_promotes_immediately(db, svc, make_user):
    SettingsService().update(db, {"moderator_auto_approval": True})
    user = make_user()

    req = svc.submit(db, actor=principal_of(user), data=application())

    assert req.status == "approved"
    assert req.admin_feedback == "Auto-approved"
    db.refresh(user)
    assert user.role == "moderator"


def test_senior_approves_application(db, svc, make_user):
    user = make_user()
    senior = principal_of(make_user(UserRole.SENIOR_MODERATOR))
    req = svc.submit(db, actor=principal_of(user), data=application())

    req = svc.approve(db, req.id, senior, feedback="Welcome")

    assert req.status == "approved"
    assert req.admin_feedback == "Welcome"
    assert req.reviewed_by == senior.uuid
    db.refresh(user)
    assert user.role == "moderator"

    with pytest.raises(ValidationError) as exc:
        svc.approve(db, req.id, senior)
    assert exc.value.message == "This request has already been processed"


def test_approval_never_demotes(db, svc, make_user):
    user = make_user()
    req = svc.submit(db, actor=principal_of(user), data=application())
    user.role = UserRole.SENIOR_MODERATOR.value
    db.commit()

    svc.approve(db, req.id, principal_of(make_user(UserRole.ADMIN)))
    db.refresh(user)
    assert user.role == "senior moderator"


def test_moderator_cannot_approve(db, svc, make_user):
    req = svc.submit(db, actor=principal_of(make_user()), data=application())
    with pytest.raises(AccessDeniedError):
        svc.approve(db, req.id, principal_of(make_user(UserRole.MODERATOR)))


def test_reject_requires_feedback(db, svc, make_user):
    user = make_user()
    admin = principal_of(make_user(UserRole.ADMIN))
    req = svc.submit(db, actor=principal_of(user), data=application())

    with pytest.raises(ValidationError) as exc:
        svc.reject(db, req.id, admin, " ")
    assert exc.value.message == "Admin feedback is required for rejection"

    req = svc.reject(db, req.id, admin, "Please contribute more notes first")
    assert req.status == "rejected"
    db.refresh(user)
    assert user.role == "user"


def test_list_and_counts(db, svc, make_user):
    admin = principal_of(make_user(UserRole.ADMIN))
    first = svc.submit(db, actor=principal_of(make_user()), data=application())
    svc.submit(db, actor=principal_of(make_user()), data=application())
    svc.reject(db, first.id, admin, "Not yet")

    rows, total = svc.list(db, admin, status="pending")
    assert total == 1 and len(rows) == 1

    counts = svc.status_counts(db)
    assert counts == {"pending": 1, "approved": 0, "rejected": 1, "total": 2}


def test_application_length_limits():
    with pytest.raises(ValueError):
        application(reason="too short")
