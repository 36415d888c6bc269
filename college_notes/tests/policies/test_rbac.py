import uuid

import pytest

from college_notes.core.errors import AccessDeniedError
from college_notes.models.enums import NoteStatus, UserRole
from college_notes.models.note import Note
from college_notes.policies.rbac import (
    Principal,
    check_permission,
    is_moderator,
    require_can_assign,
    require_can_manage,
    require_role,
    role_level,
)
from college_notes.policies.visibility import can_view, effective_status_filter


def principal(role: UserRole, user_id=None) -> Principal:
    return Principal(user_id=str(user_id or uuid.uuid4()), role=role, name=role.value)


def test_roles_are_totally_ordered():
    order = [UserRole.USER, UserRole.MODERATOR, UserRole.SENIOR_MODERATOR, UserRole.ADMIN]
    assert [role_level(r) for r in order] == [0, 1, 2, 3]


def test_unknown_role_ranks_lowest():
    assert role_level("superuser") == 0
    assert not check_permission("superuser", UserRole.MODERATOR)


@pytest.mark.parametrize(
    "actor, required, allowed",
    [
        (UserRole.ADMIN, UserRole.SENIOR_MODERATOR, True),
        (UserRole.SENIOR_MODERATOR, UserRole.SENIOR_MODERATOR, True),
        (UserRole.MODERATOR, UserRole.SENIOR_MODERATOR, False),
        (UserRole.USER, UserRole.MODERATOR, False),
        ("senior moderator", "moderator", True),
    ],
)
def test_check_permission(actor, required, allowed):
    assert check_permission(actor, required) is allowed


def test_require_role_uses_given_message():
    with pytest.raises(AccessDeniedError) as exc:
        require_role(principal(UserRole.USER), UserRole.MODERATOR, "Moderator access required")
    assert exc.value.message == "Moderator access required"


def test_manage_only_strictly_lower_roles():
    senior = principal(UserRole.SENIOR_MODERATOR)
    require_can_manage(senior, UserRole.MODERATOR)
    with pytest.raises(AccessDeniedError):
        require_can_manage(senior, UserRole.SENIOR_MODERATOR)
    with pytest.raises(AccessDeniedError):
        require_can_manage(senior, UserRole.ADMIN)


def test_cannot_assign_above_own_level():
    moderator = principal(UserRole.MODERATOR)
    require_can_assign(moderator, UserRole.MODERATOR)
    with pytest.raises(AccessDeniedError):
        require_can_assign(moderator, UserRole.SENIOR_MODERATOR)


def test_is_moderator_handles_anonymous():
    assert is_moderator(None) is False
    assert is_moderator(principal(UserRole.MODERATOR)) is True


def _note(status: NoteStatus, owner=None) -> Note:
    return Note(id=uuid.uuid4(), title="t", status=status.value, uploaded_by=owner)


def test_approved_notes_are_public():
    assert can_view(_note(NoteStatus.approved), None)


def test_pending_note_visible_to_owner_and_moderators_only():
    owner_id = uuid.uuid4()
    note = _note(NoteStatus.pending, owner=owner_id)

    assert not can_view(note, None)
    assert not can_view(note, principal(UserRole.USER))
    assert can_view(note, principal(UserRole.USER, user_id=owner_id))
    assert can_view(note, principal(UserRole.MODERATOR))


def test_non_moderators_always_filtered_to_approved():
    assert effective_status_filter("pending", None) == "approved"
    assert effective_status_filter("all", principal(UserRole.USER)) == "approved"


def test_moderators_choose_status_filter():
    mod = principal(UserRole.MODERATOR)
    assert effective_status_filter("pending", mod) == "pending"
    assert effective_status_filter("all", mod) is None
    assert effective_status_filter(None, mod) is None
