import pytest

from college_notes.core.errors import AuthError, ConflictError
from college_notes.core.security import decode_token
from college_notes.schemas.auth import SignupRequest
from college_notes.services import auth_service


def signup_request(**overrides) -> SignupRequest:
    fields = dict(
        name="Asha Verma",
        email="Asha@Example.edu",
        password="correct horse",
        confirm_password="correct horse",
        college_name="NITK",
        course="CSE",
        semester=6,
    )
    fields.update(overrides)
    return SignupRequest(**fields)


def test_signup_normalises_email_and_starts_as_user(db):
    user = auth_service.signup(db, signup_request())
    assert user.email == "asha@example.edu"
    assert user.role == "user"
    assert user.password_hash != "correct horse"


def test_duplicate_email_conflicts(db):
    auth_service.signup(db, signup_request())
    with pytest.raises(ConflictError):
        auth_service.signup(db, signup_request(email="ASHA@example.edu"))


def test_password_confirmation_must_match():
    with pytest.raises(ValueError):
        signup_request(confirm_password="something else")


def test_authenticate_and_token_claims(db):
    user = auth_service.signup(db, signup_request())
    assert auth_service.authenticate(db, "asha@example.edu", "correct horse").id == user.id

    claims = decode_token(auth_service.issue_token(user))
    assert claims["sub"] == str(user.id)
    assert claims["role"] == "user"


def test_wrong_password(db):
    auth_service.signup(db, signup_request())
    with pytest.raises(AuthError) as exc:
        auth_service.authenticate(db, "asha@example.edu", "wrong password")
    assert exc.value.message == "Invalid email or password"


def test_tampered_token_rejected():
    with pytest.raises(AuthError):
        decode_token("not.a.jwt")
