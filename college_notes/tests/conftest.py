import os

# settings are read once, at import time of the app modules
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")

import uuid
from functools import lru_cache
from typing import Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# FORCE model registration
import college_notes.models  # noqa

from college_notes.core.pubsub import InMemoryBroker
from college_notes.core.security import hash_password
from college_notes.db.base import Base
from college_notes.db.session import get_db
from college_notes.main import create_app
from college_notes.models.enums import UserRole
from college_notes.models.user import User
from college_notes.services.moderation_service import ModerationService
from college_notes.services.notification_service import NotificationService
from college_notes.tests.helpers import (
    PASSWORD,
    InMemoryObjectStore,
    RecordingBroker,
    note_draft,
    pdf_file,
    principal_of,
)


@lru_cache(maxsize=1)
def _password_hash() -> str:
    # bcrypt is slow; hash once per run
    return hash_password(PASSWORD)


@pytest.fixture(scope="function")
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(eng)
    try:
        yield eng
    finally:
        eng.dispose()


@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


@pytest.fixture(scope="function")
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def store():
    return InMemoryObjectStore()


@pytest.fixture()
def broker():
    return RecordingBroker()


@pytest.fixture()
def notifier(broker):
    return NotificationService(broker)


@pytest.fixture()
def moderation(store, notifier):
    return ModerationService(store, notifier)


@pytest.fixture()
def make_user(db):
    def _make(role: UserRole = UserRole.USER, name: Optional[str] = None, is_active: bool = True) -> User:
        suffix = uuid.uuid4().hex[:8]
        user = User(
            email=f"{role.value.replace(' ', '-')}-{suffix}@example.edu",
            name=name or f"{role.value.title()} {suffix}",
            password_hash=_password_hash(),
            role=role.value,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        return user

    return _make


def _default_file(overrides):
    # distinct names keep keys unique when several notes land in one folder
    if "title" in overrides:
        return pdf_file(filename=f"{overrides['title']}.pdf")
    return pdf_file()


@pytest.fixture()
def upload_note(db, moderation):
    def _upload(uploader: Optional[User], file=None, **overrides):
        return moderation.upload(
            db,
            draft=note_draft(**overrides),
            file=file or _default_file(overrides),
            uploader=principal_of(uploader) if uploader is not None else None,
        )

    return _upload


@pytest.fixture()
def app(session_factory, store):
    application = create_app()

    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    application.dependency_overrides[get_db] = _get_db
    application.state.object_store = store
    application.state.broker = InMemoryBroker()
    return application


@pytest.fixture()
def client(app):
    with TestClient(app) as c:
        yield c
