from __future__ import annotations

import os
from typing import Callable

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from docvault.core import security
from docvault.core.config import Settings, get_settings
from docvault.db import models
from docvault.db import session as session_module
from docvault.db.models import Base
from docvault.main import build_app
from docvault.storage.blob_store import LocalBlobStore

TEST_SECRET = "test-secret-for-document-vault-0123456789"


@pytest.fixture(scope="session", autouse=True)
def test_env():
    """
    Session-scoped env setup. Can't use pytest's monkeypatch here because monkeypatch
    is function-scoped by default (ScopeMismatch). We manage os.environ manually.
    """
    old_env = os.environ.copy()

    os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
    os.environ["JWT_SECRET"] = TEST_SECRET
    os.environ["LOG_LEVEL"] = "WARNING"

    get_settings.cache_clear()
    yield
    os.environ.clear()
    os.environ.update(old_env)
    get_settings.cache_clear()


@pytest.fixture(scope="session")
def engine(test_env):
    return session_module.configure_engine(
        database_url="sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )


@pytest.fixture(autouse=True)
def clean_database(engine):
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(upload_dir=str(tmp_path / "uploads"), max_upload_size=1024 * 1024)


@pytest.fixture
def app(settings):
    return build_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def db_session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def store(settings) -> LocalBlobStore:
    return LocalBlobStore(settings.upload_dir)


@pytest.fixture
def make_user(db_session) -> Callable[..., models.User]:
    """Insert a user directly, skipping the API."""

    def _make_user(email: str, name: str = "Test User", password: str = "password123"):
        user = models.User(
            email=email,
            password_hash=security.get_password_hash(password),
            name=name,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_document(db_session, store) -> Callable[..., models.Document]:
    """Register a document with real blob content."""
    from io import BytesIO

    from docvault.services import document_service

    def _make_document(
        owner: models.User,
        filename: str = "notes.txt",
        content: bytes = b"hello vault",
        content_type: str = "text/plain",
    ) -> models.Document:
        return document_service.create_document(
            db_session,
            store,
            owner_id=owner.id,
            filename=filename,
            content_type=content_type,
            stream=BytesIO(content),
        )

    return _make_document
