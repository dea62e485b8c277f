"""
tests/conftest.py

Shared fixtures: an app on in-memory SQLite, an in-memory blob store in
place of Firebase Storage, and captured reset-code emails instead of SMTP.
"""

from __future__ import annotations

from itertools import count

import pytest

from app import create_app
from auth_guard import issue_access_token
from config import TestingConfig
from db import db
from errors import StorageError
from models.user import User
from services.storage import StoredBlob

PASSWORD = "secret123"


class FakeBlobStore:
    """Same surface as FirebaseBlobStore, backed by a dict."""

    def __init__(self) -> None:
        self.blobs: dict[str, bytes] = {}
        self.deleted: list[str] = []
        self.fail_deletes = False
        self._seq = count(1)

    def upload(self, data, original_name, *, folder, content_type=None) -> StoredBlob:
        ext = (original_name or "bin").rsplit(".", 1)[-1].lower()
        file_name = f"blob{next(self._seq)}.{ext}"
        key = f"{folder}/{file_name}"
        self.blobs[key] = data
        return StoredBlob(url=f"https://cdn.test/{key}", key=key, file_name=file_name, folder=folder)

    def delete(self, key) -> None:
        if self.fail_deletes:
            raise StorageError("Failed to delete file from storage")
        self.blobs.pop(key, None)
        self.deleted.append(key)

    def preview_url(self, key) -> str:
        return f"https://cdn.test/{key}"


@pytest.fixture
def blob_store() -> FakeBlobStore:
    return FakeBlobStore()


@pytest.fixture
def sent_codes(monkeypatch: pytest.MonkeyPatch) -> list[tuple[str, str]]:
    """(email, code) for every reset email the app tried to send."""
    sent: list[tuple[str, str]] = []

    def _capture(to, code, ttl_minutes):
        sent.append((to, code))

    monkeypatch.setattr("utils.mail.send_reset_code_email", _capture)
    return sent


@pytest.fixture
def app(blob_store: FakeBlobStore):
    app = create_app(TestingConfig)
    app.extensions["blob_store"] = blob_store
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    seq = count(1)

    def _make(role: str = "user", *, verified: bool = False, email: str | None = None,
              mobile: str | None = None, name: str | None = None, password: str = PASSWORD) -> User:
        n = next(seq)
        user = User(
            name=name or f"{role.title()} {n}",
            email=email or f"{role}{n}@example.com",
            mobile=mobile or f"98{n:08d}",
            role=role,
            is_verified=verified,
            status="active",
        )
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        return user

    return _make


@pytest.fixture
def auth_header():
    def _header(user: User) -> dict:
        return {"Authorization": f"Bearer {issue_access_token(user)}"}

    return _header


@pytest.fixture
def admin(make_user) -> User:
    return make_user("admin", verified=True)

