"""
tests/integration/conftest.py — Fixtures and helpers for all integration tests.

Design:
  - The app is created once per session using create_app("testing").
    TestingConfig uses in-memory SQLite unless TEST_DATABASE_URL is set.
  - All tables are created once via db.create_all() at session start.
  - Between tests, all rows are deleted so tests are isolated.
  - Media goes to a LocalMediaStore under a per-session temp directory.
    Tests that need upload failures swap in a FakeMediaStore.

Client fixtures:
  - client        : no cookie jar; tokens are sent explicitly in headers/body
  - cookie_client : keeps cookies between requests like a browser

Helper functions (not fixtures) are provided for common operations:
  - register(client, ...)  → sanitized user dict
  - login(client, ...)     → dict with user + tokens
  - auth_headers(token)    → {"Authorization": "Bearer <token>"}
"""

from __future__ import annotations

import io

import pytest
from sqlalchemy import delete

from vidhub.app import create_app
from vidhub.app.extensions import db as _db
from vidhub.app.services.media_store import LocalMediaStore, MediaStoreError, UploadedMedia


# ═══════════════════════════════════════════════════════════════════════════
# Session-scoped app fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(scope="session")
def app(tmp_path_factory):
    """Creates the Flask application in 'testing' mode once for the session."""
    flask_app = create_app("testing")
    media_root = tmp_path_factory.mktemp("media")
    flask_app.extensions["media_store"] = LocalMediaStore(media_root, "/media")

    with flask_app.app_context():
        _db.create_all()

    yield flask_app

    with flask_app.app_context():
        _db.drop_all()


# ═══════════════════════════════════════════════════════════════════════════
# Function-scoped test isolation
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(autouse=True)
def clean_tables(app):
    """Deletes all rows after every test."""
    yield  # run the test

    with app.app_context():
        from vidhub.app.models.user import User

        _db.session.rollback()  # discard any uncommitted state from a failed test
        _db.session.execute(delete(User))
        _db.session.commit()


# ═══════════════════════════════════════════════════════════════════════════
# Client fixtures
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def client(app):
    """Flask test client without a cookie jar."""
    return app.test_client(use_cookies=False)


@pytest.fixture
def cookie_client(app):
    """Flask test client that stores and resends cookies."""
    return app.test_client()


# ═══════════════════════════════════════════════════════════════════════════
# Media doubles
# ═══════════════════════════════════════════════════════════════════════════

class FakeMediaStore:
    """
    Records uploads and deletes. `fail_on_upload` is the 1-based upload
    number that raises MediaStoreError.
    """

    def __init__(self, fail_on_upload: int | None = None) -> None:
        self.fail_on_upload = fail_on_upload
        self.uploaded: list[str] = []
        self.deleted: list[str] = []

    def upload(self, file) -> UploadedMedia:
        if self.fail_on_upload == len(self.uploaded) + 1:
            raise MediaStoreError("simulated upload failure")
        public_id = f"asset-{len(self.uploaded) + 1}"
        self.uploaded.append(public_id)
        return UploadedMedia(url=f"https://media.test/{public_id}", public_id=public_id)

    def delete(self, public_id: str) -> None:
        self.deleted.append(public_id)


@pytest.fixture
def fake_media(app, monkeypatch):
    store = FakeMediaStore()
    monkeypatch.setitem(app.extensions, "media_store", store)
    return store


# ═══════════════════════════════════════════════════════════════════════════
# Shared helper functions (not fixtures)
# ═══════════════════════════════════════════════════════════════════════════

def image(name: str = "avatar.png") -> tuple:
    """A (stream, filename) pair accepted by the test client as a file upload."""
    return (io.BytesIO(b"\x89PNG\r\n\x1a\nfake-image-bytes"), name)


def register_form(
    username: str = "alice",
    email: str | None = None,
    password: str = "Password1",
    fullname: str = "Alice Example",
    with_avatar: bool = True,
    with_cover: bool = False,
) -> dict:
    if email is None:
        email = f"{username}@test.com"
    form = {
        "fullname": fullname,
        "username": username,
        "email": email,
        "password": password,
    }
    if with_avatar:
        form["avatar"] = image("avatar.png")
    if with_cover:
        form["coverImage"] = image("cover.jpg")
    return form


def register(client, username: str = "alice", **kwargs) -> dict:
    """Registers a new user and returns the sanitized user dict."""
    resp = client.post(
        "/api/v1/users",
        data=register_form(username, **kwargs),
        content_type="multipart/form-data",
    )
    assert resp.status_code == 201, f"register failed: {resp.get_json()}"
    return resp.get_json()["data"]


def login(client, username: str, password: str = "Password1") -> dict:
    """
    Logs in by username and returns the response data dict.
    Returns: {"user": {...}, "accessToken": "...", "refreshToken": "..."}
    """
    resp = client.post(
        "/api/v1/users/login",
        json={"username": username, "password": password},
    )
    assert resp.status_code == 200, f"login failed: {resp.get_json()}"
    return resp.get_json()["data"]


def auth_headers(token: str) -> dict:
    """Returns the Authorization header dict for use in test requests."""
    return {"Authorization": f"Bearer {token}"}


def refresh(client, refresh_token: str):
    """POSTs a refresh token in the body. Returns the HTTP response."""
    return client.post(
        "/api/v1/users/refresh-token",
        json={"refreshToken": refresh_token},
    )
