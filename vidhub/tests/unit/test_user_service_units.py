"""
Unit tests for user_service branches that fail before any upload or write,
so they run DB-free and without an app context.
"""

from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from vidhub.app.errors import AppError, ErrorCode
from vidhub.app.services import user_service
from vidhub.app.services.passwords import hash_password, is_password_correct


def _user(**overrides) -> SimpleNamespace:
    created_at = datetime(2026, 1, 1, tzinfo=timezone.utc)
    fields = dict(
        id=7,
        username="alice",
        email="alice@example.com",
        fullname="Alice Example",
        avatar="https://media.test/a.png",
        cover_image="",
        created_at=created_at,
        updated_at=created_at,
    )
    fields.update(overrides)
    return SimpleNamespace(**fields)


def _register(session, media_store, **overrides):
    kwargs = dict(
        fullname="Alice",
        email="alice@example.com",
        username="alice",
        password="Password1",
        avatar_file=MagicMock(filename="a.png"),
        cover_file=None,
        media_store=media_store,
        session=session,
    )
    kwargs.update(overrides)
    return user_service.register_user(**kwargs)


# ── user view ──────────────────────────────────────────────────────────────

def test_get_current_user_returns_sanitized_view():
    user = _user()
    session = MagicMock()
    session.get.return_value = user

    result = user_service.get_current_user(user_id=7, session=session)

    assert result == {
        "id": 7,
        "username": "alice",
        "email": "alice@example.com",
        "fullname": "Alice Example",
        "avatar": "https://media.test/a.png",
        "coverImage": "",
        "createdAt": user.created_at.isoformat(),
        "updatedAt": user.updated_at.isoformat(),
    }


def test_get_current_user_raises_user_not_found():
    session = MagicMock()
    session.get.return_value = None

    with pytest.raises(AppError) as exc_info:
        user_service.get_current_user(user_id=99999, session=session)

    err = exc_info.value
    assert err.code == ErrorCode.USER_NOT_FOUND
    assert err.http_status == 404


# ── register_user ──────────────────────────────────────────────────────────

def test_register_without_avatar_raises_before_upload():
    session = MagicMock()
    session.execute.return_value.first.return_value = None
    media_store = MagicMock()

    with pytest.raises(AppError) as exc_info:
        _register(session, media_store, avatar_file=None)

    assert exc_info.value.code == ErrorCode.AVATAR_REQUIRED
    media_store.upload.assert_not_called()


def test_register_duplicate_email_raises_conflict():
    session = MagicMock()
    session.execute.return_value.first.return_value = (1,)

    with pytest.raises(AppError) as exc_info:
        _register(session, MagicMock(), email="Alice@Example.com")

    err = exc_info.value
    assert err.code == ErrorCode.DUPLICATE_EMAIL
    assert err.http_status == 409
    assert "alice@example.com" in err.message


def test_register_hashes_password_before_uploading():
    session = MagicMock()
    session.execute.return_value.first.return_value = None
    media_store = MagicMock()

    with pytest.raises(ValueError):
        _register(session, media_store, password="Password1" + "a" * 80)

    media_store.upload.assert_not_called()
    session.add.assert_not_called()


# ── passwords ──────────────────────────────────────────────────────────────

def test_over_long_password_never_matches():
    assert is_password_correct("$2b$04$" + "a" * 53, "x1" * 50) is False


def test_hash_password_rejects_over_long_input():
    with pytest.raises(ValueError):
        hash_password("é" * 37)
