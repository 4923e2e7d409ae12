"""
Unit tests for auth_service branches.

Sessions are MagicMocks, so nothing touches a database. Tests that sign
tokens or log run inside a bare Flask app configured with TestingConfig.
"""

from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock

import bcrypt
import pytest
from flask import Flask
from sqlalchemy.exc import SQLAlchemyError

from vidhub.app.errors import AppError, ErrorCode
from vidhub.app.services import auth_service, token_codec
from vidhub.config import TestingConfig


@pytest.fixture
def app_context():
    app = Flask(__name__)
    app.config.from_object(TestingConfig)
    with app.app_context():
        yield app


def _hash(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=4)).decode("utf-8")


def _user(**overrides) -> SimpleNamespace:
    created_at = datetime(2026, 1, 1, tzinfo=timezone.utc)
    fields = dict(
        id=7,
        username="alice",
        email="alice@example.com",
        fullname="Alice Example",
        avatar="https://media.test/a.png",
        cover_image="",
        password_hash=_hash("Password1"),
        refresh_token="stored-refresh-token",
        created_at=created_at,
        updated_at=created_at,
    )
    fields.update(overrides)
    return SimpleNamespace(**fields)


# ── login_user ─────────────────────────────────────────────────────────────

def test_login_without_identifier_raises_bad_request():
    session = MagicMock()

    with pytest.raises(AppError) as exc_info:
        auth_service.login_user(password="Password1", session=session)

    err = exc_info.value
    assert err.code == ErrorCode.MISSING_IDENTIFIER
    assert err.http_status == 400
    session.execute.assert_not_called()


def test_login_unknown_user_raises_not_found():
    session = MagicMock()
    session.execute.return_value.scalars.return_value.first.return_value = None

    with pytest.raises(AppError) as exc_info:
        auth_service.login_user(password="Password1", session=session, email="ghost@example.com")

    err = exc_info.value
    assert err.code == ErrorCode.USER_NOT_FOUND
    assert err.http_status == 404


# ── issue_session / refresh_session ────────────────────────────────────────

def test_issue_session_for_missing_user_raises_not_found():
    session = MagicMock()
    session.get.return_value = None

    with pytest.raises(AppError) as exc_info:
        auth_service.issue_session(user_id=99, session=session)

    assert exc_info.value.http_status == 404
    session.flush.assert_not_called()


@pytest.mark.parametrize("token", [None, ""])
def test_refresh_without_token_raises_unauthorized(token):
    with pytest.raises(AppError) as exc_info:
        auth_service.refresh_session(token, session=MagicMock())

    err = exc_info.value
    assert err.code == ErrorCode.REFRESH_TOKEN_MISSING
    assert err.http_status == 401


# ── change_password ────────────────────────────────────────────────────────

def test_change_password_wrong_old_password_keeps_hash():
    user = _user()
    hash_before = user.password_hash
    session = MagicMock()
    session.get.return_value = user

    with pytest.raises(AppError) as exc_info:
        auth_service.change_password(
            user_id=7,
            old_password="WrongPass1",
            new_password="NewPassword2",
            session=session,
        )

    err = exc_info.value
    assert err.code == ErrorCode.INCORRECT_OLD_PASSWORD
    assert err.http_status == 401
    assert user.password_hash == hash_before
    session.flush.assert_not_called()


def test_change_password_missing_user_raises_not_found():
    session = MagicMock()
    session.get.return_value = None

    with pytest.raises(AppError) as exc_info:
        auth_service.change_password(
            user_id=7,
            old_password="Password1",
            new_password="NewPassword2",
            session=session,
        )

    assert exc_info.value.code == ErrorCode.USER_NOT_FOUND



def test_change_password_over_long_old_password_is_incorrect():
    user = _user()
    session = MagicMock()
    session.get.return_value = user

    with pytest.raises(AppError) as exc_info:
        auth_service.change_password(
            user_id=7,
            old_password="x1" * 50,
            new_password="NewPassword2",
            session=session,
        )

    assert exc_info.value.code == ErrorCode.INCORRECT_OLD_PASSWORD
    assert exc_info.value.http_status == 401


# ── failures inside an app context ─────────────────────────────────────────

def test_login_over_long_password_is_invalid_credentials(app_context):
    session = MagicMock()
    session.execute.return_value.scalars.return_value.first.return_value = _user()

    with pytest.raises(AppError) as exc_info:
        auth_service.login_user(password="x1" * 50, session=session, username="alice")

    assert exc_info.value.code == ErrorCode.INVALID_CREDENTIALS
    assert exc_info.value.http_status == 401
    session.flush.assert_not_called()


def test_issue_session_write_failure_raises_token_issue_failed(app_context):
    session = MagicMock()
    session.get.return_value = _user()
    session.flush.side_effect = SQLAlchemyError("connection reset")

    with pytest.raises(AppError) as exc_info:
        auth_service.issue_session(user_id=7, session=session)

    err = exc_info.value
    assert err.code == ErrorCode.TOKEN_ISSUE_FAILED
    assert err.http_status == 500
    session.rollback.assert_called_once()


def test_refresh_database_failure_raises_refresh_failed(app_context):
    token = token_codec.create_refresh_token(7)
    session = MagicMock()
    session.get.side_effect = SQLAlchemyError("connection reset")

    with pytest.raises(AppError) as exc_info:
        auth_service.refresh_session(token, session=session)

    err = exc_info.value
    assert err.code == ErrorCode.REFRESH_FAILED
    assert err.http_status == 500
    assert "connection reset" not in err.message
