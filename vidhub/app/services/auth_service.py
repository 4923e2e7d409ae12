"""
services/auth_service.py — Session authority.

Responsibilities:
  - Credential verification (bcrypt)
  - Issuing the access + refresh token pair
  - Refresh token rotation and revocation
  - Password change

Layer rules:
  - No imports from routes or schemas
  - No use of flask.request, flask.g, or cookies
  - current_app is used only for config (secrets, TTLs, bcrypt rounds) and
    the logger
  - Services flush; the route commits

Session model:
  - One stored refresh token per user (users.refresh_token).
  - Every login/refresh overwrites it, so the previously issued refresh token
    stops working: a refresh token is good for exactly one rotation.
  - Logout sets it to NULL. Access tokens are stateless and simply expire.
  - Changing the password does not revoke the current session.

Password storage:
  - Hashed with bcrypt (cost factor from config BCRYPT_LOG_ROUNDS)
  - Raw passwords and tokens are never logged
"""

from __future__ import annotations

import hmac

import jwt
from flask import current_app
from sqlalchemy import or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from vidhub.app.errors import (
    AppError,
    BadRequestError,
    ErrorCode,
    InternalError,
    NotFoundError,
    UnauthorizedError,
)
from vidhub.app.models.user import User
from vidhub.app.services import token_codec
from vidhub.app.services.passwords import hash_password, is_password_correct
from vidhub.app.services.user_service import build_user_view


# ── Session issuance ───────────────────────────────────────────────────────

def issue_session(user_id: int, session: Session) -> dict:
    """
    Signs a new access/refresh pair and stores the refresh token on the user.

    Exactly one write: the refresh_token column. Storing it revokes whatever
    refresh token the user held before.

    Raises:
      NotFoundError(USER_NOT_FOUND)    — no such user
      InternalError(TOKEN_ISSUE_FAILED) — the write failed
    """
    user = session.get(User, user_id)
    if user is None:
        raise NotFoundError(
            ErrorCode.USER_NOT_FOUND,
            "User not found for generating tokens.",
        )

    access_token = token_codec.create_access_token(user)
    refresh_token = token_codec.create_refresh_token(user.id)

    try:
        user.refresh_token = refresh_token
        session.flush()
    except SQLAlchemyError as exc:
        session.rollback()
        current_app.logger.error("Storing refresh token failed for user %s: %s", user_id, exc)
        raise InternalError(
            "Error in generating tokens.",
            code=ErrorCode.TOKEN_ISSUE_FAILED,
        ) from exc

    return {
        "accessToken": access_token,
        "refreshToken": refresh_token,
    }


# ── Public service functions ───────────────────────────────────────────────

def login_user(
        password: str,
        session: Session,
        username: str | None = None,
        email: str | None = None,
) -> dict:
    """
    Validates credentials and issues a new session.

    The identifier may be a username, an email, or both; a user matching
    either is accepted.

    Raises:
      BadRequestError(MISSING_IDENTIFIER)   — neither username nor email given
      NotFoundError(USER_NOT_FOUND)         — no user with that identifier
      UnauthorizedError(INVALID_CREDENTIALS) — wrong password

    Returns: {"user": {...}, "accessToken": "...", "refreshToken": "..."}
    """
    conditions = []
    if username:
        conditions.append(User.username == username.strip().lower())
    if email:
        conditions.append(User.email == email.strip().lower())
    if not conditions:
        raise BadRequestError(
            ErrorCode.MISSING_IDENTIFIER,
            "Username or email is required.",
        )

    user = session.execute(
        select(User).where(or_(*conditions))
    ).scalars().first()

    if user is None:
        raise NotFoundError(ErrorCode.USER_NOT_FOUND, "User not found.")

    if not is_password_correct(user.password_hash, password):
        current_app.logger.info("Failed login for user %s", user.id)
        raise UnauthorizedError(
            ErrorCode.INVALID_CREDENTIALS,
            "Invalid credentials.",
        )

    tokens = issue_session(user.id, session)

    # Re-read after the write so the view reflects what is stored.
    logged_in_user = session.get(User, user.id)
    if logged_in_user is None:
        raise NotFoundError(ErrorCode.USER_NOT_FOUND, "Logged in user not found.")

    current_app.logger.info("User %s logged in", user.id)
    return {
        "user": build_user_view(logged_in_user),
        **tokens,
    }


def logout_user(user_id: int, session: Session) -> None:
    """
    Clears the stored refresh token in a single UPDATE.

    Idempotent: logging out twice leaves the same NULL column.
    """
    session.execute(
        update(User)
        .where(User.id == user_id)
        .values(refresh_token=None)
    )
    session.flush()
    current_app.logger.info("User %s logged out", user_id)


def refresh_session(incoming_refresh_token: str | None, session: Session) -> dict:
    """
    Exchanges a refresh token for a brand-new pair.

    The presented token must be exactly the one stored on the user. A token
    that was rotated out by a later login/refresh, or cleared by logout,
    fails that check. The new pair overwrites the stored token, so the token
    just used cannot be used again.

    Raises:
      UnauthorizedError(REFRESH_TOKEN_MISSING) — nothing presented
      UnauthorizedError(REFRESH_TOKEN_INVALID) — bad signature, expired,
                                                  unknown user, or not the
                                                  stored token
      InternalError(REFRESH_FAILED)            — anything unexpected (DB
                                                  errors) is reported as a
                                                  generic 500

    Returns: {"accessToken": "...", "refreshToken": "..."}
    """
    if not incoming_refresh_token:
        raise UnauthorizedError(
            ErrorCode.REFRESH_TOKEN_MISSING,
            "Refresh token is required.",
        )

    try:
        try:
            payload = token_codec.decode_refresh_token(incoming_refresh_token)
        except jwt.InvalidTokenError:
            raise UnauthorizedError(
                ErrorCode.REFRESH_TOKEN_INVALID,
                "Invalid refresh token.",
            )

        try:
            user_id = int(payload["sub"])
        except (TypeError, ValueError):
            raise UnauthorizedError(
                ErrorCode.REFRESH_TOKEN_INVALID,
                "Invalid refresh token.",
            )

        user = session.get(User, user_id)
        if user is None:
            raise UnauthorizedError(
                ErrorCode.REFRESH_TOKEN_INVALID,
                "Invalid refresh token.",
            )

        if user.refresh_token is None or not hmac.compare_digest(
                incoming_refresh_token.encode("utf-8"),
                user.refresh_token.encode("utf-8"),
        ):
            current_app.logger.info("Rejected stale refresh token for user %s", user.id)
            raise UnauthorizedError(
                ErrorCode.REFRESH_TOKEN_INVALID,
                "Refresh token is expired or already used.",
            )

        tokens = issue_session(user.id, session)
    except AppError:
        raise
    except SQLAlchemyError as exc:
        current_app.logger.error("Refreshing session failed: %s", exc)
        raise InternalError(
            "Something went wrong while refreshing access token.",
            code=ErrorCode.REFRESH_FAILED,
        ) from exc

    current_app.logger.info("User %s refreshed session", user.id)
    return tokens


def change_password(
        user_id: int,
        old_password: str,
        new_password: str,
        session: Session,
) -> None:
    """
    Replaces the password after verifying the old one.

    The stored hash is untouched when the old password is wrong. Existing
    sessions stay valid.

    Raises:
      NotFoundError(USER_NOT_FOUND)
      UnauthorizedError(INCORRECT_OLD_PASSWORD)
    """
    user = session.get(User, user_id)
    if user is None:
        raise NotFoundError(ErrorCode.USER_NOT_FOUND, "User not found.")

    if not is_password_correct(user.password_hash, old_password):
        raise UnauthorizedError(
            ErrorCode.INCORRECT_OLD_PASSWORD,
            "Old password is incorrect.",
        )

    user.password_hash = hash_password(new_password)
    session.flush()
    current_app.logger.info("User %s changed password", user.id)
