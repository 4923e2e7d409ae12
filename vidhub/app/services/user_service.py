"""
services/user_service.py — Registration and profile business logic.

Responsibilities:
  - User registration with avatar/cover upload and compensating rollback
  - Sanitized user view (never exposes password hash or refresh token)
  - Account detail updates (fullname, email)
  - Avatar / cover image replacement

Layer rules:
  - No imports from routes or schemas
  - No use of flask.request or flask.g; uploaded files arrive as arguments
  - Services flush; the route commits. Flows that upload media commit
    themselves.

Multi-step flows record an undo action after every external side effect
(services/compensation.py). On failure the stack is unwound newest-first and
the caller sees the error that triggered it.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from werkzeug.datastructures import FileStorage

from vidhub.app.errors import (
    BadRequestError,
    ConflictError,
    ErrorCode,
    InternalError,
    NotFoundError,
)
from vidhub.app.models.user import User
from vidhub.app.services.compensation import CompensationStack
from vidhub.app.services.media_store import MediaStoreError, UploadedMedia
from vidhub.app.services.passwords import hash_password


# ── Private helpers ────────────────────────────────────────────────────────

def build_user_view(user: User) -> dict:
    """Serialises a User for responses. Password hash and refresh token are never included."""
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "fullname": user.fullname,
        "avatar": user.avatar,
        "coverImage": user.cover_image or "",
        "createdAt": user.created_at.isoformat() if user.created_at else None,
        "updatedAt": user.updated_at.isoformat() if user.updated_at else None,
    }


def _get_user_or_404(user_id: int, session: Session) -> User:
    user = session.get(User, user_id)
    if user is None:
        raise NotFoundError(ErrorCode.USER_NOT_FOUND, f"User {user_id} not found.")
    return user


def _ensure_unique(
        session: Session,
        username: str | None = None,
        email: str | None = None,
        exclude_user_id: int | None = None,
) -> None:
    """
    Raises ConflictError if another user already holds `email` or `username`.
    Email is checked first so a full duplicate reports DUPLICATE_EMAIL.
    """
    if email is not None:
        stmt = select(User.id).where(User.email == email)
        if exclude_user_id is not None:
            stmt = stmt.where(User.id != exclude_user_id)
        if session.execute(stmt).first() is not None:
            raise ConflictError(
                ErrorCode.DUPLICATE_EMAIL,
                f"The email address '{email}' is already registered.",
                field="email",
            )

    if username is not None:
        stmt = select(User.id).where(User.username == username)
        if exclude_user_id is not None:
            stmt = stmt.where(User.id != exclude_user_id)
        if session.execute(stmt).first() is not None:
            raise ConflictError(
                ErrorCode.DUPLICATE_USERNAME,
                f"The username '{username}' is already taken.",
                field="username",
            )


def _has_file(file: FileStorage | None) -> bool:
    return file is not None and bool(file.filename)


def _upload(media_store, file: FileStorage, label: str) -> UploadedMedia:
    """Uploads one file; any provider failure becomes InternalError."""
    try:
        return media_store.upload(file)
    except MediaStoreError as exc:
        current_app.logger.warning("Uploading %s failed: %s", label, exc)
        raise InternalError(
            f"Failed to upload {label}.",
            code=ErrorCode.MEDIA_UPLOAD_FAILED,
        ) from exc


def _create_user(session: Session, **fields) -> User:
    user = User(**fields)
    session.add(user)
    session.flush()
    return user


# ── Public service functions ───────────────────────────────────────────────

def register_user(
        fullname: str,
        email: str,
        username: str,
        password: str,
        avatar_file: FileStorage | None,
        cover_file: FileStorage | None,
        media_store,
        session: Session,
) -> dict:
    """
    Creates a new user account with an avatar and optional cover image.

    Steps: uniqueness check → avatar required → hash password → upload avatar
    → upload cover → insert and commit. Each upload records its own deletion;
    if any later step fails (commit included), uploaded media is deleted
    newest-first before the error is raised.

    Commits itself.

    Raises:
      ConflictError(DUPLICATE_EMAIL / DUPLICATE_USERNAME, 409) — also when a
                                                   concurrent insert wins
      BadRequestError(AVATAR_REQUIRED, 400)
      InternalError(MEDIA_UPLOAD_FAILED / REGISTRATION_FAILED, 500)

    Returns: sanitized user view
    """
    username = username.strip().lower()
    email = email.strip().lower()
    fullname = fullname.strip()

    _ensure_unique(session, username=username, email=email)

    if not _has_file(avatar_file):
        raise BadRequestError(ErrorCode.AVATAR_REQUIRED, "Avatar file is missing.")

    password_hash = hash_password(password)

    compensations = CompensationStack()
    try:
        avatar = _upload(media_store, avatar_file, "avatar")
        compensations.push(f"delete avatar {avatar.public_id}", media_store.delete, avatar.public_id)

        cover = None
        if _has_file(cover_file):
            cover = _upload(media_store, cover_file, "cover image")
            compensations.push(f"delete cover image {cover.public_id}", media_store.delete, cover.public_id)

        try:
            user = _create_user(
                session,
                fullname=fullname,
                email=email,
                username=username,
                password_hash=password_hash,
                avatar=avatar.url,
                avatar_public_id=avatar.public_id,
                cover_image=cover.url if cover else "",
                cover_image_public_id=cover.public_id if cover else None,
            )
            session.commit()
        except IntegrityError as exc:
            # Another request registered the same email/username after our check.
            session.rollback()
            current_app.logger.warning("User insert for %r hit a unique constraint: %s", username, exc)
            _ensure_unique(session, username=username, email=email)
            raise InternalError(
                "Something went wrong while registering the user.",
                code=ErrorCode.REGISTRATION_FAILED,
            ) from exc
        except SQLAlchemyError as exc:
            session.rollback()
            current_app.logger.error("User creation failed for %r: %s", username, exc)
            raise InternalError(
                "Something went wrong while registering the user.",
                code=ErrorCode.REGISTRATION_FAILED,
            ) from exc
    except Exception:
        compensations.unwind()
        raise

    compensations.discard()

    created_user = session.get(User, user.id)
    if created_user is None:
        raise InternalError(
            "Something went wrong while registering the user.",
            code=ErrorCode.REGISTRATION_FAILED,
        )

    current_app.logger.info("Registered user %s (%s)", created_user.id, created_user.username)
    return build_user_view(created_user)


def get_current_user(user_id: int, session: Session) -> dict:
    """
    Returns the profile of the currently authenticated user.

    Raises:
      NotFoundError(USER_NOT_FOUND) — user deleted after the token was issued.
    """
    return build_user_view(_get_user_or_404(user_id, session))


def update_account_details(
        user_id: int,
        fullname: str,
        email: str,
        session: Session,
) -> dict:
    """
    Updates fullname and email.

    Raises:
      NotFoundError(USER_NOT_FOUND)
      ConflictError(DUPLICATE_EMAIL) — email belongs to another user
    """
    email = email.strip().lower()
    user = _get_user_or_404(user_id, session)
    _ensure_unique(session, email=email, exclude_user_id=user.id)

    user.fullname = fullname.strip()
    user.email = email
    session.flush()

    updated_user = session.get(User, user.id)
    return build_user_view(updated_user)


def _replace_media(
        user_id: int,
        file: FileStorage | None,
        url_attr: str,
        public_id_attr: str,
        label: str,
        media_store,
        session: Session,
) -> dict:
    """
    Uploads a new file into `url_attr`/`public_id_attr` of the user.

    Commits itself. The fresh upload is deleted if the row update or the
    commit fails, and the row keeps the previous asset. Once committed, the
    previous asset is deleted best-effort.
    """
    if not _has_file(file):
        raise BadRequestError(ErrorCode.FILE_REQUIRED, f"{label.capitalize()} file is required.")

    user = _get_user_or_404(user_id, session)
    previous_public_id = getattr(user, public_id_attr)

    uploaded = _upload(media_store, file, label)

    compensations = CompensationStack()
    compensations.push(f"delete new {label} {uploaded.public_id}", media_store.delete, uploaded.public_id)
    try:
        setattr(user, url_attr, uploaded.url)
        setattr(user, public_id_attr, uploaded.public_id)
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        compensations.unwind()
        current_app.logger.error("Saving %s failed for user %s: %s", label, user_id, exc)
        raise InternalError(f"Something went wrong while updating the {label}.") from exc
    compensations.discard()

    if previous_public_id and previous_public_id != uploaded.public_id:
        try:
            media_store.delete(previous_public_id)
        except MediaStoreError as exc:
            # The row already points at the new asset; the old one is orphaned.
            current_app.logger.warning("Deleting old %s %s failed: %s", label, previous_public_id, exc)

    updated_user = session.get(User, user.id)
    current_app.logger.info("User %s updated %s", updated_user.id, label)
    return build_user_view(updated_user)


def update_user_avatar(
        user_id: int,
        avatar_file: FileStorage | None,
        media_store,
        session: Session,
) -> dict:
    """
    Raises:
      BadRequestError(FILE_REQUIRED)
      NotFoundError(USER_NOT_FOUND)
      InternalError(MEDIA_UPLOAD_FAILED)
    """
    return _replace_media(
        user_id, avatar_file, "avatar", "avatar_public_id", "avatar",
        media_store, session,
    )


def update_user_cover_image(
        user_id: int,
        cover_file: FileStorage | None,
        media_store,
        session: Session,
) -> dict:
    """Same contract as update_user_avatar, for the cover image."""
    return _replace_media(
        user_id, cover_file, "cover_image", "cover_image_public_id", "cover image",
        media_store, session,
    )
