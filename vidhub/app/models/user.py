"""
models/user.py — User table definition.

No business logic. No imports from services or routes.

Password and refresh token are stored here but must never leave the service
layer: every response goes through user_service.build_user_view().
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from vidhub.app.extensions import db


class User(db.Model):
    __tablename__ = "users"

    __table_args__ = (
        CheckConstraint(
            "LENGTH(TRIM(username)) > 0",
            name="ck_users_username_nonempty",
        ),
        CheckConstraint(
            "email LIKE '%@%'",
            name="ck_users_email_format",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    # Always stored lower-cased; user_service normalises before insert/lookup.
    username: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
        index=True,
    )

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
    )

    fullname: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
    )

    # Media URLs plus the provider ids needed to delete them later.
    avatar: Mapped[str] = mapped_column(String(1024), nullable=False)
    avatar_public_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    cover_image: Mapped[str] = mapped_column(
        String(1024),
        nullable=False,
        default="",
        server_default="",
    )
    cover_image_public_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    # The single active refresh token. NULL after logout.
    # Overwritten on every login/refresh, which revokes the previous one.
    refresh_token: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<User id={self.id} username={self.username!r}>"
