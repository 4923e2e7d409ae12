"""Initial schema — users table.

Revision: 001_initial_schema
Created:  2026-10-19

Append-only:
  This file must never be edited after it has been applied to any database.
  A schema change needs a new migration file.

The users table holds credentials, profile media and the single active
refresh token (NULL after logout).
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# ── Alembic revision identifiers ──────────────────────────────────────────
revision: str = "001_initial_schema"
down_revision: str | None = None      # first migration — no parent
branch_labels: tuple | None = None
depends_on: tuple | None = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("username", sa.String(50), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("fullname", sa.String(255), nullable=False),
        sa.Column("avatar", sa.String(1024), nullable=False),
        sa.Column("avatar_public_id", sa.String(255), nullable=True),
        sa.Column(
            "cover_image",
            sa.String(1024),
            nullable=False,
            server_default="",
        ),
        sa.Column("cover_image_public_id", sa.String(255), nullable=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("refresh_token", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("username", name="uq_users_username"),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.CheckConstraint(
            "LENGTH(TRIM(username)) > 0",
            name="ck_users_username_nonempty",
        ),
        sa.CheckConstraint(
            "email LIKE '%@%'",
            name="ck_users_email_format",
        ),
    )

    op.create_index("ix_users_username", "users", ["username"])
    op.create_index("ix_users_email",    "users", ["email"])
    op.create_index("ix_users_fullname", "users", ["fullname"])


def downgrade() -> None:
    """Local development reset only; production uses corrective migrations."""
    op.drop_index("ix_users_fullname", table_name="users")
    op.drop_index("ix_users_email",    table_name="users")
    op.drop_index("ix_users_username", table_name="users")
    op.drop_table("users")
