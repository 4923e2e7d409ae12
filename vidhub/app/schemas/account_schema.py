"""schemas/account_schema.py — PATCH /users/update-account."""

from __future__ import annotations

from marshmallow import Schema, fields, validate

from vidhub.app.schemas.auth_schema import not_blank


class UpdateAccountSchema(Schema):
    """Both fields are required; email uniqueness is checked in user_service."""

    fullname = fields.Str(
        required=True,
        validate=[not_blank, validate.Length(max=255)],
    )
    email = fields.Email(
        required=True,
        validate=validate.Length(max=255),
    )
