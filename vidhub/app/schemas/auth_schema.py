"""
schemas/auth_schema.py — Marshmallow schemas for registration and session endpoints.

Validation responsibility:
  - This file: field types, lengths, formats, regex patterns.
  - services/: DUPLICATE_EMAIL / DUPLICATE_USERNAME, credential checks and
    the "username or email" login rule.

Request bodies use camelCase keys; data_key maps them to snake_case.

IMPORTANT: All schemas inherit from marshmallow.Schema directly and need no
Flask app context, so they are unit-testable on their own.
"""

from __future__ import annotations

from marshmallow import EXCLUDE, Schema, ValidationError, fields, validate, validates

from vidhub.app.services.passwords import MAX_PASSWORD_BYTES, password_too_long


def not_blank(value: str) -> None:
    if not value or not value.strip():
        raise ValidationError("Field may not be blank.")


def check_password_strength(value: str) -> None:
    """Min 8 chars, max 72 bytes UTF-8, at least one letter and one digit."""
    if len(value) < 8:
        raise ValidationError("Password must be at least 8 characters long.")
    if password_too_long(value):
        raise ValidationError(f"Password cannot be longer than {MAX_PASSWORD_BYTES} bytes.")
    if not any(c.isalpha() for c in value):
        raise ValidationError("Password must contain at least one letter.")
    if not any(c.isdigit() for c in value):
        raise ValidationError("Password must contain at least one digit.")


class RegisterSchema(Schema):
    """
    POST /users  (multipart form; files are handled by the route)

    Field rules:
      fullname : required, non-blank, max 255
      username : 3–50 chars, alphanumeric + underscore only
      email    : valid email format
      password : 8 chars to 72 bytes, at least one letter and one digit
    """

    fullname = fields.Str(
        required=True,
        validate=[not_blank, validate.Length(max=255)],
    )

    username = fields.Str(
        required=True,
        validate=[
            validate.Length(
                min=3,
                max=50,
                error="Username must be between 3 and 50 characters.",
            ),
            validate.Regexp(
                r"^[a-zA-Z0-9_]+$",
                error="Username may only contain letters, numbers, and underscores.",
            ),
        ],
    )

    email = fields.Email(
        required=True,
        validate=validate.Length(max=255),
    )

    password = fields.Str(required=True, load_only=True)

    @validates("password")
    def validate_password_strength(self, value: str, **kwargs) -> None:
        check_password_strength(value)


class LoginSchema(Schema):
    """
    POST /users/login

    Either username or email identifies the account; the service rejects a
    request with neither (MISSING_IDENTIFIER, 400).
    """

    class Meta:
        unknown = EXCLUDE

    username = fields.Str(load_default=None, allow_none=True)
    email = fields.Str(load_default=None, allow_none=True)
    password = fields.Str(required=True, load_only=True)


class RefreshTokenSchema(Schema):
    """
    POST /users/refresh-token

    The token is optional in the body because it usually arrives as the
    refreshToken cookie. Absence of both is REFRESH_TOKEN_MISSING (401).
    """

    class Meta:
        unknown = EXCLUDE

    refresh_token = fields.Str(data_key="refreshToken", load_default=None, allow_none=True)


class ChangePasswordSchema(Schema):
    """POST /users/change-password"""

    old_password = fields.Str(data_key="oldPassword", required=True, load_only=True)
    new_password = fields.Str(data_key="newPassword", required=True, load_only=True)

    @validates("new_password")
    def validate_new_password_strength(self, value: str, **kwargs) -> None:
        check_password_strength(value)
