"""
errors.py — AppError base class and error code registry.

Every error returned by the VidHub API uses a code defined here.
Do not raise strings or generic exceptions from service or route code.

Rules:
  - Error codes are a versioned contract. They do not change once published.
  - Error messages are human-readable prose. They may be improved at any time.
  - 401 means "we could not authenticate you". Credential and token failures
    are always 401, never 403.
"""

from __future__ import annotations


class AppError(Exception):

    def __init__(
            self,
            code: str,
            message: str,
            http_status: int,
            errors: list[dict] | None = None,
    ) -> None:
        super().__init__(message)
        self.code        = code
        self.message     = message
        self.http_status = http_status
        self.errors      = errors  # per-field details, e.g. [{"field": ..., "message": ...}]

    def to_dict(self) -> dict:
        payload = {
            "status":  self.http_status,
            "code":    self.code,
            "message": self.message,
            "success": False,
        }
        if self.errors:
            payload["errors"] = self.errors
        return payload

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(code={self.code!r}, "
            f"http_status={self.http_status}, "
            f"message={self.message!r})"
        )


# ── Taxonomy ───────────────────────────────────────────────────────────────
# Each subclass pins the HTTP status; the code still says *what* went wrong.

class BadRequestError(AppError):
    def __init__(self, code: str, message: str, errors: list[dict] | None = None) -> None:
        super().__init__(code, message, 400, errors)


class UnauthorizedError(AppError):
    def __init__(self, code: str, message: str) -> None:
        super().__init__(code, message, 401)


class NotFoundError(AppError):
    def __init__(self, code: str, message: str) -> None:
        super().__init__(code, message, 404)


class ConflictError(AppError):
    def __init__(self, code: str, message: str, field: str | None = None) -> None:
        errors = [{"field": field, "message": message}] if field else None
        super().__init__(code, message, 409, errors)


class InternalError(AppError):
    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(code or ErrorCode.INTERNAL_ERROR, message, 500)


# ── Error Code Registry ────────────────────────────────────────────────────
#
# Organised by category. HTTP status is indicated in the comment.
#
# IMPORTANT: these are the string values sent in the API response.
# Do not rename them without a major version bump.
# ──────────────────────────────────────────────────────────────────────────

class ErrorCode:

    # ── Schema / Input Errors (400) ────────────────────────────────────────
    MISSING_FIELD              = "MISSING_FIELD"
    INVALID_FIELD              = "INVALID_FIELD"
    MISSING_IDENTIFIER         = "MISSING_IDENTIFIER"
    AVATAR_REQUIRED            = "AVATAR_REQUIRED"
    FILE_REQUIRED              = "FILE_REQUIRED"
    BAD_REQUEST                = "BAD_REQUEST"

    # ── Conflict Errors (409) ──────────────────────────────────────────────
    DUPLICATE_EMAIL            = "DUPLICATE_EMAIL"
    DUPLICATE_USERNAME         = "DUPLICATE_USERNAME"

    # ── Not Found Errors (404) ─────────────────────────────────────────────
    USER_NOT_FOUND             = "USER_NOT_FOUND"
    NOT_FOUND                  = "NOT_FOUND"

    # ── Auth Errors (401) ──────────────────────────────────────────────────
    INVALID_CREDENTIALS        = "INVALID_CREDENTIALS"
    INCORRECT_OLD_PASSWORD     = "INCORRECT_OLD_PASSWORD"
    TOKEN_MISSING              = "TOKEN_MISSING"
    TOKEN_INVALID              = "TOKEN_INVALID"
    TOKEN_EXPIRED              = "TOKEN_EXPIRED"
    REFRESH_TOKEN_MISSING      = "REFRESH_TOKEN_MISSING"
    REFRESH_TOKEN_INVALID      = "REFRESH_TOKEN_INVALID"

    # ── Method errors (405) ────────────────────────────────────────────────
    METHOD_NOT_ALLOWED         = "METHOD_NOT_ALLOWED"

    # ── System Errors (500) ────────────────────────────────────────────────
    INTERNAL_ERROR             = "INTERNAL_ERROR"
    TOKEN_ISSUE_FAILED         = "TOKEN_ISSUE_FAILED"
    MEDIA_UPLOAD_FAILED        = "MEDIA_UPLOAD_FAILED"
    REGISTRATION_FAILED        = "REGISTRATION_FAILED"
    REFRESH_FAILED             = "REFRESH_FAILED"
