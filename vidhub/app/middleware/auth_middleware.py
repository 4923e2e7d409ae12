"""
middleware/auth_middleware.py — Access-token authentication decorator.

The @require_auth decorator:
  1. Reads the access token from "Authorization: Bearer <token>", falling back
     to the accessToken cookie
  2. Verifies signature, expiry and token type via services/token_codec
  3. Attaches user_id (int) to flask.g for the duration of the request
  4. Raises the appropriate 401 AppError if any step fails

Services receive user_id as a plain integer argument, with no knowledge of
JWT, cookies or headers.

Error codes:
  TOKEN_MISSING  (401) — no header and no cookie
  TOKEN_INVALID  (401) — malformed header, invalid signature, or bad payload
  TOKEN_EXPIRED  (401) — valid token but exp claim is in the past
"""

from __future__ import annotations

import functools
from typing import Callable

import jwt
from flask import g, request

from vidhub.app.errors import ErrorCode, UnauthorizedError
from vidhub.app.services import token_codec

ACCESS_COOKIE = "accessToken"


def require_auth(f: Callable) -> Callable:
    """
    Route decorator that enforces access-token authentication.

    Usage:
        @users_bp.route("/current-user")
        @require_auth
        def current_user():
            user_id = g.user_id  # always an int when this runs
    """
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        _authenticate_request()
        return f(*args, **kwargs)

    return decorated


def _extract_token() -> str:
    auth_header = request.headers.get("Authorization", "")
    if auth_header:
        parts = auth_header.split()
        if len(parts) != 2 or parts[0].lower() != "bearer":
            raise UnauthorizedError(
                ErrorCode.TOKEN_INVALID,
                "Authorization header must be in the format: Bearer <token>.",
            )
        return parts[1]

    cookie_token = request.cookies.get(ACCESS_COOKIE)
    if cookie_token:
        return cookie_token

    raise UnauthorizedError(
        ErrorCode.TOKEN_MISSING,
        "Authentication required. Provide a Bearer token or the accessToken cookie.",
    )


def _authenticate_request() -> None:
    """
    Performs the full authentication sequence and sets flask.g.user_id.

    Raises UnauthorizedError on any failure; the global error handler turns
    it into the failure envelope.
    """
    raw_token = _extract_token()

    try:
        payload = token_codec.decode_access_token(raw_token)
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError(
            ErrorCode.TOKEN_EXPIRED,
            "The access token has expired. Use POST /users/refresh-token to obtain a new one.",
        )
    except jwt.InvalidTokenError:
        # Covers: bad signature, malformed token, wrong token type, missing claims.
        raise UnauthorizedError(
            ErrorCode.TOKEN_INVALID,
            "The access token is invalid or has been tampered with.",
        )

    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise UnauthorizedError(
            ErrorCode.TOKEN_INVALID,
            "The 'sub' claim in the access token is not a valid user ID.",
        )

    g.user_id = user_id
