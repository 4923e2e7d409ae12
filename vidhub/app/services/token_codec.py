"""
services/token_codec.py — Signs and verifies session JWTs.

Two token kinds, signed with different secrets:
  - access  : short TTL, sub = user id plus display claims. Never stored.
  - refresh : long TTL, sub = user id only. Stored on the user row.

encode_token()/decode_token() are pure and take secrets explicitly.
The create_*/decode_* wrappers read secrets and TTLs from current_app.config.
"""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone

import jwt
from flask import current_app

ACCESS = "access"
REFRESH = "refresh"


def encode_token(
        claims: dict,
        secret: str,
        ttl: timedelta,
        algorithm: str = "HS256",
) -> str:
    """
    Signs `claims` with iat/exp/jti added.

    jti makes every issued token unique even within the same second, which
    the refresh rotation check relies on.
    """
    now = datetime.now(timezone.utc)
    payload = {
        **claims,
        "iat": now,
        "exp": now + ttl,
        "jti": secrets.token_hex(8),
    }
    return jwt.encode(payload, secret, algorithm=algorithm)


def decode_token(
        token: str,
        secret: str,
        expected_type: str,
        algorithm: str = "HS256",
) -> dict:
    """
    Verifies signature, expiry and token type; returns the payload.

    Raises jwt.ExpiredSignatureError or jwt.InvalidTokenError.
    """
    payload = jwt.decode(
        token,
        secret,
        algorithms=[algorithm],
        options={"require": ["sub", "exp", "iat"]},
    )
    if payload.get("type") != expected_type:
        raise jwt.InvalidTokenError(f"expected a {expected_type} token")
    return payload


def create_access_token(user) -> str:
    config = current_app.config
    return encode_token(
        {
            "sub": str(user.id),
            "type": ACCESS,
            "username": user.username,
            "email": user.email,
            "fullname": user.fullname,
        },
        config["ACCESS_TOKEN_SECRET"],
        config["ACCESS_TOKEN_EXPIRES"],
        config.get("JWT_ALGORITHM", "HS256"),
    )


def create_refresh_token(user_id: int) -> str:
    config = current_app.config
    return encode_token(
        {"sub": str(user_id), "type": REFRESH},
        config["REFRESH_TOKEN_SECRET"],
        config["REFRESH_TOKEN_EXPIRES"],
        config.get("JWT_ALGORITHM", "HS256"),
    )


def decode_access_token(token: str) -> dict:
    config = current_app.config
    return decode_token(
        token,
        config["ACCESS_TOKEN_SECRET"],
        ACCESS,
        config.get("JWT_ALGORITHM", "HS256"),
    )


def decode_refresh_token(token: str) -> dict:
    config = current_app.config
    return decode_token(
        token,
        config["REFRESH_TOKEN_SECRET"],
        REFRESH,
        config.get("JWT_ALGORITHM", "HS256"),
    )
