"""services/passwords.py — bcrypt hashing shared by auth_service and user_service."""

from __future__ import annotations

import bcrypt
from flask import current_app

# bcrypt only reads the first 72 bytes of its input; bcrypt>=5 refuses longer ones.
MAX_PASSWORD_BYTES = 72


def password_too_long(password: str) -> bool:
    return len(password.encode("utf-8")) > MAX_PASSWORD_BYTES


def hash_password(password: str) -> str:
    if password_too_long(password):
        raise ValueError(f"Password cannot be longer than {MAX_PASSWORD_BYTES} bytes.")
    rounds = current_app.config.get("BCRYPT_LOG_ROUNDS", 12)
    return bcrypt.hashpw(
        password.encode("utf-8"),
        bcrypt.gensalt(rounds=rounds),
    ).decode("utf-8")


def is_password_correct(password_hash: str, password: str | None) -> bool:
    """bcrypt.checkpw compares in constant time. Over-long input never matches."""
    if not password or password_too_long(password):
        return False
    return bcrypt.checkpw(
        password.encode("utf-8"),
        password_hash.encode("utf-8"),
    )
