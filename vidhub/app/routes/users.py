"""
routes/users.py — User and session route handlers.

Layer rules:
  - Parse request body / form / files / cookies
  - Validate with the appropriate schema (raises ValidationError on bad input)
  - Call exactly ONE service function
  - Commit the DB session (register, avatar and cover-image flows commit
    inside the service, before media cleanup)
  - Return the success envelope: {"status", "data", "message", "success"}
  - Set or clear auth cookies

No business logic here. No DB queries.
AppError propagates to the global error handler in app/__init__.py — routes
never catch it.

Endpoints (url_prefix=/api/v1/users):
  POST   ""                 → 201  register (multipart)
  POST   /login             → 200  + cookies
  POST   /logout            → 200  - cookies        (auth)
  POST   /refresh-token     → 200  + cookies
  POST   /change-password   → 200                   (auth)
  GET    /current-user      → 200                   (auth)
  PATCH  /update-account    → 200                   (auth)
  PATCH  /avatar            → 200  (multipart)      (auth)
  PATCH  /cover-image       → 200  (multipart)      (auth)
"""

from __future__ import annotations

from flask import Blueprint, Response, current_app, g, request

from vidhub.app.extensions import db
from vidhub.app.middleware.auth_middleware import ACCESS_COOKIE, require_auth
from vidhub.app.responses import api_response
from vidhub.app.schemas.account_schema import UpdateAccountSchema
from vidhub.app.schemas.auth_schema import (
    ChangePasswordSchema,
    LoginSchema,
    RefreshTokenSchema,
    RegisterSchema,
)
from vidhub.app.services import auth_service, user_service
from vidhub.app.services.media_store import get_media_store

users_bp = Blueprint("users", __name__)

REFRESH_COOKIE = "refreshToken"


def _cookie_options() -> dict:
    """HttpOnly always; Secure only where AUTH_COOKIE_SECURE is set (production)."""
    return {
        "httponly": True,
        "secure": current_app.config.get("AUTH_COOKIE_SECURE", False),
    }


def _set_auth_cookies(response: Response, tokens: dict) -> Response:
    options = _cookie_options()
    response.set_cookie(ACCESS_COOKIE, tokens["accessToken"], **options)
    response.set_cookie(REFRESH_COOKIE, tokens["refreshToken"], **options)
    return response


def _clear_auth_cookies(response: Response) -> Response:
    options = _cookie_options()
    response.delete_cookie(ACCESS_COOKIE, **options)
    response.delete_cookie(REFRESH_COOKIE, **options)
    return response


@users_bp.route("", methods=["POST"])
def register():
    """POST /users — Create account with avatar (+ optional cover image). (No auth.)"""
    data = RegisterSchema().load(request.form.to_dict())
    result = user_service.register_user(
        fullname=data["fullname"],
        email=data["email"],
        username=data["username"],
        password=data["password"],
        avatar_file=request.files.get("avatar"),
        cover_file=request.files.get("coverImage"),
        media_store=get_media_store(),
        session=db.session,
    )
    return api_response(result, "User registered successfully", 201)


@users_bp.route("/login", methods=["POST"])
def login():
    """POST /users/login — Authenticate by username or email; set cookies."""
    data = LoginSchema().load(request.get_json(force=True) or {})
    result = auth_service.login_user(
        username=data["username"],
        email=data["email"],
        password=data["password"],
        session=db.session,
    )
    db.session.commit()
    response = api_response(result, "User logged in successfully")
    return _set_auth_cookies(response, result)


@users_bp.route("/logout", methods=["POST"])
@require_auth
def logout():
    """POST /users/logout — Clear stored refresh token and cookies. (Auth required.)"""
    auth_service.logout_user(user_id=g.user_id, session=db.session)
    db.session.commit()
    response = api_response({}, "User logged out successfully")
    return _clear_auth_cookies(response)


@users_bp.route("/refresh-token", methods=["POST"])
def refresh_token():
    """POST /users/refresh-token — Rotate the session. Cookie wins over body."""
    data = RefreshTokenSchema().load(request.get_json(silent=True) or {})
    incoming = request.cookies.get(REFRESH_COOKIE) or data["refresh_token"]
    result = auth_service.refresh_session(incoming, session=db.session)
    db.session.commit()
    response = api_response(result, "Access token refreshed successfully")
    return _set_auth_cookies(response, result)


@users_bp.route("/change-password", methods=["POST"])
@require_auth
def change_password():
    """POST /users/change-password — Verify old password, store new one. (Auth required.)"""
    data = ChangePasswordSchema().load(request.get_json(force=True) or {})
    auth_service.change_password(
        user_id=g.user_id,
        old_password=data["old_password"],
        new_password=data["new_password"],
        session=db.session,
    )
    db.session.commit()
    return api_response({}, "Password changed successfully")


@users_bp.route("/current-user", methods=["GET"])
@require_auth
def current_user():
    """GET /users/current-user — Sanitized profile. (Auth required.)"""
    result = user_service.get_current_user(user_id=g.user_id, session=db.session)
    return api_response(result, "Current user details")


@users_bp.route("/update-account", methods=["PATCH"])
@require_auth
def update_account():
    """PATCH /users/update-account — Update fullname and email. (Auth required.)"""
    data = UpdateAccountSchema().load(request.get_json(force=True) or {})
    result = user_service.update_account_details(
        user_id=g.user_id,
        fullname=data["fullname"],
        email=data["email"],
        session=db.session,
    )
    db.session.commit()
    return api_response(result, "Account details updated successfully")


@users_bp.route("/avatar", methods=["PATCH"])
@require_auth
def update_avatar():
    """PATCH /users/avatar — Replace avatar (multipart field "avatar"). (Auth required.)"""
    result = user_service.update_user_avatar(
        user_id=g.user_id,
        avatar_file=request.files.get("avatar"),
        media_store=get_media_store(),
        session=db.session,
    )
    return api_response(result, "Avatar updated successfully")


@users_bp.route("/cover-image", methods=["PATCH"])
@require_auth
def update_cover_image():
    """PATCH /users/cover-image — Replace cover (multipart field "coverImage"). (Auth required.)"""
    result = user_service.update_user_cover_image(
        user_id=g.user_id,
        cover_file=request.files.get("coverImage"),
        media_store=get_media_store(),
        session=db.session,
    )
    return api_response(result, "Cover image updated successfully")
