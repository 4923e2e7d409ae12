"""
app/__init__.py — Flask application factory.

Pattern: create_app(config_name) creates and returns a configured Flask app.
         Nothing is initialised at import time — this enables:
           - Multiple isolated test app instances
           - Clean separation between app creation and app startup
           - Alembic to import the models without starting the server

Responsibilities:
  1. Load configuration from config_by_name[config_name]
  2. Configure logging level
  3. Initialise SQLAlchemy and the media store
  4. Register the users blueprint under /api/v1/users
  5. Register global error handlers (AppError, ValidationError,
     HTTPException → failure envelope; Exception → 500)
"""

from __future__ import annotations

import logging
import traceback

from flask import Flask, jsonify, request
from marshmallow import ValidationError
from werkzeug.exceptions import HTTPException

from vidhub.config import config_by_name, validate_production_config


# ── Application factory ────────────────────────────────────────────────────

def create_app(config_name: str = "development") -> Flask:
    """
    Creates and returns a configured Flask application instance.

    Args:
        config_name: One of "development", "testing", "production".
                     Defaults to "development".
    """
    app = Flask(__name__)

    # ── Configuration ──────────────────────────────────────────────────────
    config_class = config_by_name.get(config_name, config_by_name["development"])
    app.config.from_object(config_class)

    if config_name == "production":
        validate_production_config(app)  # raises ValueError if misconfigured

    _configure_logging(app)

    # ── Extensions ─────────────────────────────────────────────────────────
    # Import here (not at module top) to avoid circular imports.
    from vidhub.app.extensions import db
    from vidhub.app.services.media_store import init_media_store
    db.init_app(app)
    init_media_store(app)

    # ── Model registration ─────────────────────────────────────────────────
    # Importing the model populates db.metadata for create_all()/Alembic.
    with app.app_context():
        from vidhub.app.models import user  # noqa: F401

    _register_blueprints(app)
    _register_error_handlers(app)
    _register_cors(app)

    app.logger.info("VidHub app created (config=%s)", config_name)
    return app


def _configure_logging(app: Flask) -> None:
    """
    Sets the level on app.logger. Service modules log through
    current_app.logger or a child logger of the app's import name, so one
    level governs both.
    """
    level = logging.getLevelName(app.config.get("LOG_LEVEL", "INFO"))
    if not isinstance(level, int):
        level = logging.INFO
    app.logger.setLevel(level)


def _register_blueprints(app: Flask) -> None:
    from vidhub.app.routes.users import users_bp

    app.register_blueprint(users_bp, url_prefix="/api/v1/users")


def _register_error_handlers(app: Flask) -> None:
    """
    Registers global error handlers.

    Handlers:
      AppError        → failure envelope with the error's HTTP status
      ValidationError → 400, MISSING_FIELD / INVALID_FIELD, one errors[] entry per field
      HTTPException   → failure envelope with the werkzeug status (404, 405, bad JSON…)
      Exception       → generic INTERNAL_ERROR (500); traceback logged, never returned
    """
    from vidhub.app.errors import AppError, ErrorCode

    @app.errorhandler(AppError)
    def handle_app_error(error: AppError):
        """Routes never catch AppError — they let it propagate here."""
        if error.http_status >= 500:
            app.logger.error("%r on %s %s", error, request.method, request.path)
        return jsonify(error.to_dict()), error.http_status

    @app.errorhandler(ValidationError)
    def handle_validation_error(error: ValidationError):
        """
        Flattens marshmallow's {field: [messages]} into
        [{"field": ..., "message": ...}]. The top-level code is MISSING_FIELD
        if any required field is absent, otherwise INVALID_FIELD.
        """
        errors = []
        messages = error.messages
        if isinstance(messages, dict):
            for field_name, field_errors in messages.items():
                if isinstance(field_errors, list):
                    text = field_errors[0] if field_errors else "Invalid value."
                else:
                    text = str(field_errors)
                errors.append({
                    "field": None if field_name == "_schema" else field_name,
                    "message": text,
                })
        else:
            for text in messages:
                errors.append({"field": None, "message": str(text)})

        missing = any(
            str(e["message"]).startswith("Missing data for required field")
            for e in errors
        )
        body = AppError(
            ErrorCode.MISSING_FIELD if missing else ErrorCode.INVALID_FIELD,
            errors[0]["message"] if errors else "Invalid input.",
            400,
            errors=errors,
        ).to_dict()
        return jsonify(body), 400

    @app.errorhandler(HTTPException)
    def handle_http_exception(error: HTTPException):
        codes = {
            400: ErrorCode.BAD_REQUEST,
            404: ErrorCode.NOT_FOUND,
            405: ErrorCode.METHOD_NOT_ALLOWED,
        }
        status = error.code or 500
        body = AppError(
            codes.get(status, ErrorCode.BAD_REQUEST if status < 500 else ErrorCode.INTERNAL_ERROR),
            error.description or error.name,
            status,
        ).to_dict()
        return jsonify(body), status

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        """
        Catches all unhandled exceptions and returns a generic 500 response.
        Stack traces never leave the server.
        """
        app.logger.error(
            "Unhandled exception: %s\n%s",
            str(error),
            traceback.format_exc(),
        )
        body = AppError(
            ErrorCode.INTERNAL_ERROR,
            "An unexpected error occurred. Please try again later.",
            500,
        ).to_dict()
        return jsonify(body), 500


def _register_cors(app: Flask) -> None:
    """
    Adds CORS headers for browser-based local development.

    Enabled when DEBUG or TESTING is true. Credentials are allowed so the
    auth cookies travel with cross-origin requests from a local frontend.
    """

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allow_all = bool(app.config.get("DEBUG") or app.config.get("TESTING"))

        if allow_all and origin:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Access-Control-Allow-Credentials"] = "true"
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Methods"] = "GET, POST, PATCH, OPTIONS"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"

        return response
