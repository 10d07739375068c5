"""
Error types raised by the services and their translation to JSON responses.

Services never build HTTP responses themselves; they raise one of the
``AppError`` subclasses below and ``register_error_handlers`` turns it into
``{"success": false, "error": ..., "code": ..., "field": ...}``.
"""

import traceback

import jwt
from flask import current_app, request
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException

from app.extensions import db
from app.utils.responses import error_response


class AppError(Exception):
    status_code = 500
    code = None

    def __init__(self, message, status_code=None, code=None, field=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code
        self.field = field


class ValidationError(AppError):
    """Bad input or a broken business rule (slot full, not enough tokens)."""

    status_code = 400
    code = "VALIDATION_ERROR"

    def __init__(self, message, field=None):
        super().__init__(message, field=field)


class AuthenticationError(AppError):
    status_code = 401
    code = "AUTHENTICATION_ERROR"

    def __init__(self, message="Authentication failed"):
        super().__init__(message)


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, message="Resource not found"):
        super().__init__(message)


class ConflictError(AppError):
    status_code = 409
    code = "CONFLICT"

    def __init__(self, message, field=None):
        super().__init__(message, field=field)


def register_error_handlers(app):
    """Attach the JSON error handlers to the Flask app."""

    @app.errorhandler(AppError)
    def handle_app_error(error):
        db.session.rollback()
        if error.status_code >= 500:
            current_app.logger.error(f"{request.method} {request.path}: {error.message}")
        return error_response(error.message, error.status_code, error.code, error.field)

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(error):
        db.session.rollback()
        current_app.logger.warning(f"Integrity error on {request.path}: {error.orig}")
        return error_response("Resource already exists", 409, "DUPLICATE_ERROR")

    @app.errorhandler(jwt.ExpiredSignatureError)
    def handle_expired_token(error):
        return error_response("Token expired", 401, "TOKEN_EXPIRED")

    @app.errorhandler(jwt.InvalidTokenError)
    def handle_invalid_token(error):
        return error_response("Invalid token", 401, "INVALID_TOKEN")

    @app.errorhandler(404)
    def handle_not_found(error):
        return error_response(
            f"Route not found: {request.method} {request.path}", 404, "NOT_FOUND"
        )

    @app.errorhandler(Exception)
    def handle_unexpected(error):
        if isinstance(error, HTTPException):
            return error_response(error.description, error.code)
        db.session.rollback()
        current_app.logger.error(
            f"Unhandled error on {request.method} {request.path}: {error}\n"
            f"{traceback.format_exc()}"
        )
        return error_response("Internal server error", 500)
