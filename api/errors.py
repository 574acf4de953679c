from flask import jsonify, current_app
from werkzeug.exceptions import HTTPException
from marshmallow import ValidationError
import logging

from tokens.errors import (
    PersistenceError,
    RefreshTokenRejected,
    SessionNotFoundError,
    UnknownUserError,
)
from utils.identity import IdentityVerificationError

logger = logging.getLogger(__name__)

# Same answer for unknown, expired, revoked and reused tokens
INVALID_REFRESH_MESSAGE = "Invalid or expired refresh token"


def error_response(error: str, message: str, status: int, details: dict | None = None):
    payload = {"error": error, "message": message, "status": status}
    if details:
        payload["details"] = details
    return jsonify(payload), status


def register_error_handlers(app):
    # 400 Bad Request (generic)
    @app.errorhandler(400)
    def bad_request(e):
        message = getattr(e, "description", "Bad request")
        return error_response("BAD_REQUEST", message, 400)

    # 401 Unauthorized
    @app.errorhandler(401)
    def unauthorized(e):
        message = getattr(e, "description", "Unauthorized")
        return error_response("UNAUTHORIZED", message, 401)

    # 404 Not Found
    @app.errorhandler(404)
    def not_found(e):
        return error_response("NOT_FOUND", "Resource not found", 404)

    # 422 Unprocessable Entity (validation)
    @app.errorhandler(422)
    def unprocessable(e):
        message = getattr(e, "description", "Unprocessable entity")
        return error_response("VALIDATION_ERROR", message, 422)

    # Marshmallow validation errors map to 422
    @app.errorhandler(ValidationError)
    def handle_validation_error(err: ValidationError):
        # err.messages contains field-level details
        return error_response("VALIDATION_ERROR", "Invalid input", 422, details=err.messages)

    # Rotation failures: the kind only goes to the server log
    @app.errorhandler(RefreshTokenRejected)
    def handle_rejected_refresh(err: RefreshTokenRejected):
        logger.info("refresh rejected: %s", err.kind)
        return error_response("INVALID_REFRESH_TOKEN", INVALID_REFRESH_MESSAGE, 401)

    @app.errorhandler(UnknownUserError)
    def handle_unknown_user(err: UnknownUserError):
        return error_response("UNAUTHORIZED", "User not found", 401)

    @app.errorhandler(IdentityVerificationError)
    def handle_identity_error(err: IdentityVerificationError):
        return error_response("UNAUTHORIZED", "Identity verification failed", 401)

    @app.errorhandler(SessionNotFoundError)
    def handle_session_not_found(err: SessionNotFoundError):
        return error_response("NOT_FOUND", "Session not found", 404)

    # Store unavailable; nothing was committed, the client may retry
    @app.errorhandler(PersistenceError)
    def handle_persistence_error(err: PersistenceError):
        logger.error("token store unavailable: %s", err.__cause__)
        return error_response("SERVICE_UNAVAILABLE", "Service temporarily unavailable", 503)

    # Werkzeug HTTPExceptions map to their status codes
    @app.errorhandler(HTTPException)
    def handle_http_exception(err: HTTPException):
        return error_response("BAD_REQUEST", err.description, err.code or 400)

    # 500 Internal Error (catch-all)
    @app.errorhandler(Exception)
    def internal_error(err: Exception):
        # In dev, include exception details to speed up debugging
        details = None
        if current_app and current_app.debug:
            logging.exception("Unhandled exception", exc_info=err)
            details = {"type": err.__class__.__name__, "message": str(err)}
        return error_response("INTERNAL_ERROR", "An unexpected error occurred", 500, details=details)
