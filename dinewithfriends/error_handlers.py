from flask import Blueprint, current_app, jsonify
from werkzeug.exceptions import HTTPException

from .errors import AppError, PersistenceTimeout

error_handlers_bp = Blueprint("error_handlers", __name__)


def _error_response(kind, code, message, status_code):
    return (
        jsonify({"error": {"kind": kind, "code": code, "message": message}}),
        status_code,
    )


@error_handlers_bp.app_errorhandler(PersistenceTimeout)
def handle_timeout(error):
    """Handles persistence timeouts."""
    current_app.logger.error(f"Persistence Timeout: {error.message}")
    return jsonify({"error": error.to_dict()}), error.status_code


@error_handlers_bp.app_errorhandler(AppError)
def handle_app_error(error):
    """Handles application errors raised by the services."""
    if error.status_code >= 500:
        current_app.logger.error(f"Application Error: {error.message}")
    else:
        current_app.logger.warning(f"{error.kind} Error ({error.code}): {error.message}")
    return jsonify({"error": error.to_dict()}), error.status_code


@error_handlers_bp.app_errorhandler(HTTPException)
def handle_http_exception(e):
    """Handles routing errors such as unknown URLs or methods."""
    kind = "NotFound" if e.code == 404 else "InvalidInput"
    return _error_response(kind, e.name.replace(" ", ""), e.description, e.code)


@error_handlers_bp.app_errorhandler(500)
def handle_500(e):
    """Handles unexpected server errors."""
    current_app.logger.error(f"Internal Server Error: {e}")
    return _error_response(
        "Internal", "InternalError", "An unexpected error occurred.", 500
    )
