import logging

from flask import jsonify
from pymongo.errors import PyMongoError
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """Base class for failures that map to a JSON error response."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class BadInput(ApiError):
    status_code = 400
    default_message = "Bad request"


class MissingCredential(ApiError):
    status_code = 401
    default_message = "Unauthorized: missing x-user-email"


class NotOwner(ApiError):
    status_code = 403
    default_message = "Forbidden: not the owner"


class NotFound(ApiError):
    status_code = 404
    default_message = "Not found"


def error_response(message: str, status_code: int):
    """
    Build the JSON error body shared by every route.

    Args:
        message (str): Human readable description.
        status_code (int): HTTP status to answer with.

    Returns:
        tuple: Flask response and status code.
    """
    return jsonify({"message": message}), status_code


def register_error_handlers(app):
    """
    Attach the JSON error handlers to a Flask application.

    Args:
        app (Flask): Application being configured.
    """

    @app.errorhandler(ApiError)
    def handle_api_error(error: ApiError):
        return error_response(error.message, error.status_code)

    @app.errorhandler(HTTPException)
    def handle_http_exception(error: HTTPException):
        return error_response(error.description or error.name, error.code or 500)

    @app.errorhandler(PyMongoError)
    def handle_storage_error(error: PyMongoError):
        logger.exception("Storage failure: %s", error)
        return error_response(str(error) or "Storage failure", 500)

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        logger.exception("Unhandled error: %s", error)
        return error_response(str(error) or "Internal server error", 500)
