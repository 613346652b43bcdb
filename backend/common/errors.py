"""
Error taxonomy shared by the entity services.

Services raise these exceptions; the handlers registered on the app turn
them into JSON responses of the form {"message": "..."} with the matching
status code. Database errors that escape a service are mapped here too.
"""

import logging
from typing import List, Optional, Tuple

import psycopg2
import psycopg2.errors
from flask import Flask, Response, jsonify
from werkzeug.exceptions import HTTPException


class ServiceError(Exception):
    """Base class for every error a service can report to a controller."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def to_dict(self) -> dict:
        return {"message": self.message}


class ValidationError(ServiceError):
    """Malformed or missing input. Carries the offending field names."""

    status_code = 400
    default_message = "Invalid input"

    def __init__(self, message: Optional[str] = None, fields: Optional[List[str]] = None):
        super().__init__(message)
        self.fields = list(fields or [])

    def to_dict(self) -> dict:
        body = super().to_dict()
        if self.fields:
            body["fields"] = self.fields
        return body


class AuthRequiredError(ServiceError):
    status_code = 401
    default_message = "Admin credentials required"


class AuthForbiddenError(ServiceError):
    status_code = 403
    default_message = "You do not have admin permissions"


class NotFoundError(ServiceError):
    status_code = 404
    default_message = "Not found"


class ConflictError(ServiceError):
    status_code = 409
    default_message = "Resource already exists"


class InternalError(ServiceError):
    status_code = 500


def error_response(err: ServiceError) -> Tuple[Response, int]:
    return jsonify(err.to_dict()), err.status_code


def _conflict_message(exc: psycopg2.errors.UniqueViolation) -> str:
    # constraint names look like users_username_key / users_email_key
    constraint = getattr(getattr(exc, "diag", None), "constraint_name", None) or ""
    for field in ("username", "email"):
        if field in constraint:
            return f"{field.capitalize()} already exists"
    return ConflictError.default_message


def register_error_handlers(app: Flask) -> None:
    """
    Attach the JSON error handlers to a Flask app.

    Args:
        app (Flask): The application (or blueprint owner) to configure.
    """

    @app.errorhandler(ServiceError)
    def handle_service_error(err: ServiceError) -> Tuple[Response, int]:
        if err.status_code >= 500:
            logging.error(f"[API] {err.__class__.__name__}: {err.message}")
        return error_response(err)

    @app.errorhandler(psycopg2.errors.UniqueViolation)
    def handle_unique_violation(exc: psycopg2.errors.UniqueViolation) -> Tuple[Response, int]:
        return error_response(ConflictError(_conflict_message(exc)))

    @app.errorhandler(psycopg2.Error)
    def handle_db_error(exc: psycopg2.Error) -> Tuple[Response, int]:
        logging.exception(f"[API] Database error: {exc}")
        return error_response(InternalError("Database error"))

    @app.errorhandler(404)
    def handle_unknown_route(_exc) -> Tuple[Response, int]:
        return jsonify({"message": "Route not found"}), 404

    @app.errorhandler(405)
    def handle_bad_method(_exc) -> Tuple[Response, int]:
        return jsonify({"message": "Method not allowed"}), 405

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception) -> Tuple[Response, int]:
        if isinstance(exc, HTTPException):
            return jsonify({"message": exc.description}), exc.code
        logging.exception(f"[API] Unhandled error: {exc}")
        return error_response(InternalError())
