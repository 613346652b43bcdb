"""
Authentication route handlers, mounted under /api/user/auth.

Provides routes for:
- User login (credential check, nothing is issued)
- Backoffice login (admins only)
- First admin bootstrap

Credential and admin checks are delegated to `auth_service.utils`.
"""

import logging
from typing import Any, Dict, Tuple

from flask import Blueprint, Response, jsonify, request

from backend.common.errors import ValidationError
from backend.common.validation import require_fields
from backend.users_service.routes import account_fields
from backend.users_service.services import user_service

auth_bp = Blueprint("auth", __name__)


# --- REQUEST LOGGING ---
@auth_bp.before_request
def before_request() -> None:
    """
    Log method and path of every request to the authentication routes.
    Bodies are never logged: they carry passwords.
    """
    logging.info(f"[Auth] Incoming {request.method} {request.path}")


@auth_bp.after_request
def after_request(response: Response) -> Response:
    logging.info(f"[Auth] Response {response.status}")
    return response


def _login_fields(data: Dict[str, Any]) -> Tuple[str, str]:
    require_fields(data, ["username", "password"])
    for field in ("username", "password"):
        if not isinstance(data[field], str):
            raise ValidationError(f"{field} must be a string", fields=[field])
    return data["username"], data["password"]


# --- LOGIN ---
@auth_bp.route("/login", methods=["POST"])
def login() -> Tuple[Response, int]:
    """
    Check a username and password against an active account.

    Expects a JSON body with:
    - username (str)
    - password (str)

    Returns:
        200: {message, user} without the password.
        400: Missing credentials.
        401: Invalid credentials or disabled account (not distinguished).
    """
    data: Dict[str, Any] = request.get_json(silent=True) or {}
    username, password = _login_fields(data)
    user = user_service.login(username, password)
    return jsonify({"message": "Login successful", "user": user}), 200


@auth_bp.route("/login-backoffice", methods=["POST"])
def login_backoffice() -> Tuple[Response, int]:
    """
    Same as /login, restricted to active admins.

    Returns:
        200: {message, user, isAdmin: true}
        401: Invalid credentials or not an admin.
    """
    data: Dict[str, Any] = request.get_json(silent=True) or {}
    username, password = _login_fields(data)
    user = user_service.login_backoffice(username, password)
    return jsonify({"message": "Backoffice login successful", "user": user, "isAdmin": True}), 200


# --- FIRST ADMIN ---
@auth_bp.route("/first-admin", methods=["POST"])
def create_first_admin() -> Tuple[Response, int]:
    """
    Create the first admin without credentials.
    Only allowed while no active admin exists.

    Expects the same body as user creation.

    Returns:
        201: {message, user}
        400: An admin already exists, or invalid fields.
    """
    data: Dict[str, Any] = request.get_json(silent=True) or {}
    user = user_service.create_first_admin(account_fields(data))
    logging.info(f"[Auth] First admin {user['username']} created")
    return jsonify({"message": "First admin user created successfully", "user": user}), 201
