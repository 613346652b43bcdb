"""
User service route handlers.

Provides routes for:
- Account creation (regular and admin)
- Listing (active, or including inactive for admins)
- Lookup and update by id or username
- Disable / reactivate / hard delete (admin only)
- Granting and revoking the admin role (admin only)
- Event participation

Business rules live in `users_service.services`; admin checks in
`auth_service.utils`. Login and the first-admin bootstrap are in
`auth_service.routes`.
"""

import logging
from typing import Any, Dict, Tuple

from flask import Blueprint, Response, jsonify, request

from backend.auth_service.utils import admin_required
from backend.common.errors import ValidationError
from backend.common.pagination import paginate, parse_pagination
from backend.common.validation import check_email, check_string, parse_date, pick, require_fields
from backend.users_service.services import ROLES, user_service

users_bp = Blueprint("users", __name__)

DEFAULT_PAGE_LIMIT = 10
USERNAME_MAX_LENGTH = 100
UPDATABLE_FIELDS = ["username", "email", "birthday", "role", "password"]
# The admin role is only granted through make-admin
UPDATABLE_ROLES = [r for r in ROLES if r != "admin"]


# --- REQUEST LOGGING ---
@users_bp.before_request
def before_request() -> None:
    logging.info(f"[Users] Incoming {request.method} {request.path}")


@users_bp.after_request
def after_request(response: Response) -> Response:
    logging.info(f"[Users] Response {response.status}")
    return response


# --- INPUT SHAPING ---
def account_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    """Validate the body of a creation request."""
    require_fields(data, ["username", "email", "password", "birthday"])
    birthday = parse_date(data.get("birthday"))
    if birthday is None:
        raise ValidationError("Invalid birthday. Use YYYY-MM-DD.", fields=["birthday"])
    if not isinstance(data["password"], str):
        raise ValidationError("password must be a string", fields=["password"])
    return {
        "username": check_string(data["username"], "username", USERNAME_MAX_LENGTH),
        "email": check_email(data["email"]),
        "password": data["password"],
        "birthday": birthday,
    }


def _update_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    """Validate the body of an update request. Unknown keys are ignored."""
    fields = pick(data, UPDATABLE_FIELDS)
    if "password" in fields:
        raise ValidationError("Password cannot be changed through this endpoint", fields=["password"])
    if not fields:
        raise ValidationError("No valid fields provided")

    if "username" in fields:
        fields["username"] = check_string(fields["username"], "username", USERNAME_MAX_LENGTH)
    if "email" in fields:
        fields["email"] = check_email(fields["email"])
    if "birthday" in fields:
        birthday = parse_date(fields["birthday"])
        if birthday is None:
            raise ValidationError("Invalid birthday. Use YYYY-MM-DD.", fields=["birthday"])
        fields["birthday"] = birthday
    if "role" in fields and fields["role"] not in UPDATABLE_ROLES:
        raise ValidationError(f"role must be one of: {', '.join(UPDATABLE_ROLES)}", fields=["role"])
    return fields


# --- CREATE ---
@users_bp.route("/", methods=["POST"])
def create_user() -> Tuple[Response, int]:
    """
    Register a new user.

    Expects a JSON body with username, email, password and birthday.

    Returns:
        201: The created user (no password).
        400: Missing or invalid fields.
        409: Username or email already exists.
    """
    data: Dict[str, Any] = request.get_json(silent=True) or {}
    user = user_service.create(account_fields(data))
    return jsonify(user), 201


@users_bp.route("/admin/create", methods=["POST"])
@admin_required
def create_admin_user() -> Tuple[Response, int]:
    """
    Create a user with the admin role. Requires admin credentials.

    Returns:
        201: {message, user}
        401/403: Admin gate refused the request.
    """
    data: Dict[str, Any] = request.get_json(silent=True) or {}
    user = user_service.create_admin(account_fields(data))
    return jsonify({"message": "Admin user created successfully", "user": user}), 201


# --- LIST ---
@users_bp.route("/", methods=["GET"])
def list_users() -> Tuple[Response, int]:
    """
    List active users.

    Query: ?skip=<int>&limit=<int>

    Returns:
        200: {users: [...], pagination: {skip, limit, total, hasMore}}
    """
    skip, limit = parse_pagination(request.args, DEFAULT_PAGE_LIMIT)
    users, total = user_service.list_active(skip, limit)
    return jsonify(paginate("users", users, skip, limit, total)), 200


@users_bp.route("/all/inactive-included", methods=["GET"])
@admin_required
def list_users_with_inactive() -> Tuple[Response, int]:
    """
    Admin-only: list every user, disabled ones included.
    """
    skip, limit = parse_pagination(request.args, DEFAULT_PAGE_LIMIT)
    users, total = user_service.list_all(skip, limit)
    return jsonify(paginate("users", users, skip, limit, total)), 200


# --- LOOKUP ---
@users_bp.route("/<user_id>", methods=["GET"])
def get_user(user_id: str) -> Tuple[Response, int]:
    """
    Get an active user by id.

    Returns:
        200: User object.
        400: Malformed id.
        404: Not found or disabled.
    """
    return jsonify(user_service.get(user_id)), 200


@users_bp.route("/username/<username>", methods=["GET"])
def get_user_by_username(username: str) -> Tuple[Response, int]:
    return jsonify(user_service.get_by(username=username)), 200


@users_bp.route("/<user_id>/events", methods=["GET"])
def get_user_events(user_id: str) -> Tuple[Response, int]:
    """
    Active events the user participates in.
    """
    return jsonify({"events": user_service.events_of(user_id)}), 200


# --- UPDATE ---
@users_bp.route("/<user_id>", methods=["PUT"])
def update_user(user_id: str) -> Tuple[Response, int]:
    """
    Update an active user.

    Allowed fields: username, email, birthday, role (manager | user).
    A body containing `password` is rejected.

    Returns:
        200: Updated user.
        400: Invalid fields or password present.
        404: Not found or disabled.
        409: Username or email taken.
    """
    data: Dict[str, Any] = request.get_json(silent=True) or {}
    user = user_service.update({"id": user_id}, _update_fields(data))
    return jsonify(user), 200


@users_bp.route("/username/<username>", methods=["PUT"])
def update_user_by_username(username: str) -> Tuple[Response, int]:
    data: Dict[str, Any] = request.get_json(silent=True) or {}
    user = user_service.update({"username": username}, _update_fields(data))
    return jsonify(user), 200


# --- LIFECYCLE (ADMIN ONLY) ---
@users_bp.route("/<user_id>/disable", methods=["PATCH", "PUT"])
@admin_required
def disable_user(user_id: str) -> Tuple[Response, int]:
    """
    Soft delete: mark the user inactive. The record is kept.
    """
    user = user_service.disable(id=user_id)
    return jsonify({"message": "User disabled successfully", "user": user}), 200


@users_bp.route("/username/<username>/disable", methods=["PATCH", "PUT"])
@admin_required
def disable_user_by_username(username: str) -> Tuple[Response, int]:
    user = user_service.disable(username=username)
    return jsonify({"message": "User disabled successfully", "user": user}), 200


@users_bp.route("/<user_id>/reactivate", methods=["PATCH", "PUT"])
@admin_required
def reactivate_user(user_id: str) -> Tuple[Response, int]:
    user = user_service.reactivate(id=user_id)
    return jsonify({"message": "User reactivated successfully", "user": user}), 200


@users_bp.route("/username/<username>/reactivate", methods=["PATCH", "PUT"])
@admin_required
def reactivate_user_by_username(username: str) -> Tuple[Response, int]:
    user = user_service.reactivate(username=username)
    return jsonify({"message": "User reactivated successfully", "user": user}), 200


@users_bp.route("/hard/<user_id>", methods=["DELETE"])
@admin_required
def delete_user(user_id: str) -> Tuple[Response, int]:
    """
    Hard delete: remove the user permanently.

    References to the user held by events or businesses are left as they are.
    """
    user = user_service.hard_delete(id=user_id)
    return jsonify({"message": "User permanently deleted", "user": user}), 200


@users_bp.route("/hard/username/<username>", methods=["DELETE"])
@admin_required
def delete_user_by_username(username: str) -> Tuple[Response, int]:
    user = user_service.hard_delete(username=username)
    return jsonify({"message": "User permanently deleted", "user": user}), 200


# --- ROLES (ADMIN ONLY) ---
@users_bp.route("/<user_id>/make-admin", methods=["PATCH", "PUT"])
@admin_required
def make_user_admin(user_id: str) -> Tuple[Response, int]:
    user = user_service.set_role(user_id, "admin")
    return jsonify({"message": "User converted to administrator", "user": user}), 200


@users_bp.route("/<user_id>/remove-admin", methods=["PATCH", "PUT"])
@admin_required
def remove_user_admin(user_id: str) -> Tuple[Response, int]:
    user = user_service.set_role(user_id, "user")
    return jsonify({"message": "Administrator permissions removed", "user": user}), 200


# --- EVENT PARTICIPATION ---
@users_bp.route("/<user_id>/addEvent", methods=["PUT"])
def add_event_to_user(user_id: str) -> Tuple[Response, int]:
    """
    Add an event to the user (body: {"eventId": ...}).
    The user is added to the event's participants as well.

    Returns:
        200: Updated user.
        400: Missing or malformed eventId.
        404: User or event not found.
    """
    data: Dict[str, Any] = request.get_json(silent=True) or {}
    require_fields(data, ["eventId"])
    return jsonify(user_service.add_event(user_id, data["eventId"])), 200


@users_bp.route("/<user_id>/event/<event_id>", methods=["PUT"])
def link_event(user_id: str, event_id: str) -> Tuple[Response, int]:
    return jsonify(user_service.add_event(user_id, event_id)), 200


@users_bp.route("/<user_id>/event/<event_id>", methods=["DELETE"])
def unlink_event(user_id: str, event_id: str) -> Tuple[Response, int]:
    """
    Remove the event from the user and the user from the event.
    Removing an event the user does not have is a no-op.
    """
    return jsonify(user_service.remove_event(user_id, event_id)), 200
