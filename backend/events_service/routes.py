"""
Events service routes: create, read, update, soft/hard delete events,
and manage participants.
"""

import logging
from typing import Any, Dict, List, Tuple

from flask import Blueprint, Response, jsonify, request

from backend.common.errors import ValidationError
from backend.common.pagination import paginate, parse_pagination
from backend.common.validation import check_string, optional_string, parse_dt, pick, require_fields
from backend.events_service.services import event_service

events_bp = Blueprint("events", __name__)

# --- CONSTANTS FOR VALIDATION ---
NAME_MAX_LENGTH = 200
ADDRESS_MAX_LENGTH = 500
DEFAULT_PAGE_LIMIT = 10
UPDATABLE_FIELDS = ["name", "schedule", "address"]


@events_bp.before_request
def before_request() -> None:
    logging.info(f"[Events] Incoming {request.method} {request.path}")


@events_bp.after_request
def after_request(response: Response) -> Response:
    logging.info(f"[Events] Response {response.status}")
    return response


def _schedule(value: Any):
    # A single timestamp only; lists of candidate schedules are rejected.
    if not isinstance(value, str):
        raise ValidationError("schedule must be a single ISO-8601 timestamp", fields=["schedule"])
    schedule = parse_dt(value)
    if schedule is None:
        raise ValidationError("Invalid schedule format. Use ISO-8601.", fields=["schedule"])
    return schedule


def _participants(value: Any) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(p, str) and p for p in value):
        raise ValidationError("participants must be a list of user ids or usernames", fields=["participants"])
    return value


@events_bp.route("/", methods=["POST"])
def create_event() -> Tuple[Response, int]:
    """
    Create an event.

    Expects JSON:
        { "name": str, "schedule": ISO-8601 str, "address": str?,
          "participants": [user id or username, ...]? }

    Every participant gets the new event added to their events.

    Returns:
        201: The event, participants as user ids.
        400: Validation error or unknown participant.
    """
    data: Dict[str, Any] = request.get_json(silent=True) or {}
    require_fields(data, ["name", "schedule"])

    fields = {
        "name": check_string(data["name"], "name", NAME_MAX_LENGTH),
        "schedule": _schedule(data["schedule"]),
        "address": optional_string(data, "address", ADDRESS_MAX_LENGTH),
    }
    event = event_service.create(fields, _participants(data.get("participants")))
    return jsonify(event), 201


@events_bp.route("/", methods=["GET"])
def list_events() -> Tuple[Response, int]:
    """
    List active events.

    Returns:
        200: {events: [...], pagination: {skip, limit, total, hasMore}}
    """
    skip, limit = parse_pagination(request.args, DEFAULT_PAGE_LIMIT)
    events, total = event_service.list_active(skip, limit)
    return jsonify(paginate("events", events, skip, limit, total)), 200


@events_bp.route("/all/inactive-included", methods=["GET"])
def list_events_with_inactive() -> Tuple[Response, int]:
    skip, limit = parse_pagination(request.args, DEFAULT_PAGE_LIMIT)
    events, total = event_service.list_all(skip, limit)
    return jsonify(paginate("events", events, skip, limit, total)), 200


@events_bp.route("/<event_id>", methods=["GET"])
def get_event(event_id: str) -> Tuple[Response, int]:
    """
    Get a single active event by id.

    Returns:
        200: Event object.
        400: Malformed id.
        404: Event not found or disabled.
    """
    return jsonify(event_service.get(event_id)), 200


@events_bp.route("/<event_id>", methods=["PUT"])
def update_event(event_id: str) -> Tuple[Response, int]:
    """
    Update name, schedule or address of an active event.
    Participants are changed through the /user/ routes only.
    """
    data: Dict[str, Any] = request.get_json(silent=True) or {}
    fields = pick(data, UPDATABLE_FIELDS)
    if not fields:
        raise ValidationError("No valid fields provided")

    if "name" in fields:
        fields["name"] = check_string(fields["name"], "name", NAME_MAX_LENGTH)
    if "schedule" in fields:
        fields["schedule"] = _schedule(fields["schedule"])
    if "address" in fields:
        fields["address"] = optional_string(fields, "address", ADDRESS_MAX_LENGTH)

    return jsonify(event_service.update_event(event_id, fields)), 200


@events_bp.route("/<event_id>/disable", methods=["PATCH", "PUT"])
def disable_event(event_id: str) -> Tuple[Response, int]:
    event = event_service.disable(id=event_id)
    return jsonify({"message": "Event disabled successfully", "event": event}), 200


@events_bp.route("/<event_id>/reactivate", methods=["PATCH", "PUT"])
def reactivate_event(event_id: str) -> Tuple[Response, int]:
    event = event_service.reactivate(id=event_id)
    return jsonify({"message": "Event reactivated successfully", "event": event}), 200


@events_bp.route("/hard/<event_id>", methods=["DELETE"])
def delete_event(event_id: str) -> Tuple[Response, int]:
    """
    Delete an event permanently. Users and businesses keep their references.
    """
    event = event_service.hard_delete(id=event_id)
    return jsonify({"message": "Event permanently deleted", "event": event}), 200


# --- PARTICIPANTS ---

@events_bp.route("/<event_id>/users", methods=["GET"])
def get_event_users(event_id: str) -> Tuple[Response, int]:
    """
    The event with participants expanded to {id, username, email}.
    """
    return jsonify(event_service.with_participants(event_id)), 200


@events_bp.route("/<event_id>/user/<user_id>", methods=["PUT"])
def add_user_to_event(event_id: str, user_id: str) -> Tuple[Response, int]:
    """
    Add a participant. The event is added to the user's events too.

    Returns:
        200: Updated event.
        400: Malformed id.
        404: Event or user not found (nothing is written).
    """
    return jsonify(event_service.add_user(event_id, user_id)), 200


@events_bp.route("/<event_id>/user/<user_id>", methods=["DELETE"])
def remove_user_from_event(event_id: str, user_id: str) -> Tuple[Response, int]:
    return jsonify(event_service.remove_user(event_id, user_id)), 200
