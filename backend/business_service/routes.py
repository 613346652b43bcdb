"""
Business service routes.
Businesses hold a set of events and a set of managers (users).
"""

import logging
from typing import Any, Dict, Tuple

from flask import Blueprint, Response, jsonify, request

from backend.business_service.services import business_service
from backend.common.errors import ValidationError
from backend.common.pagination import paginate, parse_pagination
from backend.common.validation import check_email, check_string, optional_string, pick, require_fields

business_bp = Blueprint("business", __name__)

NAME_MAX_LENGTH = 200
ADDRESS_MAX_LENGTH = 500
PHONE_MAX_LENGTH = 50
# Businesses come back with events and managers expanded, so pages are smaller
DEFAULT_PAGE_LIMIT = 5
UPDATABLE_FIELDS = ["name", "address", "phone", "email"]


@business_bp.before_request
def before_request() -> None:
    logging.info(f"[Business] Incoming {request.method} {request.path}")


@business_bp.after_request
def after_request(response: Response) -> Response:
    logging.info(f"[Business] Response {response.status}")
    return response


def _business_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    fields = pick(data, UPDATABLE_FIELDS)
    if "name" in fields:
        fields["name"] = check_string(fields["name"], "name", NAME_MAX_LENGTH)
    if "address" in fields:
        fields["address"] = optional_string(fields, "address", ADDRESS_MAX_LENGTH)
    if "phone" in fields:
        fields["phone"] = optional_string(fields, "phone", PHONE_MAX_LENGTH)
    if fields.get("email"):
        fields["email"] = check_email(fields["email"])
    elif "email" in fields:
        fields["email"] = None
    return fields


@business_bp.route("/", methods=["POST"])
def create_business() -> Tuple[Response, int]:
    """
    Create a business.

    Expects JSON: { "name": str, "address"?: str, "phone"?: str, "email"?: str }

    Returns:
        201: The business.
        400: Missing name or invalid field.
    """
    data: Dict[str, Any] = request.get_json(silent=True) or {}
    require_fields(data, ["name"])
    business = business_service.create(_business_fields(data))
    return jsonify(business), 201


@business_bp.route("/", methods=["GET"])
def list_businesses() -> Tuple[Response, int]:
    skip, limit = parse_pagination(request.args, DEFAULT_PAGE_LIMIT)
    businesses, total = business_service.list_active(skip, limit)
    return jsonify(paginate("businesses", businesses, skip, limit, total)), 200


@business_bp.route("/all/inactive-included", methods=["GET"])
def list_businesses_with_inactive() -> Tuple[Response, int]:
    skip, limit = parse_pagination(request.args, DEFAULT_PAGE_LIMIT)
    businesses, total = business_service.list_all(skip, limit)
    return jsonify(paginate("businesses", businesses, skip, limit, total)), 200


@business_bp.route("/<business_id>", methods=["GET"])
def get_business(business_id: str) -> Tuple[Response, int]:
    return jsonify(business_service.get(business_id)), 200


@business_bp.route("/<business_id>", methods=["PUT"])
def update_business(business_id: str) -> Tuple[Response, int]:
    """
    Update name, address, phone or email of an active business.
    """
    data: Dict[str, Any] = request.get_json(silent=True) or {}
    fields = _business_fields(data)
    if not fields:
        raise ValidationError("No valid fields provided")
    return jsonify(business_service.update_business(business_id, fields)), 200


@business_bp.route("/<business_id>/disable", methods=["PATCH", "PUT"])
def disable_business(business_id: str) -> Tuple[Response, int]:
    return jsonify(business_service.disable(id=business_id)), 200


@business_bp.route("/<business_id>/reactivate", methods=["PATCH", "PUT"])
def reactivate_business(business_id: str) -> Tuple[Response, int]:
    return jsonify(business_service.reactivate(id=business_id)), 200


@business_bp.route("/hard/<business_id>", methods=["DELETE"])
def delete_business(business_id: str) -> Tuple[Response, int]:
    return jsonify(business_service.hard_delete(id=business_id)), 200


# --- EVENTS ---

@business_bp.route("/<business_id>/event/<event_id>", methods=["PUT"])
def add_event_to_business(business_id: str, event_id: str) -> Tuple[Response, int]:
    """
    Add an event to the business. The event itself is not modified.

    Returns:
        200: Updated business.
        404: Business or event not found.
    """
    return jsonify(business_service.add_event(business_id, event_id)), 200


@business_bp.route("/<business_id>/event/<event_id>", methods=["DELETE"])
def remove_event_from_business(business_id: str, event_id: str) -> Tuple[Response, int]:
    return jsonify(business_service.remove_event(business_id, event_id)), 200


# --- MANAGERS ---

@business_bp.route("/<business_id>/manager/<manager_id>", methods=["PUT"])
def add_manager_to_business(business_id: str, manager_id: str) -> Tuple[Response, int]:
    return jsonify(business_service.add_manager(business_id, manager_id)), 200


@business_bp.route("/<business_id>/manager/<manager_id>", methods=["DELETE"])
def remove_manager_from_business(business_id: str, manager_id: str) -> Tuple[Response, int]:
    return jsonify(business_service.remove_manager(business_id, manager_id)), 200
