"""
Shared authentication helpers.
Provides password hashing, credential checks, and the admin gate.

Privileged endpoints authenticate per call: the request carries the admin's
username and password, either as `adminUsername` / `adminPassword` in the
JSON body or as an HTTP Basic Authorization header. No token or session is
ever issued.
"""

import logging
from functools import wraps
from typing import Any, Callable, Dict, Optional, Tuple

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from flask import Response, g, jsonify, request

from backend.database import stores
from backend.database.store import Record

ph = PasswordHasher()

ADMIN_ROLE = "admin"


# --- PASSWORD HASHING ---
def hash_password(password: str) -> str:
    """
    Hash a plain-text password with Argon2.

    Args:
        password (str): The password as sent by the client.

    Returns:
        str: Encoded Argon2 hash.
    """
    return ph.hash(password)


def check_password(password_hash: Optional[str], password: str) -> bool:
    """
    Verify a password against a stored hash. Never raises on mismatch.
    """
    if not password_hash or not isinstance(password, str) or not password:
        return False
    try:
        return ph.verify(password_hash, password)
    except (VerificationError, InvalidHashError, TypeError):
        return False


# --- CREDENTIAL CHECKS ---
def authenticate(username: str, password: str, admin_only: bool = False) -> Optional[Record]:
    """
    Resolve credentials to an active user record.

    Args:
        username (str): Username to look up (inactive users never match).
        password (str): Plain-text password.
        admin_only (bool): Only accept users with the admin role.

    Returns:
        dict: The user record without its password hash, or None when the
              user does not exist, is disabled, lacks the role, or the
              password is wrong. Callers cannot tell these cases apart.
    """
    if not username or not password:
        return None
    filters: Dict[str, Any] = {"username": username, "active": True}
    if admin_only:
        filters["role"] = ADMIN_ROLE

    user = stores.users.find_one(filters, with_secrets=True)
    if not user or not check_password(user.pop("password_hash", None), password):
        return None
    return user


def admin_exists() -> bool:
    """True when at least one active admin is stored. Re-queried every call."""
    return stores.users.count({"role": ADMIN_ROLE, "active": True}) > 0


def credentials_from_request() -> Tuple[Optional[str], Optional[str]]:
    """
    Extract admin credentials from the JSON body or a Basic auth header.

    Returns:
        tuple: (username, password); either may be None.
    """
    data: Dict[str, Any] = request.get_json(silent=True) or {}
    username = data.get("adminUsername")
    password = data.get("adminPassword")
    # Non-string values count as missing
    username = username if isinstance(username, str) else None
    password = password if isinstance(password, str) else None
    if username and password:
        return username, password

    auth = request.authorization
    if auth is not None and auth.type == "basic":
        return auth.username, auth.password
    return username, password


# --- ADMIN GATE ---
def verify_admin_from_request() -> Tuple[Optional[Record], Optional[Response], Optional[int]]:
    """
    Check that the request carries valid credentials of an active admin.

    Returns:
        tuple: (admin, error_response, status_code)
               On success error_response and status_code are None.
               Missing credentials give 401, anything else that is not an
               active admin with a matching password gives 403.
    """
    username, password = credentials_from_request()
    if not username or not password:
        return None, jsonify({"message": "Admin credentials required"}), 401

    admin = authenticate(username, password, admin_only=True)
    if admin is None:
        logging.info(f"[Auth] Admin check refused for {username!r}")
        return None, jsonify({"message": "You do not have admin permissions"}), 403

    return admin, None, None


def admin_required(view: Callable) -> Callable:
    """
    Route decorator running the admin gate before the view.
    The authenticated admin is available as flask.g.admin.
    """

    @wraps(view)
    def wrapper(*args, **kwargs):
        admin, err, code = verify_admin_from_request()
        if err:
            return err, code
        g.admin = admin
        return view(*args, **kwargs)

    return wrapper
