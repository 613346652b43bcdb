"""
User service: accounts, roles, login and event participation.

The password is write-only. It is hashed before it reaches the store and
the hash is never part of a returned record.
"""

import logging
from typing import Any, Dict, List

from backend.auth_service.utils import ADMIN_ROLE, admin_exists, authenticate, hash_password
from backend.common.entity_service import ACTIVE, EntityService
from backend.common.errors import AuthRequiredError, ConflictError, ValidationError
from backend.common.relationships import USER_EVENTS
from backend.database import stores
from backend.database.store import Record

ROLES = ("admin", "manager", "user")
DEFAULT_ROLE = "user"


class UserService(EntityService):
    store_name = "users"
    not_found_message = "User not found"

    def _check_unique(self, username: str = None, email: str = None, exclude_id: str = None) -> None:
        # Inactive accounts keep their username and email reserved.
        for field, value in (("username", username), ("email", email)):
            if value is None:
                continue
            existing = self.store.find_one({field: value})
            if existing and existing["id"] != exclude_id:
                raise ConflictError(f"{field.capitalize()} already exists")

    def create(self, fields: Dict[str, Any], role: str = DEFAULT_ROLE) -> Record:
        """
        Create an active account.

        Args:
            fields (dict): username, email, password (plain text), birthday.
            role (str): One of ROLES.

        Raises:
            ConflictError: Username or email already taken.
        """
        self._check_unique(fields["username"], fields["email"])
        data = {
            "username": fields["username"],
            "email": fields["email"],
            "password_hash": hash_password(fields["password"]),
            "birthday": fields["birthday"],
            "role": role,
            "active": True,
        }
        user = self.store.insert(data)
        logging.info(f"[Users] Created {role} {user['username']} ({user['id']})")
        return user

    def create_admin(self, fields: Dict[str, Any]) -> Record:
        return self.create(fields, role=ADMIN_ROLE)

    def create_first_admin(self, fields: Dict[str, Any]) -> Record:
        """
        Bootstrap path: create an admin without credentials, only while no
        active admin exists.
        """
        if admin_exists():
            raise ValidationError(
                "Admins already exist in the system. Use the regular admin creation endpoint."
            )
        return self.create_admin(fields)

    def update(self, filters: Dict[str, Any], patch: Dict[str, Any]) -> Record:
        if "password" in patch or "password_hash" in patch:
            raise ValidationError("Password cannot be changed through this endpoint", fields=["password"])
        current = self.get_by(**filters)
        self._check_unique(patch.get("username"), patch.get("email"), exclude_id=current["id"])
        return super().update({"id": current["id"]}, patch)

    def set_role(self, user_id: Any, role: str) -> Record:
        if role not in ROLES:
            raise ValidationError(f"role must be one of: {', '.join(ROLES)}", fields=["role"])
        return self._one(self.store.find_by_id_and_update(user_id, {"role": role}))

    # --- LOGIN ---

    def login(self, username: str, password: str) -> Record:
        user = authenticate(username, password)
        if user is None:
            raise AuthRequiredError("Incorrect credentials or user disabled")
        return user

    def login_backoffice(self, username: str, password: str) -> Record:
        user = authenticate(username, password, admin_only=True)
        if user is None:
            raise AuthRequiredError("Incorrect credentials or you do not have admin permissions")
        return user

    # --- EVENTS ---

    def add_event(self, user_id: Any, event_id: Any) -> Record:
        return USER_EVENTS.link(user_id, event_id)

    def remove_event(self, user_id: Any, event_id: Any) -> Record:
        return USER_EVENTS.unlink(user_id, event_id)

    def events_of(self, user_id: Any) -> List[Record]:
        """Active events the active user participates in."""
        user = self.get(user_id)
        return stores.events.find({"participants": user["id"], **ACTIVE})


user_service = UserService()
