"""
Reference-set relationships between entities.

A Relation links an owner record to a target record by adding the target's
id to one of the owner's reference-set columns. When the relation is
bidirectional the owner's id is added to the target's reciprocal column in
the same database transaction, so either both sides change or neither does.

    participation = Relation("users", "events", "events", reciprocal="participants")
    participation.link(user_id, event_id)    # user.events += event, event.participants += user
    participation.unlink(user_id, event_id)

Adding an id that is already present and removing one that is absent are
both no-ops that still return the owner record.
"""

from typing import Any, Optional

from backend.common.errors import NotFoundError
from backend.database import stores
from backend.database.store import EntityStore, Record, parse_id


class Relation:
    """
    Args:
        owner (str): Name of the owner store in backend.database.stores.
        field (str): Reference-set column on the owner.
        target (str): Name of the target store.
        reciprocal (str, optional): Column on the target holding owner ids.
        owner_label (str): Used in not-found messages.
        target_label (str): Used in not-found messages.
    """

    def __init__(
        self,
        owner: str,
        field: str,
        target: str,
        reciprocal: Optional[str] = None,
        owner_label: str = "Record",
        target_label: str = "Target",
    ):
        self.owner = owner
        self.field = field
        self.target = target
        self.reciprocal = reciprocal
        self.owner_label = owner_label
        self.target_label = target_label

    @property
    def owner_store(self) -> EntityStore:
        return getattr(stores, self.owner)

    @property
    def target_store(self) -> EntityStore:
        return getattr(stores, self.target)

    def _ids(self, owner_id: Any, target_id: Any):
        return parse_id(owner_id), parse_id(target_id, f"{self.target_label.lower()}Id")

    def link(self, owner_id: Any, target_id: Any) -> Record:
        """
        Add target_id to the owner's set (and owner_id to the target's).

        Raises:
            NotFoundError: The owner does not exist (nothing is written), or
                the target does not exist (the owner write is rolled back).
        """
        owner_id, target_id = self._ids(owner_id, target_id)
        with self.owner_store.transaction() as cur:
            updated = self.owner_store.add_to_set(owner_id, self.field, target_id, cur=cur)
            if updated is None:
                raise NotFoundError(f"{self.owner_label} not found")

            if self.reciprocal:
                found = self.target_store.add_to_set(target_id, self.reciprocal, owner_id, cur=cur) is not None
            else:
                found = self.target_store.exists(target_id, cur=cur)
            if not found:
                raise NotFoundError(f"{self.target_label} not found")
        return updated

    def unlink(self, owner_id: Any, target_id: Any) -> Record:
        """
        Remove target_id from the owner's set (and owner_id from the target's).

        A target that no longer exists is not an error: its id is still
        pulled from the owner, which cleans up dangling references.

        Raises:
            NotFoundError: The owner does not exist.
        """
        owner_id, target_id = self._ids(owner_id, target_id)
        with self.owner_store.transaction() as cur:
            updated = self.owner_store.pull(owner_id, self.field, target_id, cur=cur)
            if updated is None:
                raise NotFoundError(f"{self.owner_label} not found")
            if self.reciprocal:
                self.target_store.pull(target_id, self.reciprocal, owner_id, cur=cur)
        return updated


# User.events <-> Event.participants
USER_EVENTS = Relation("users", "events", "events", reciprocal="participants",
                       owner_label="User", target_label="Event")
EVENT_PARTICIPANTS = Relation("events", "participants", "users", reciprocal="events",
                              owner_label="Event", target_label="User")

# One-directional sets held by Business
BUSINESS_EVENTS = Relation("businesses", "events", "events",
                           owner_label="Business", target_label="Event")
BUSINESS_MANAGERS = Relation("businesses", "managers", "users",
                             owner_label="Business", target_label="Manager")
