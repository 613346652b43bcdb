"""
Generic entity service: pagination and the active/inactive lifecycle.

Every entity (user, event, business) has the same two-state lifecycle:

    active --disable--> inactive --reactivate--> active

Both transitions are idempotent and return the record. A hard delete removes
the record whatever its state. Default reads only see active records; the
"including inactive" variants bypass that filter.

Subclasses pick the store (by name, resolved on each call) and may override
`prepare()` to shape records (e.g. populate references) before they are
returned.
"""

from typing import Any, Dict, List, Optional, Tuple

from backend.common.errors import NotFoundError
from backend.database import stores
from backend.database.store import EntityStore, Record

ACTIVE = {"active": True}


class EntityService:
    store_name: str = ""
    not_found_message: str = "Not found"

    @property
    def store(self) -> EntityStore:
        return getattr(stores, self.store_name)

    def prepare(self, records: List[Record]) -> List[Record]:
        return records

    def _one(self, record: Optional[Record]) -> Record:
        if record is None:
            raise NotFoundError(self.not_found_message)
        return self.prepare([record])[0]

    # --- LISTING ---

    def _page(self, filters: Optional[Dict[str, Any]], skip: int, limit: int) -> Tuple[List[Record], int]:
        items = self.store.find(filters, skip=skip, limit=limit)
        total = self.store.count(filters)
        return self.prepare(items), total

    def list_active(self, skip: int = 0, limit: int = 10) -> Tuple[List[Record], int]:
        """Return (page of active records, total active count)."""
        return self._page(ACTIVE, skip, limit)

    def list_all(self, skip: int = 0, limit: int = 10) -> Tuple[List[Record], int]:
        """Same as list_active but including inactive records."""
        return self._page(None, skip, limit)

    # --- LOOKUP ---

    def get(self, record_id: Any) -> Record:
        return self._one(self.store.find_one({"id": record_id, **ACTIVE}))

    def get_by(self, **filters: Any) -> Record:
        return self._one(self.store.find_one({**filters, **ACTIVE}))

    def get_including_inactive(self, record_id: Any) -> Record:
        return self._one(self.store.find_by_id(record_id))

    # --- MUTATION ---

    def update(self, filters: Dict[str, Any], patch: Dict[str, Any]) -> Record:
        """Update an active record; inactive records are reported as missing."""
        return self._one(self.store.find_one_and_update({**filters, **ACTIVE}, patch))

    def disable(self, **filters: Any) -> Record:
        return self._one(self.store.find_one_and_update(filters, {"active": False}))

    def reactivate(self, **filters: Any) -> Record:
        return self._one(self.store.find_one_and_update(filters, {"active": True}))

    def hard_delete(self, **filters: Any) -> Record:
        return self._one(self.store.find_one_and_delete(filters))
