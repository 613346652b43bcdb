"""
Business service: businesses with their events and managers.

Both sets are one-directional: events and users do not point back to the
business. Reads expand them, events to full records and managers to
{id, username, email}.
"""

from typing import Any, Dict, List

from backend.common.entity_service import EntityService
from backend.common.relationships import BUSINESS_EVENTS, BUSINESS_MANAGERS
from backend.database import stores
from backend.database.store import Record

MANAGER_COLUMNS = ["id", "username", "email"]


class BusinessService(EntityService):
    store_name = "businesses"
    not_found_message = "Business not found"

    def prepare(self, records: List[Record]) -> List[Record]:
        self.store.populate(records, "events", stores.events)
        self.store.populate(records, "managers", stores.users, MANAGER_COLUMNS)
        return records

    def create(self, fields: Dict[str, Any]) -> Record:
        business = self.store.insert({**fields, "events": [], "managers": [], "active": True})
        return self.prepare([business])[0]

    def update_business(self, business_id: Any, patch: Dict[str, Any]) -> Record:
        return self.update({"id": business_id}, patch)

    def _shaped(self, record: Record) -> Record:
        return self.prepare([record])[0]

    def add_event(self, business_id: Any, event_id: Any) -> Record:
        return self._shaped(BUSINESS_EVENTS.link(business_id, event_id))

    def remove_event(self, business_id: Any, event_id: Any) -> Record:
        return self._shaped(BUSINESS_EVENTS.unlink(business_id, event_id))

    def add_manager(self, business_id: Any, manager_id: Any) -> Record:
        return self._shaped(BUSINESS_MANAGERS.link(business_id, manager_id))

    def remove_manager(self, business_id: Any, manager_id: Any) -> Record:
        return self._shaped(BUSINESS_MANAGERS.unlink(business_id, manager_id))


business_service = BusinessService()
