"""
Event service: event records and their participants.

Participants are kept in sync with each user's `events` set: creating an
event with participants, or linking/unlinking a user, writes both sides in
one transaction.
"""

import logging
from typing import Any, Dict, List

from backend.common.entity_service import ACTIVE, EntityService
from backend.common.errors import ValidationError
from backend.common.relationships import EVENT_PARTICIPANTS
from backend.database import stores
from backend.database.store import Record, is_id

PARTICIPANT_COLUMNS = ["id", "username", "email"]


class EventService(EntityService):
    store_name = "events"
    not_found_message = "Event not found"

    def resolve_participants(self, refs: List[str]) -> List[str]:
        """
        Turn participant references (user ids or usernames) into user ids.
        Only active users can be participants, whichever way they are named.
        Duplicates collapse; order of first appearance is kept.

        Raises:
            ValidationError: Some reference does not match a user.
        """
        ids: List[str] = []
        unknown: List[str] = []
        for ref in refs:
            if is_id(ref):
                user = stores.users.find_one({"id": ref, **ACTIVE})
            else:
                user = stores.users.find_one({"username": ref, **ACTIVE})
            if user is None:
                unknown.append(ref)
            elif user["id"] not in ids:
                ids.append(user["id"])
        if unknown:
            raise ValidationError(f"Unknown participant(s): {', '.join(unknown)}", fields=["participants"])
        return ids

    def create(self, fields: Dict[str, Any], participants: List[str] = ()) -> Record:
        """
        Create an active event and add it to each participant's events.
        """
        participant_ids = self.resolve_participants(list(participants))
        with self.store.transaction() as cur:
            event = self.store.insert({**fields, "participants": participant_ids, "active": True}, cur=cur)
            stores.users.add_to_set_many(participant_ids, "events", event["id"], cur=cur)
        logging.info(f"[Events] Created {event['id']} with {len(participant_ids)} participant(s)")
        return event

    def update_event(self, event_id: Any, patch: Dict[str, Any]) -> Record:
        return self.update({"id": event_id}, patch)

    def with_participants(self, event_id: Any) -> Record:
        """The event (active or not) with participants expanded to id/username/email."""
        event = self.get_including_inactive(event_id)
        self.store.populate([event], "participants", stores.users, PARTICIPANT_COLUMNS)
        return event

    def add_user(self, event_id: Any, user_id: Any) -> Record:
        return EVENT_PARTICIPANTS.link(event_id, user_id)

    def remove_user(self, event_id: Any, user_id: Any) -> Record:
        return EVENT_PARTICIPANTS.unlink(event_id, user_id)


event_service = EventService()
