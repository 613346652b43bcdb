"""
The three entity collections of the application.

Services look these up through the module (stores.users, ...) at call time,
so tests can swap them for in-memory fakes.
"""

from backend.database.store import EntityStore

USER_COLUMNS = ["id", "username", "email", "birthday", "events", "active", "role"]
EVENT_COLUMNS = ["id", "name", "schedule", "address", "participants", "active"]
BUSINESS_COLUMNS = ["id", "name", "address", "phone", "email", "events", "managers", "active"]

users = EntityStore(
    "users",
    USER_COLUMNS,
    secret_columns=["password_hash"],
    reference_fields=["events"],
)

events = EntityStore(
    "events",
    EVENT_COLUMNS,
    reference_fields=["participants"],
)

businesses = EntityStore(
    "businesses",
    BUSINESS_COLUMNS,
    reference_fields=["events", "managers"],
)
