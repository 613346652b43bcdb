import copy
import uuid
from contextlib import contextmanager

import pytest
from argon2 import PasswordHasher

from backend.database import stores
from backend.database.store import EntityStore, parse_id
from backend.gateway.server import create_app


class FakeDatabase:
    """In-memory tables with all-or-nothing transactions."""

    def __init__(self):
        self.tables = {"users": [], "events": [], "businesses": []}

    @contextmanager
    def transaction(self):
        snapshot = copy.deepcopy(self.tables)
        try:
            yield None
        except Exception:
            self.tables = snapshot
            raise


class FakeStore(EntityStore):
    """
    EntityStore with the SQL replaced by list operations.
    Same inputs, same outputs (JSON-ready dicts with string ids).
    """

    def __init__(self, db, table, columns, secret_columns=(), reference_fields=(), defaults=None):
        super().__init__(table, columns, secret_columns, reference_fields)
        self.db = db
        self.defaults = defaults or {}

    @property
    def rows(self):
        return self.db.tables[self.table]

    def transaction(self):
        return self.db.transaction()

    def _scan(self, filters):
        # Same up-front validation as the SQL store: bad ids raise before any lookup
        self._where(filters)
        return [r for r in self.rows if self._matches(r, filters)]

    def _matches(self, row, filters):
        self._check_columns(filters or {})
        for column, value in (filters or {}).items():
            if column in self.reference_fields:
                if str(parse_id(value, column)) not in row[column]:
                    return False
            elif column == "id":
                if row["id"] != str(parse_id(value)):
                    return False
            elif row.get(column) != value:
                return False
        return True

    def _out(self, row, with_secrets=False, columns=None):
        names = list(columns or self.columns)
        if with_secrets:
            names += self.secret_columns
        return copy.deepcopy({n: row.get(n) for n in names})

    def _get(self, record_id):
        record_id = str(parse_id(record_id))
        for row in self.rows:
            if row["id"] == record_id:
                return row
        return None

    def find(self, filters=None, skip=0, limit=None, cur=None):
        matched = self._scan(filters)
        end = None if limit is None else skip + limit
        return [self._out(r) for r in matched[skip:end]]

    def count(self, filters=None, cur=None):
        return len(self._scan(filters))

    def find_one(self, filters, with_secrets=False, cur=None):
        matched = self._scan(filters)
        return self._out(matched[0], with_secrets) if matched else None

    def find_by_ids(self, ids, columns=None, cur=None):
        wanted = [str(parse_id(i)) for i in ids]
        return [self._out(r, columns=columns) for r in self.rows if r["id"] in wanted]

    def exists(self, record_id, cur=None):
        return self._get(record_id) is not None

    def insert(self, data, cur=None):
        self._check_columns(data)
        row = {column: None for column in self.columns + self.secret_columns}
        row.update({field: [] for field in self.reference_fields})
        row.update(self.defaults)
        row.update(self._record({k: self._param(k, v) for k, v in data.items()}))
        row["id"] = str(uuid.uuid4())
        self.rows.append(row)
        return self._out(row)

    def find_one_and_update(self, filters, patch, cur=None):
        self._check_columns(patch)
        for row in self._scan(filters)[:1]:
            row.update(self._record({k: self._param(k, v) for k, v in patch.items()}))
            return self._out(row)
        return None

    def find_one_and_delete(self, filters, cur=None):
        for row in self._scan(filters)[:1]:
            self.rows.remove(row)
            return self._out(row)
        return None

    def add_to_set(self, record_id, field, value, cur=None):
        self._reference(field)
        row = self._get(record_id)
        if row is None:
            return None
        ref = str(parse_id(value, field))
        if ref not in row[field]:
            row[field].append(ref)
        return self._out(row)

    def add_to_set_many(self, record_ids, field, value, cur=None):
        return len([i for i in record_ids if self.add_to_set(i, field, value) is not None])

    def pull(self, record_id, field, value, cur=None):
        self._reference(field)
        row = self._get(record_id)
        if row is None:
            return None
        ref = str(parse_id(value, field))
        row[field] = [r for r in row[field] if r != ref]
        return self._out(row)


@pytest.fixture(autouse=True)
def fast_hasher(mocker):
    # Cheap Argon2 parameters keep the suite fast; hashes stay real
    mocker.patch("backend.auth_service.utils.ph", PasswordHasher(time_cost=1, memory_cost=8, parallelism=1))


@pytest.fixture
def fake_db(mocker):
    """
    Swap the three entity stores for in-memory fakes sharing one database.
    """
    db = FakeDatabase()
    db.users = FakeStore(db, "users", stores.USER_COLUMNS, ["password_hash"], ["events"],
                         defaults={"role": "user", "active": True})
    db.events = FakeStore(db, "events", stores.EVENT_COLUMNS, reference_fields=["participants"],
                          defaults={"active": True})
    db.businesses = FakeStore(db, "businesses", stores.BUSINESS_COLUMNS,
                              reference_fields=["events", "managers"], defaults={"active": True})
    mocker.patch.object(stores, "users", db.users)
    mocker.patch.object(stores, "events", db.events)
    mocker.patch.object(stores, "businesses", db.businesses)
    return db


@pytest.fixture
def app():
    app = create_app()
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(fake_db):
    """Create a user through the service: make_user("ana", role="admin")."""
    from backend.users_service.services import user_service

    def _make(username, password="p1", role="user", active=True, birthday="1990-01-01"):
        user = user_service.create(
            {"username": username, "email": f"{username}@x.com", "password": password, "birthday": birthday},
            role=role,
        )
        if not active:
            user = user_service.disable(id=user["id"])
        return user

    return _make


@pytest.fixture
def admin(make_user):
    make_user("root", password="rootpw", role="admin")
    return {"adminUsername": "root", "adminPassword": "rootpw"}


@pytest.fixture
def mock_db(mocker):
    """
    Mocks the database connection and cursor used by the SQL store.
    """
    mock_conn = mocker.MagicMock()
    mock_cursor = mocker.MagicMock()

    # Setup the context manager for connection
    mock_conn.__enter__.return_value = mock_conn
    mock_conn.__exit__.return_value = None

    # Setup the context manager for cursor
    mock_cursor.__enter__.return_value = mock_cursor
    mock_cursor.__exit__.return_value = None

    # Connect cursor to connection
    mock_conn.cursor.return_value = mock_cursor

    mocker.patch("backend.database.store.get_db", return_value=mock_conn)

    return mock_conn, mock_cursor
