import uuid
from datetime import date

import pytest
from psycopg2 import sql

from backend.common.errors import ValidationError
from backend.database.store import EntityStore, parse_id, transaction

USER_ID = uuid.UUID("11111111-1111-1111-1111-111111111111")
EVENT_ID = uuid.UUID("22222222-2222-2222-2222-222222222222")


def render(query):
    """Flatten a psycopg2.sql composition without a live connection."""
    if isinstance(query, sql.Composed):
        return "".join(render(part) for part in query.seq)
    if isinstance(query, sql.Identifier):
        return ".".join(f'"{s}"' for s in query.strings)
    if isinstance(query, sql.Placeholder):
        return "%s"
    return query.string


@pytest.fixture
def users():
    return EntityStore(
        "users",
        ["id", "username", "email", "birthday", "events", "active", "role"],
        secret_columns=["password_hash"],
        reference_fields=["events"],
    )


def test_parse_id_rejects_garbage():
    with pytest.raises(ValidationError) as exc:
        parse_id("not-an-id")
    assert exc.value.fields == ["id"]
    assert parse_id(str(USER_ID)) == USER_ID


def test_find_filters_windows_and_serializes(users, mock_db):
    mock_conn, mock_cursor = mock_db
    mock_cursor.fetchall.return_value = [{
        "id": USER_ID,
        "username": "ana",
        "email": "ana@x.com",
        "birthday": date(1990, 1, 1),
        "events": [EVENT_ID],
        "active": True,
        "role": "user",
    }]

    rows = users.find({"active": True}, skip=20, limit=10)

    query, params = mock_cursor.execute.call_args[0]
    text = render(query)
    assert 'WHERE "active" = %s' in text
    assert "ORDER BY created_at, id OFFSET %s LIMIT %s" in text
    assert "password_hash" not in text
    assert params == [True, 20, 10]

    assert rows == [{
        "id": str(USER_ID),
        "username": "ana",
        "email": "ana@x.com",
        "birthday": "1990-01-01",
        "events": [str(EVENT_ID)],
        "active": True,
        "role": "user",
    }]
    mock_conn.close.assert_called_once()


def test_find_one_selects_secrets_only_on_request(users, mock_db):
    _, mock_cursor = mock_db
    mock_cursor.fetchone.return_value = None

    assert users.find_one({"username": "ana"}) is None
    assert "password_hash" not in render(mock_cursor.execute.call_args[0][0])

    users.find_one({"username": "ana"}, with_secrets=True)
    assert '"password_hash"' in render(mock_cursor.execute.call_args[0][0])


def test_reference_filter_uses_any(users, mock_db):
    _, mock_cursor = mock_db
    mock_cursor.fetchone.return_value = {"total": 3}

    assert users.count({"events": str(EVENT_ID)}) == 3
    query, params = mock_cursor.execute.call_args[0]
    assert '%s = ANY("events")' in render(query)
    assert params == [EVENT_ID]


def test_add_to_set_is_conditional_append(users, mock_db):
    _, mock_cursor = mock_db
    mock_cursor.fetchone.return_value = None

    assert users.add_to_set(str(USER_ID), "events", str(EVENT_ID)) is None
    query, params = mock_cursor.execute.call_args[0]
    text = render(query)
    assert 'CASE WHEN %s = ANY("events") THEN "events" ELSE array_append("events", %s) END' in text
    assert params == (EVENT_ID, EVENT_ID, USER_ID)


def test_pull_uses_array_remove(users, mock_db):
    _, mock_cursor = mock_db
    mock_cursor.fetchone.return_value = None

    users.pull(USER_ID, "events", EVENT_ID)
    query, params = mock_cursor.execute.call_args[0]
    assert 'SET "events" = array_remove("events", %s)' in render(query)
    assert params == (EVENT_ID, USER_ID)


def test_reference_operators_reject_plain_columns(users):
    with pytest.raises(ValueError):
        users.add_to_set(USER_ID, "username", EVENT_ID)


def test_unknown_filter_column_is_refused(users):
    with pytest.raises(ValueError):
        users.find({"nope": 1})


def test_update_with_empty_patch_is_a_read(users, mock_db):
    _, mock_cursor = mock_db
    mock_cursor.fetchone.return_value = None

    users.find_one_and_update({"id": USER_ID}, {})
    assert render(mock_cursor.execute.call_args[0][0]).startswith("SELECT")


def test_shared_cursor_does_not_open_a_connection(users, mocker):
    get_db = mocker.patch("backend.database.store.get_db")
    cursor = mocker.MagicMock()
    cursor.fetchone.return_value = {"total": 0}

    users.count(cur=cursor)
    get_db.assert_not_called()
    cursor.execute.assert_called_once()


def test_transaction_closes_connection_on_error(mock_db):
    mock_conn, _ = mock_db
    with pytest.raises(RuntimeError):
        with transaction():
            raise RuntimeError("boom")

    exc_type = mock_conn.__exit__.call_args[0][0]
    assert exc_type is RuntimeError
    mock_conn.close.assert_called_once()
