import base64

import pytest

from backend.auth_service.utils import (
    admin_exists,
    authenticate,
    check_password,
    hash_password,
    verify_admin_from_request,
)


def basic(username, password):
    token = base64.b64encode(f"{username}:{password}".encode()).decode()
    return {"Authorization": f"Basic {token}"}


def test_hash_and_check_password():
    hashed = hash_password("secret")
    assert hashed != "secret"
    assert check_password(hashed, "secret") is True
    assert check_password(hashed, "wrong") is False
    assert check_password("not-a-hash", "secret") is False
    assert check_password(None, "secret") is False


def test_authenticate_strips_hash(make_user):
    make_user("ana", password="p1")

    user = authenticate("ana", "p1")
    assert user["username"] == "ana"
    assert "password_hash" not in user
    assert "password" not in user


def test_authenticate_refuses_wrong_password_and_disabled(make_user):
    make_user("ana", password="p1")
    make_user("bob", password="p2", active=False)

    assert authenticate("ana", "nope") is None
    assert authenticate("ghost", "p1") is None
    assert authenticate("bob", "p2") is None


def test_admin_only(make_user):
    make_user("ana", password="p1")
    make_user("root", password="rootpw", role="admin")

    assert authenticate("ana", "p1", admin_only=True) is None
    assert authenticate("root", "rootpw", admin_only=True)["role"] == "admin"


def test_admin_exists_counts_only_active_admins(fake_db, make_user):
    assert admin_exists() is False
    make_user("root", role="admin", active=False)
    assert admin_exists() is False
    make_user("boss", role="admin")
    assert admin_exists() is True


def test_gate_missing_credentials(app, fake_db):
    with app.test_request_context(json={}):
        admin, err, code = verify_admin_from_request()
        assert admin is None
        assert code == 401
        assert err.json["message"] == "Admin credentials required"


def test_gate_non_admin(app, make_user):
    make_user("ana", password="p1")
    with app.test_request_context(json={"adminUsername": "ana", "adminPassword": "p1"}):
        admin, err, code = verify_admin_from_request()
        assert admin is None
        assert code == 403


def test_gate_wrong_admin_password(app, admin):
    with app.test_request_context(json={"adminUsername": "root", "adminPassword": "bad"}):
        _, _, code = verify_admin_from_request()
        assert code == 403


@pytest.mark.parametrize("use_header", [False, True])
def test_gate_accepts_admin(app, admin, use_header):
    if use_header:
        ctx = app.test_request_context(headers=basic("root", "rootpw"))
    else:
        ctx = app.test_request_context(json=admin)
    with ctx:
        user, err, code = verify_admin_from_request()
        assert err is None and code is None
        assert user["username"] == "root"


def test_check_password_non_string():
    hashed = hash_password("secret")
    assert check_password(hashed, 123) is False
    assert check_password(hashed, ["secret"]) is False


@pytest.mark.parametrize("body", [
    {"adminUsername": "root", "adminPassword": 123},
    {"adminUsername": ["root"], "adminPassword": "rootpw"},
])
def test_gate_non_string_credentials_count_as_missing(app, admin, body):
    with app.test_request_context(json=body):
        admin_user, err, code = verify_admin_from_request()
        assert admin_user is None
        assert code == 401
