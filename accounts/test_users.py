"""Tests for the user CRUD endpoints."""

import pytest

from accounts import database
from accounts.store import UserStore


def _create(client, name="Ann", email="a@x.com", password="secret1", confirmation=None):
    return client.post("/users", json={
        "name": name,
        "email": email,
        "password": password,
        "password_confirmation": password if confirmation is None else confirmation,
    })


def _stored_hash(user_id):
    db = database.get_session()
    user = db.get(database.DBUser, user_id)
    db.close()
    return user.password_hash


# --------------- List ---------------

def test_list_users_empty_is_404(client):
    resp = client.get("/users")
    assert resp.status_code == 404
    assert resp.json() == {"message": "No users found"}


def test_list_users(client):
    _create(client)
    _create(client, name="Bob", email="b@x.com")
    resp = client.get("/users")
    assert resp.status_code == 200
    assert sorted(u["name"] for u in resp.json()) == ["Ann", "Bob"]


# --------------- Create ---------------

def test_create_user(client):
    resp = _create(client)
    assert resp.status_code == 201
    data = resp.json()
    assert data["name"] == "Ann"
    assert data["email"] == "a@x.com"
    assert data["id"]
    assert data["created_at"]
    assert "password_hash" not in data
    assert _stored_hash(data["id"]) != "secret1"


def test_create_user_requires_confirmation(client):
    resp = client.post("/users", json={"name": "Ann", "email": "a@x.com", "password": "secret1"})
    assert resp.status_code == 422
    assert resp.json()["errors"]["password"] == ["The password confirmation does not match."]


def test_create_user_duplicate_email(client):
    _create(client)
    resp = _create(client, name="Other", email="a@x.com")
    assert resp.status_code == 422
    assert resp.json()["errors"]["email"] == ["The email has already been taken."]


def test_created_user_can_log_in(client):
    _create(client)
    resp = client.post("/login", json={"email": "a@x.com", "password": "secret1"})
    assert resp.status_code == 200


# --------------- Update ---------------

def test_update_name_only_keeps_email_and_password(client):
    user = _create(client).json()
    before = _stored_hash(user["id"])

    resp = client.put(f"/users/{user['id']}", json={"name": "Annie"})
    assert resp.status_code == 200
    data = resp.json()
    assert data["name"] == "Annie"
    assert data["email"] == "a@x.com"
    assert _stored_hash(user["id"]) == before

    listed = client.get("/users").json()
    assert listed[0]["name"] == "Annie"
    assert listed[0]["email"] == "a@x.com"


def test_update_null_fields_are_ignored(client):
    user = _create(client).json()
    resp = client.put(f"/users/{user['id']}", json={"name": None, "email": None, "password": None})
    assert resp.status_code == 200
    assert resp.json()["name"] == "Ann"
    assert resp.json()["email"] == "a@x.com"


def test_update_password_without_confirmation(client):
    user = _create(client).json()
    resp = client.put(f"/users/{user['id']}", json={"password": "changed1"})
    assert resp.status_code == 200
    assert client.post("/login", json={"email": "a@x.com", "password": "changed1"}).status_code == 200
    assert client.post("/login", json={"email": "a@x.com", "password": "secret1"}).status_code == 401


def test_update_short_password(client):
    user = _create(client).json()
    resp = client.put(f"/users/{user['id']}", json={"password": "abc"})
    assert resp.status_code == 422
    assert resp.json()["errors"]["password"] == ["The password must be at least 6 characters."]


def test_update_keeping_own_email(client):
    user = _create(client).json()
    resp = client.put(f"/users/{user['id']}", json={"email": "a@x.com", "name": "Ann B"})
    assert resp.status_code == 200


def test_update_to_another_users_email(client):
    _create(client)
    bob = _create(client, name="Bob", email="b@x.com").json()
    resp = client.put(f"/users/{bob['id']}", json={"email": "A@x.com"})
    assert resp.status_code == 422
    assert resp.json()["errors"]["email"] == ["The email has already been taken."]


def test_update_missing_user(client):
    resp = client.put("/users/does-not-exist", json={"name": "x"})
    assert resp.status_code == 404
    assert resp.json() == {"message": "User not found"}


# --------------- Delete ---------------

def test_delete_user(client):
    user = _create(client).json()
    resp = client.delete(f"/users/{user['id']}")
    assert resp.status_code == 200
    assert resp.json() == {"message": "User deleted successfully"}
    assert client.get("/users").status_code == 404


def test_delete_twice_is_404(client):
    user = _create(client).json()
    client.delete(f"/users/{user['id']}")
    resp = client.delete(f"/users/{user['id']}")
    assert resp.status_code == 404
    assert resp.json() == {"message": "User not found"}


# --------------- Unique constraint behind the pre-check ---------------

@pytest.fixture
def blind_precheck(monkeypatch):
    """Let a duplicate email slip past validation, as a concurrent write would."""
    monkeypatch.setattr(UserStore, "exists_by_email", lambda self, email, exclude_id=None: False)


def _user_count():
    db = database.get_session()
    n = db.query(database.DBUser).count()
    db.close()
    return n


def test_register_race_is_reported_as_taken_email(client, register, blind_precheck):
    assert register().status_code == 200
    resp = register(name="Twin")
    assert resp.status_code == 422
    assert resp.json()["errors"] == {"email": ["The email has already been taken."]}
    assert _user_count() == 1


def test_create_race_is_reported_as_taken_email(client, blind_precheck):
    assert _create(client).status_code == 201
    resp = _create(client, name="Twin", email="A@x.com")
    assert resp.status_code == 422
    assert resp.json()["errors"] == {"email": ["The email has already been taken."]}
    assert _user_count() == 1


def test_update_race_is_reported_as_taken_email(client, blind_precheck):
    _create(client)
    bob = _create(client, name="Bob", email="b@x.com").json()
    resp = client.put(f"/users/{bob['id']}", json={"email": "a@x.com"})
    assert resp.status_code == 422
    assert resp.json()["errors"] == {"email": ["The email has already been taken."]}
    assert _user_count() == 2

    db = database.get_session()
    assert db.get(database.DBUser, bob["id"]).email == "b@x.com"
    db.close()
