from __future__ import annotations

import pytest
from sqlalchemy.exc import OperationalError

from invbill.apps.accounts import models
from invbill.apps.accounts.store import SqlCredentialStore, StoreConflictError, StoreError


def _user(username: str = "alice", **overrides) -> models.User:
    fields = dict(
        id=f"id-{username}",
        username=username,
        email=f"{username}@example.com",
        password_hash="$argon2id$v=19$m=1024,t=1,p=1$c2FsdA$aGFzaA",
        is_admin=False,
    )
    fields.update(overrides)
    return models.User(**fields)


def test_create_and_find_by_username(credential_store):
    credential_store.create(_user())

    found = credential_store.find_by_username("alice")

    assert found is not None
    assert found.id == "id-alice"
    assert found.email == "alice@example.com"
    assert found.is_admin is False
    assert credential_store.find_by_username("ALICE") is None
    assert credential_store.find_by_username("bob") is None


def test_duplicate_username_raises_conflict(credential_store):
    credential_store.create(_user())

    with pytest.raises(StoreConflictError):
        credential_store.create(_user(id="another-id"))


def test_update_password_hash(credential_store):
    credential_store.create(_user())

    assert credential_store.update_password_hash("alice", "$argon2id$new") is True
    assert credential_store.find_by_username("alice").password_hash == "$argon2id$new"


def test_update_password_hash_for_missing_user_returns_false(credential_store):
    assert credential_store.update_password_hash("ghost", "$argon2id$new") is False


def test_export_users_serialises_timestamps(credential_store):
    credential_store.create(_user("alice"))
    credential_store.create(_user("bob", is_admin=True))

    rows = credential_store.export_users()

    assert [row["username"] for row in rows] == ["alice", "bob"]
    assert rows[1]["is_admin"] is True
    assert isinstance(rows[0]["created_at"], str)
    assert set(rows[0]) == {
        "id",
        "username",
        "email",
        "password_hash",
        "is_admin",
        "created_at",
        "updated_at",
    }


def test_import_users_creates_or_replaces_by_id(credential_store):
    credential_store.create(_user("alice"))

    written = credential_store.import_users(
        [
            dict(id="id-alice", username="alice", email="new@example.com",
                 password_hash="$argon2id$x", is_admin=False),
            dict(id="id-bob", username="bob", email="bob@example.com",
                 password_hash="$argon2id$y", is_admin=False),
        ]
    )

    assert written == 2
    assert credential_store.find_by_username("alice").email == "new@example.com"
    assert credential_store.find_by_username("bob") is not None


def test_import_users_username_clash_rolls_back(credential_store):
    credential_store.create(_user("alice"))

    with pytest.raises(StoreConflictError):
        credential_store.import_users(
            [
                dict(id="id-carol", username="carol", email="c@example.com",
                     password_hash="$argon2id$z", is_admin=False),
                dict(id="other-id", username="alice", email="a@example.com",
                     password_hash="$argon2id$z", is_admin=False),
            ]
        )

    assert credential_store.find_by_username("carol") is None


def test_database_errors_surface_as_store_error():
    class _BrokenSession:
        def query(self, *args, **kwargs):
            raise OperationalError("SELECT 1", {}, Exception("connection refused"))

        def rollback(self):
            pass

        def close(self):
            pass

    store = SqlCredentialStore(_BrokenSession)

    with pytest.raises(StoreError):
        store.find_by_username("alice")
    with pytest.raises(StoreError):
        store.update_password_hash("alice", "$argon2id$new")
    with pytest.raises(StoreError):
        store.export_users()
