from __future__ import annotations

import threading
from typing import Dict, List, Optional, Tuple

import pytest

from invbill.apps.accounts import models
from invbill.apps.accounts.otp import OTPRegistry
from invbill.apps.accounts.services import AuthService
from invbill.apps.accounts.store import CredentialStore, StoreConflictError, StoreError


def _copy_user(user: models.User) -> models.User:
    return models.User(
        id=user.id,
        username=user.username,
        email=user.email,
        password_hash=user.password_hash,
        is_admin=user.is_admin,
    )


class InMemoryCredentialStore(CredentialStore):
    """Thread-safe dict store; used where SQLite's single connection gets in the way."""

    def __init__(self) -> None:
        self._users: Dict[str, models.User] = {}
        self._lock = threading.Lock()
        self.fail_with: Optional[Exception] = None
        self.update_calls: List[Tuple[str, str]] = []

    def _maybe_fail(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    def find_by_username(self, username: str) -> Optional[models.User]:
        self._maybe_fail()
        with self._lock:
            user = self._users.get(username)
            return _copy_user(user) if user is not None else None

    def create(self, user: models.User) -> None:
        self._maybe_fail()
        with self._lock:
            if user.username in self._users:
                raise StoreConflictError("A user with this username already exists.")
            self._users[user.username] = _copy_user(user)

    def update_password_hash(self, username: str, new_hash: str) -> bool:
        self._maybe_fail()
        with self._lock:
            self.update_calls.append((username, new_hash))
            user = self._users.get(username)
            if user is None:
                return False
            user.password_hash = new_hash
            return True

    def delete(self, username: str) -> None:
        with self._lock:
            self._users.pop(username, None)

    def stored_hash(self, username: str) -> str:
        with self._lock:
            return self._users[username].password_hash


class RecordingDispatcher:
    def __init__(self) -> None:
        self.sent: List[Tuple[str, str, str]] = []
        self._lock = threading.Lock()

    def dispatch(self, to_address: str, subject: str, body: str) -> None:
        with self._lock:
            self.sent.append((to_address, subject, body))

    def codes_for(self, to_address: str) -> List[str]:
        with self._lock:
            return [
                body.rsplit(" ", 1)[-1]
                for addr, subject, body in self.sent
                if addr == to_address and subject == "Your OTP Code"
            ]


@pytest.fixture()
def memory_store():
    return InMemoryCredentialStore()


@pytest.fixture()
def otp_registry():
    return OTPRegistry()


@pytest.fixture()
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture()
def auth_service(memory_store, otp_registry, dispatcher):
    return AuthService(
        store=memory_store,
        otp_registry=otp_registry,
        dispatcher=dispatcher,
    )


@pytest.fixture()
def sql_auth_service(credential_store, otp_registry, dispatcher):
    return AuthService(
        store=credential_store,
        otp_registry=otp_registry,
        dispatcher=dispatcher,
    )


@pytest.fixture()
def broken_store():
    store = InMemoryCredentialStore()
    store.fail_with = StoreError("connection reset")
    return store
