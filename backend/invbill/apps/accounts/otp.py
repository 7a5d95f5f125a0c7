"""
One-time password registry for password recovery.

Holds at most one pending code per username. Staging a new code replaces
the old one. Checking a code never removes it; codes stay valid until the
next reset request for the same username, unless the registry is built with
a TTL or the caller discards the code after use.

The registry is a plain object owned by the application (see `invbill.main`)
and handed to the auth service; there is no module-level instance.
"""

from __future__ import annotations

from contextlib import contextmanager
import enum
import hmac
import secrets
import threading
import time
from typing import Callable, Dict, Iterator, Optional, Tuple

OTP_DIGITS = 6
_OTP_SPACE = 10 ** OTP_DIGITS


def generate_otp() -> str:
    """Uniform random code over 000000..999999."""
    return f"{secrets.randbelow(_OTP_SPACE):0{OTP_DIGITS}d}"


class OTPCheck(str, enum.Enum):
    MATCH = "MATCH"
    MISMATCH = "MISMATCH"
    NOT_FOUND = "NOT_FOUND"


class ReadWriteLock:
    """
    Many readers or one writer.

    Waiting writers block new readers so a steady stream of checks cannot
    starve a reset request.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class OTPRegistry:
    def __init__(
        self,
        *,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds is not None and ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive when set.")
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = ReadWriteLock()
        # username -> (code, staged_at)
        self._entries: Dict[str, Tuple[str, float]] = {}

    @property
    def ttl_seconds(self) -> Optional[float]:
        return self._ttl_seconds

    def stage(self, username: str, code: str) -> None:
        staged_at = self._clock()
        with self._lock.write():
            self._entries[username] = (code, staged_at)

    def consume_check(self, username: str, code: str) -> OTPCheck:
        with self._lock.read():
            entry = self._entries.get(username)
        if entry is None or self._expired(entry):
            return OTPCheck.NOT_FOUND
        stored_code, _ = entry
        if hmac.compare_digest(stored_code.encode("utf-8"), code.encode("utf-8")):
            return OTPCheck.MATCH
        return OTPCheck.MISMATCH

    def discard(self, username: str, code: Optional[str] = None) -> bool:
        """
        Drop the pending code for `username`.

        With `code`, only drop it if it is still the staged one, so a code
        staged by a newer request survives.
        """
        with self._lock.write():
            entry = self._entries.get(username)
            if entry is None:
                return False
            if code is not None and entry[0] != code:
                return False
            del self._entries[username]
            return True

    def get(self, username: str) -> Optional[str]:
        with self._lock.read():
            entry = self._entries.get(username)
        if entry is None or self._expired(entry):
            return None
        return entry[0]

    def clear(self) -> None:
        with self._lock.write():
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._entries)

    def __contains__(self, username: object) -> bool:
        if not isinstance(username, str):
            return False
        return self.get(username) is not None

    def _expired(self, entry: Tuple[str, float]) -> bool:
        if self._ttl_seconds is None:
            return False
        return self._clock() - entry[1] > self._ttl_seconds
