"""
Master-password gate for privileged operations (backup / import).

The privileged account is not a stored user. It is built from configuration
the first time it is needed and then held for the life of the process.

MASTER_PASSWORD defaults to the bootstrap credential "123". Override it in
any real deployment; a warning is logged while the default is in use.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
import os
import threading
from typing import Optional

from invbill.security import get_password_hash, verify_password

logger = logging.getLogger(__name__)

DEFAULT_MASTER_USERNAME = "thriamindustries"
DEFAULT_MASTER_EMAIL = "thriamindustries@gmail.com"
DEFAULT_MASTER_PASSWORD = "123"

MASTER_USERNAME = os.getenv("MASTER_USERNAME", DEFAULT_MASTER_USERNAME)
MASTER_EMAIL = os.getenv("MASTER_EMAIL", DEFAULT_MASTER_EMAIL)
MASTER_PASSWORD = os.getenv("MASTER_PASSWORD", DEFAULT_MASTER_PASSWORD)


class MasterPasswordError(Exception):
    """Raised when a privileged operation is attempted with a wrong master password."""


@dataclass(frozen=True)
class AdminAccount:
    id: str
    username: str
    email: str
    password_hash: str
    is_admin: bool = True


class AdminGate:
    def __init__(
        self,
        *,
        secret: Optional[str] = None,
        username: Optional[str] = None,
        email: Optional[str] = None,
    ) -> None:
        self._secret = MASTER_PASSWORD if secret is None else secret
        self._username = username or MASTER_USERNAME
        self._email = email or MASTER_EMAIL
        self._account: Optional[AdminAccount] = None
        self._lock = threading.Lock()

    def admin_account(self) -> AdminAccount:
        if self._account is None:
            with self._lock:
                if self._account is None:
                    if self._secret == DEFAULT_MASTER_PASSWORD:
                        logger.warning(
                            "Master password is the bootstrap default; set MASTER_PASSWORD",
                            extra={"admin_username": self._username},
                        )
                    self._account = AdminAccount(
                        id="admin",
                        username=self._username,
                        email=self._email,
                        password_hash=get_password_hash(self._secret),
                    )
        return self._account

    def master_check(self, candidate_password: str) -> bool:
        return verify_password(candidate_password, self.admin_account().password_hash)

    def require_master_password(self, candidate_password: str) -> None:
        if not self.master_check(candidate_password):
            logger.warning(
                "Master password rejected",
                extra={"admin_username": self._username},
            )
            raise MasterPasswordError("Invalid master password")
