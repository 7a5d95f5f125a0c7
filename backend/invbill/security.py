# backend/invbill/security.py

"""
Password hashing for the inventory billing backend.

Responsibilities:
- Hash new secrets with Argon2id (tunable cost via env)
- Verify secrets against stored hashes, including legacy bcrypt hashes
  carried over from the previous record store

Verification never raises: a corrupted or foreign hash denies access.
Hashing failures are configuration faults and surface as PasswordHashingError.
"""

from __future__ import annotations

import logging
import os

from argon2 import PasswordHasher
from argon2.exceptions import HashingError, InvalidHash, VerificationError, VerifyMismatchError
import bcrypt

logger = logging.getLogger(__name__)


class PasswordHashingError(RuntimeError):
    """Raised when the hashing primitive cannot produce a hash."""


# ---------------------------------------------------------------------------
# PASSWORD HASHING
# ---------------------------------------------------------------------------

# Argon2id (argon2-cffi) password hasher.
# You can tune these via env vars if needed.
_pwd_hasher = PasswordHasher(
    time_cost=int(os.getenv("ARGON2_TIME_COST", "3")),
    memory_cost=int(os.getenv("ARGON2_MEMORY_COST", "65536")),  # KiB (64MB)
    parallelism=int(os.getenv("ARGON2_PARALLELISM", "2")),
    hash_len=int(os.getenv("ARGON2_HASH_LEN", "32")),
    salt_len=int(os.getenv("ARGON2_SALT_LEN", "16")),
)


def _is_argon2_hash(hashed_password: str) -> bool:
    return isinstance(hashed_password, str) and hashed_password.startswith("$argon2")


def _is_bcrypt_hash(hashed_password: str) -> bool:
    return isinstance(hashed_password, str) and hashed_password.startswith(("$2a$", "$2b$", "$2y$"))


def is_known_hash(value: str | None) -> bool:
    """True if `value` looks like a hash this module can verify."""
    if not value:
        return False
    return _is_argon2_hash(value) or _is_bcrypt_hash(value)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Return True if the plain password matches the hash."""
    if not plain_password or not hashed_password:
        return False

    if _is_argon2_hash(hashed_password):
        try:
            return _pwd_hasher.verify(hashed_password, plain_password)
        except (VerifyMismatchError, VerificationError, InvalidHash):
            return False

    # Records imported from the old store were hashed with bcrypt
    if _is_bcrypt_hash(hashed_password):
        try:
            return bcrypt.checkpw(
                plain_password.encode("utf-8"),
                hashed_password.encode("utf-8"),
            )
        except ValueError:
            return False

    # Unknown hash format
    return False


def get_password_hash(password: str) -> str:
    """Hash a password for storing in the database (Argon2id)."""
    try:
        return _pwd_hasher.hash(password)
    except HashingError as exc:
        logger.error("Argon2 failed to hash a secret", extra={"error": str(exc)})
        raise PasswordHashingError("Password hashing is unavailable.") from exc
