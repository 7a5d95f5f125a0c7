"""
Credential store: the record-store boundary for user rows.

AuthService only talks to `CredentialStore`. `SqlCredentialStore` is the
SQLAlchemy implementation used by the app; each call runs in its own session
and rolls back on failure, so a failed call never leaves a half-applied write.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timezone
import logging
from typing import Callable, Iterable, Iterator, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from invbill.database import SessionLocal

from . import models

logger = logging.getLogger(__name__)

EXPORTED_USER_FIELDS = (
    "id",
    "username",
    "email",
    "password_hash",
    "is_admin",
    "created_at",
    "updated_at",
)


class StoreError(Exception):
    """Raised when the record store cannot complete a call (I/O, timeout, SQL)."""


class StoreConflictError(StoreError):
    """Raised when a write violates a uniqueness constraint."""


class CredentialStore:
    def find_by_username(self, username: str) -> Optional[models.User]:
        raise NotImplementedError

    def create(self, user: models.User) -> None:
        raise NotImplementedError

    def update_password_hash(self, username: str, new_hash: str) -> bool:
        """Set the hash for `username`. Returns False if no row matched."""
        raise NotImplementedError

    def export_users(self) -> List[dict]:
        raise NotImplementedError

    def import_users(self, records: Iterable[dict]) -> int:
        """Create or replace users by id. Returns the number written."""
        raise NotImplementedError


class SqlCredentialStore(CredentialStore):
    def __init__(self, session_factory: Optional[Callable[[], Session]] = None) -> None:
        self._session_factory = session_factory or SessionLocal

    @contextmanager
    def _session(self) -> Iterator[Session]:
        db = self._session_factory()
        try:
            yield db
        finally:
            db.close()

    def find_by_username(self, username: str) -> Optional[models.User]:
        try:
            with self._session() as db:
                return (
                    db.query(models.User)
                    .filter(models.User.username == username)
                    .first()
                )
        except SQLAlchemyError as exc:
            logger.error("User lookup failed", extra={"error": str(exc)})
            raise StoreError("User lookup failed.") from exc

    def create(self, user: models.User) -> None:
        with self._session() as db:
            try:
                db.add(user)
                db.commit()
            except IntegrityError as exc:
                db.rollback()
                raise StoreConflictError("A user with this username already exists.") from exc
            except SQLAlchemyError as exc:
                db.rollback()
                logger.error("User create failed", extra={"error": str(exc)})
                raise StoreError("Failed to create user.") from exc

    def update_password_hash(self, username: str, new_hash: str) -> bool:
        with self._session() as db:
            try:
                updated = (
                    db.query(models.User)
                    .filter(models.User.username == username)
                    .update(
                        {
                            models.User.password_hash: new_hash,
                            models.User.updated_at: datetime.now(timezone.utc),
                        },
                        synchronize_session=False,
                    )
                )
                db.commit()
            except SQLAlchemyError as exc:
                db.rollback()
                logger.error("Password update failed", extra={"error": str(exc)})
                raise StoreError("Failed to update password.") from exc
        return updated > 0

    def export_users(self) -> List[dict]:
        try:
            with self._session() as db:
                users = (
                    db.query(models.User)
                    .order_by(models.User.created_at.asc(), models.User.username.asc())
                    .all()
                )
        except SQLAlchemyError as exc:
            logger.error("User export failed", extra={"error": str(exc)})
            raise StoreError("Failed to export users.") from exc

        rows: List[dict] = []
        for user in users:
            row = {field: getattr(user, field) for field in EXPORTED_USER_FIELDS}
            for stamp in ("created_at", "updated_at"):
                if row[stamp] is not None:
                    row[stamp] = row[stamp].isoformat()
            rows.append(row)
        return rows

    def import_users(self, records: Iterable[dict]) -> int:
        count = 0
        with self._session() as db:
            try:
                for record in records:
                    db.merge(models.User(**record))
                    count += 1
                db.commit()
            except IntegrityError as exc:
                db.rollback()
                raise StoreConflictError("Imported users clash with existing usernames.") from exc
            except SQLAlchemyError as exc:
                db.rollback()
                logger.error("User import failed", extra={"error": str(exc)})
                raise StoreError("Failed to import users.") from exc
        return count
