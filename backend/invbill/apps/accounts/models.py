# backend/invbill/apps/accounts/models.py

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, String, UniqueConstraint

from invbill.database import Base
from invbill.user_id import generate_user_id


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """
    User account for the inventory billing backend.

    - `username` is unique and case-sensitive; the constraint is what keeps
      two concurrent registrations from both succeeding.
    - `password_hash` holds an Argon2id (or legacy bcrypt) hash, never the
      plaintext.
    - Rows are created by registration and only `password_hash` changes
      afterwards (password change / reset). This app never deletes users.
    """

    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("username", name="uq_users_username"),
    )

    id = Column(
        String(36),
        primary_key=True,
        default=generate_user_id,
    )

    username = Column(String(150), nullable=False, index=True)
    email = Column(String(255), nullable=False)
    password_hash = Column(String(255), nullable=False)
    is_admin = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username} is_admin={self.is_admin}>"
