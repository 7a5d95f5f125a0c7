from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

ROOT = Path(__file__).resolve().parent
sys.path.append(str(ROOT))

os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ.pop("DATABASE_WRITE_URL", None)
os.environ.pop("MASTER_PASSWORD", None)
os.environ.pop("NOTIFICATIONS_EMAIL_PROVIDER", None)
os.environ.pop("EMAIL_PROVIDER", None)
os.environ.pop("OTP_SINGLE_USE", None)
os.environ.pop("OTP_TTL_SECONDS", None)
os.environ["INVBILL_CREATE_TABLES"] = "false"
# Cheap Argon2 parameters keep the suite fast.
os.environ["ARGON2_TIME_COST"] = "1"
os.environ["ARGON2_MEMORY_COST"] = "1024"
os.environ["ARGON2_PARALLELISM"] = "1"

from invbill.database import Base  # noqa: E402
from invbill.apps.accounts import models as account_models  # noqa: E402
from invbill.apps.accounts.store import SqlCredentialStore  # noqa: E402


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(
        bind=engine,
        tables=[account_models.User.__table__],
    )
    TestingSession = sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
    )
    try:
        yield TestingSession
    finally:
        engine.dispose()


@pytest.fixture()
def credential_store(session_factory):
    return SqlCredentialStore(session_factory)
