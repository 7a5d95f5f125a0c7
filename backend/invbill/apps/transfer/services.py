"""
Backup and import of stored records, gated by the master password.

Only the `user` table is handled here; other tables belong to the
inventory / billing / ledger apps and are reported back as skipped.
Every entry point checks the master password before touching the store.
"""

from __future__ import annotations

from datetime import datetime
import json
import logging
from typing import Dict, List, Tuple

from invbill.apps.accounts.admin import AdminGate
from invbill.apps.accounts.store import CredentialStore
from invbill.security import is_known_hash

logger = logging.getLogger(__name__)

USER_TABLE = "user"
_REQUIRED_USER_FIELDS = ("id", "username", "email", "password_hash")


class ImportFormatError(ValueError):
    """Raised when import data is not the expected JSON shape."""


def run_backup(
    *,
    gate: AdminGate,
    store: CredentialStore,
    master_password: str,
) -> Dict[str, List[dict]]:
    gate.require_master_password(master_password)
    users = store.export_users()
    logger.info("Backup exported", extra={"tables": [USER_TABLE], "user_count": len(users)})
    return {USER_TABLE: users}


def _parse_timestamp(value, *, field: str, index: int):
    if value is None:
        return None
    if not isinstance(value, str):
        raise ImportFormatError(f"user[{index}].{field} must be an ISO timestamp")
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise ImportFormatError(f"user[{index}].{field} must be an ISO timestamp")


def _user_record(raw, index: int) -> dict:
    if not isinstance(raw, dict):
        raise ImportFormatError(f"user[{index}] must be an object")

    record = {}
    for field in _REQUIRED_USER_FIELDS:
        value = raw.get(field)
        if not isinstance(value, str) or not value:
            raise ImportFormatError(f"user[{index}].{field} must be a non-empty string")
        record[field] = value

    if not is_known_hash(record["password_hash"]):
        raise ImportFormatError(f"user[{index}].password_hash is not a password hash")

    is_admin = raw.get("is_admin", False)
    if not isinstance(is_admin, bool):
        raise ImportFormatError(f"user[{index}].is_admin must be a boolean")
    record["is_admin"] = is_admin

    for stamp in ("created_at", "updated_at"):
        parsed = _parse_timestamp(raw.get(stamp), field=stamp, index=index)
        if parsed is not None:
            record[stamp] = parsed
    return record


def parse_import_data(data: str) -> Tuple[Dict[str, List[dict]], List[str]]:
    """
    Parse the import payload into {table: records} for the tables we own,
    plus the names of tables that were skipped.
    """
    try:
        parsed = json.loads(data)
    except (TypeError, ValueError):
        raise ImportFormatError("Invalid data format")

    if not isinstance(parsed, dict):
        raise ImportFormatError("Data must be a JSON object with table names as keys")

    tables: Dict[str, List[dict]] = {}
    skipped: List[str] = []
    for table, records in parsed.items():
        if table != USER_TABLE or not isinstance(records, list):
            skipped.append(table)
            continue
        tables[table] = [_user_record(raw, i) for i, raw in enumerate(records)]
    return tables, skipped


def run_import(
    *,
    gate: AdminGate,
    store: CredentialStore,
    master_password: str,
    data: str,
) -> Tuple[Dict[str, int], List[str]]:
    gate.require_master_password(master_password)
    tables, skipped = parse_import_data(data)

    imported: Dict[str, int] = {}
    users = tables.get(USER_TABLE)
    if users:
        imported[USER_TABLE] = store.import_users(users)

    logger.info("Import completed", extra={"imported": imported, "skipped": skipped})
    return imported, skipped
