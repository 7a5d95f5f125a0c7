# backend/invbill/apps/accounts/__init__.py
"""
Accounts app

Responsible for:
- User accounts (username, email, password hash, admin flag)
- Registration, login and password change
- OTP-based password reset (codes held in an in-process registry)
- The master-password gate used by backup / import

Other apps (transfer, and later inventory / billing / ledger) should go
through `admin.AdminGate` for anything privileged.
"""

from . import models, schemas, services  # noqa: F401

__all__ = ["models", "schemas", "services"]
