# backend/invbill/__init__.py
"""
Inventory billing backend.

The credential lifecycle lives in `invbill.apps.accounts`; notification
delivery in `invbill.apps.notifications`; master-password gated backup and
import in `invbill.apps.transfer`. `invbill.main` wires them into the app.
"""
