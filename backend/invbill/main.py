# backend/invbill/main.py
from contextlib import asynccontextmanager
import os
from typing import List, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .apps.accounts.admin import AdminGate
from .apps.accounts.otp import OTPRegistry
from .apps.accounts.router_public import router as accounts_public_router
from .apps.accounts.services import AuthService
from .apps.accounts.store import CredentialStore, SqlCredentialStore
from .apps.notifications.service import NotificationDispatcher, Notifier
from .apps.transfer.router import router as transfer_router
from .database import Base, engine


def _allowed_origins() -> List[str]:
    """
    Parse CORS_ALLOWED_ORIGINS from env.

    Accepts comma-separated origins. If unset, defaults to local dev ports.
    """
    raw = os.getenv("CORS_ALLOWED_ORIGINS", "")
    if raw:
        origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
        if origins:
            return origins
    return [
        "http://127.0.0.1:5173",
        "http://localhost:5173",
    ]


def _otp_ttl_seconds() -> Optional[float]:
    raw = os.getenv("OTP_TTL_SECONDS", "").strip()
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    return value if value > 0 else None


def init_services(
    app: FastAPI,
    *,
    store: Optional[CredentialStore] = None,
    otp_registry: Optional[OTPRegistry] = None,
    dispatcher: Optional[NotificationDispatcher] = None,
    admin_gate: Optional[AdminGate] = None,
) -> AuthService:
    """
    Build the process-wide auth objects and hang them on `app.state`.

    Must run before the first request; routers read these through
    their `get_*` dependencies.
    """
    # OTPRegistry defines __len__, so an empty one is falsy; compare with None.
    if store is None:
        store = SqlCredentialStore()
    if otp_registry is None:
        otp_registry = OTPRegistry(ttl_seconds=_otp_ttl_seconds())
    if dispatcher is None:
        dispatcher = NotificationDispatcher(Notifier())
    if admin_gate is None:
        admin_gate = AdminGate()

    app.state.credential_store = store
    app.state.otp_registry = otp_registry
    app.state.notification_dispatcher = dispatcher
    app.state.admin_gate = admin_gate
    app.state.auth_service = AuthService(
        store=store,
        otp_registry=otp_registry,
        dispatcher=dispatcher,
    )
    return app.state.auth_service


@asynccontextmanager
async def lifespan(app: FastAPI):
    if os.getenv("INVBILL_CREATE_TABLES", "true").lower() in {"1", "true", "yes", "on"}:
        Base.metadata.create_all(bind=engine)
    yield
    dispatcher = getattr(app.state, "notification_dispatcher", None)
    if dispatcher is not None:
        dispatcher.shutdown(wait=False)


app = FastAPI(title="Inventory Billing API", version="1.0.0", lifespan=lifespan)
cors_origins = _allowed_origins()
allow_credentials = "*" not in cors_origins

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", tags=["health"])
def health():
    return {"status": "ok", "message": "Inventory Billing System is running"}


app.include_router(accounts_public_router)
app.include_router(transfer_router)

init_services(app)
