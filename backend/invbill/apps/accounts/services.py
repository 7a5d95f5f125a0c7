from __future__ import annotations

import logging
import os
from typing import Optional

from invbill.apps.notifications.service import NotificationDispatcher
from invbill.security import get_password_hash, verify_password
from invbill.user_id import generate_user_id

from . import models
from .otp import OTPCheck, OTPRegistry, generate_otp
from .store import CredentialStore, StoreConflictError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

OTP_SINGLE_USE = os.getenv("OTP_SINGLE_USE", "false").strip().lower() in {"1", "true", "yes", "on"}

OTP_EMAIL_SUBJECT = "Your OTP Code"
PASSWORD_CHANGED_SUBJECT = "Your password has been changed"
INVALID_CREDENTIALS_MESSAGE = "Invalid username or password"


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class AuthServiceError(Exception):
    """Base class for rejections the HTTP layer maps to a status code."""


class ValidationError(AuthServiceError):
    """Raised when a request is rejected before touching stored credentials."""


class DuplicateUsernameError(ValidationError):
    """Raised when registering a username that is already taken."""


class EmptyPasswordError(ValidationError):
    """Raised when a new password is empty; it could never be verified."""


class AuthenticationError(AuthServiceError):
    """Raised for bad passwords and bad or missing reset codes."""


class NotFoundError(AuthServiceError):
    """Raised when the username does not exist."""


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class AuthService:
    """
    Registration, login, password change and OTP password reset.

    Each call is its own transaction against the store; nothing about a user
    is cached between calls. The only in-process state is the OTP registry
    passed in by the owner of the service.

    Known races (accepted):
    - two resets for one username may stage codes in either order; the last
      write wins;
    - fetch-then-update in change/reset can lose an update made in between.
    Duplicate registrations are caught by the store's unique constraint.
    """

    def __init__(
        self,
        *,
        store: CredentialStore,
        otp_registry: OTPRegistry,
        dispatcher: Optional[NotificationDispatcher] = None,
        otp_single_use: bool = OTP_SINGLE_USE,
    ) -> None:
        self.store = store
        self.otp_registry = otp_registry
        self.dispatcher = dispatcher
        self.otp_single_use = otp_single_use

    # -- notifications ------------------------------------------------------

    def _notify(self, to_address: str, subject: str, body: str) -> None:
        if self.dispatcher is None:
            logger.info("No notification dispatcher; message dropped", extra={"subject": subject})
            return
        try:
            self.dispatcher.dispatch(to_address, subject, body)
        except RuntimeError as exc:
            # Executor already shut down
            logger.warning(
                "Notification could not be queued",
                extra={"subject": subject, "error": str(exc)},
            )

    @staticmethod
    def _require_password(password: str) -> None:
        if not password:
            raise EmptyPasswordError("Password must not be empty")

    # -- registration / login -----------------------------------------------

    def register(self, username: str, email: str, password: str) -> models.User:
        self._require_password(password)
        if self.store.find_by_username(username) is not None:
            logger.info("Registration rejected: username taken", extra={"username": username})
            raise DuplicateUsernameError("Username already exists")

        user = models.User(
            id=generate_user_id(),
            username=username,
            email=email,
            password_hash=get_password_hash(password),
            is_admin=False,
        )
        try:
            self.store.create(user)
        except StoreConflictError as exc:
            logger.info("Registration lost a race on username", extra={"username": username})
            raise DuplicateUsernameError("Username already exists") from exc

        logger.info("User registered", extra={"username": username, "user_id": user.id})
        return user

    def login(self, username: str, password: str) -> models.User:
        user = self.store.find_by_username(username)
        if user is None or not verify_password(password, user.password_hash):
            logger.info("Login failed", extra={"username": username})
            raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)
        return user

    # -- password change ----------------------------------------------------

    def change_password(self, username: str, old_password: str, new_password: str) -> None:
        self._require_password(new_password)
        user = self.login(username, old_password)

        new_hash = get_password_hash(new_password)
        if not self.store.update_password_hash(username, new_hash):
            logger.warning("Password change found no row to update", extra={"username": username})
            raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)

        logger.info("Password changed", extra={"username": username})
        self._notify(
            user.email,
            PASSWORD_CHANGED_SUBJECT,
            "Your password has been changed.",
        )

    # -- password reset -----------------------------------------------------

    def request_password_reset(self, username: str) -> None:
        user = self.store.find_by_username(username)
        if user is None:
            raise NotFoundError("User not found")

        code = generate_otp()
        self.otp_registry.stage(username, code)
        logger.info("Password reset code staged", extra={"username": username})

        self._notify(user.email, OTP_EMAIL_SUBJECT, f"Your OTP code is: {code}")

    def reset_password(self, username: str, code: str, new_password: str) -> None:
        self._require_password(new_password)
        check = self.otp_registry.consume_check(username, code)
        if check is OTPCheck.NOT_FOUND:
            logger.info("Password reset without pending code", extra={"username": username})
            raise AuthenticationError("OTP not found")
        if check is OTPCheck.MISMATCH:
            logger.info("Password reset with wrong code", extra={"username": username})
            raise AuthenticationError("Invalid OTP")

        user = self.store.find_by_username(username)
        if user is None:
            raise NotFoundError("User not found")

        new_hash = get_password_hash(new_password)
        if not self.store.update_password_hash(username, new_hash):
            raise NotFoundError("User not found")

        if self.otp_single_use:
            self.otp_registry.discard(username, code)

        logger.info("Password reset via OTP", extra={"username": username})
