"""
Best-effort email notifications.

`Notifier.send` delivers one message and raises NotifyError on failure.
`NotificationDispatcher.dispatch` runs a send on a worker thread and only
logs the outcome; callers never wait on it and never see its errors.
"""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
import logging
import os
from typing import Optional

from . import providers

logger = logging.getLogger(__name__)

NOTIFY_MAX_WORKERS = int(os.getenv("NOTIFY_MAX_WORKERS", "4"))


class NotifyError(Exception):
    """Raised when a notification cannot be delivered."""


class Notifier:
    def __init__(
        self,
        provider: Optional[providers.EmailProvider] = None,
        *,
        configured: Optional[bool] = None,
    ) -> None:
        if provider is None:
            provider, default_configured = providers.get_email_provider()
            if configured is None:
                configured = default_configured
        self.provider = provider
        self.configured = True if configured is None else configured

    def send(self, to_address: str, subject: str, body: str) -> None:
        if not to_address or "@" not in to_address:
            raise NotifyError("Recipient is not an email address.")

        if not self.configured:
            logger.info(
                "Email skipped: no provider configured",
                extra={"recipient": to_address, "subject": subject},
            )
            return

        try:
            self.provider.send(recipient=to_address, subject=subject, body=body)
        except Exception as exc:
            raise NotifyError(str(exc) or exc.__class__.__name__) from exc

        logger.info("Email sent", extra={"recipient": to_address, "subject": subject})


class NotificationDispatcher:
    def __init__(
        self,
        notifier: Notifier,
        *,
        max_workers: int = NOTIFY_MAX_WORKERS,
    ) -> None:
        self.notifier = notifier
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="notify",
        )

    def dispatch(self, to_address: str, subject: str, body: str) -> Future:
        future = self._executor.submit(self.notifier.send, to_address, subject, body)
        future.add_done_callback(
            lambda f: self._log_outcome(f, to_address=to_address, subject=subject)
        )
        return future

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    @staticmethod
    def _log_outcome(future: Future, *, to_address: str, subject: str) -> None:
        exc = future.exception()
        if exc is None:
            return
        if isinstance(exc, NotifyError):
            logger.warning(
                "Notification delivery failed",
                extra={"recipient": to_address, "subject": subject, "error": str(exc)},
            )
        else:
            logger.error(
                "Notification delivery crashed",
                exc_info=exc,
                extra={"recipient": to_address, "subject": subject},
            )
