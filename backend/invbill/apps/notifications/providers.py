from __future__ import annotations

from email.message import EmailMessage
import os
import smtplib
from typing import Optional, Tuple


class EmailProvider:
    def send(
        self,
        *,
        recipient: str,
        subject: str,
        body: str,
    ) -> None:
        raise NotImplementedError


class NoopProvider(EmailProvider):
    def send(
        self,
        *,
        recipient: str,
        subject: str,
        body: str,
    ) -> None:
        return None


class SmtpProvider(EmailProvider):
    """STARTTLS relay, the way the SMTP_* settings describe it."""

    def __init__(
        self,
        *,
        host: str,
        port: int,
        sender: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        timeout: float = 10.0,
    ) -> None:
        self.host = host
        self.port = port
        self.sender = sender
        self.username = username
        self.password = password
        self.timeout = timeout

    def send(
        self,
        *,
        recipient: str,
        subject: str,
        body: str,
    ) -> None:
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = recipient
        msg["Subject"] = subject
        msg.set_content(body)

        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as s:
            s.starttls()
            if self.username and self.password:
                s.login(self.username, self.password)
            s.send_message(msg)


def _smtp_provider_from_env() -> SmtpProvider:
    host = os.getenv("SMTP_HOST") or os.getenv("SMTP_SERVER")
    port = os.getenv("SMTP_PORT")
    username = os.getenv("SMTP_USER") or os.getenv("SMTP_USERNAME")
    password = os.getenv("SMTP_PASS") or os.getenv("SMTP_PASSWORD")
    sender = os.getenv("SMTP_FROM") or username

    if not (host and port and sender):
        raise ValueError("SMTP provider needs SMTP_HOST, SMTP_PORT and SMTP_FROM (or SMTP_USER).")
    try:
        port_number = int(port)
    except ValueError:
        raise ValueError(f"SMTP_PORT must be an integer, got {port!r}")

    return SmtpProvider(
        host=host,
        port=port_number,
        sender=sender,
        username=username,
        password=password,
        timeout=float(os.getenv("SMTP_TIMEOUT_SEC", "10")),
    )


def get_email_provider() -> Tuple[EmailProvider, bool]:
    provider_name = (
        os.getenv("NOTIFICATIONS_EMAIL_PROVIDER")
        or os.getenv("EMAIL_PROVIDER")
        or ""
    ).strip().lower()
    if not provider_name or provider_name in {"none", "noop", "disabled"}:
        return NoopProvider(), False
    if provider_name == "smtp":
        return _smtp_provider_from_env(), True
    raise ValueError(f"Unsupported email provider: {provider_name}")
