# src/taskminder/connectors/smtp_transport.py

from __future__ import annotations

import logging
import ssl
from email.message import EmailMessage
from email.utils import formatdate, make_msgid

import aiosmtplib

logger = logging.getLogger(__name__)


class SmtpTransport:
    """
    NotificationTransport over SMTP (aiosmtplib).

    One instance is created at startup and shared by all dispatches. Each
    send opens its own SMTP connection, so concurrent sends do not contend
    for a session; close() only stops further sends.
    """

    def __init__(self, settings) -> None:
        if not settings.smtp_host:
            raise ValueError("SMTP host is required for the SMTP transport")

        self._host: str = settings.smtp_host
        self._port: int = int(settings.smtp_port or 587)
        self._username: str | None = settings.smtp_username
        self._password: str | None = settings.smtp_password
        self._from: str = settings.smtp_from
        self._start_tls: bool = bool(settings.smtp_start_tls)
        self._use_tls: bool = bool(settings.smtp_use_tls)
        self._timeout_s: float = float(settings.smtp_timeout_seconds)
        self._closed = False

        logger.info(
            "SMTP transport ready host=%s port=%s start_tls=%s use_tls=%s auth=%s",
            self._host,
            self._port,
            self._start_tls,
            self._use_tls,
            bool(self._username),
        )

    def build_message(self, *, address: str, subject: str, body: str) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self._from
        msg["To"] = address
        msg["Subject"] = subject
        msg["Date"] = formatdate(localtime=True)
        msg["Message-ID"] = make_msgid(domain=self._host)
        msg.set_content(body)
        return msg

    def _client(self) -> aiosmtplib.SMTP:
        tls_context = ssl.create_default_context() if (self._start_tls or self._use_tls) else None
        return aiosmtplib.SMTP(
            hostname=self._host,
            port=self._port,
            use_tls=self._use_tls,  # implicit TLS (465)
            start_tls=False if self._use_tls else self._start_tls,  # STARTTLS (587)
            tls_context=tls_context,
            timeout=self._timeout_s,
        )

    async def send(self, *, address: str, subject: str, body: str) -> None:
        if self._closed:
            raise RuntimeError("SMTP transport is closed")

        msg = self.build_message(address=address, subject=subject, body=body)
        smtp = self._client()
        async with smtp:
            if self._username:
                await smtp.login(self._username, self._password or "")
            errors, response = await smtp.send_message(msg)

        if errors:
            # Single recipient: any entry means it was refused.
            raise RuntimeError(f"SMTP recipient refused: {errors!r}")
        logger.debug("SMTP accepted message_id=%s to=%s: %s", msg["Message-ID"], address, response)

    async def close(self) -> None:
        self._closed = True
        logger.info("SMTP transport closed.")
