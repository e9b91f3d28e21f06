# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Transactional email.

Modes:
    - console: log the message (development)
    - smtp: deliver through the configured SMTP relay
"""

from __future__ import annotations

import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage as _MimeMessage

from shopauth.config import Settings
from shopauth.errors import NotifierUnavailable

logger = logging.getLogger(__name__)

SMTP_TIMEOUT_SECONDS = 10


@dataclass(frozen=True)
class EmailMessage:
    to: str
    sender: str
    subject: str
    html: str


class Notifier:
    def __init__(self, settings: Settings):
        self.mode = settings.mail_mode
        self.sender = settings.mail_from
        self.smtp_host = settings.smtp_host
        self.smtp_port = settings.smtp_port
        self.smtp_username = settings.smtp_username
        self.smtp_password = settings.smtp_password
        self.smtp_starttls = settings.smtp_starttls
        if self.mode == "smtp" and not self.smtp_host:
            logger.warning("SHOP_MAIL_MODE=smtp without SHOP_SMTP_HOST, falling back to console")
            self.mode = "console"

    def send(self, message: EmailMessage) -> None:
        if self.mode == "console":
            logger.info("[EMAIL] to=%s subject=%r\n%s", message.to, message.subject, message.html)
            return
        if self.mode != "smtp":
            raise NotifierUnavailable(f"Unknown mail mode {self.mode!r}")

        mime = _MimeMessage()
        mime["From"] = message.sender
        mime["To"] = message.to
        mime["Subject"] = message.subject
        mime.set_content("This message requires an HTML-capable mail client.")
        mime.add_alternative(message.html, subtype="html")

        try:
            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=SMTP_TIMEOUT_SECONDS) as server:
                if self.smtp_starttls:
                    server.starttls()
                if self.smtp_username:
                    server.login(self.smtp_username, self.smtp_password)
                server.send_message(mime)
        except (smtplib.SMTPException, OSError) as exc:
            raise NotifierUnavailable(str(exc)) from exc

    def dispatch(self, message: EmailMessage) -> None:
        """Best-effort ``send``: failures are logged and dropped."""
        try:
            self.send(message)
        except NotifierUnavailable as exc:
            logger.warning("Email to %s (%r) not delivered: %s", message.to, message.subject, exc)
