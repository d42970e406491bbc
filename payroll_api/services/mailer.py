# payroll_api/services/mailer.py
from __future__ import annotations

import logging
import smtplib
import ssl
from email.message import EmailMessage
from typing import List, Optional, Tuple

log = logging.getLogger(__name__)

DEFAULT_FROM = '"HR & Payroll" <no-reply@yourcompany.com>'


class Mailer:
    """send(to, subject, html) -> True when handed to a transport."""

    def send(self, to: Optional[str], subject: str, html: str) -> bool:
        raise NotImplementedError


class SmtpMailer(Mailer):
    def __init__(self, host=None, port=465, username=None, password=None, sender=None, timeout=15):
        self.host = host
        self.port = int(port or 465)
        self.username = username
        self.password = password
        self.sender = sender or DEFAULT_FROM
        self.timeout = timeout

    @classmethod
    def from_config(cls, config) -> "SmtpMailer":
        return cls(
            host=config.get("MAIL_SERVER"),
            port=config.get("MAIL_PORT") or 465,
            username=config.get("MAIL_USERNAME"),
            password=config.get("MAIL_PASSWORD"),
            sender=config.get("MAIL_FROM"),
        )

    def _message(self, to: str, subject: str, html: str) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content("This message requires an HTML capable mail client.")
        msg.add_alternative(html, subtype="html")
        return msg

    def send(self, to, subject, html) -> bool:
        if not to:
            return False
        if not self.host:
            log.warning("MAIL_SERVER not configured; dropping mail to %s (%s)", to, subject)
            return False

        msg = self._message(to, subject, html)
        # 465 => implicit TLS, anything else => STARTTLS
        if self.port == 465:
            with smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout, context=ssl.create_default_context()) as s:
                if self.username:
                    s.login(self.username, self.password or "")
                s.send_message(msg)
        else:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as s:
                s.starttls(context=ssl.create_default_context())
                if self.username:
                    s.login(self.username, self.password or "")
                s.send_message(msg)
        log.info("mail sent to %s: %s", to, subject)
        return True


class OutboxMailer(Mailer):
    """Keeps messages in memory (tests, dry runs)."""

    def __init__(self):
        self.outbox: List[Tuple[str, str, str]] = []

    def send(self, to, subject, html) -> bool:
        if not to:
            return False
        self.outbox.append((to, subject, html))
        return True
