# backend/smartwork/services/mailer.py

import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from typing import Optional

import httpx

from smartwork.core.config import Settings

logger = logging.getLogger(__name__)

SENDGRID_URL = "https://api.sendgrid.com/v3/mail/send"
GMAIL_SMTP_PORT = 587


class Mailer:
    """Transport contract: ``send`` reports success as a bool and never raises."""

    name = "mailer"

    def send(self, to: str, subject: str, body: str) -> bool:
        raise NotImplementedError


class NullMailer(Mailer):
    name = "none"

    def send(self, to: str, subject: str, body: str) -> bool:
        logger.warning("No email transport configured, dropping '%s' to %s", subject, to)
        return False


class SmtpMailer(Mailer):
    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        sender: str,
        sender_name: str = "SmartWork",
        timeout: float = 15.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender
        self.sender_name = sender_name
        self.timeout = timeout
        self.name = f"smtp:{host}"

    def build_message(self, to: str, subject: str, body: str) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = formataddr((self.sender_name, self.sender))
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content(body)
        return msg

    def send(self, to: str, subject: str, body: str) -> bool:
        if not to:
            logger.warning("No recipient for '%s', not sending", subject)
            return False

        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as client:
                client.starttls()
                client.login(self.username, self.password)
                client.send_message(self.build_message(to, subject, body))
        except (smtplib.SMTPException, OSError):
            logger.exception("[EMAIL ERROR] %s failed to send '%s' to %s", self.name, subject, to)
            return False

        logger.info("Sent '%s' to %s via %s", subject, to, self.name)
        return True


class SendGridMailer(Mailer):
    name = "sendgrid"

    def __init__(
        self,
        api_key: str,
        sender: str,
        sender_name: str = "SmartWork",
        timeout: float = 15.0,
        client: Optional[httpx.Client] = None,
    ):
        self.api_key = api_key
        self.sender = sender
        self.sender_name = sender_name
        self.timeout = timeout
        self._client = client

    def send(self, to: str, subject: str, body: str) -> bool:
        if not to:
            logger.warning("No recipient for '%s', not sending", subject)
            return False

        payload = {
            "personalizations": [{"to": [{"email": to}]}],
            "from": {"email": self.sender, "name": self.sender_name},
            "subject": subject,
            "content": [{"type": "text/plain", "value": body}],
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            if self._client is not None:
                resp = self._client.post(SENDGRID_URL, json=payload, headers=headers, timeout=self.timeout)
            else:
                resp = httpx.post(SENDGRID_URL, json=payload, headers=headers, timeout=self.timeout)
        except httpx.HTTPError:
            logger.exception("[EMAIL ERROR] SendGrid request failed for '%s' to %s", subject, to)
            return False

        if resp.status_code >= 300:
            logger.error(
                "[EMAIL ERROR] SendGrid rejected '%s' to %s: %s %s",
                subject,
                to,
                resp.status_code,
                resp.text[:200],
            )
            return False

        logger.info("Sent '%s' to %s via sendgrid", subject, to)
        return True


class FallbackMailer(Mailer):
    """Tries each transport in order until one accepts the message."""

    name = "fallback"

    def __init__(self, transports: list[Mailer]):
        self.transports = transports

    def send(self, to: str, subject: str, body: str) -> bool:
        for transport in self.transports:
            if transport.send(to, subject, body):
                return True
            logger.warning("Transport %s failed for '%s', trying next", transport.name, subject)
        return False


def build_mailer(settings: Settings) -> Mailer:
    """
    SendGrid when an API key is set, then the configured SMTP host, then
    Gmail SMTP as a last resort when it differs from the configured host.
    """
    sender = settings.sender_address()
    transports: list[Mailer] = []

    if settings.sendgrid_api_key and sender:
        transports.append(
            SendGridMailer(
                settings.sendgrid_api_key,
                sender,
                settings.email_from_name,
                timeout=settings.smtp_timeout_seconds,
            )
        )

    if settings.smtp_username and settings.smtp_password and sender:
        transports.append(
            SmtpMailer(
                settings.smtp_host,
                settings.smtp_port,
                settings.smtp_username,
                settings.smtp_password,
                sender,
                settings.email_from_name,
                timeout=settings.smtp_timeout_seconds,
            )
        )
        if settings.smtp_fallback_host and settings.smtp_fallback_host != settings.smtp_host:
            transports.append(
                SmtpMailer(
                    settings.smtp_fallback_host,
                    GMAIL_SMTP_PORT,
                    settings.smtp_username,
                    settings.smtp_password,
                    sender,
                    settings.email_from_name,
                    timeout=settings.smtp_timeout_seconds,
                )
            )

    if not transports:
        logger.warning("Email is not configured (set SENDGRID_API_KEY or SMTP_USERNAME/SMTP_PASSWORD)")
        return NullMailer()
    if len(transports) == 1:
        return transports[0]
    return FallbackMailer(transports)
