"""SMTP mail delivery implementation."""

from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr

from .abstract_mailer import AbstractMailer, MailMessage, MailDispatchError

logger = logging.getLogger(__name__)


class SMTPMailer(AbstractMailer):
    """Deliver code emails through an SMTP relay."""

    def __init__(
        self,
        host: str,
        port: int = 587,
        *,
        username: str = "",
        password: str = "",
        sender: str = "",
        sender_name: str = "GlitchLab",
        use_tls: bool = True,
        use_ssl: bool = False,
        timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender or username
        self.sender_name = sender_name
        self.use_tls = use_tls
        self.use_ssl = use_ssl
        self.timeout = timeout

    @classmethod
    def from_config(cls, config) -> "SMTPMailer":
        return cls(
            config["MAIL_SERVER"],
            int(config.get("MAIL_PORT", 587)),
            username=config.get("MAIL_USERNAME", ""),
            password=config.get("MAIL_PASSWORD", ""),
            sender=config.get("MAIL_DEFAULT_SENDER", ""),
            sender_name=config.get("MAIL_SENDER_NAME", "GlitchLab"),
            use_tls=bool(config.get("MAIL_USE_TLS", True)),
            use_ssl=bool(config.get("MAIL_USE_SSL", False)),
            timeout=float(config.get("MAIL_TIMEOUT", 10.0)),
        )

    def build_email(self, message: MailMessage) -> EmailMessage:
        email = EmailMessage()
        email["Subject"] = message.subject
        email["From"] = formataddr((self.sender_name, self.sender))
        email["To"] = message.recipient
        email.set_content(message.text)
        email.add_alternative(message.html, subtype="html")
        return email

    def _connect(self) -> smtplib.SMTP:
        if self.use_ssl:
            return smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout)
        return smtplib.SMTP(self.host, self.port, timeout=self.timeout)

    def deliver(self, message: MailMessage) -> None:
        email = self.build_email(message)
        try:
            with self._connect() as connection:
                if self.use_tls and not self.use_ssl:
                    connection.starttls()
                if self.username:
                    connection.login(self.username, self.password)
                connection.send_message(email)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error(
                "SMTP delivery of %s mail to %s failed: %s",
                message.purpose,
                message.recipient,
                exc,
            )
            raise MailDispatchError(str(exc)) from exc

        logger.info("Sent %s mail (%s) to %s", message.purpose, message.locale, message.recipient)
