"""Mail delivery backends."""

from .abstract_mailer import AbstractMailer, MailMessage, MailDispatchError
from .memory_mailer import MemoryMailer
from .smtp_mailer import SMTPMailer

__all__ = [
    "AbstractMailer",
    "MailMessage",
    "MailDispatchError",
    "MemoryMailer",
    "SMTPMailer",
    "build_mailer",
]


def build_mailer(config) -> AbstractMailer:
    """Return the mail backend selected by ``MAIL_BACKEND``."""

    backend = (config.get("MAIL_BACKEND") or "memory").strip().lower()
    if backend == "smtp":
        return SMTPMailer.from_config(config)
    if backend == "memory":
        return MemoryMailer()
    raise ValueError(f"Unsupported MAIL_BACKEND: {backend}")
