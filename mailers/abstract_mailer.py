"""Mail dispatch abstraction layer."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from html import escape

PURPOSES = ("verify_email", "reset_password")
NOTICE_PURPOSES = ("workshop_reminder", "workshop_canceled")
DEFAULT_LOCALE = "en"
DATE_FORMAT = "%Y-%m-%d %H:%M"

TRANSLATIONS = {
    "en": {
        "verify_email": {
            "subject": "Verify Your Email",
            "title": "Email Verification",
            "body": (
                "Thank you for registering with GlitchLab. Please verify your "
                "email address by entering the following code:"
            ),
            "footer": "This code will expire in 30 minutes.",
            "ignore": "If you did not request this email, please ignore it.",
        },
        "reset_password": {
            "subject": "Reset Your Password",
            "title": "Password Reset",
            "body": (
                "We received a request to reset your password. Please enter "
                "the following verification code:"
            ),
            "footer": "This code will expire in 30 minutes.",
            "ignore": (
                "If you did not request this password reset, please ignore this email."
            ),
        },
        "workshop_reminder": {
            "subject": "Workshop reminder: {workshop}",
            "title": "Your workshop is coming up",
            "body": "This is a reminder that {workshop} starts on {date} (UTC).",
            "footer": "We look forward to seeing you there!",
        },
        "workshop_canceled": {
            "subject": "Workshop canceled: {workshop}",
            "title": "Workshop canceled",
            "body": (
                "We are sorry to let you know that {workshop}, scheduled for "
                "{date} (UTC), has been canceled. Your registration has been removed."
            ),
            "footer": "Browse our other workshops to find a new date.",
        },
    },
    "it": {
        "verify_email": {
            "subject": "Verifica la tua email",
            "title": "Verifica la tua email",
            "body": (
                "Grazie per esserti registrato su GlitchLab! Per completare la "
                "registrazione, inserisci il codice di verifica qui sotto:"
            ),
            "footer": "Questo codice scadrà tra 30 minuti.",
            "ignore": "Se non hai richiesto questa email, puoi ignorarla in sicurezza.",
        },
        "reset_password": {
            "subject": "Reimposta la tua password",
            "title": "Reimposta la password",
            "body": (
                "Abbiamo ricevuto una richiesta di reimpostazione della password. "
                "Inserisci il seguente codice di verifica:"
            ),
            "footer": "Questo codice scadrà tra 30 minuti.",
            "ignore": (
                "Se non hai richiesto questa reimpostazione della password, puoi "
                "ignorare questa email."
            ),
        },
        "workshop_reminder": {
            "subject": "Promemoria workshop: {workshop}",
            "title": "Il tuo workshop si avvicina",
            "body": "Ti ricordiamo che {workshop} inizia il {date} (UTC).",
            "footer": "Non vediamo l'ora di vederti!",
        },
        "workshop_canceled": {
            "subject": "Workshop annullato: {workshop}",
            "title": "Workshop annullato",
            "body": (
                "Ci dispiace informarti che {workshop}, previsto per il {date} "
                "(UTC), è stato annullato. La tua iscrizione è stata rimossa."
            ),
            "footer": "Scopri gli altri workshop per trovare una nuova data.",
        },
    },
}

_FRAME_STYLE = (
    "font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; "
    "padding: 20px; border: 1px solid #eaeaea; border-radius: 5px;"
)


class MailDispatchError(Exception):
    """Raised when a message could not be handed to the mail channel."""


@dataclass(frozen=True)
class MailMessage:
    """A rendered email; ``code`` is set for verification-code messages only."""

    purpose: str
    recipient: str
    locale: str
    subject: str
    text: str
    html: str
    code: str | None = None


def resolve_locale(locale: str | None) -> str:
    return locale if locale in TRANSLATIONS else DEFAULT_LOCALE


def render_code_message(purpose: str, recipient: str, code: str, locale: str | None) -> MailMessage:
    """Render the localized subject and bodies for a code email."""

    if purpose not in PURPOSES:
        raise ValueError(f"Unknown mail purpose: {purpose}")

    locale = resolve_locale(locale)
    t = TRANSLATIONS[locale][purpose]
    text = f"{t['body']}\n\n    {code}\n\n{t['footer']}\n\n{t['ignore']}\n"
    html = (
        f'<div style="{_FRAME_STYLE}">'
        f'<h2 style="color: #333; text-align: center;">{t["title"]}</h2>'
        f"<p>{t['body']}</p>"
        '<div style="background-color: #f9f9f9; padding: 15px; text-align: center; '
        'font-size: 24px; font-weight: bold; letter-spacing: 5px; margin: 20px 0;">'
        f"{code}</div>"
        f"<p>{t['footer']}</p>"
        '<p style="margin-top: 30px; font-size: 12px; color: #777; text-align: center;">'
        f"{t['ignore']}</p></div>"
    )
    return MailMessage(
        purpose=purpose,
        recipient=recipient,
        locale=locale,
        subject=t["subject"],
        text=text,
        html=html,
        code=code,
    )


def render_notice_message(
    purpose: str,
    recipient: str,
    workshop_name: str,
    start_date: datetime,
    locale: str | None,
) -> MailMessage:
    """Render a workshop reminder or cancellation notice."""

    if purpose not in NOTICE_PURPOSES:
        raise ValueError(f"Unknown notice purpose: {purpose}")

    locale = resolve_locale(locale)
    t = TRANSLATIONS[locale][purpose]
    date = start_date.strftime(DATE_FORMAT)
    body = t["body"].format(workshop=workshop_name, date=date)
    html_body = t["body"].format(workshop=f"<strong>{escape(workshop_name)}</strong>", date=date)
    return MailMessage(
        purpose=purpose,
        recipient=recipient,
        locale=locale,
        subject=t["subject"].format(workshop=workshop_name),
        text=f"{body}\n\n{t['footer']}\n",
        html=(
            f'<div style="{_FRAME_STYLE}">'
            f'<h2 style="color: #333; text-align: center;">{t["title"]}</h2>'
            f"<p>{html_body}</p>"
            f"<p>{t['footer']}</p></div>"
        ),
    )


class AbstractMailer(ABC):
    """Interface for mail delivery backends."""

    def send_code(self, purpose: str, email: str, code: str, locale: str | None = None) -> None:
        """Render and deliver a verification code, raising MailDispatchError on failure."""

        self.deliver(render_code_message(purpose, email, code, locale))

    def send_notice(
        self,
        purpose: str,
        email: str,
        workshop_name: str,
        start_date: datetime,
        locale: str | None = None,
    ) -> None:
        self.deliver(render_notice_message(purpose, email, workshop_name, start_date, locale))

    @abstractmethod
    def deliver(self, message: MailMessage) -> None:
        """Hand a rendered message to the delivery channel."""
