"""Email notices sent to a workshop's participants."""

from __future__ import annotations

from typing import Iterable

from flask import current_app

from mailers import AbstractMailer, MailDispatchError
from models.user import User
from models.workshop import Workshop


def send_workshop_notice(
    mailer: AbstractMailer,
    purpose: str,
    workshop: Workshop,
    recipients: Iterable[User],
) -> int:
    """Mail ``purpose`` to each recipient in their own language.

    Delivery failures are logged and skipped; returns how many were sent.
    """

    sent = 0
    for user in recipients:
        try:
            mailer.send_notice(
                purpose,
                user.email,
                workshop.name,
                workshop.start_date,
                user.email_language,
            )
        except MailDispatchError as exc:
            current_app.logger.warning(
                "Failed to send %s for workshop %s to user %s: %s",
                purpose,
                workshop.id,
                user.id,
                exc,
            )
            continue
        sent += 1
    return sent
