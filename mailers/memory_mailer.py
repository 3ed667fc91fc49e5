"""In-process mail backend keeping delivered messages in an outbox."""

from __future__ import annotations

import logging

from .abstract_mailer import AbstractMailer, MailMessage, MailDispatchError

logger = logging.getLogger(__name__)


class MemoryMailer(AbstractMailer):
    """Collect messages in memory instead of sending them.

    Used for local development and tests. Setting ``fail`` makes every
    delivery raise ``MailDispatchError`` so callers' failure paths can be
    exercised.
    """

    def __init__(self):
        self.outbox: list[MailMessage] = []
        self.fail = False

    def deliver(self, message: MailMessage) -> None:
        if self.fail:
            raise MailDispatchError("Memory mailer configured to fail.")
        self.outbox.append(message)
        logger.info("Queued %s mail for %s in memory outbox", message.purpose, message.recipient)

    def last_code(self, email: str, purpose: str | None = None) -> str | None:
        """Return the most recent code delivered to ``email``."""

        for message in reversed(self.outbox):
            if message.recipient != email:
                continue
            if purpose is not None and message.purpose != purpose:
                continue
            if message.code is None:
                continue
            return message.code
        return None

    def clear(self) -> None:
        self.outbox.clear()
