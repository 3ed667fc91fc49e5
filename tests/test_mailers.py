"""Tests for mail rendering and delivery backends."""

from __future__ import annotations

import smtplib
from datetime import datetime

import pytest

from mailers import MailDispatchError, MemoryMailer, SMTPMailer, build_mailer
from mailers.abstract_mailer import render_code_message, render_notice_message


def test_render_english_verification_message():
    message = render_code_message("verify_email", "ada@example.com", "012345", "en")

    assert message.subject == "Verify Your Email"
    assert message.locale == "en"
    assert "012345" in message.text
    assert "012345" in message.html
    assert "30 minutes" in message.text


def test_render_italian_reset_message():
    message = render_code_message("reset_password", "ada@example.com", "999999", "it")

    assert message.subject == "Reimposta la tua password"
    assert message.locale == "it"
    assert "999999" in message.html


@pytest.mark.parametrize("locale", [None, "", "fr"])
def test_unknown_locale_falls_back_to_english(locale):
    message = render_code_message("reset_password", "ada@example.com", "111111", locale)

    assert message.locale == "en"
    assert message.subject == "Reset Your Password"


def test_unknown_purpose_is_rejected():
    with pytest.raises(ValueError):
        render_code_message("newsletter", "ada@example.com", "111111", "en")


def test_memory_mailer_outbox_and_failure():
    mailer = MemoryMailer()
    mailer.send_code("verify_email", "ada@example.com", "123456")
    mailer.send_code("reset_password", "ada@example.com", "654321", "it")

    assert len(mailer.outbox) == 2
    assert mailer.last_code("ada@example.com") == "654321"
    assert mailer.last_code("ada@example.com", "verify_email") == "123456"
    assert mailer.last_code("bob@example.com") is None

    mailer.fail = True
    with pytest.raises(MailDispatchError):
        mailer.send_code("verify_email", "ada@example.com", "000000")
    assert len(mailer.outbox) == 2

    mailer.clear()
    assert mailer.outbox == []


class _FakeSMTP:
    instances: list["_FakeSMTP"] = []
    fail_on_send = False

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.calls = []
        self.sent = []
        _FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False

    def starttls(self):
        self.calls.append("starttls")

    def login(self, username, password):
        self.calls.append(("login", username, password))

    def send_message(self, email):
        if self.fail_on_send:
            raise smtplib.SMTPRecipientsRefused({})
        self.sent.append(email)


@pytest.fixture()
def fake_smtp(monkeypatch):
    _FakeSMTP.instances = []
    _FakeSMTP.fail_on_send = False
    monkeypatch.setattr(smtplib, "SMTP", _FakeSMTP)
    return _FakeSMTP


def test_smtp_mailer_sends_multipart_message(fake_smtp):
    mailer = SMTPMailer(
        "smtp.example.com",
        587,
        username="noreply@example.com",
        password="secret",
    )

    mailer.send_code("verify_email", "ada@example.com", "123456", "en")

    connection = fake_smtp.instances[0]
    assert connection.host == "smtp.example.com"
    assert connection.calls == ["starttls", ("login", "noreply@example.com", "secret")]
    email = connection.sent[0]
    assert email["To"] == "ada@example.com"
    assert email["Subject"] == "Verify Your Email"
    assert "noreply@example.com" in email["From"]
    assert email.is_multipart()


def test_smtp_failures_become_dispatch_errors(fake_smtp):
    fake_smtp.fail_on_send = True
    mailer = SMTPMailer("smtp.example.com", username="noreply@example.com")

    with pytest.raises(MailDispatchError):
        mailer.send_code("reset_password", "ada@example.com", "123456")


def test_smtp_connection_errors_become_dispatch_errors(monkeypatch):
    def _refuse(*args, **kwargs):
        raise ConnectionRefusedError("connection refused")

    monkeypatch.setattr(smtplib, "SMTP", _refuse)
    mailer = SMTPMailer("smtp.example.com")

    with pytest.raises(MailDispatchError):
        mailer.send_code("verify_email", "ada@example.com", "123456")


def test_build_mailer_selects_backend():
    assert isinstance(build_mailer({"MAIL_BACKEND": "memory"}), MemoryMailer)
    smtp = build_mailer({"MAIL_BACKEND": "smtp", "MAIL_SERVER": "smtp.example.com"})
    assert isinstance(smtp, SMTPMailer)
    with pytest.raises(ValueError):
        build_mailer({"MAIL_BACKEND": "carrier-pigeon"})


def test_render_workshop_notices():
    start = datetime(2025, 5, 3, 14, 30)

    reminder = render_notice_message("workshop_reminder", "ada@example.com", "Noise & Co", start, "en")
    canceled = render_notice_message("workshop_canceled", "ada@example.com", "Noise", start, "it")

    assert reminder.subject == "Workshop reminder: Noise & Co"
    assert "2025-05-03 14:30" in reminder.text
    assert "Noise &amp; Co" in reminder.html
    assert reminder.code is None
    assert canceled.subject == "Workshop annullato: Noise"
    with pytest.raises(ValueError):
        render_notice_message("verify_email", "ada@example.com", "Noise", start, "en")


def test_notices_are_not_codes():
    mailer = MemoryMailer()
    mailer.send_code("verify_email", "ada@example.com", "123456")
    mailer.send_notice("workshop_reminder", "ada@example.com", "Noise", datetime(2025, 5, 3))

    assert len(mailer.outbox) == 2
    assert mailer.last_code("ada@example.com") == "123456"
