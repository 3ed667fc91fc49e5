"""Tests for the two-phase password reset flow."""

from __future__ import annotations

from datetime import timedelta

import pytest
from flask.testing import FlaskClient
from sqlalchemy.exc import OperationalError

from models import db, utcnow
from models.password_reset import PasswordReset
from models.user import User
from services.auth_flow import FORGOT_PASSWORD_ACK, AuthFlowController
from services.errors import InvalidOrExpiredCode
from services.verification_store import VerificationRequestStore


@pytest.fixture()
def account(app):
    """A verified account to reset."""

    with app.app_context():
        user = User(email="ada@example.com", name="Ada", is_verified=True)
        user.set_password("old-password")
        db.session.add(user)
        db.session.commit()
        return user.id


def _forgot(client: FlaskClient, email: str = "ada@example.com", **extra):
    return client.post("/auth/forgot-password", json={"email": email, **extra})


def _reset(client: FlaskClient, code: str, password: str | None = "new-password", **extra):
    payload = {"email": "ada@example.com", "code": code, **extra}
    if password is not None:
        payload["password"] = password
    return client.post("/auth/reset-password", json=payload)


def _login_status(client: FlaskClient, password: str) -> int:
    return client.post(
        "/auth/login", json={"email": "ada@example.com", "password": password}
    ).status_code


def test_forgot_password_answer_does_not_reveal_accounts(client, account, outbox):
    known = _forgot(client)
    unknown = _forgot(client, "nobody@example.com")

    assert known.status_code == unknown.status_code == 200
    assert known.get_json() == unknown.get_json() == {
        "success": True,
        "message": FORGOT_PASSWORD_ACK,
    }
    assert [message.recipient for message in outbox.outbox] == ["ada@example.com"]
    assert outbox.outbox[0].purpose == "reset_password"


def test_forgot_password_stores_single_request(client, app, account, outbox):
    _forgot(client)
    first_code = outbox.last_code("ada@example.com")
    _forgot(client)
    second_code = outbox.last_code("ada@example.com")

    with app.app_context():
        records = PasswordReset.query.filter_by(email="ada@example.com").all()
        assert len(records) == 1
        assert records[0].code == second_code
        assert records[0].used is False
        assert records[0].expires_at > utcnow() + timedelta(minutes=29)

    if first_code != second_code:
        assert _reset(client, first_code).status_code == 400
    assert _reset(client, second_code).status_code == 200


def test_full_reset_flow(client, account, outbox):
    _forgot(client, "ADA@example.com")
    code = outbox.last_code("ada@example.com")

    verify = _reset(client, code, password=None, phase="verify")
    assert verify.status_code == 200
    assert verify.get_json()["success"] is True

    commit = _reset(client, code)
    assert commit.status_code == 200
    assert commit.get_json()["message"] == "Password has been reset successfully."

    assert _login_status(client, "new-password") == 200
    assert _login_status(client, "old-password") == 401


def test_verify_phase_does_not_consume_code(client, app, account, outbox):
    _forgot(client)
    code = outbox.last_code("ada@example.com")

    for _ in range(3):
        assert _reset(client, code, password=None, phase="verify").status_code == 200

    with app.app_context():
        assert PasswordReset.query.filter_by(email="ada@example.com").one().used is False


def test_code_is_consumed_exactly_once(client, account, outbox):
    _forgot(client)
    code = outbox.last_code("ada@example.com")

    assert _reset(client, code, password="first-password").status_code == 200
    replay = _reset(client, code, password="second-password")

    assert replay.status_code == 400
    assert replay.get_json()["code"] == "invalid_or_expired_code"
    assert _login_status(client, "first-password") == 200
    assert _login_status(client, "second-password") == 401


def test_expired_code_is_rejected(client, app, account, outbox):
    _forgot(client)
    code = outbox.last_code("ada@example.com")
    with app.app_context():
        record = PasswordReset.query.filter_by(email="ada@example.com").one()
        record.expires_at = utcnow() - timedelta(seconds=1)
        db.session.commit()

    assert _reset(client, code, password=None, phase="verify").status_code == 400
    assert _reset(client, code).status_code == 400
    assert _login_status(client, "old-password") == 200


def test_wrong_code_and_wrong_email_are_rejected(client, account, outbox):
    _forgot(client)
    code = outbox.last_code("ada@example.com")
    wrong = "000000" if code != "000000" else "111111"

    assert _reset(client, wrong).status_code == 400
    other_email = client.post(
        "/auth/reset-password",
        json={"email": "nobody@example.com", "code": code, "password": "new-password"},
    )
    assert other_email.status_code == 400


def test_commit_requires_valid_password(client, account, outbox):
    _forgot(client)
    code = outbox.last_code("ada@example.com")

    assert _reset(client, code, password=None).status_code == 400
    short = _reset(client, code, password="short")
    assert short.status_code == 400
    assert short.get_json()["code"] == "invalid_password"
    # Rejected passwords leave the code usable.
    assert _reset(client, code).status_code == 200


def test_unknown_phase_is_rejected(client, account):
    response = _reset(client, "123456", phase="preview")

    assert response.status_code == 400


def test_reset_code_expiry_uses_clock(app, account):
    """Codes stay valid for the configured lifetime and no longer."""

    with app.test_request_context():
        controller = AuthFlowController.from_app()
        now = utcnow()
        controller.forgot_password("ada@example.com", now=now)
        code = PasswordReset.query.filter_by(email="ada@example.com").one().code

        controller.verify_reset_code("ada@example.com", code, now=now + timedelta(minutes=29))
        with pytest.raises(InvalidOrExpiredCode):
            controller.verify_reset_code("ada@example.com", code, now=now + timedelta(minutes=30))
        with pytest.raises(InvalidOrExpiredCode):
            controller.reset_password(
                "ada@example.com", code, "new-password", now=now + timedelta(minutes=31)
            )


def test_dispatch_failure_still_acknowledges(client, app, account, outbox):
    outbox.fail = True

    response = _forgot(client)

    assert response.status_code == 200
    assert response.get_json()["message"] == FORGOT_PASSWORD_ACK
    with app.app_context():
        assert PasswordReset.query.filter_by(email="ada@example.com").count() == 1


def test_reset_code_uses_account_language(client, app, account, outbox):
    with app.app_context():
        user = db.session.get(User, account)
        user.email_language = "it"
        db.session.commit()

    _forgot(client)

    assert outbox.outbox[-1].subject == "Reimposta la tua password"


def test_storage_failure_still_acknowledges(client, app, account, outbox, monkeypatch):
    def _fail(self, email, code, expires_at):
        raise OperationalError("INSERT INTO password_resets", {}, Exception("database is locked"))

    monkeypatch.setattr(VerificationRequestStore, "upsert", _fail)

    response = _forgot(client)

    assert response.status_code == 200
    assert response.get_json() == {"success": True, "message": FORGOT_PASSWORD_ACK}
    assert outbox.outbox == []


def test_numeric_reset_code_keeps_leading_zero(client, account, monkeypatch):
    monkeypatch.setattr("services.auth_flow.generate_verification_code", lambda: "004242")
    _forgot(client)

    assert _reset(client, 4242, password=None, phase="verify").status_code == 200
    assert _reset(client, 4242).status_code == 200
    assert _login_status(client, "new-password") == 200
