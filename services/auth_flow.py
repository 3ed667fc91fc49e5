"""Registration, email verification, login and password reset flows.

Per account the lifecycle is ``anonymous -> pending -> verified``: registration
creates an unverified user holding a single verification code and hands out a
pending session token; submitting the code with that token activates the
account and mints a full session token. Password resets run independently
through ``VerificationRequestStore``, keyed by email: a request issues a code,
the verify phase checks it without consuming it, and the commit phase consumes
it exactly once while replacing the password.
"""

from __future__ import annotations

import hmac
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from functools import lru_cache
from typing import Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import BadRequest, InternalServerError
from werkzeug.security import check_password_hash, generate_password_hash

from mailers import AbstractMailer, MailDispatchError
from models import db, utcnow
from models.password_reset import PasswordReset
from models.user import EMAIL_LANGUAGES, User, normalize_email

from .codes import CODE_LENGTH, generate_verification_code
from .credential_store import CredentialStore
from .errors import (
    AccountNotFound,
    AlreadyVerified,
    DispatchFailure,
    InvalidCredentials,
    InvalidOrExpiredCode,
    InvalidPassword,
    InvalidSession,
)
from .sessions import SessionIssuer
from .verification_store import VerificationRequestStore

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
FORGOT_PASSWORD_ACK = "If your email is registered, you will receive a password reset code."
DEFAULT_CODE_TTL = timedelta(minutes=30)


@lru_cache(maxsize=1)
def _dummy_password_hash() -> str:
    return generate_password_hash("glitchlab-dummy-password")


@dataclass
class AuthResult:
    token: str
    user: User
    needs_verification: bool


class AuthFlowController:
    """Orchestrate the credential lifecycle across the stores and the mailer."""

    def __init__(
        self,
        credentials: CredentialStore,
        requests: VerificationRequestStore,
        sessions: SessionIssuer,
        mailer: AbstractMailer,
        code_ttl: timedelta = DEFAULT_CODE_TTL,
        password_min_length: int = 8,
    ):
        self.credentials = credentials
        self.requests = requests
        self.sessions = sessions
        self.mailer = mailer
        self.code_ttl = code_ttl
        self.password_min_length = password_min_length

    @classmethod
    def from_app(cls, app=None) -> "AuthFlowController":
        app = app or current_app
        return cls(
            credentials=CredentialStore(),
            requests=VerificationRequestStore(),
            sessions=SessionIssuer(),
            mailer=app.extensions["mailer"],
            code_ttl=timedelta(minutes=app.config.get("VERIFICATION_CODE_TTL_MINUTES", 30)),
            password_min_length=app.config.get("PASSWORD_MIN_LENGTH", 8),
        )

    # Registration and email verification

    def register(
        self,
        email: str,
        password: str,
        name: str,
        locale: Optional[str] = None,
        **profile,
    ) -> AuthResult:
        """Create a pending standard account; the role is never client controlled."""

        normalized = self._validate_account(email, name, password)
        if locale in EMAIL_LANGUAGES:
            profile.setdefault("email_language", locale)

        user = self.credentials.create(normalized, name, password, role="user", **profile)
        code = self._issue_verification_code(user)
        db.session.commit()
        current_app.logger.info("Registered pending user %s (%s)", user.id, user.role)

        token = self.sessions.issue_pending(user)
        self._dispatch("verify_email", user.email, code, locale or user.email_language)
        return AuthResult(token=token, user=user, needs_verification=True)

    def register_instructor(
        self,
        email: str,
        password: str,
        name: str,
        created_by: User,
        **profile,
    ) -> User:
        """Create an active instructor account on behalf of an existing instructor."""

        normalized = self._validate_account(email, name, password)
        user = self.credentials.create(normalized, name, password, role="instructor", **profile)
        self.credentials.mark_verified(user.id)
        db.session.commit()
        current_app.logger.info("Instructor %s created by instructor %s", user.id, created_by.id)
        return user

    def verify_email(
        self,
        pending_token: Optional[str],
        code,
        now: Optional[datetime] = None,
    ) -> AuthResult:
        user = self._pending_user(pending_token)
        if user.is_verified:
            raise AlreadyVerified()
        if not self._verification_code_matches(user, code, now):
            raise InvalidOrExpiredCode()

        if not self.credentials.mark_verified(user.id):
            raise AlreadyVerified()
        db.session.commit()
        current_app.logger.info("Verified email for user %s", user.id)
        return AuthResult(
            token=self.sessions.issue_full(user),
            user=user,
            needs_verification=False,
        )

    def resend_verification(self, pending_token: Optional[str], locale: Optional[str] = None) -> None:
        """Replace the outstanding code; the previous one stops working immediately."""

        user = self._pending_user(pending_token)
        if user.is_verified:
            raise AlreadyVerified()

        code = self._issue_verification_code(user)
        db.session.commit()
        self._dispatch("verify_email", user.email, code, locale or user.email_language)

    # Login

    def login(self, email: Optional[str], password: Optional[str]) -> AuthResult:
        password = password or ""
        user = self.credentials.find_by_email(email)
        if user is None:
            # Keep the response time of unknown emails in line with real ones.
            check_password_hash(_dummy_password_hash(), password)
            raise InvalidCredentials()
        if not user.check_password(password):
            raise InvalidCredentials()

        if not user.is_verified:
            current_app.logger.info("Login by unverified user %s", user.id)
        return AuthResult(
            token=self.sessions.issue_for(user),
            user=user,
            needs_verification=not user.is_verified,
        )

    # Password reset

    def forgot_password(
        self,
        email: Optional[str],
        locale: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> str:
        """Issue a reset code when the account exists; always acknowledge."""

        user = self.credentials.find_by_email(email)
        if user is None:
            return FORGOT_PASSWORD_ACK

        now = now or utcnow()
        code = generate_verification_code()
        try:
            self.requests.upsert(user.email, code, now + self.code_ttl)
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.exception("Failed to store reset code for user %s", user.id)
            return FORGOT_PASSWORD_ACK
        current_app.logger.info("Issued password reset code for user %s", user.id)

        try:
            self._dispatch("reset_password", user.email, code, locale or user.email_language)
        except DispatchFailure:
            # Answering differently would reveal that the address has an account.
            current_app.logger.warning("Reset code for user %s was not delivered", user.id)
        return FORGOT_PASSWORD_ACK

    def verify_reset_code(
        self,
        email: Optional[str],
        code,
        now: Optional[datetime] = None,
    ) -> PasswordReset:
        record = self.requests.find_active(email, self._clean_code(code), require_unused=False, now=now)
        if record is None:
            raise InvalidOrExpiredCode()
        return record

    def reset_password(
        self,
        email: Optional[str],
        code,
        new_password: Optional[str],
        now: Optional[datetime] = None,
    ) -> User:
        self.validate_password(new_password)
        record = self.requests.find_active(email, self._clean_code(code), require_unused=True, now=now)
        if record is None:
            raise InvalidOrExpiredCode()

        user = self.credentials.find_by_email(email)
        if user is None:
            current_app.logger.error("Reset request %s has no matching user", record.id)
            raise AccountNotFound()

        if not self.requests.mark_used(record, now=now):
            db.session.rollback()
            raise InvalidOrExpiredCode()

        try:
            self.credentials.update_password(user.id, new_password)
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.exception("Failed to save new password for user %s", user.id)
            raise InternalServerError("Failed to save new password.") from exc

        current_app.logger.info("Password reset completed for user %s", user.id)
        return user

    # Helpers

    def _validate_account(self, email: str, name: str, password: str) -> str:
        normalized = normalize_email(email)
        if not EMAIL_PATTERN.match(normalized):
            raise BadRequest("Please provide a valid email address.")
        if not (name or "").strip():
            raise BadRequest("Name is required.")
        self.validate_password(password)
        return normalized

    def validate_password(self, password: Optional[str]) -> None:
        if not isinstance(password, str) or len(password) < self.password_min_length:
            raise InvalidPassword(
                f"Password must be at least {self.password_min_length} characters long."
            )

    def _pending_user(self, pending_token: Optional[str]) -> User:
        user_id = self.sessions.verify_pending(pending_token)
        user = self.credentials.get(user_id)
        if user is None:
            raise InvalidSession()
        return user

    def _issue_verification_code(self, user: User) -> str:
        code = generate_verification_code()
        self.credentials.set_verification_code(user, code, utcnow() + self.code_ttl)
        return code

    def _verification_code_matches(self, user: User, code, now: Optional[datetime]) -> bool:
        submitted = self._clean_code(code)
        stored = user.verification_code
        expires_at = user.verification_code_expires_at
        if not submitted or not stored or expires_at is None:
            return False
        if expires_at <= (now or utcnow()):
            return False
        return hmac.compare_digest(stored.encode(), submitted.encode())

    @staticmethod
    def _clean_code(code) -> str:
        if code is None or isinstance(code, bool):
            return ""
        if isinstance(code, int):
            # JSON numbers drop leading zeros.
            return str(code).zfill(CODE_LENGTH) if code >= 0 else ""
        return str(code).strip()

    def _dispatch(self, purpose: str, email: str, code: str, locale: Optional[str]) -> None:
        try:
            self.mailer.send_code(purpose, email, code, locale)
        except MailDispatchError as exc:
            current_app.logger.error("Failed to dispatch %s code to %s: %s", purpose, email, exc)
            raise DispatchFailure() from exc
