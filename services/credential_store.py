"""Persistence operations for user credential records."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError

from models import db
from models.user import DEFAULT_AVATAR, User, normalize_email

from .errors import AccountNotFound, DuplicateEmail

PROFILE_FIELDS = ("surname", "description", "website", "linkedin", "avatar", "email_language")


class CredentialStore:
    """Create, look up and mutate ``User`` rows.

    Methods flush but never commit; the calling flow owns the transaction.
    Passwords are hashed exactly once, by ``User.set_password``, at the point
    the plaintext is written.
    """

    def find_by_email(self, email: Optional[str]) -> User | None:
        normalized = normalize_email(email)
        if not normalized:
            return None
        return User.query.filter(func.lower(User.email) == normalized).first()

    def get(self, user_id: int) -> User | None:
        return db.session.get(User, user_id)

    def create(
        self,
        email: str,
        name: str,
        password: str,
        role: str = "user",
        **profile,
    ) -> User:
        normalized = normalize_email(email)
        if self.find_by_email(normalized) is not None:
            raise DuplicateEmail()

        user = User(email=normalized, name=name.strip(), role=role, is_verified=False)
        for field in PROFILE_FIELDS:
            value = profile.get(field)
            if value:
                setattr(user, field, value)
        if not user.avatar:
            user.avatar = DEFAULT_AVATAR
        user.set_password(password)

        db.session.add(user)
        try:
            db.session.flush()
        except IntegrityError as exc:
            db.session.rollback()
            raise DuplicateEmail() from exc
        return user

    def set_verification_code(self, user: User, code: str, expires_at: datetime) -> None:
        user.set_verification_code(code, expires_at)
        db.session.flush()

    def mark_verified(self, user_id: int) -> bool:
        """Activate the account; True only for the call that flipped the flag.

        Repeated calls are harmless no-ops returning False.
        """

        user = self._require(user_id)
        result = db.session.execute(
            update(User)
            .where(User.id == user_id, User.is_verified.is_(False))
            .values(
                is_verified=True,
                verification_code=None,
                verification_code_expires_at=None,
            )
            .execution_options(synchronize_session=False)
        )
        db.session.refresh(user)
        return result.rowcount == 1

    def update_password(self, user_id: int, new_password: str) -> User:
        user = self._require(user_id)
        user.set_password(new_password)
        db.session.flush()
        return user

    def _require(self, user_id: int) -> User:
        user = self.get(user_id)
        if user is None:
            raise AccountNotFound()
        return user
