"""Persistence operations for password-reset verification requests."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError

from models import db, utcnow
from models.password_reset import PasswordReset
from models.user import normalize_email


_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class VerificationRequestStore:
    """Keep at most one reset request per email and consume codes atomically."""

    def upsert(self, email: str, code: str, expires_at: datetime) -> PasswordReset:
        """Replace any existing request for ``email`` with a fresh, unused code.

        Runs as a single INSERT ... ON CONFLICT statement so concurrent
        requests for the same email never race on the unique email index.
        """

        normalized = normalize_email(email)
        now = utcnow()
        fresh = {"code": code, "expires_at": expires_at, "used": False, "updated_at": now}

        dialect = db.session.get_bind().dialect.name
        insert = _UPSERT_INSERTS.get(dialect)
        if insert is not None:
            statement = insert(PasswordReset).values(email=normalized, created_at=now, **fresh)
            db.session.execute(
                statement.on_conflict_do_update(index_elements=["email"], set_=fresh)
            )
        else:
            self._insert_or_update(normalized, now, fresh)

        return PasswordReset.query.filter_by(email=normalized).populate_existing().one()

    def _insert_or_update(self, email: str, now: datetime, fresh: dict) -> None:
        try:
            with db.session.begin_nested():
                db.session.execute(
                    PasswordReset.__table__.insert().values(email=email, created_at=now, **fresh)
                )
        except IntegrityError:
            db.session.execute(
                update(PasswordReset)
                .where(PasswordReset.email == email)
                .values(**fresh)
                .execution_options(synchronize_session=False)
            )

    def find_active(
        self,
        email: str,
        code: str,
        require_unused: bool,
        now: Optional[datetime] = None,
    ) -> PasswordReset | None:
        """Return the unexpired request matching ``email`` and ``code``.

        With ``require_unused`` the request must also not have been consumed.
        """

        now = now or utcnow()
        query = PasswordReset.query.filter(
            PasswordReset.email == normalize_email(email),
            PasswordReset.code == (code or "").strip(),
            PasswordReset.expires_at > now,
        )
        if require_unused:
            query = query.filter(PasswordReset.used.is_(False))
        return query.first()

    def mark_used(self, record: PasswordReset, now: Optional[datetime] = None) -> bool:
        """Consume ``record`` with a conditional update.

        Returns False when another request consumed it first or it expired
        in the meantime, so only one caller can ever win a given code.
        """

        now = now or utcnow()
        result = db.session.execute(
            update(PasswordReset)
            .where(
                PasswordReset.id == record.id,
                PasswordReset.code == record.code,
                PasswordReset.used.is_(False),
                PasswordReset.expires_at > now,
            )
            .values(used=True, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        claimed = result.rowcount == 1
        if claimed:
            db.session.refresh(record)
        return claimed
