"""Session token issuing and validation on top of flask-jwt-extended."""

from __future__ import annotations

from datetime import timedelta

from flask import current_app
from flask_jwt_extended import create_access_token, decode_token
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError

from models.user import User

from .errors import InvalidSession

PENDING_CLAIM = "pending"


class SessionIssuer:
    """Issue pending and full session tokens for a user.

    A pending token only ever unlocks the verification endpoints; full
    sessions are minted anew once the email is verified.
    """

    def __init__(self, pending_expires: timedelta | None = None):
        self._pending_expires = pending_expires

    @property
    def pending_expires(self) -> timedelta:
        if self._pending_expires is not None:
            return self._pending_expires
        return current_app.config.get("PENDING_TOKEN_EXPIRES", timedelta(hours=24))

    def issue_pending(self, user: User) -> str:
        return create_access_token(
            identity=str(user.id),
            additional_claims={PENDING_CLAIM: True},
            expires_delta=self.pending_expires,
        )

    def issue_full(self, user: User) -> str:
        return create_access_token(
            identity=str(user.id),
            additional_claims={PENDING_CLAIM: False, "role": user.role},
        )

    def issue_for(self, user: User) -> str:
        return self.issue_full(user) if user.is_verified else self.issue_pending(user)

    def verify_pending(self, token: str | None) -> int:
        """Return the user id carried by a valid pending token."""

        if not token or not isinstance(token, str):
            raise InvalidSession()
        try:
            claims = decode_token(token)
        except (PyJWTError, JWTExtendedException) as exc:
            raise InvalidSession() from exc

        if claims.get(PENDING_CLAIM) is not True:
            raise InvalidSession()
        try:
            return int(claims["sub"])
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidSession() from exc
