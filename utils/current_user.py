"""Helpers resolving the account behind the request's bearer token."""

from __future__ import annotations

from flask_jwt_extended import get_jwt, get_jwt_identity, verify_jwt_in_request
from werkzeug.exceptions import Forbidden

from models import db
from models.user import User
from services.errors import InvalidSession
from services.sessions import PENDING_CLAIM


def get_current_user(optional: bool = False) -> User | None:
    """Return the user for a full session token, or None when absent and optional."""

    verify_jwt_in_request(optional=optional)
    identity = get_jwt_identity()
    if identity is None:
        return None
    if get_jwt().get(PENDING_CLAIM, False):
        raise Forbidden("Email verification required.")
    try:
        user_id = int(identity)
    except (TypeError, ValueError) as exc:
        raise InvalidSession() from exc
    user = db.session.get(User, user_id)
    if user is None:
        raise InvalidSession()
    return user


def require_user() -> User:
    user = get_current_user()
    if user is None:
        raise InvalidSession()
    return user


def require_instructor() -> User:
    user = require_user()
    if not user.is_instructor:
        raise Forbidden("Instructor privileges required.")
    return user
