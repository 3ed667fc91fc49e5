"""Database initialization and model exports."""

from datetime import UTC, datetime

from flask_sqlalchemy import SQLAlchemy


db = SQLAlchemy()


def utcnow() -> datetime:
    """Return the current UTC time as a naive datetime, matching stored columns."""

    return datetime.now(UTC).replace(tzinfo=None)


# Import models to register them with SQLAlchemy metadata.
from .user import User  # noqa: E402,F401
from .password_reset import PasswordReset  # noqa: E402,F401
from .workshop import Workshop  # noqa: E402,F401
from .review import Review  # noqa: E402,F401
from .badge import Badge  # noqa: E402,F401

__all__ = [
    "db",
    "utcnow",
    "User",
    "PasswordReset",
    "Workshop",
    "Review",
    "Badge",
]
