"""User credential model definition."""

from datetime import datetime
from typing import Optional

from werkzeug.security import check_password_hash, generate_password_hash

from . import db, utcnow


USER_ROLES = ("user", "instructor")
EMAIL_LANGUAGES = ("en", "it")
DEFAULT_AVATAR = "/images/default-avatar.png"


def normalize_email(raw_email: Optional[str]) -> str:
    """Normalize an email string by stripping whitespace and lowering case."""

    return (raw_email or "").strip().lower()


class User(db.Model):
    """Represents a registered account, pending until its email is verified."""

    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(
        db.Enum(*USER_ROLES, name="user_role"),
        nullable=False,
        default="user",
        server_default=db.text("'user'"),
    )
    is_verified = db.Column(
        db.Boolean,
        nullable=False,
        default=False,
        server_default=db.false(),
    )
    verification_code = db.Column(db.String(16), nullable=True)
    verification_code_expires_at = db.Column(db.DateTime, nullable=True)

    avatar = db.Column(db.String(512), nullable=False, default=DEFAULT_AVATAR)
    surname = db.Column(db.String(120), nullable=True)
    description = db.Column(db.Text, nullable=True)
    website = db.Column(db.String(255), nullable=True)
    linkedin = db.Column(db.String(255), nullable=True)

    email_language = db.Column(db.String(8), nullable=False, default="en")
    notify_workshops = db.Column(db.Boolean, nullable=False, default=True)
    notify_changes = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def set_password(self, password: str) -> None:
        """Hash and store the password."""

        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        """Verify a password against the stored hash."""

        return check_password_hash(self.password_hash, password)

    def set_verification_code(self, code: str, expires_at: datetime) -> None:
        self.verification_code = code
        self.verification_code_expires_at = expires_at

    def mark_verified(self) -> None:
        """Activate the account and drop the outstanding verification code."""

        self.is_verified = True
        self.verification_code = None
        self.verification_code_expires_at = None

    @property
    def is_instructor(self) -> bool:
        return self.role == "instructor"

    @property
    def email_notifications(self) -> dict:
        return {"workshops": self.notify_workshops, "changes": self.notify_changes}

    def public_profile(self) -> dict:
        """Fields shown on the public team page."""

        return {
            "id": self.id,
            "name": self.name,
            "surname": self.surname,
            "description": self.description,
            "website": self.website,
            "linkedin": self.linkedin,
            "avatar": self.avatar,
        }

    def to_dict(self) -> dict:
        """Serialize the user without any credential material."""

        data = {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "avatar": self.avatar,
            "isVerified": self.is_verified,
            "emailLanguage": self.email_language,
            "emailNotifications": self.email_notifications,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
        if self.is_instructor:
            data.update(
                {
                    "surname": self.surname,
                    "description": self.description,
                    "website": self.website,
                    "linkedin": self.linkedin,
                }
            )
        return data

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"<User {self.email}>"
