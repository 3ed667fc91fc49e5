"""Account blueprint: profile, password and preference management."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import jwt_required
from sqlalchemy import delete, func, update
from werkzeug.exceptions import BadRequest, Unauthorized

from models import db
from models.badge import Badge
from models.review import Review
from models.user import EMAIL_LANGUAGES, User, normalize_email
from models.workshop import workshop_instructors, workshop_registrations
from services.auth_flow import EMAIL_PATTERN, AuthFlowController
from services.errors import DuplicateEmail
from utils.current_user import require_user
from utils.request_validation import get_string, parse_json_request

users_bp = Blueprint("users", __name__)

INSTRUCTOR_FIELDS = ("surname", "description", "website", "linkedin")


def _validate_language(value: object) -> str:
    if value not in EMAIL_LANGUAGES:
        raise BadRequest('Invalid email language. Supported languages are "en" and "it".')
    return value


@users_bp.route("/me", methods=["GET"])
@jwt_required()
def get_profile():
    """Return the authenticated user's profile."""

    return jsonify(require_user().to_dict())


@users_bp.route("/me", methods=["PUT", "PATCH"])
@jwt_required()
def update_profile():
    """Update profile fields; instructor-only fields are ignored for other roles."""

    user = require_user()
    payload = parse_json_request(request)

    name = get_string(payload, "name")
    if name:
        user.name = name

    email = normalize_email(get_string(payload, "email"))
    if email and email != user.email:
        if not EMAIL_PATTERN.match(email):
            raise BadRequest("Please provide a valid email address.")
        taken = User.query.filter(
            func.lower(User.email) == email, User.id != user.id
        ).first()
        if taken is not None:
            raise DuplicateEmail(
                "This email address is already being used by another account."
            )
        user.email = email

    avatar = get_string(payload, "avatar")
    if avatar:
        user.avatar = avatar

    if "emailLanguage" in payload:
        user.email_language = _validate_language(payload.get("emailLanguage"))

    if user.is_instructor:
        for field in INSTRUCTOR_FIELDS:
            if field in payload:
                setattr(user, field, get_string(payload, field))

    db.session.commit()
    return jsonify(user.to_dict())


@users_bp.route("/password", methods=["PUT"])
@jwt_required()
def change_password():
    """Replace the password after checking the current one."""

    user = require_user()
    payload = parse_json_request(request)
    current_password = get_string(payload, "currentPassword", strip=False)
    new_password = get_string(payload, "newPassword", strip=False)

    if not current_password or not new_password:
        raise BadRequest("Please provide current and new password.")

    controller = AuthFlowController.from_app()
    controller.validate_password(new_password)
    if not user.check_password(current_password):
        raise Unauthorized("Current password is incorrect.")

    controller.credentials.update_password(user.id, new_password)
    db.session.commit()
    current_app.logger.info("Password changed for user %s", user.id)
    return jsonify({"message": "Password updated successfully."})


@users_bp.route("/email-language", methods=["GET"])
@jwt_required()
def get_email_language():
    return jsonify({"emailLanguage": require_user().email_language or "en"})


@users_bp.route("/email-language", methods=["PUT"])
@jwt_required()
def update_email_language():
    user = require_user()
    payload = parse_json_request(request)
    user.email_language = _validate_language(payload.get("emailLanguage"))
    db.session.commit()
    return jsonify(
        {
            "message": "Email language updated successfully.",
            "emailLanguage": user.email_language,
        }
    )


@users_bp.route("/notification-preferences", methods=["GET"])
@jwt_required()
def get_notification_preferences():
    return jsonify({"emailNotifications": require_user().email_notifications})


@users_bp.route("/notification-preferences", methods=["PUT"])
@jwt_required()
def update_notification_preferences():
    """Set both email notification switches at once."""

    user = require_user()
    payload = parse_json_request(request)
    preferences = payload.get("emailNotifications")
    if (
        not isinstance(preferences, dict)
        or not isinstance(preferences.get("workshops"), bool)
        or not isinstance(preferences.get("changes"), bool)
    ):
        raise BadRequest("Invalid notification preferences.")

    user.notify_workshops = preferences["workshops"]
    user.notify_changes = preferences["changes"]
    db.session.commit()
    return jsonify(
        {
            "message": "Notification preferences updated successfully.",
            "emailNotifications": user.email_notifications,
        }
    )


@users_bp.route("/me", methods=["DELETE"])
@jwt_required()
def delete_account():
    """Delete the account with its reviews, badges and workshop registrations."""

    user = require_user()
    payload = parse_json_request(request)
    password = get_string(payload, "password", strip=False)
    if not password or not user.check_password(password):
        raise Unauthorized("Password is incorrect.")

    user_id = user.id
    db.session.execute(delete(Review).where(Review.user_id == user_id))
    db.session.execute(delete(Badge).where(Badge.user_id == user_id))
    db.session.execute(
        update(Badge).where(Badge.awarded_by_id == user_id).values(awarded_by_id=None)
    )
    db.session.execute(
        delete(workshop_registrations).where(workshop_registrations.c.user_id == user_id)
    )
    db.session.execute(
        delete(workshop_instructors).where(workshop_instructors.c.user_id == user_id)
    )
    db.session.delete(user)
    db.session.commit()
    current_app.logger.info("Deleted account %s", user_id)
    return jsonify({"message": "Account deleted successfully."})
