"""Workshops blueprint with listing, instructor management and seat booking."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import jwt_required
from sqlalchemy import delete, func, insert, literal, select, update
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import BadRequest, Forbidden, NotFound

from models import db, utcnow
from models.badge import Badge
from models.user import User
from models.workshop import WORKSHOP_STATUSES, Workshop, workshop_registrations
from services.workshop_notices import send_workshop_notice
from utils.current_user import require_instructor, require_user
from utils.request_validation import get_string, parse_datetime, parse_json_request

workshops_bp = Blueprint("workshops", __name__)

REQUIRED_FIELDS = (
    "name",
    "description",
    "startDate",
    "endDate",
    "imageUrl",
    "categories",
    "level",
    "location",
)
TEXT_FIELDS = {
    "name": "name",
    "description": "description",
    "imageUrl": "image_url",
    "badgeName": "badge_name",
    "level": "level",
    "location": "location",
    "bgColor": "bg_color",
}


def _get_workshop_or_404(workshop_id: int) -> Workshop:
    workshop = db.session.get(Workshop, workshop_id)
    if workshop is None:
        raise NotFound("Workshop not found.")
    return workshop


def _require_workshop_instructor(workshop: Workshop) -> User:
    user = require_instructor()
    if not workshop.has_instructor(user):
        raise Forbidden("Only instructors of this workshop can manage it.")
    return user


def _participant_dict(user: User, badge_awarded: bool) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "avatar": user.avatar,
        "badgeAwarded": badge_awarded,
    }


def _claim_seat(workshop: Workshop, user: User) -> bool:
    """Insert the registration only while the workshop is open and has a free seat.

    Capacity is checked inside the INSERT itself, so concurrent bookings
    cannot overfill the workshop.
    """

    seats_taken = (
        select(func.count())
        .select_from(workshop_registrations)
        .where(workshop_registrations.c.workshop_id == workshop.id)
        .scalar_subquery()
        .correlate(None)
    )
    seat = select(
        literal(workshop.id),
        literal(user.id),
        literal(utcnow(), db.DateTime),
    ).where(
        Workshop.id == workshop.id,
        Workshop.canceled.is_(False),
        Workshop.capacity > seats_taken,
    )
    result = db.session.execute(
        insert(workshop_registrations).from_select(
            ["workshop_id", "user_id", "created_at"], seat
        )
    )
    return result.rowcount == 1


def _mailer():
    return current_app.extensions["mailer"]


def _validate_workshop_payload(data: dict, partial: bool = False) -> dict:
    """Return model attribute values parsed from a camelCase payload."""

    errors = []
    values: dict = {}

    if not partial:
        for field in REQUIRED_FIELDS:
            if data.get(field) in (None, "", []):
                errors.append(f"{field} is required")

    for key, attribute in TEXT_FIELDS.items():
        if key not in data:
            continue
        value = data.get(key)
        if value is not None and not isinstance(value, str):
            errors.append(f"{key} must be a string")
            continue
        value = (value or "").strip()
        if not value:
            # Missing required fields are already reported on create.
            if partial and key in REQUIRED_FIELDS:
                errors.append(f"{key} must not be empty")
            continue
        values[attribute] = value

    if "categories" in data:
        categories = data.get("categories")
        if (
            not isinstance(categories, list)
            or not categories
            or not all(isinstance(item, str) and item.strip() for item in categories)
        ):
            errors.append("categories must be a non-empty list of strings")
        else:
            values["categories"] = [item.strip() for item in categories]

    if "capacity" in data:
        capacity = data.get("capacity")
        if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 1:
            errors.append("capacity must be a positive integer")
        else:
            values["capacity"] = capacity

    for key, attribute in (("startDate", "start_date"), ("endDate", "end_date")):
        if data.get(key) in (None, ""):
            continue
        try:
            values[attribute] = parse_datetime(data.get(key), key)
        except BadRequest as exc:
            errors.append(exc.description)

    if errors:
        raise BadRequest("; ".join(errors))
    return values


def _check_schedule(workshop: Workshop) -> None:
    if workshop.end_date < workshop.start_date:
        raise BadRequest("endDate must not be before startDate")


@workshops_bp.route("", methods=["GET"])
def list_workshops():
    """Return workshops with optional status, category, level and instructor filters."""

    query = Workshop.query

    level = request.args.get("level")
    if level:
        query = query.filter(db.func.lower(Workshop.level) == level.lower())

    instructor_id = request.args.get("instructor_id", type=int)
    if instructor_id is not None:
        query = query.filter(Workshop.instructors.any(User.id == instructor_id))

    status = request.args.get("status")
    if status and status not in WORKSHOP_STATUSES:
        raise BadRequest("status must be one of: " + ", ".join(WORKSHOP_STATUSES))

    category = (request.args.get("category") or "").strip().lower()

    workshops = []
    for workshop in query.order_by(Workshop.start_date.asc()).all():
        if status and workshop.status() != status:
            continue
        if category and category not in {c.lower() for c in workshop.categories or []}:
            continue
        workshops.append(workshop.to_dict())

    return jsonify({"results": workshops, "count": len(workshops)})


@workshops_bp.route("/<int:workshop_id>", methods=["GET"])
def get_workshop(workshop_id: int):
    return jsonify(_get_workshop_or_404(workshop_id).to_dict())


@workshops_bp.route("", methods=["POST"])
@jwt_required()
def create_workshop():
    """Create a workshop. Instructors only; the creator teaches it."""

    user = require_instructor()
    data = parse_json_request(request)
    values = _validate_workshop_payload(data)

    workshop = Workshop(**values)
    _check_schedule(workshop)

    instructor_ids = data.get("instructorIds") or []
    if not isinstance(instructor_ids, list):
        raise BadRequest("instructorIds must be a list")
    instructors = [user]
    for instructor_id in instructor_ids:
        if instructor_id == user.id:
            continue
        instructor = db.session.get(User, instructor_id) if isinstance(instructor_id, int) else None
        if instructor is None or not instructor.is_instructor:
            raise BadRequest(f"Unknown instructor: {instructor_id}")
        instructors.append(instructor)
    workshop.instructors = instructors

    db.session.add(workshop)
    db.session.commit()
    current_app.logger.info("Workshop %s created by user %s", workshop.id, user.id)
    return jsonify(workshop.to_dict()), 201


@workshops_bp.route("/<int:workshop_id>", methods=["PATCH"])
@jwt_required()
def update_workshop(workshop_id: int):
    workshop = _get_workshop_or_404(workshop_id)
    _require_workshop_instructor(workshop)

    data = parse_json_request(request)
    values = _validate_workshop_payload(data, partial=True)
    for attribute, value in values.items():
        setattr(workshop, attribute, value)
    _check_schedule(workshop)

    if "capacity" in values and workshop.registered_count > workshop.capacity:
        raise BadRequest("capacity cannot be lower than the number of registered users")

    db.session.commit()
    return jsonify(workshop.to_dict())


@workshops_bp.route("/<int:workshop_id>/cancel", methods=["POST"])
@jwt_required()
def cancel_workshop(workshop_id: int):
    """Cancel a workshop and release every registered seat."""

    workshop = _get_workshop_or_404(workshop_id)
    user = _require_workshop_instructor(workshop)
    if workshop.canceled:
        raise BadRequest("Workshop is already canceled.")

    recipients = [
        participant for participant in workshop.participants if participant.notify_changes
    ]
    workshop.canceled = True
    db.session.execute(
        delete(workshop_registrations).where(
            workshop_registrations.c.workshop_id == workshop.id
        )
    )
    db.session.commit()
    db.session.refresh(workshop)
    current_app.logger.info("Workshop %s canceled by user %s", workshop.id, user.id)

    notified = send_workshop_notice(_mailer(), "workshop_canceled", workshop, recipients)
    return jsonify(
        {
            "message": "Workshop successfully canceled.",
            "workshop": workshop.to_dict(),
            "notified": notified,
        }
    )


@workshops_bp.route("/<int:workshop_id>/uncancel", methods=["POST"])
@jwt_required()
def uncancel_workshop(workshop_id: int):
    workshop = _get_workshop_or_404(workshop_id)
    _require_workshop_instructor(workshop)
    if not workshop.canceled:
        raise BadRequest("Workshop is not canceled.")

    workshop.canceled = False
    db.session.commit()
    return jsonify({"message": "Workshop successfully restored.", "workshop": workshop.to_dict()})


@workshops_bp.route("/<int:workshop_id>/register", methods=["POST"])
@jwt_required()
def register_for_workshop(workshop_id: int):
    """Book a seat for the authenticated user."""

    user = require_user()
    workshop = _get_workshop_or_404(workshop_id)

    status = workshop.status()
    if status == "canceled":
        raise BadRequest("Workshop has been canceled.")
    if status == "past":
        raise BadRequest("Workshop has already taken place.")
    if workshop.has_participant(user):
        raise BadRequest("User is already registered for this workshop.")
    if workshop.is_full():
        raise BadRequest("Workshop is full.")

    try:
        claimed = _claim_seat(workshop, user)
    except IntegrityError as exc:
        db.session.rollback()
        raise BadRequest("User is already registered for this workshop.") from exc
    if not claimed:
        db.session.rollback()
        raise BadRequest("Workshop is full.")
    db.session.commit()

    db.session.refresh(workshop)
    return jsonify(
        {"message": "Successfully registered for workshop.", "workshop": workshop.to_dict()}
    )


@workshops_bp.route("/<int:workshop_id>/unregister", methods=["POST"])
@jwt_required()
def unregister_from_workshop(workshop_id: int):
    user = require_user()
    workshop = _get_workshop_or_404(workshop_id)

    result = db.session.execute(
        delete(workshop_registrations).where(
            workshop_registrations.c.workshop_id == workshop.id,
            workshop_registrations.c.user_id == user.id,
        )
    )
    if result.rowcount == 0:
        raise BadRequest("User is not registered for this workshop.")
    db.session.commit()
    db.session.refresh(workshop)
    return jsonify(
        {"message": "Successfully unregistered from workshop.", "workshop": workshop.to_dict()}
    )


@workshops_bp.route("/<int:workshop_id>/send-reminder", methods=["POST"])
@jwt_required()
def send_reminder(workshop_id: int):
    """Email participants who opted into workshop notices, at most once per workshop."""

    workshop = _get_workshop_or_404(workshop_id)
    instructor = _require_workshop_instructor(workshop)
    if workshop.canceled:
        raise BadRequest("Cannot send reminder for a canceled workshop.")

    claimed = db.session.execute(
        update(Workshop)
        .where(Workshop.id == workshop.id, Workshop.reminder_sent.is_(False))
        .values(reminder_sent=True)
        .execution_options(synchronize_session=False)
    )
    if claimed.rowcount != 1:
        raise BadRequest("Reminder has already been sent for this workshop.")
    db.session.commit()
    db.session.refresh(workshop)

    recipients = [user for user in workshop.participants if user.notify_workshops]
    sent = send_workshop_notice(_mailer(), "workshop_reminder", workshop, recipients)
    current_app.logger.info(
        "Reminder for workshop %s sent to %s of %s users by instructor %s",
        workshop.id,
        sent,
        len(recipients),
        instructor.id,
    )
    return jsonify(
        {
            "message": "Workshop reminder sent successfully.",
            "sentTo": sent,
            "totalUsers": len(recipients),
        }
    )


@workshops_bp.route("/registered", methods=["GET"])
@jwt_required()
def registered_workshops():
    """Return the workshops the authenticated user has booked."""

    user = require_user()
    workshops = user.registered_workshops.order_by(Workshop.start_date.asc()).all()
    return jsonify({"results": [workshop.to_dict() for workshop in workshops]})


@workshops_bp.route("/<int:workshop_id>/participants", methods=["GET"])
@jwt_required()
def list_participants(workshop_id: int):
    workshop = _get_workshop_or_404(workshop_id)
    _require_workshop_instructor(workshop)
    awarded = {badge.user_id for badge in Badge.query.filter_by(workshop_id=workshop.id)}
    participants = [
        _participant_dict(user, user.id in awarded) for user in workshop.participants
    ]
    return jsonify({"workshop": workshop.to_dict(), "participants": participants})


@workshops_bp.route("/<int:workshop_id>/participants/<int:user_id>", methods=["DELETE"])
@jwt_required()
def remove_participant(workshop_id: int, user_id: int):
    """Remove a user from a workshop on an instructor's behalf."""

    workshop = _get_workshop_or_404(workshop_id)
    instructor = _require_workshop_instructor(workshop)

    result = db.session.execute(
        delete(workshop_registrations).where(
            workshop_registrations.c.workshop_id == workshop.id,
            workshop_registrations.c.user_id == user_id,
        )
    )
    if result.rowcount == 0:
        raise NotFound("User is not registered for this workshop.")
    db.session.commit()
    current_app.logger.info(
        "User %s removed from workshop %s by instructor %s",
        user_id,
        workshop.id,
        instructor.id,
    )
    return jsonify({"message": "User removed from workshop."})
