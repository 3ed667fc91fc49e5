"""Badges blueprint: completion badges awarded by workshop instructors."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import jwt_required
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import BadRequest, Forbidden, NotFound

from models import db
from models.badge import Badge
from models.user import User
from models.workshop import Workshop
from utils.current_user import require_instructor, require_user
from utils.request_validation import parse_json_request

badges_bp = Blueprint("badges", __name__)


def _require_id(payload: dict, key: str) -> int:
    value = payload.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise BadRequest(f"{key} must be an integer.")
    return value


@badges_bp.route("/award", methods=["POST"])
@jwt_required()
def award_badge():
    """Award a workshop's badge to one of its participants."""

    instructor = require_instructor()
    payload = parse_json_request(request, required_keys=("userId", "workshopId"))
    user_id = _require_id(payload, "userId")
    workshop_id = _require_id(payload, "workshopId")

    workshop = db.session.get(Workshop, workshop_id)
    if workshop is None:
        raise NotFound("Workshop not found.")
    if not workshop.has_instructor(instructor):
        raise Forbidden("Only instructors of this workshop can award its badge.")
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound("User not found.")
    if not workshop.has_participant(user):
        raise BadRequest("User is not registered for this workshop.")
    if Badge.query.filter_by(user_id=user.id, workshop_id=workshop.id).first() is not None:
        raise BadRequest("User already has this badge.")

    badge = Badge(
        user_id=user.id,
        workshop_id=workshop.id,
        awarded_by_id=instructor.id,
        name=workshop.badge_name or f"{workshop.name} Badge",
        description=f"Completed the {workshop.name} workshop",
    )
    db.session.add(badge)
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise BadRequest("User already has this badge.") from exc

    current_app.logger.info(
        "Badge for workshop %s awarded to user %s by instructor %s",
        workshop.id,
        user.id,
        instructor.id,
    )
    return jsonify({"message": "Badge successfully awarded.", "badge": badge.to_dict()})


@badges_bp.route("/mine", methods=["GET"])
@jwt_required()
def my_badges():
    user = require_user()
    badges = user.badges.order_by(Badge.awarded_at.desc(), Badge.id.desc()).all()
    return jsonify({"badges": [badge.to_dict() for badge in badges]})
