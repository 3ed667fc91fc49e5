"""Instructors blueprint: the public team listing and instructor onboarding."""

from __future__ import annotations

from http import HTTPStatus

from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required
from werkzeug.exceptions import BadRequest

from models.user import User
from services.auth_flow import AuthFlowController
from utils.current_user import require_instructor
from utils.request_validation import get_string, parse_json_request

instructors_bp = Blueprint("instructors", __name__)

PROFILE_KEYS = ("surname", "description", "website", "linkedin", "avatar")


@instructors_bp.route("", methods=["GET"])
def list_instructors():
    """Return every instructor's public profile, ordered by name."""

    instructors = (
        User.query.filter_by(role="instructor").order_by(User.name.asc(), User.id.asc()).all()
    )
    return jsonify({"instructors": [user.public_profile() for user in instructors]})


@instructors_bp.route("/register", methods=["POST"])
@jwt_required()
def register_instructor() -> tuple:
    """Create an instructor account. Only existing instructors may do this."""

    creator = require_instructor()
    payload = parse_json_request(request)
    email = get_string(payload, "email")
    password = get_string(payload, "password", strip=False)
    name = get_string(payload, "name")

    if not email or not password or not name:
        raise BadRequest("Name, email and password are required.")

    profile = {}
    for key in PROFILE_KEYS:
        value = get_string(payload, key)
        if value:
            profile[key] = value

    instructor = AuthFlowController.from_app().register_instructor(
        email,
        password,
        name,
        created_by=creator,
        **profile,
    )
    return jsonify(instructor.to_dict()), HTTPStatus.CREATED
