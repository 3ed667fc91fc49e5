"""Authentication blueprint: registration, email verification, login and password reset."""

from __future__ import annotations
from http import HTTPStatus

from flask import Blueprint, jsonify, request
from werkzeug.exceptions import BadRequest

from services.auth_flow import AuthFlowController
from utils.request_validation import get_string, parse_json_request

auth_bp = Blueprint("auth", __name__)

RESET_PHASES = {"verify", "commit"}
PROFILE_KEYS = ("avatar",)


def _controller() -> AuthFlowController:
    return AuthFlowController.from_app()


@auth_bp.route("/register", methods=["POST"])
def register() -> tuple:
    """Register a pending standard account and send its email verification code.

    Any ``role`` in the payload is ignored; instructors are created through
    ``/instructors/register``.
    """
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

    result = _controller().register(
        email,
        password,
        name,
        locale=get_string(payload, "locale"),
        **profile,
    )

    return (
        jsonify(
            {
                "message": "Registration pending email verification.",
                "token": result.token,
                "pendingUser": result.user.to_dict(),
                "needsVerification": True,
            }
        ),
        HTTPStatus.CREATED,
    )


@auth_bp.route("/verify-email", methods=["POST"])
def verify_email() -> tuple:
    """Exchange a pending token and its code for a full session token."""
    payload = parse_json_request(request)
    token = get_string(payload, "token")
    code = payload.get("code", payload.get("verificationCode"))

    if not token or code in (None, ""):
        raise BadRequest("Verification code and token are required.")

    result = _controller().verify_email(token, code)
    return (
        jsonify(
            {
                "message": "Email verified successfully.",
                "token": result.token,
                "user": result.user.to_dict(),
                "isVerified": True,
            }
        ),
        HTTPStatus.OK,
    )


@auth_bp.route("/resend-verification", methods=["POST"])
def resend_verification() -> tuple:
    """Send a fresh verification code for a pending account."""
    payload = parse_json_request(request)
    token = get_string(payload, "token")
    if not token:
        raise BadRequest("Token is required.")

    _controller().resend_verification(token, locale=get_string(payload, "locale"))
    return (
        jsonify({"success": True, "message": "Verification code sent successfully."}),
        HTTPStatus.OK,
    )


@auth_bp.route("/login", methods=["POST"])
def login() -> tuple:
    """Authenticate a user and return a session token."""
    payload = parse_json_request(request)
    email = get_string(payload, "email")
    password = get_string(payload, "password", strip=False)

    if not email or not password:
        raise BadRequest("Email and password are required.")

    result = _controller().login(email, password)
    return (
        jsonify(
            {
                "token": result.token,
                "user": result.user.to_dict(),
                "needsVerification": result.needs_verification,
            }
        ),
        HTTPStatus.OK,
    )


@auth_bp.route("/forgot-password", methods=["POST"])
def forgot_password() -> tuple:
    """Request a password reset code. The answer never reveals whether the email exists."""
    payload = parse_json_request(request)
    email = get_string(payload, "email")
    if not email:
        raise BadRequest("Email is required.")

    message = _controller().forgot_password(email, locale=get_string(payload, "locale"))
    return jsonify({"success": True, "message": message}), HTTPStatus.OK


@auth_bp.route("/reset-password", methods=["POST"])
def reset_password() -> tuple:
    """Check a reset code (``phase=verify``) or consume it to set a new password."""
    payload = parse_json_request(request)
    email = get_string(payload, "email")
    code = payload.get("code")
    phase = (get_string(payload, "phase") or "commit").lower()

    if phase not in RESET_PHASES:
        raise BadRequest("phase must be one of: verify, commit.")
    if not email or code in (None, ""):
        raise BadRequest("Email and code are required.")

    controller = _controller()
    if phase == "verify":
        controller.verify_reset_code(email, code)
        return (
            jsonify({"success": True, "message": "Verification code is valid."}),
            HTTPStatus.OK,
        )

    password = get_string(payload, "password", strip=False)
    if not password:
        raise BadRequest("Password is required.")
    controller.reset_password(email, code, password)
    return (
        jsonify({"success": True, "message": "Password has been reset successfully."}),
        HTTPStatus.OK,
    )
