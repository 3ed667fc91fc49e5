"""Error taxonomy for the credential and verification lifecycle.

Each error is a werkzeug ``HTTPException`` so the application's JSON error
handler renders it with its status code and a generic client-facing message.
``error_code`` gives clients a stable identifier independent of the wording.
"""

from __future__ import annotations

from werkzeug.exceptions import HTTPException


class AuthFlowError(HTTPException):
    code = 400
    error_code = "auth_error"
    description = "Authentication request could not be completed."


class DuplicateEmail(AuthFlowError):
    code = 400
    error_code = "duplicate_email"
    description = "A user with that email already exists."


class InvalidCredentials(AuthFlowError):
    code = 401
    error_code = "invalid_credentials"
    description = "Invalid email or password."


class InvalidOrExpiredCode(AuthFlowError):
    code = 400
    error_code = "invalid_or_expired_code"
    description = "Invalid or expired verification code."


class InvalidSession(AuthFlowError):
    code = 401
    error_code = "invalid_session"
    description = "Invalid or expired session token."


class AlreadyVerified(AuthFlowError):
    code = 409
    error_code = "already_verified"
    description = "Email address is already verified."


class DispatchFailure(AuthFlowError):
    code = 502
    error_code = "dispatch_failure"
    description = "Could not send the verification code. Please try again later."


class AccountNotFound(AuthFlowError):
    code = 404
    error_code = "account_not_found"
    description = "User not found."


class InvalidPassword(AuthFlowError):
    code = 400
    error_code = "invalid_password"
    description = "Password does not meet the requirements."
