"""Utilities for validating incoming Flask requests."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Iterable

from flask import Request
from werkzeug.exceptions import BadRequest


def parse_json_request(
    req: Request,
    *,
    required_keys: Iterable[str] | None = None,
    allow_empty: bool = False,
) -> dict:
    """Return the parsed JSON body or raise a 400 error."""

    if not req.is_json:
        raise BadRequest("Request content type must be application/json.")

    data = req.get_json(silent=True)
    if data is None:
        raise BadRequest("Request JSON body is required.")

    if not isinstance(data, dict):
        raise BadRequest("Request JSON payload must be an object.")

    if not data and not allow_empty:
        raise BadRequest("Request JSON body must not be empty.")

    if required_keys:
        missing = [key for key in required_keys if data.get(key) in (None, "")]
        if missing:
            raise BadRequest(
                "Missing required fields: {}.".format(
                    ", ".join(sorted(missing))
                )
            )

    return data


def get_string(data: dict, key: str, *, strip: bool = True) -> str | None:
    """Return ``data[key]`` as a string, rejecting non-string values."""

    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise BadRequest(f"{key} must be a string.")
    return value.strip() if strip else value


def parse_datetime(value: object, field: str) -> datetime:
    """Parse an ISO 8601 timestamp into a naive UTC datetime."""

    if not isinstance(value, str) or not value.strip():
        raise BadRequest(f"{field} must be ISO 8601 format")
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError as exc:
        raise BadRequest(f"{field} must be ISO 8601 format") from exc
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(UTC).replace(tzinfo=None)
    return parsed


def parse_int_arg(value: str | None, field: str, default: int, *, minimum: int = 0) -> int:
    if value in (None, ""):
        return default
    try:
        parsed = int(value)
    except (TypeError, ValueError) as exc:
        raise BadRequest(f"{field} must be an integer.") from exc
    if parsed < minimum:
        raise BadRequest(f"{field} must be at least {minimum}.")
    return parsed
