# Overview: Helpers shared by the API blueprints (error bodies, request parsing).

from __future__ import annotations

from flask import current_app, jsonify, request

from ..payloads import request_body
from ..time_utils import parse_iso_date, parse_iso_datetime
from ..validation import DomainError, ValidationError


def json_body() -> dict:
    """Canonical snake_case body of the current request."""
    return request_body(request.get_json(silent=True))


def error_response(exc: DomainError):
    return jsonify(exc.to_dict()), exc.status_code


def server_error(action: str):
    current_app.logger.exception("Failed to %s", action)
    return jsonify({"error": "Internal server error"}), 500


def datetime_field(data: dict, key: str, label: str):
    try:
        return parse_iso_datetime(data.get(key)) if isinstance(data.get(key), str) else None
    except ValueError:
        raise ValidationError(f"{label} must be an ISO-8601 datetime")


def date_field(data: dict, key: str, label: str):
    try:
        return parse_iso_date(data.get(key))
    except ValueError:
        raise ValidationError(f"{label} must be an ISO-8601 date")


def int_arg(name: str):
    """Query-string integer; accepts camelCase or snake_case spelling."""
    value = request.args.get(name, type=int)
    if value is None:
        snake = "".join(f"_{c.lower()}" if c.isupper() else c for c in name)
        value = request.args.get(snake, type=int)
    return value
