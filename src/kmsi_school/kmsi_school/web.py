"""Helpers shared by the feature controllers: session guard, error mapping,
request parsing and JSON rendering of domain records."""

from __future__ import annotations

import dataclasses
import logging
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from enum import Enum
from functools import wraps
from typing import Any, Optional

from flask import jsonify, request, session

from .audit.service import Actor
from .common.datetime_utils import parse_hhmm, parse_iso_date
from .core.exceptions import DomainError, InvalidOperationError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

_STATUS_CODES = (
    (ValidationError, 400),
    (NotFoundError, 404),
    (InvalidOperationError, 409),
)


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return jsonify({"success": False, "message": "Please log in to continue"}), 401
        return view(*args, **kwargs)

    return wrapper


def json_errors(view):
    """Answer domain errors as JSON with 400/404/409; anything else is logged and answered 500."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        try:
            return view(*args, **kwargs)
        except DomainError as e:
            return error_response(e)
        except Exception:
            logger.exception("unhandled error in %s", request.path)
            return jsonify({"success": False, "message": "Internal server error"}), 500

    return wrapper


def error_response(error: DomainError):
    code = next((status for cls, status in _STATUS_CODES if isinstance(error, cls)), 400)
    errors = getattr(error, "errors", None) or [str(error)]
    return jsonify({"success": False, "message": str(error), "errors": errors}), code


def current_actor() -> Actor:
    return Actor(
        user_id=int(session["user_id"]),
        company_id=int(session.get("company_id") or 0),
        ip_address=request.remote_addr,
        user_agent=request.headers.get("User-Agent"),
    )


# ---- request parsing ------------------------------------------------------


def body() -> dict:
    return request.get_json(silent=True) or {}


def required(data: dict, key: str) -> Any:
    value = data.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{key} is required")
    return value


def as_int(value: Any, name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer") from None


def as_decimal(value: Any, name: str, *, default: Optional[Decimal] = None) -> Optional[Decimal]:
    if value is None or value == "":
        return default
    try:
        number = Decimal(str(value))
    except InvalidOperation:
        raise ValidationError(f"{name} must be a number") from None
    if not number.is_finite():
        raise ValidationError(f"{name} must be a number")
    return number


def as_date(value: Optional[str], name: str, *, default: Optional[date] = None) -> Optional[date]:
    if not value:
        return default
    try:
        return parse_iso_date(value)
    except ValueError:
        raise ValidationError(f"{name} must be a date in YYYY-MM-DD format") from None


def as_time(value: Optional[str], name: str) -> Optional[time]:
    if not value:
        return None
    try:
        return parse_hhmm(value)
    except ValueError:
        raise ValidationError(f"{name} must be a time in HH:MM format") from None


def date_range_args() -> tuple[date, date]:
    start = as_date(request.args.get("start"), "start")
    end = as_date(request.args.get("end"), "end")
    if start is None or end is None:
        raise ValidationError("Missing start/end parameters")
    return start, end


# ---- rendering --------------------------------------------------------------


def to_json(value: Any) -> Any:
    """Plain JSON structure for records and reports.

    Attached related records (``compare=False`` fields) are left out.
    """
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_json(getattr(value, f.name)) for f in dataclasses.fields(value) if f.compare}
    if isinstance(value, dict):
        return {str(k): to_json(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json(v) for v in value]
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return value


def ok(data: Any = None, *, status: int = 200, **extra):
    payload = {"success": True, "data": to_json(data)}
    payload.update({k: to_json(v) for k, v in extra.items()})
    return jsonify(payload), status
