from __future__ import annotations

import ipaddress
import json
import re
from decimal import Decimal
from typing import Optional

from ..core.exceptions import ValidationError

_CODE_RE = re.compile(r"^[A-Z0-9-]+$")
_IDENTIFIER_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def require_min_length(value: str, field_name: str, min_len: int) -> str:
    if value is None or len(value) < min_len:
        raise ValidationError(f"{field_name} must be at least {min_len} characters")
    return value


def require_range(value, field_name: str, low, high):
    if value is None or value < low or value > high:
        raise ValidationError(f"{field_name} must be between {low} and {high}")
    return value


def is_code(value: Optional[str]) -> bool:
    """Uppercase letters, digits and hyphens only (certificate/exam/payroll numbers)."""
    return bool(value) and bool(_CODE_RE.match(value))


def is_identifier(value: Optional[str]) -> bool:
    return bool(value) and bool(_IDENTIFIER_RE.match(value))


def is_valid_json(value: Optional[str]) -> bool:
    if value is None or not value.strip():
        return True
    try:
        json.loads(value)
    except ValueError:
        return False
    return True


def is_ip_address(value: str) -> bool:
    try:
        ipaddress.ip_address(value.strip())
    except ValueError:
        return False
    return True


def to_decimal(value, *, default: Optional[Decimal] = None) -> Optional[Decimal]:
    """Coerce DB/JSON numbers (int, float, str) into Decimal; None stays default."""
    if value is None:
        return default
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))
