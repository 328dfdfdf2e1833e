from __future__ import annotations

import dataclasses
import json
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Optional


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return value


def snapshot(entity: Any) -> dict[str, Any]:
    """Column values of a dataclass record, JSON-ready.

    Fields declared with ``compare=False`` hold attached related records and
    are left out.
    """
    if isinstance(entity, dict):
        return {k: _plain(v) for k, v in entity.items()}
    return {
        f.name: _plain(getattr(entity, f.name))
        for f in dataclasses.fields(entity)
        if f.compare
    }


def dumps(values: Any) -> str:
    return json.dumps(snapshot(values), ensure_ascii=False, sort_keys=True)


def loads(text: Optional[str]) -> Optional[dict[str, Any]]:
    """Parse a stored snapshot; None for blank, malformed or non-object JSON."""
    if not text or not text.strip():
        return None
    try:
        value = json.loads(text)
    except ValueError:
        return None
    return value if isinstance(value, dict) else None
