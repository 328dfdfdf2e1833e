from __future__ import annotations

from typing import Protocol

from .core.exceptions import ValidationError


class Validatable(Protocol):
    def validate(self) -> list[str]:
        raise NotImplementedError


def validate(entity: Validatable, **options) -> list[str]:
    """Business-rule violations of a record, in rule order. Never raises.

    ``options`` are handed to the entity's own ``validate`` (e.g. ``require_score``).
    """
    return list(entity.validate(**options))


def ensure_valid(entity: Validatable, **options) -> None:
    """Raise ValidationError carrying every violation, if any."""
    errors = validate(entity, **options)
    if errors:
        raise ValidationError(f"{type(entity).__name__} is invalid: {errors[0]}", errors)
