from __future__ import annotations

from typing import Iterable, Optional


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    def __init__(self, message: str, errors: Optional[Iterable[str]] = None):
        super().__init__(message)
        self.errors = list(errors) if errors is not None else [message]


class InvalidOperationError(DomainError):
    """Raised when a workflow command is called in a state that forbids it."""


class NotFoundError(DomainError):
    """Raised when a requested record does not exist."""
