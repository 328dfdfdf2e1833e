from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class OperationResult:
    """Outcome of a guarded mutation.

    Falsy on failure so callers can write ``if not cert.revoke_certificate(...)``.
    The entity is left untouched whenever ``ok`` is False.
    """

    ok: bool
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def success(cls) -> "OperationResult":
        return cls(ok=True)

    @classmethod
    def failure(cls, reason: str) -> "OperationResult":
        return cls(ok=False, reason=reason)
