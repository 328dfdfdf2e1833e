from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class User:
    """Login account linked to a teacher or staff member.

    Credentials live with the hosting application; only what the domain
    rules need is kept here.
    """

    user_id: int
    full_name: str
    username: str
    company_id: int
    site_id: Optional[int]
    level_code: str
    is_active: bool = True
