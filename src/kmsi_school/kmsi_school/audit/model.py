from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Optional

from ..common import datetime_utils
from ..common.datetime_utils import plural
from ..common.validators import is_identifier, is_ip_address, is_valid_json
from ..core.constants import AUDIT_FUTURE_SKEW_MINUTES
from ..core.enums import AuditAction
from ..users.model import User
from . import snapshots

_DESCRIPTIONS = {
    AuditAction.INSERT: "Created",
    AuditAction.UPDATE: "Modified",
    AuditAction.DELETE: "Deleted",
}

_SYSTEMS = (
    ("Windows", "Windows"),
    ("Mac OS", "macOS"),
    ("Linux", "Linux"),
    ("Android", "Android"),
    ("iOS", "iOS"),
)


@dataclass
class AuditLog:
    """Who changed which record, with before/after JSON snapshots."""

    company_id: int
    user_id: int
    table_name: str
    record_id: int
    action: str
    old_values: Optional[str] = None
    new_values: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    action_date: datetime = field(default_factory=lambda: datetime_utils.now_local())
    audit_log_id: Optional[int] = None

    user: Optional[User] = field(default=None, repr=False, compare=False)

    @property
    def action_enum(self) -> Optional[AuditAction]:
        return AuditAction.parse(self.action)

    @property
    def action_description(self) -> str:
        return _DESCRIPTIONS.get(self.action_enum, self.action)

    @property
    def entity_display(self) -> str:
        return f"{self.table_name} (ID: {self.record_id})"

    @property
    def summary(self) -> str:
        who = self.user.full_name if self.user else "Unknown User"
        return f"{who} {self.action_description.lower()} {self.table_name} record {self.record_id}"

    @property
    def display_name(self) -> str:
        return f"{self.action_description} {self.table_name} - {self.action_date:%b %d, %Y %H:%M}"

    @property
    def time_ago(self) -> str:
        elapsed = datetime_utils.now_local() - self.action_date
        minutes = int(elapsed.total_seconds() // 60)
        if minutes < 1:
            return "Just now"
        if minutes < 60:
            return f"{plural(minutes, 'minute')} ago"
        hours = minutes // 60
        if hours < 24:
            return f"{plural(hours, 'hour')} ago"
        days = elapsed.days
        if days < 30:
            return f"{plural(days, 'day')} ago"
        if days < 365:
            return f"{plural(days // 30, 'month')} ago"
        return f"{plural(days // 365, 'year')} ago"

    @property
    def browser(self) -> str:
        ua = self.user_agent
        if not ua:
            return "Unknown"
        if "Chrome" in ua:
            return "Chrome"
        if "Firefox" in ua:
            return "Firefox"
        # Chrome user agents also mention Safari
        if "Safari" in ua:
            return "Safari"
        if "Edge" in ua:
            return "Edge"
        if "Opera" in ua:
            return "Opera"
        return "Other"

    @property
    def operating_system(self) -> str:
        ua = self.user_agent
        if not ua:
            return "Unknown"
        for marker, name in _SYSTEMS:
            if marker in ua:
                return name
        return "Other"

    @property
    def is_recent(self) -> bool:
        return datetime_utils.now_local() - self.action_date < timedelta(hours=24)

    @property
    def has_changes(self) -> bool:
        return bool(self.old_values) or bool(self.new_values)

    # ---- snapshots ----------------------------------------------------

    def old_values_dict(self) -> Optional[dict[str, Any]]:
        return snapshots.loads(self.old_values)

    def new_values_dict(self) -> Optional[dict[str, Any]]:
        return snapshots.loads(self.new_values)

    def get_changes(self) -> dict[str, tuple[Any, Any]]:
        """key -> (old, new) for every key whose value differs.

        Either snapshot being malformed yields an empty result.
        """
        old, new = snapshots.loads(self.old_values), snapshots.loads(self.new_values)
        for text, parsed in ((self.old_values, old), (self.new_values, new)):
            if parsed is None and text and text.strip():
                return {}
        old, new = old or {}, new or {}

        changes: dict[str, tuple[Any, Any]] = {}
        for key in list(old) + [k for k in new if k not in old]:
            before, after = old.get(key), new.get(key)
            if before != after:
                changes[key] = (before, after)
        return changes

    def change_summary(self) -> str:
        changes = self.get_changes()
        if not changes:
            if self.action_enum is AuditAction.INSERT:
                return "Record created"
            if self.action_enum is AuditAction.DELETE:
                return "Record deleted"
            return "No changes detected"
        return "; ".join(
            f"{key}: '{'null' if old is None else old}' → '{'null' if new is None else new}'"
            for key, (old, new) in changes.items()
        )

    def validate(self) -> list[str]:
        errors: list[str] = []
        if self.action_enum is None:
            errors.append(f"Action must be one of: {AuditAction.choices_text()}")
        if self.table_name and not is_identifier(self.table_name):
            errors.append("Table name must be a valid database table identifier")
        if self.record_id <= 0:
            errors.append("Record ID must be a positive integer")
        if self.ip_address and not is_ip_address(self.ip_address):
            errors.append("IP Address format is invalid")
        if self.old_values and not is_valid_json(self.old_values):
            errors.append("Old values must be valid JSON")
        if self.new_values and not is_valid_json(self.new_values):
            errors.append("New values must be valid JSON")
        if self.action_date > datetime_utils.now_local() + timedelta(minutes=AUDIT_FUTURE_SKEW_MINUTES):
            errors.append("Action date cannot be in the future")
        return errors

    # ---- factories ----------------------------------------------------

    @classmethod
    def create_insert_log(
        cls,
        *,
        company_id: int,
        user_id: int,
        table_name: str,
        record_id: int,
        new_values: Any,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> "AuditLog":
        return cls(
            company_id=company_id,
            user_id=user_id,
            table_name=table_name,
            record_id=record_id,
            action=AuditAction.INSERT.value,
            new_values=snapshots.dumps(new_values),
            ip_address=ip_address,
            user_agent=user_agent,
        )

    @classmethod
    def create_update_log(
        cls,
        *,
        company_id: int,
        user_id: int,
        table_name: str,
        record_id: int,
        old_values: Any,
        new_values: Any,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> "AuditLog":
        return cls(
            company_id=company_id,
            user_id=user_id,
            table_name=table_name,
            record_id=record_id,
            action=AuditAction.UPDATE.value,
            old_values=snapshots.dumps(old_values),
            new_values=snapshots.dumps(new_values),
            ip_address=ip_address,
            user_agent=user_agent,
        )

    @classmethod
    def create_delete_log(
        cls,
        *,
        company_id: int,
        user_id: int,
        table_name: str,
        record_id: int,
        old_values: Any,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> "AuditLog":
        return cls(
            company_id=company_id,
            user_id=user_id,
            table_name=table_name,
            record_id=record_id,
            action=AuditAction.DELETE.value,
            old_values=snapshots.dumps(old_values),
            ip_address=ip_address,
            user_agent=user_agent,
        )
