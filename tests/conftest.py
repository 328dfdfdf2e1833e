from __future__ import annotations

from datetime import datetime

import pytest

from kmsi_school.audit.service import Actor, AuditTrail
from kmsi_school.common import datetime_utils

FROZEN_NOW = datetime(2025, 3, 10, 10, 0)


class InMemoryAuditLogs:
    def __init__(self):
        self.logs = []

    def add(self, log) -> int:
        self.logs.append(log)
        return len(self.logs)

    def list_for_record(self, table_name: str, record_id: int):
        return [l for l in self.logs if l.table_name == table_name and l.record_id == record_id]

    def list_recent(self, company_id: int, *, limit: int):
        items = [l for l in self.logs if l.company_id == company_id]
        return list(reversed(items))[:limit]


@pytest.fixture(autouse=True)
def frozen_clock(monkeypatch):
    monkeypatch.setattr(datetime_utils, "now_local", lambda: FROZEN_NOW)
    return FROZEN_NOW


@pytest.fixture
def audit_logs():
    return InMemoryAuditLogs()


@pytest.fixture
def audit(audit_logs):
    return AuditTrail(audit_logs)


@pytest.fixture
def actor():
    return Actor(user_id=7, company_id=1, ip_address="127.0.0.1", user_agent="Mozilla/5.0 (Windows NT 10.0) Chrome/120")
