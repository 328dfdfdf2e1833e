from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable

from ..common.stats import average, percent, round2
from ..core.enums import CertificateStatus
from .model import Certificate


@dataclass(frozen=True)
class CertificateStatistics:
    total: int = 0
    valid: int = 0
    revoked: int = 0
    replaced: int = 0
    printed: int = 0
    validity_rate: Decimal = Decimal("0")
    print_rate: Decimal = Decimal("0")
    average_print_count: Decimal = Decimal("0")
    total_prints: int = 0
    high_achievers: int = 0
    recent: int = 0


def by_status(certificates: Iterable[Certificate], status: str) -> list[Certificate]:
    wanted = CertificateStatus.parse(status)
    return [c for c in certificates if wanted is not None and c.status_enum is wanted]


def by_date_range(certificates: Iterable[Certificate], start_date: date, end_date: date) -> list[Certificate]:
    """Certificates issued between the two dates, both ends included."""
    return [c for c in certificates if start_date <= c.issue_date <= end_date]


def certificate_statistics(certificates: Iterable[Certificate]) -> CertificateStatistics:
    items = list(certificates)
    if not items:
        return CertificateStatistics()

    valid = sum(1 for c in items if c.is_valid)
    printed = sum(1 for c in items if c.is_printed)
    return CertificateStatistics(
        total=len(items),
        valid=valid,
        revoked=sum(1 for c in items if c.is_revoked),
        replaced=sum(1 for c in items if c.is_replaced),
        printed=printed,
        validity_rate=percent(valid, len(items)),
        print_rate=percent(printed, len(items)),
        average_print_count=round2(average(c.print_count for c in items)),
        total_prints=sum(c.print_count for c in items),
        high_achievers=sum(1 for c in items if c.achievement_level in ("Outstanding", "Excellent")),
        recent=sum(1 for c in items if c.age_category in ("New", "Recent")),
    )
