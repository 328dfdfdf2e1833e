from __future__ import annotations

from datetime import date, time
from decimal import Decimal

import pytest

from kmsi_school.common.datetime_utils import add_months, format_minutes, minutes_between
from kmsi_school.common.numbering import next_sequence_number
from kmsi_school.common.stats import average, median, percent, round2, safe_ratio
from kmsi_school.common.validators import (
    is_code,
    is_ip_address,
    is_valid_json,
    require_min_length,
    require_non_empty,
    require_range,
)
from kmsi_school.core.exceptions import ValidationError


def test_require_helpers():
    assert require_non_empty("  Piano  ", "Name") == "Piano"
    assert require_min_length("Piano", "Name", 3) == "Piano"
    assert require_range(50, "Score", 0, 100) == 50

    with pytest.raises(ValidationError, match="Name is required"):
        require_non_empty(" ", "Name")
    with pytest.raises(ValidationError, match="at least 3 characters"):
        require_min_length("Pi", "Name", 3)
    with pytest.raises(ValidationError, match="between 0 and 100"):
        require_range(101, "Score", 0, 100)


def test_predicates():
    assert is_code("CERT-KMSI-0001")
    assert not is_code("cert-1")
    assert is_valid_json(None)
    assert not is_valid_json("{oops")
    assert is_ip_address("::1")
    assert not is_ip_address("300.1.1.1")


def test_stats():
    assert safe_ratio(1, 0) == Decimal("0")
    assert percent(2, 3) == Decimal("66.67")
    assert round2(Decimal("2.345")) == Decimal("2.35")
    assert average([]) is None
    assert average([1, 2]) == Decimal("1.5")
    assert median([5, 1, 3]) == Decimal("3")
    assert median([4, 1, 3, 2]) == Decimal("2.5")


def test_dates_and_durations():
    assert minutes_between(time(9, 0), time(8, 30)) == -30
    assert minutes_between(None, time(8, 30)) is None
    assert format_minutes(120) == "2h"
    assert add_months(date(2025, 1, 31), 1) == date(2025, 2, 28)
    assert add_months(date(2024, 11, 15), 3) == date(2025, 2, 15)


def test_sequence_numbers_skip_foreign_entries():
    existing = ["PAY-T001-202503-002", "PAY-T001-202503-abc", "PAY-T002-202503-009", "PAY-T001-202503-001-X"]

    assert next_sequence_number("PAY-T001-202503", existing, parts=4, width=3) == "PAY-T001-202503-003"
    assert next_sequence_number("EX-JKT", [], parts=3, width=2) == "EX-JKT-01"
