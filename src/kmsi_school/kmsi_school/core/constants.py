"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

from decimal import Decimal

DEFAULT_LATE_GRACE_MINUTES = 5
DEFAULT_REPORT_DAYS = 30
DEFAULT_HISTORY_LIMIT = 50

MIN_LESSON_MINUTES = 5
MAX_LESSON_MINUTES = 480
MIN_EXAM_MINUTES = 15
MAX_EXAM_MINUTES = 480

DEFAULT_EXAM_CAPACITY = 10
MAX_REASONABLE_EXAM_CAPACITY = 100
DEFAULT_MAX_SCORE = Decimal("100")
PASS_PERCENTAGE = Decimal("70")
RETAKE_PERCENTAGE = Decimal("50")
POINTS_TO_PASS_RATIO = Decimal("0.6")

DEFAULT_TAX_RATE = Decimal("0.05")
MONEY_QUANTUM = Decimal("0.01")
MONEY_TOLERANCE = Decimal("0.01")
STANDARD_HOURS_PER_DAY = 8
MAX_HOURS_PER_DAY = 12
PAYROLL_OVERDUE_DAYS = 30

DEFAULT_MAX_STUDENTS_PER_DAY = 8
PRIMARY_BOOK_SORT_ORDER = 3
REQUIRED_BOOK_SORT_ORDER = 1
OPTIONAL_BOOK_SORT_ORDER = 100
MAX_GRADE_BOOK_QUANTITY = 999
MAX_REQUISITION_QUANTITY = 10000

PROMOTION_MIN_COMPLETION = 80
AUDIT_FUTURE_SKEW_MINUTES = 5
DEFAULT_ISSUER = "KMSI"
