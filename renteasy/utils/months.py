"""
Calendar month tokens in "YYYY-MM" form.

Rent is charged per calendar month, and every month a rental touches is stored
as a token such as ``"2025-03"``. Tokens sort lexically in calendar order, so
comparisons never need a date object. Every helper here is pure and tolerant:
malformed input yields ``None`` (or an empty list) rather than an exception,
and callers decide how to report it.
"""

from datetime import datetime, timezone
from typing import Iterable, List, Optional, Tuple
import re

MONTH_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")

# Upper bound for month scans (20 years of rent)
MAX_MONTH_SCAN = 240

_MONTH_ABBREVIATIONS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


def is_valid_month(value) -> bool:
    """Check whether a value is a well-formed month token."""
    if not isinstance(value, str):
        return False
    return bool(MONTH_PATTERN.match(value))


def parse_month(value) -> Optional[Tuple[int, int]]:
    """
    Parse a month token.

    Args:
        value: Token to parse; surrounding whitespace is ignored

    Returns:
        Tuple of (year, zero-based month index), or None if malformed
    """
    if not value:
        return None

    normalized = str(value).strip()
    if not MONTH_PATTERN.match(normalized):
        return None

    year_text, month_text = normalized.split("-")
    return int(year_text), int(month_text) - 1


def format_month(year: int, month_index: int) -> Optional[str]:
    """
    Build a month token from a year and zero-based month index.

    Returns:
        Month token, or None if the month index is outside 0..11
    """
    if year is None or month_index is None:
        return None

    safe_month = int(month_index) + 1
    if safe_month < 1 or safe_month > 12:
        return None

    return f"{int(year):04d}-{safe_month:02d}"


def add_months(value, amount: int) -> Optional[str]:
    """
    Shift a month token by a signed number of months.

    Args:
        value: Month token
        amount: Number of months to add (negative moves backwards)

    Returns:
        Shifted month token, or None if the input is malformed
    """
    parsed = parse_month(value)
    if parsed is None or amount is None:
        return None

    year, month_index = parsed
    total_months = year * 12 + month_index + int(amount)
    return format_month(total_months // 12, total_months % 12)


def compare_months(a: Optional[str], b: Optional[str]) -> int:
    """
    Three-way comparison of month tokens.

    A missing token sorts before any present one.
    """
    if a == b:
        return 0
    if not a:
        return -1
    if not b:
        return 1
    return -1 if a < b else 1


def list_months(start: Optional[str], end: Optional[str]) -> List[str]:
    """Inclusive list of months from start to end."""
    if not start or not end:
        return []
    if compare_months(start, end) > 0:
        return []

    months = []
    current = start
    while current and compare_months(current, end) <= 0 and len(months) < MAX_MONTH_SCAN:
        months.append(current)
        current = add_months(current, 1)
    return months


def month_label(value) -> str:
    """Short human label such as "Mar 2025"; malformed input is returned as-is."""
    parsed = parse_month(value)
    if parsed is None:
        return value

    year, month_index = parsed
    return f"{_MONTH_ABBREVIATIONS[month_index]} {year}"


def current_month(moment: Optional[datetime] = None) -> str:
    """Month token for a moment in time (defaults to now, UTC)."""
    moment = moment or datetime.now(timezone.utc)
    return format_month(moment.year, moment.month - 1)


def next_unpaid_month(start_month: Optional[str], paid: Iterable[str]) -> Optional[str]:
    """
    First month at or after start_month that is not in paid.

    Returns:
        Month token, or None if start_month is missing or every scanned month is paid
    """
    if not start_month:
        return None

    paid_set = paid if isinstance(paid, (set, frozenset)) else set(paid or [])
    current = start_month
    scanned = 0
    while current and scanned < MAX_MONTH_SCAN:
        if current not in paid_set:
            return current
        current = add_months(current, 1)
        scanned += 1
    return None
