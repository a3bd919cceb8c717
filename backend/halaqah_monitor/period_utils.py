# backend/halaqah_monitor/period_utils.py
from datetime import date
from typing import Optional, Tuple

MONTHS = [
    "Januari", "Februari", "Maret", "April", "Mei", "Juni",
    "Juli", "Agustus", "September", "Oktober", "November", "Desember",
]

MIN_YEAR = 2000
MAX_YEAR = 2100


def ensure_valid_period(year: int, month: int) -> Tuple[int, int]:
    """Raise ValueError unless (year, month) is a real calendar month."""
    if not (1 <= int(month) <= 12):
        raise ValueError(f"month must be between 1 and 12, got {month!r}")
    if not (MIN_YEAR <= int(year) <= MAX_YEAR):
        raise ValueError(f"year out of range: {year!r}")
    return int(year), int(month)


def parse_period(s: Optional[str]) -> Optional[Tuple[int, int]]:
    """Parse a YYYY-MM string into (year, month), or return None for falsy input."""
    if s is None or s == "":
        return None
    try:
        year_s, month_s = s.strip().split("-", 1)
        return ensure_valid_period(int(year_s), int(month_s))
    except ValueError:
        raise ValueError(f"Invalid period format, expected YYYY-MM: {s!r}")


def current_period(today: Optional[date] = None) -> Tuple[int, int]:
    today = today or date.today()
    return today.year, today.month


def previous_period(today: Optional[date] = None) -> Tuple[int, int]:
    """The month review screens open on by default."""
    year, month = current_period(today)
    if month == 1:
        return year - 1, 12
    return year, month - 1


def month_name(month: int) -> str:
    return MONTHS[month - 1] if 1 <= month <= 12 else str(month)


def period_label(year: int, month: int) -> str:
    return f"{month_name(month)} {year}"
