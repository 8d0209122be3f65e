"""Date and month-token utilities."""

import calendar
import re
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

from smart_dca.config import settings

MONTH_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"
_MONTH_RE = re.compile(MONTH_PATTERN)


def now_utc_naive() -> datetime:
    """
    Current time in UTC, returned as naive datetime for DB storage.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def local_today() -> date:
    """Today's date in the configured TIMEZONE."""
    return datetime.now(ZoneInfo(settings.TIMEZONE)).date()


def current_month(today: date | None = None) -> str:
    """Return the YYYY-MM token for today (or the given date)."""
    today = today or local_today()
    return f"{today.year:04d}-{today.month:02d}"


def parse_month(month: str) -> tuple[int, int]:
    """Split a YYYY-MM token into (year, month)."""
    if not month or not _MONTH_RE.match(month):
        raise ValueError(f"Invalid month token: {month!r} (expected YYYY-MM)")
    year, month_num = month.split("-")
    return int(year), int(month_num)


def day_in_month(month: str, day: int) -> date:
    """
    Build a calendar date inside a YYYY-MM month.

    Days beyond the end of the month are clamped to its last day.
    """
    year, month_num = parse_month(month)
    last_day = calendar.monthrange(year, month_num)[1]
    return date(year, month_num, max(1, min(day, last_day)))
