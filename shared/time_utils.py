"""
Local time helpers.

Business dates (booking start, monthly revenue, export file names) are
evaluated in the configured TIMEZONE, not in UTC.
"""

from datetime import date, datetime
from zoneinfo import ZoneInfo

from shared.config import get_settings


def local_tz() -> ZoneInfo:
    return ZoneInfo(get_settings().TIMEZONE)


def local_now() -> datetime:
    """Current aware datetime in the configured timezone."""
    return datetime.now(local_tz())


def local_today() -> date:
    return local_now().date()


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First day of the month and first day of the following month."""
    start = date(year, month, 1)
    end = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    return start, end


def previous_month(year: int, month: int) -> tuple[int, int]:
    return (year - 1, 12) if month == 1 else (year, month - 1)


def timestamp_for_filename(moment: datetime | None = None) -> str:
    """'2025-10-25_212432' style stamp used in export and backup names."""
    return (moment or local_now()).strftime("%Y-%m-%d_%H%M%S")
