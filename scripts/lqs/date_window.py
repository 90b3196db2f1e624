"""
LQS Analytics — Date Window
=============================

Turns the caller's optional date range into a report mode:

  no range  -> Pipeline Mode (current-status snapshot)
  a range   -> Activity Mode (events inside the window)

Also owns the calendar helpers shared by the aggregators: preset ranges,
spend month bounds and trend period keys.
"""
from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta
from typing import Any, Optional, Tuple

from models.lqs_models import DateRange, ReportMode
from scripts.lib.errors import InvalidDateRangeError, InvalidViewModeError
from scripts.lib.utils import to_date

# Windows up to this many days trend weekly, longer ones monthly
WEEKLY_TREND_MAX_DAYS = 90
# Span assumed for trends when no window is given
DEFAULT_TREND_SPAN_DAYS = 365

DATE_RANGE_PRESETS = ("last30", "last60", "last90", "quarter", "ytd", "all")


def make_date_range(start: Any, end: Any) -> Optional[DateRange]:
    """
    Build an inclusive DateRange from dates, datetimes or ISO strings.

    Both ends missing means "no window" and returns None. One end missing,
    an unparseable value, or end before start raises InvalidDateRangeError.
    """
    if start in (None, "") and end in (None, ""):
        return None

    start_day, end_day = to_date(start), to_date(end)
    if start_day is None or end_day is None:
        raise InvalidDateRangeError(
            "Date range needs both a valid start and end", start=start, end=end,
        )
    if end_day < start_day:
        raise InvalidDateRangeError(
            f"Date range ends ({end_day}) before it starts ({start_day})",
            start=start_day, end=end_day,
        )
    return DateRange(start=start_day, end=end_day)


def classify_window(date_range: Optional[DateRange]) -> ReportMode:
    """Pipeline Mode without a window, Activity Mode with one."""
    return ReportMode.PIPELINE if date_range is None else ReportMode.ACTIVITY


def date_range_from_preset(preset: str, today: date = None) -> Optional[DateRange]:
    """
    Resolve a dashboard preset to a DateRange ending today.

    Presets: last30, last60, last90, quarter (quarter start to today),
    ytd (Jan 1 to today), all (no window).
    """
    today = today or datetime.now().date()

    if preset == "all":
        return None
    if preset in ("last30", "last60", "last90"):
        days = int(preset[4:])
        return DateRange(start=today - timedelta(days=days), end=today)
    if preset == "quarter":
        quarter_month = 3 * ((today.month - 1) // 3) + 1
        return DateRange(start=date(today.year, quarter_month, 1), end=today)
    if preset == "ytd":
        return DateRange(start=date(today.year, 1, 1), end=today)

    raise InvalidViewModeError(preset, list(DATE_RANGE_PRESETS))


def spend_month_bounds(date_range: DateRange) -> Tuple[date, date]:
    """First day of the start month and last day of the end month."""
    start = date_range.start.replace(day=1)
    last_day = calendar.monthrange(date_range.end.year, date_range.end.month)[1]
    return start, date_range.end.replace(day=last_day)


# ---------------------------------------------------------------------------
# Trend periods
# ---------------------------------------------------------------------------

def use_weekly_buckets(date_range: Optional[DateRange]) -> bool:
    span = date_range.span_days if date_range else DEFAULT_TREND_SPAN_DAYS
    return span <= WEEKLY_TREND_MAX_DAYS


def period_key(day: date, weekly: bool) -> str:
    """Monday of the ISO week ('YYYY-MM-DD') or the month ('YYYY-MM')."""
    if weekly:
        return (day - timedelta(days=day.weekday())).isoformat()
    return day.strftime("%Y-%m")


def period_label(key: str, weekly: bool) -> str:
    """'Jan 5' for weekly keys, 'Jan 2025' for monthly keys."""
    if weekly:
        day = date.fromisoformat(key)
        return f"{day.strftime('%b')} {day.day}"
    return date.fromisoformat(f"{key}-01").strftime("%b %Y")
