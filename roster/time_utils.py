"""Org timezone and schedule-week helpers.

A schedule week is identified by its ISO year/week ("2025-03", "2025-W03" is
accepted on input) and runs Sunday..Saturday, day 0 being the Sunday before the
ISO Monday.
"""
import re
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from roster.config import get_settings

_WEEK_RE = re.compile(r"^(\d{4})-W?(\d{2})$")


def org_tz() -> ZoneInfo:
    """Org timezone (e.g. America/Toronto)."""
    return ZoneInfo(get_settings().org_timezone)


def org_now() -> datetime:
    """Current datetime in org timezone (timezone-aware)."""
    return datetime.now(org_tz())


def org_today() -> date:
    return org_now().date()


def normalize_week(week: str) -> str:
    """Return the canonical "YYYY-WW" form, raising ValueError for anything that is not an ISO week."""
    match = _WEEK_RE.match((week or "").strip())
    if not match:
        raise ValueError(f"Invalid week {week!r}; expected YYYY-WW")
    year, number = int(match.group(1)), int(match.group(2))
    try:
        date.fromisocalendar(year, number, 1)
    except ValueError as exc:
        raise ValueError(f"Week {number} does not exist in {year}") from exc
    return f"{year:04d}-{number:02d}"


def week_start(week: str) -> date:
    year, number = (int(part) for part in normalize_week(week).split("-"))
    return date.fromisocalendar(year, number, 1) - timedelta(days=1)


def week_bounds(week: str) -> tuple[date, date]:
    start = week_start(week)
    return start, start + timedelta(days=6)


def day_date(week: str, day_of_week: int) -> date:
    return week_start(week) + timedelta(days=day_of_week)


def week_of(d: date) -> str:
    """Schedule week containing the given calendar date."""
    # Sundays belong to the following ISO week.
    iso = (d + timedelta(days=1)).isocalendar()
    return f"{iso[0]:04d}-{iso[1]:02d}"
