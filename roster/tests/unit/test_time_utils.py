"""Unit tests for org timezone and schedule-week helpers."""
from datetime import date, datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from roster.config import get_settings
from roster.time_utils import day_date, normalize_week, org_today, org_tz, week_bounds, week_of


@pytest.mark.unit
def test_org_today_toronto_late_evening():
    """At 2026-02-19 21:35 Toronto (EST), org_today() is 2026-02-19."""
    est = timezone(timedelta(hours=-5))
    fixed_now = datetime(2026, 2, 19, 21, 35, 0, tzinfo=est)
    with patch("roster.time_utils.org_now", return_value=fixed_now):
        assert org_today() == date(2026, 2, 19)


@pytest.mark.unit
def test_org_tz_returns_org_timezone():
    assert org_tz().key == get_settings().org_timezone


@pytest.mark.unit
@pytest.mark.parametrize("raw", ["2025-03", "2025-W03", " 2025-03 "])
def test_normalize_week_accepts_both_forms(raw):
    assert normalize_week(raw) == "2025-03"


@pytest.mark.unit
@pytest.mark.parametrize("raw", ["", "2025-3", "25-03", "2025-00", "2025-53", "2025/03", "March"])
def test_normalize_week_rejects_garbage(raw):
    with pytest.raises(ValueError):
        normalize_week(raw)


@pytest.mark.unit
def test_week_runs_sunday_to_saturday():
    """2025-W03 starts Monday 2025-01-13, so the schedule week is Sun 12th .. Sat 18th."""
    assert week_bounds("2025-03") == (date(2025, 1, 12), date(2025, 1, 18))
    assert day_date("2025-03", 0).weekday() == 6
    assert day_date("2025-03", 1) == date(2025, 1, 13)
    assert day_date("2025-03", 6) == date(2025, 1, 18)


@pytest.mark.unit
def test_week_of_round_trips_every_day():
    for offset in range(7):
        assert week_of(date(2025, 1, 12) + timedelta(days=offset)) == "2025-03"
    assert week_of(date(2025, 1, 19)) == "2025-04"


@pytest.mark.unit
def test_week_spanning_year_boundary():
    """2026-W01 starts Monday 2025-12-29."""
    assert week_bounds("2026-01") == (date(2025, 12, 28), date(2026, 1, 3))
    assert week_of(date(2025, 12, 28)) == "2026-01"
