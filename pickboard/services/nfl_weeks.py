# pickboard/services/nfl_weeks.py
from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Optional, Tuple
from zoneinfo import ZoneInfo

NY = ZoneInfo("America/New_York")
MAX_WEEK = 18

# Week 1 kicks off the Thursday after Labor Day (first Monday of September).
# Picks columns go up early in the week, so a week runs Tue..Mon: the Tuesday
# after a Monday night game already belongs to the next week.


def _labor_day(year: int) -> date:
    d = date(year, 9, 1)
    return d + timedelta(days=(0 - d.weekday()) % 7)


def week1_thursday(season: int) -> date:
    ld = _labor_day(season)
    return ld + timedelta(days=(3 - ld.weekday()) % 7)


def season_week_for(day: date) -> Tuple[int, int]:
    """
    Map a calendar day to (season, week).
    Jan/Feb belong to the prior season; before week 1 maps to week 1 of the
    upcoming season; the result is clamped to 1..18.
    """
    season = day.year if day.month >= 3 else day.year - 1
    w1 = week1_thursday(season)
    week_start = w1 - timedelta(days=2)  # Tuesday before the opener
    if day < week_start:
        return season, 1
    wk = 1 + (day - week_start).days // 7
    return season, max(1, min(MAX_WEEK, wk))


def current_season_week(now: Optional[datetime] = None) -> Tuple[int, int]:
    today = (now or datetime.now(NY)).astimezone(NY).date()
    return season_week_for(today)
