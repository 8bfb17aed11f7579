from __future__ import annotations

"""Calendar keys used to scope daily sessions and weekly standings."""

from datetime import date, datetime, timedelta
from typing import Optional


def local_date_key(now: Optional[datetime] = None) -> str:
    """Local calendar day as YYYY-MM-DD."""
    now = now or datetime.now()
    return now.strftime("%Y-%m-%d")


def parse_date_key(key: str) -> date:
    return datetime.strptime(key, "%Y-%m-%d").date()


def week_id_for(day: date | datetime | str | None = None) -> str:
    """ISO-8601 week id (YYYY-Www) for a day; defaults to today."""
    if day is None:
        day = date.today()
    elif isinstance(day, str):
        day = parse_date_key(day)
    elif isinstance(day, datetime):
        day = day.date()
    year, week, _ = day.isocalendar()
    return f"{year}-W{week:02d}"


def previous_week_id(day: date | str | None = None) -> str:
    if day is None:
        day = date.today()
    elif isinstance(day, str):
        day = parse_date_key(day)
    return week_id_for(day - timedelta(days=7))


def ms_until_next_midnight(now: Optional[datetime] = None) -> int:
    now = now or datetime.now()
    midnight = datetime.combine(now.date() + timedelta(days=1), datetime.min.time(), tzinfo=now.tzinfo)
    return max(0, int((midnight - now).total_seconds() * 1000))


def format_mmss(ms: int) -> str:
    total_s = max(0, int(ms)) // 1000
    return f"{total_s // 60}:{total_s % 60:02d}"


def format_hhmmss(ms: int) -> str:
    total_s = max(0, int(ms)) // 1000
    h, rem = divmod(total_s, 3600)
    m, s = divmod(rem, 60)
    return f"{h:02d}:{m:02d}:{s:02d}"
