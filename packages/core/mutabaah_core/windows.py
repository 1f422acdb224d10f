from __future__ import annotations

from datetime import UTC, date, datetime, timedelta
from zoneinfo import ZoneInfo

from mutabaah_core.catalog import CHALLENGE_END, CHALLENGE_START


EDIT_WINDOW_DAYS = 2


def local_today(*, now_utc: datetime, tz: str) -> date:
    if getattr(now_utc, "tzinfo", None) is None:
        now_utc = now_utc.replace(tzinfo=UTC)
    return now_utc.astimezone(ZoneInfo(tz)).date()


def is_editable(day: date, *, today: date, window_days: int = EDIT_WINDOW_DAYS) -> bool:
    # Future dates are never editable.
    delta = (today - day).days
    return 0 <= delta <= int(window_days)


def within_challenge(
    day: date, *, start: date = CHALLENGE_START, end: date = CHALLENGE_END
) -> bool:
    return start <= day <= end


def challenge_active(
    *, today: date, start: date = CHALLENGE_START, end: date = CHALLENGE_END
) -> bool:
    return within_challenge(today, start=start, end=end)


def challenge_day(day: date, *, start: date = CHALLENGE_START) -> int:
    """1-based day number within the challenge (0 or negative before start)."""
    return (day - start).days + 1


def editable_dates(
    *,
    today: date,
    window_days: int = EDIT_WINDOW_DAYS,
    start: date = CHALLENGE_START,
    end: date = CHALLENGE_END,
) -> list[date]:
    """Dates a user may still check in for, oldest first, clipped to the challenge."""
    out: list[date] = []
    for days_ago in range(int(window_days), -1, -1):
        day = today - timedelta(days=days_ago)
        if within_challenge(day, start=start, end=end):
            out.append(day)
    return out
