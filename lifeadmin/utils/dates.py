"""
Day-window helpers for the notification sweeps.

All values are naive datetimes in server local time. A day window runs from
00:00:00.000 to 23:59:59.999 inclusive, so consecutive windows never overlap.
"""

from datetime import datetime, time, timedelta
from typing import Callable, Optional

Clock = Callable[[], datetime]

END_OF_DAY = time(23, 59, 59, 999000)


def system_clock() -> datetime:
    return datetime.now()


def start_of_day(moment: datetime) -> datetime:
    return datetime.combine(moment.date(), time.min)


def end_of_day(moment: datetime) -> datetime:
    return datetime.combine(moment.date(), END_OF_DAY)


def day_window(now: datetime, offset_days: int = 0) -> tuple[datetime, datetime]:
    """[start, end] of the day ``offset_days`` away from ``now`` (-1 yesterday, 1 tomorrow)"""
    day = now + timedelta(days=offset_days)
    return start_of_day(day), end_of_day(day)


def end_of_today(now: datetime) -> datetime:
    return end_of_day(now)


def end_of_yesterday(now: datetime) -> datetime:
    return end_of_day(now - timedelta(days=1))


def format_date(value: Optional[datetime]) -> str:
    """Short date for notification text, e.g. 10/17/2026"""
    if not value:
        return ""
    return f"{value.month}/{value.day}/{value.year}"


def format_datetime(value: Optional[datetime]) -> str:
    """Date and time for notification text, e.g. 10/17/2026, 2:30 PM"""
    if not value:
        return ""
    hour = value.hour % 12 or 12
    meridiem = "AM" if value.hour < 12 else "PM"
    return f"{format_date(value)}, {hour}:{value.minute:02d} {meridiem}"


def seconds_until_next_hour(now: datetime) -> float:
    next_hour = now.replace(minute=0, second=0, microsecond=0) + timedelta(hours=1)
    return (next_hour - now).total_seconds()
