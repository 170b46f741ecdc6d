"""Day resolution in Korea Standard Time.

KST is a fixed UTC+9 offset with no daylight saving, so it is applied
explicitly instead of relying on the host timezone.
"""

from datetime import date, datetime, timedelta, timezone
from typing import NamedTuple

KST = timezone(timedelta(hours=9), name="KST")

# Sunday-first, matching the schedule source's calendar convention
WEEKDAY_NAMES: tuple[str, ...] = (
    "일요일",
    "월요일",
    "화요일",
    "수요일",
    "목요일",
    "금요일",
    "토요일",
)

# Timetable column per school day; weekends have no column
DAY_INDEX: dict[str, int] = {
    "월요일": 0,
    "화요일": 1,
    "수요일": 2,
    "목요일": 3,
    "금요일": 4,
}


class ResolvedDay(NamedTuple):
    date: date
    weekday_name: str
    index: int | None  # None on weekends

    @property
    def is_school_day(self) -> bool:
        return self.index is not None


def kst_today(now: datetime | None = None) -> date:
    """Current calendar date in KST.

    Args:
        now: Reference instant. Naive values are taken as UTC. Defaults to now.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(KST).date()


def weekday_name(day: date) -> str:
    # date.weekday() is Monday-first; shift to the Sunday-first table
    return WEEKDAY_NAMES[(day.weekday() + 1) % 7]


def resolve_day(offset: int = 0, now: datetime | None = None) -> ResolvedDay:
    """Map a day offset relative to today (KST) to a weekday name and lookup index.

    Args:
        offset: Days after today, 0 for today and 1 for tomorrow.
        now: Reference instant, injectable for tests.

    Raises:
        ValueError: If offset is negative.
    """
    if offset < 0:
        raise ValueError(f"offset must be >= 0, got {offset}")

    target = kst_today(now) + timedelta(days=offset)
    name = weekday_name(target)
    return ResolvedDay(date=target, weekday_name=name, index=DAY_INDEX.get(name))
