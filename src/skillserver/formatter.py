"""Timetable lookup and reply formatting."""

from collections.abc import Mapping, Sequence

from src.skillserver.models import PeriodEntry, ResolvedQuery

NO_CLASS_TODAY = "오늘은 수업이 없어요!"


def lookup(
    table: Mapping[int, Mapping[int, Mapping[int, Sequence[PeriodEntry]]]],
    grade: int,
    classroom: int,
    day_index: int,
) -> list[PeriodEntry]:
    """Return the periods at table[grade][classroom][day_index].

    A missing key at any level means "no data" and yields an empty list.
    """
    classes = table.get(grade)
    if classes is None:
        return []
    days = classes.get(classroom)
    if days is None:
        return []
    entries = days.get(day_index)
    if entries is None:
        return []
    return list(entries)


def format_header(weekday_name: str, query: ResolvedQuery) -> str:
    return f"{weekday_name} — {query.grade}학년 {query.classroom}반 시간표"


def format_schedule(weekday_name: str, query: ResolvedQuery, entries: Sequence[PeriodEntry]) -> str:
    """Render the reply text.

    Periods keep the order the schedule source returned them in.
    """
    if entries:
        body = "\n".join(f"{entry.period}교시: {entry.subject}" for entry in entries)
    else:
        body = NO_CLASS_TODAY
    return f"{format_header(weekday_name, query)}\n\n{body}"
