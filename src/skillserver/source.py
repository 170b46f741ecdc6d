"""Schedule source boundary: the Comcigan adapter and the memoized table.

The timetable library is treated as an opaque collaborator. Whatever shape its
rows have, they are converted once here into PeriodEntry objects, so the rest
of the server only ever sees

    TimetableTable = {grade: {classroom: {day_index: [PeriodEntry, ...]}}}

with 1-based grade/classroom keys and day_index 0 (Monday) to 4 (Friday).
"""

import asyncio
import time
from collections.abc import Callable, Mapping, Sequence
from typing import Protocol

from pycomcigan import TimeTable, get_school_code

from src.skillserver.errors import NotReadyError, UpstreamFetchError
from src.skillserver.logging import get_logger
from src.skillserver.models import PeriodEntry, SchoolInfo
from src.skillserver.utils import first_field, parse_int

log = get_logger(__name__)

TimetableTable = dict[int, dict[int, dict[int, list[PeriodEntry]]]]

PERIOD_FIELDS: tuple[str, ...] = ("classTime", "period", "time", "시간")
SUBJECT_FIELDS: tuple[str, ...] = ("subject", "name", "과목")
UNKNOWN_SUBJECT = "알 수 없는 과목"

# Library weekday slots: 0 is a placeholder, 1 (Monday) to 5 (Friday)
LIBRARY_SCHOOL_DAYS = range(1, 6)


class ScheduleSource(Protocol):
    """What the server needs from a timetable provider. All calls may block."""

    def initialize(self, cache_seconds: int) -> None: ...

    def search(self, school_name: str) -> list[SchoolInfo]: ...

    def select_school(self, school: SchoolInfo) -> None: ...

    def fetch_full_timetable(self) -> TimetableTable: ...


def normalize_entry(raw: object, position: int) -> PeriodEntry | None:
    """Convert one raw library row into a PeriodEntry.

    Args:
        raw: Mapping, attribute object or bare subject string.
        position: 1-based position within the day, used when no period is given.

    Returns:
        PeriodEntry, or None for an empty slot (subject present but blank).
    """
    if isinstance(raw, str):
        subject = raw.strip()
        return PeriodEntry(period=position, subject=subject) if subject else None

    period = parse_int(first_field(raw, PERIOD_FIELDS))
    subject_raw = first_field(raw, SUBJECT_FIELDS)

    if subject_raw is None:
        subject = UNKNOWN_SUBJECT
    else:
        subject = str(subject_raw).strip()
        if not subject:
            return None

    return PeriodEntry(period=period if period is not None else position, subject=subject)


def normalize_day(raw_entries: object) -> list[PeriodEntry]:
    if not isinstance(raw_entries, Sequence) or isinstance(raw_entries, str):
        return []
    entries = []
    for position, raw in enumerate(raw_entries, start=1):
        entry = normalize_entry(raw, position)
        if entry is not None:
            entries.append(entry)
    return entries


def _indexed(container: object) -> dict[int, object]:
    """View a 1-based library level (list or mapping) as {int key: value}."""
    if isinstance(container, Mapping):
        result = {}
        for key, value in container.items():
            index = parse_int(key)
            if index is not None:
                result[index] = value
        return result
    if isinstance(container, Sequence) and not isinstance(container, str):
        return {i: container[i] for i in range(1, len(container))}
    return {}


def normalize_table(raw_table: object) -> TimetableTable:
    """Normalize a library timetable indexed [grade][classroom][weekday][period].

    Every level is 1-based with a placeholder in slot 0; library weekday 1
    (Monday) to 5 (Friday) is stored under day_index 0 to 4.
    """
    table: TimetableTable = {}
    for grade, classes in _indexed(raw_table).items():
        grade_map: dict[int, dict[int, list[PeriodEntry]]] = {}
        for classroom, days in _indexed(classes).items():
            day_map = {}
            for library_day, raw_entries in _indexed(days).items():
                if library_day in LIBRARY_SCHOOL_DAYS:
                    day_map[library_day - 1] = normalize_day(raw_entries)
            grade_map[classroom] = day_map
        table[grade] = grade_map
    return table


def pick_school(schools: Sequence[SchoolInfo], school_name: str) -> SchoolInfo | None:
    """Exact name match first, then the first name containing the query, then the first result."""
    if not schools:
        return None
    for school in schools:
        if school.name == school_name:
            return school
    for school in schools:
        if school_name in school.name:
            return school
    return schools[0]


class ComciganSource:
    """ScheduleSource backed by the pycomcigan library.

    select_school() keeps the chosen school's Comcigan code (and region code),
    and each fetch builds a fresh TimeTable for that school and the configured
    week. Looked up by name alone, pycomcigan raises when the name is shared by
    schools in several regions.
    """

    def __init__(self, week_num: int = 0) -> None:
        self.week_num = week_num
        self._school: SchoolInfo | None = None

    def initialize(self, cache_seconds: int) -> None:
        # pycomcigan keeps no cache of its own; table reuse is CachedTimetable's job
        log.info("comcigan_initialized", cache_seconds=cache_seconds, week_num=self.week_num)

    def search(self, school_name: str) -> list[SchoolInfo]:
        """Search Comcigan for schools matching the name."""
        return _school_infos(get_school_code(school_name), school_name)

    def select_school(self, school: SchoolInfo) -> None:
        self._school = school
        log.info("comcigan_school_selected", name=school.name, code=school.code, local_code=school.local_code)

    @property
    def school(self) -> SchoolInfo | None:
        return self._school

    def fetch_full_timetable(self) -> TimetableTable:
        if self._school is None:
            raise NotReadyError("no school selected")

        timetable = TimeTable(
            self._school.name,
            local_code=self._school.local_code,
            school_code=parse_int(self._school.code),
            week_num=self.week_num,
        )
        return normalize_table(timetable.timetable)


def _school_infos(found: object, school_name: str) -> list[SchoolInfo]:
    """Coerce a library search result into SchoolInfo items.

    Rows look like [region_code, region_name, school_name, school_code]; a bare
    code means the library already narrowed the search to one school.
    """
    if found is None:
        return []
    if isinstance(found, (int, str)):
        return [SchoolInfo(name=school_name, code=found)]

    schools = []
    for row in found:
        local_code = None
        if isinstance(row, Mapping):
            name = first_field(row, ("name", "school_name", "학교명"))
            code = first_field(row, ("code", "school_code", "학교코드"))
            local_code = parse_int(first_field(row, ("local_code", "region_code", "지역코드")))
        elif isinstance(row, Sequence) and not isinstance(row, str) and len(row) >= 2:
            name, code = row[-2], row[-1]
            if len(row) >= 4:
                local_code = parse_int(row[0])
        else:
            continue
        if name is not None and code is not None:
            schools.append(SchoolInfo(name=str(name), code=code, local_code=local_code))
    return schools


class CachedTimetable:
    """Memoized full-table fetch shared by all requests.

    The memo is refreshed lazily on the first access after it expires.
    Concurrent refreshes share one fetch; a failed fetch leaves the previous
    memo untouched (but expired) so the next request tries again.
    """

    def __init__(
        self,
        source: ScheduleSource,
        ttl_seconds: float = 600,
        timeout_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.source = source
        self.ttl_seconds = ttl_seconds
        self.timeout_seconds = timeout_seconds
        self._clock = clock
        self._table: TimetableTable | None = None
        self._fetched_at: float | None = None
        self._lock = asyncio.Lock()

    def _fresh(self) -> bool:
        if self._table is None or self._fetched_at is None or self.ttl_seconds <= 0:
            return False
        return self._clock() - self._fetched_at < self.ttl_seconds

    async def get(self) -> TimetableTable:
        """Return the full table, fetching it if the memo is missing or stale.

        Raises:
            UpstreamFetchError: If the source fails or exceeds the timeout.
        """
        if self._fresh():
            return self._table

        async with self._lock:
            # Another request may have refreshed while we waited
            if self._fresh():
                return self._table

            table = await self._fetch()
            if self.ttl_seconds > 0:
                self._table = table
                self._fetched_at = self._clock()
            return table

    async def _fetch(self) -> TimetableTable:
        started = self._clock()
        try:
            table = await asyncio.wait_for(
                asyncio.to_thread(self.source.fetch_full_timetable),
                timeout=self.timeout_seconds,
            )
        except NotReadyError:
            raise
        except asyncio.TimeoutError as e:
            log.warning("timetable_fetch_timeout", timeout_seconds=self.timeout_seconds)
            raise UpstreamFetchError(f"timetable fetch exceeded {self.timeout_seconds}s") from e
        except Exception as e:
            log.error("timetable_fetch_failed", error=str(e), type=type(e).__name__)
            raise UpstreamFetchError(f"timetable fetch failed: {e}") from e

        log.info("timetable_fetched", grades=len(table), elapsed=self._clock() - started)
        return table
