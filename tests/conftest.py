from __future__ import annotations

import time
from datetime import datetime, timezone

import pytest

from src.skillserver.config import SkillServerConfig
from src.skillserver.models import PeriodEntry, SchoolInfo

# 2024-05-06 is a Monday. Noon KST = 03:00 UTC.
MONDAY = datetime(2024, 5, 6, 3, 0, tzinfo=timezone.utc)
TUESDAY = datetime(2024, 5, 7, 3, 0, tzinfo=timezone.utc)
FRIDAY = datetime(2024, 5, 10, 3, 0, tzinfo=timezone.utc)
SATURDAY = datetime(2024, 5, 11, 3, 0, tzinfo=timezone.utc)

SUBJECTS_2_5_TUESDAY = ["국어", "수학", "영어", "한국사", "체육", "과학"]


def _sample_table() -> dict:
    tuesday = [PeriodEntry(period=i, subject=s) for i, s in enumerate(SUBJECTS_2_5_TUESDAY, start=1)]
    return {
        2: {
            5: {
                0: [PeriodEntry(period=1, subject="음악")],
                1: tuesday,
                4: [],
            },
        },
    }


class FakeSource:
    """In-memory schedule source. Never touches the network."""

    def __init__(
        self,
        *,
        table: dict | None = None,
        schools: list[SchoolInfo] | None = None,
        search_failures: int = 0,
        fetch_error: Exception | None = None,
        fetch_delay: float = 0.0,
    ) -> None:
        self.table = _sample_table() if table is None else table
        self.schools = [SchoolInfo(name="불곡고등학교", code=12045)] if schools is None else schools
        self.search_failures = search_failures
        self.fetch_error = fetch_error
        self.fetch_delay = fetch_delay

        self.initialize_calls = 0
        self.search_calls = 0
        self.fetch_calls = 0
        self.selected: SchoolInfo | None = None

    def initialize(self, cache_seconds: int) -> None:
        self.initialize_calls += 1

    def search(self, school_name: str) -> list[SchoolInfo]:
        self.search_calls += 1
        if self.search_calls <= self.search_failures:
            raise ConnectionError("comcigan unreachable")
        return list(self.schools)

    def select_school(self, school: SchoolInfo) -> None:
        self.selected = school

    def fetch_full_timetable(self) -> dict:
        self.fetch_calls += 1
        if self.fetch_delay:
            time.sleep(self.fetch_delay)
        if self.fetch_error is not None:
            raise self.fetch_error
        return self.table


@pytest.fixture
def fake_source() -> FakeSource:
    return FakeSource()


def make_config(**overrides) -> SkillServerConfig:
    values = {
        "school_name": "불곡고",
        "init_retry_seconds": 0.01,
        "fetch_timeout_seconds": 2.0,
        "timetable_cache_seconds": 600,
        "not_ready_status_code": 503,
        "init_inline_wait": False,
    }
    values.update(overrides)
    return SkillServerConfig(**values)
