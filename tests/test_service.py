from __future__ import annotations

import asyncio
from datetime import datetime
from types import SimpleNamespace
from unittest.mock import patch

from src.skillserver.errors import FETCH_FAILED_MESSAGE, GUIDANCE_MESSAGE, NOT_READY_MESSAGE
from src.skillserver.models import SchoolInfo, SkillRequest
from src.skillserver.readiness import Initializer
from src.skillserver.responses import reply_text
from src.skillserver.service import Reply, TimetableService
from src.skillserver.source import CachedTimetable, ComciganSource

from tests.conftest import FRIDAY, MONDAY, SATURDAY, SUBJECTS_2_5_TUESDAY, TUESDAY, FakeSource


def _service(
    source: FakeSource,
    *,
    now: datetime = TUESDAY,
    ready: bool = True,
    **kwargs,
) -> TimetableService:
    initializer = Initializer(source, "불곡고", retry_seconds=0.01)
    if ready:
        initializer.gate._mark_ready()
    return TimetableService(
        initializer,
        CachedTimetable(source, ttl_seconds=600, timeout_seconds=2),
        clock=lambda: now,
        **kwargs,
    )


def _handle(service: TimetableService, body: dict) -> Reply:
    return asyncio.run(service.handle(SkillRequest.model_validate(body)))


def test_scenario_a_structured_params_on_tuesday() -> None:
    source = FakeSource()
    reply = _handle(_service(source), {"action": {"params": {"grade": 2, "classroom": 5}}})

    assert reply.status_code == 200
    assert reply.payload["version"] == "2.0"
    text = reply_text(reply.payload)
    header, body = text.split("\n\n")
    assert header == "화요일 — 2학년 5반 시간표"
    assert body.split("\n") == [f"{i}교시: {s}" for i, s in enumerate(SUBJECTS_2_5_TUESDAY, start=1)]


def test_scenario_b_tomorrow_from_friday_is_weekend_without_lookup() -> None:
    source = FakeSource()
    reply = _handle(
        _service(source, now=FRIDAY),
        {"userRequest": {"utterance": "2-5 내일 시간표 알려줘"}},
    )

    assert reply.status_code == 200
    assert reply_text(reply.payload) == "토요일은 수업이 없습니다! 💤"
    assert source.fetch_calls == 0


def test_scenario_c_out_of_range_params_get_guidance() -> None:
    source = FakeSource()
    reply = _handle(_service(source), {"action": {"params": {"grade": 5, "classroom": 5}}})

    assert reply.status_code == 200
    assert reply_text(reply.payload) == GUIDANCE_MESSAGE
    assert source.fetch_calls == 0


def test_scenario_d_not_ready_skips_parameter_resolution() -> None:
    source = FakeSource()
    service = _service(source, ready=False)

    with patch("src.skillserver.service.resolve_query") as resolve:
        reply = _handle(service, {"action": {"params": {"grade": 2, "classroom": 5}}})

    assert reply.status_code == 503
    assert reply_text(reply.payload) == NOT_READY_MESSAGE
    resolve.assert_not_called()
    assert source.search_calls == 0


def test_not_ready_status_code_is_configurable() -> None:
    reply = _handle(_service(FakeSource(), ready=False, not_ready_status_code=200), {})
    assert reply.status_code == 200
    assert reply_text(reply.payload) == NOT_READY_MESSAGE


def test_inline_wait_initializes_then_answers() -> None:
    source = FakeSource(search_failures=1)
    service = _service(source, ready=False, inline_wait=True, wait_timeout=2)
    reply = _handle(service, {"action": {"params": {"grade": 2, "classroom": 5}}})

    assert reply.status_code == 200
    assert reply_text(reply.payload).startswith("화요일 — 2학년 5반 시간표")
    assert service.initializer.gate.is_ready


def test_weekend_today_never_fetches() -> None:
    source = FakeSource()
    reply = _handle(_service(source, now=SATURDAY), {"action": {"params": {"grade": 1, "classroom": 1}}})

    assert reply_text(reply.payload) == "토요일은 수업이 없습니다! 💤"
    assert source.fetch_calls == 0


def test_missing_class_data_is_empty_day_not_error() -> None:
    reply = _handle(_service(FakeSource()), {"action": {"params": {"grade": 3, "classroom": 9}}})

    assert reply.status_code == 200
    assert reply_text(reply.payload) == "화요일 — 3학년 9반 시간표\n\n오늘은 수업이 없어요!"


def test_upstream_failure_returns_generic_error_and_stays_ready() -> None:
    source = FakeSource(fetch_error=ConnectionError("comcigan down"))
    service = _service(source)
    reply = _handle(service, {"action": {"params": {"grade": 2, "classroom": 5}}})

    assert reply.status_code == 200
    assert reply_text(reply.payload) == FETCH_FAILED_MESSAGE
    assert service.initializer.gate.is_ready


def test_unexpected_error_is_contained() -> None:
    service = _service(FakeSource())
    with patch("src.skillserver.service.format_schedule", side_effect=KeyError("boom")):
        reply = _handle(service, {"action": {"params": {"grade": 2, "classroom": 5}}})

    assert reply.status_code == 200
    assert reply_text(reply.payload) == FETCH_FAILED_MESSAGE


def test_same_query_twice_gives_identical_text() -> None:
    service = _service(FakeSource())
    body = {"userRequest": {"utterance": "2학년 5반"}}

    async def scenario() -> tuple[Reply, Reply]:
        request = SkillRequest.model_validate(body)
        return await service.handle(request), await service.handle(request)

    first, second = asyncio.run(scenario())
    assert reply_text(first.payload) == reply_text(second.payload)


def test_comcigan_table_answers_with_the_requested_weekday() -> None:
    source = ComciganSource()
    source.select_school(SchoolInfo(name="불곡고등학교", code=12045, local_code=24))
    # grade 1 class 1 in pycomcigan's layout: placeholder day, then 월 국어, 화 수학
    raw = [[], [[], [[], ["국어"], ["수학"], [], [], []]]]
    body = {"action": {"params": {"grade": 1, "classroom": 1}}}

    with patch("src.skillserver.source.TimeTable", return_value=SimpleNamespace(timetable=raw)):
        monday = reply_text(_handle(_service(source, now=MONDAY), body).payload)
        tuesday = reply_text(_handle(_service(source, now=TUESDAY), body).payload)

    assert monday == "월요일 — 1학년 1반 시간표\n\n1교시: 국어"
    assert tuesday == "화요일 — 1학년 1반 시간표\n\n1교시: 수학"
