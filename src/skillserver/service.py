"""Request pipeline: readiness -> parameters -> validation -> day -> lookup -> reply.

TimetableService.handle() always returns a well-formed reply; every error in
the pipeline is mapped to a message here and never reaches the web layer.
"""

from collections.abc import Callable
from datetime import datetime
from typing import NamedTuple

from src.skillserver.days import resolve_day
from src.skillserver.errors import (
    FETCH_FAILED_MESSAGE,
    NOT_READY_MESSAGE,
    NotReadyError,
    UpstreamFetchError,
    ValidationError,
    WeekendError,
)
from src.skillserver.formatter import format_schedule, lookup
from src.skillserver.logging import get_logger
from src.skillserver.models import SkillRequest
from src.skillserver.readiness import Initializer
from src.skillserver.resolver import resolve_query
from src.skillserver.responses import simple_text
from src.skillserver.source import CachedTimetable

log = get_logger(__name__)


class Reply(NamedTuple):
    status_code: int
    payload: dict


class TimetableService:
    """Turns one skill request into one reply."""

    def __init__(
        self,
        initializer: Initializer,
        timetable: CachedTimetable,
        *,
        not_ready_status_code: int = 503,
        inline_wait: bool = False,
        wait_timeout: float | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.initializer = initializer
        self.timetable = timetable
        self.not_ready_status_code = not_ready_status_code
        self.inline_wait = inline_wait
        self.wait_timeout = wait_timeout
        self._clock = clock

    async def handle(self, request: SkillRequest) -> Reply:
        if not await self._ready():
            log.info("timetable_request_not_ready")
            return self._not_ready()

        try:
            text = await self.timetable_text(request)
        except ValidationError as e:
            log.info("timetable_request_invalid", reason=str(e))
            return Reply(200, simple_text(e.user_message))
        except WeekendError as e:
            log.info("timetable_request_weekend", weekday=e.weekday_name)
            return Reply(200, simple_text(e.user_message))
        except NotReadyError:
            return self._not_ready()
        except UpstreamFetchError as e:
            log.warning("timetable_request_upstream_failed", error=str(e))
            return Reply(200, simple_text(FETCH_FAILED_MESSAGE))
        except Exception as e:
            log.error("timetable_request_failed", error=str(e), type=type(e).__name__, exc_info=True)
            return Reply(200, simple_text(FETCH_FAILED_MESSAGE))

        return Reply(200, simple_text(text))

    async def timetable_text(self, request: SkillRequest) -> str:
        """Resolve the request and render the timetable text.

        Raises:
            ValidationError: Grade/classroom missing or out of range.
            WeekendError: Resolved day is Saturday or Sunday (no lookup happens).
            UpstreamFetchError: Timetable fetch failed or timed out.
        """
        query = resolve_query(request)
        now = self._clock() if self._clock else None
        day = resolve_day(query.day_offset, now=now)
        log.info(
            "timetable_day_resolved",
            day_offset=query.day_offset,
            weekday=day.weekday_name,
            index=day.index,
        )

        if not day.is_school_day:
            raise WeekendError(day.weekday_name)

        table = await self.timetable.get()
        entries = lookup(table, query.grade, query.classroom, day.index)
        return format_schedule(day.weekday_name, query, entries)

    async def _ready(self) -> bool:
        if self.initializer.gate.is_ready:
            return True
        if self.inline_wait:
            return await self.initializer.ensure_ready(self.wait_timeout)
        return False

    def _not_ready(self) -> Reply:
        return Reply(self.not_ready_status_code, simple_text(NOT_READY_MESSAGE))
