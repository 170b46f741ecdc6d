"""Readiness gate and background initializer for the schedule source.

The gate starts NOT_READY and flips to READY once, when the initializer has
searched for the configured school and selected it. Only the initializer
writes the gate; request handlers read it through ReadinessGate.is_ready.

A failed attempt is logged and retried after a fixed delay, forever. Only one
initialization task runs at a time: start() while a task is in flight returns
that task instead of creating another.
"""

import asyncio
from enum import Enum

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_never,
    wait_fixed,
)

from src.skillserver.errors import InitializationError
from src.skillserver.logging import get_logger
from src.skillserver.source import ScheduleSource, pick_school

log = get_logger(__name__)


class Readiness(str, Enum):
    NOT_READY = "not_ready"
    READY = "ready"


class ReadinessGate:
    """Process-wide readiness state. Read-only outside the initializer."""

    def __init__(self) -> None:
        self._state = Readiness.NOT_READY

    @property
    def state(self) -> Readiness:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state is Readiness.READY

    def _mark_ready(self) -> None:
        self._state = Readiness.READY


def _log_before_sleep(retry_state: RetryCallState) -> None:
    sleep_seconds = getattr(retry_state.next_action, "sleep", None)
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    log.warning(
        "parser_init_retry_scheduled",
        attempt=retry_state.attempt_number,
        retry_in_seconds=sleep_seconds,
        error=str(exc) if exc else None,
    )


class Initializer:
    """Drives the schedule source from NOT_READY to READY.

    Steps: initialize(cache) -> search(school_name) -> pick best match ->
    select_school(match). Blocking source calls run in a worker thread.
    """

    def __init__(
        self,
        source: ScheduleSource,
        school_name: str,
        *,
        cache_seconds: int = 1800,
        retry_seconds: float = 60.0,
        gate: ReadinessGate | None = None,
    ) -> None:
        self.source = source
        self.school_name = school_name
        self.cache_seconds = cache_seconds
        self.retry_seconds = retry_seconds
        self.gate = gate or ReadinessGate()
        self.attempts = 0
        self._task: asyncio.Task | None = None

    @property
    def in_flight(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        """Launch the background initialization task, or return the running one.

        Must be called from inside a running event loop.
        """
        if self._task is not None and (self.in_flight or self.gate.is_ready):
            return self._task
        self._task = asyncio.get_running_loop().create_task(self._run(), name="parser-init")
        return self._task

    async def ensure_ready(self, timeout: float | None = None) -> bool:
        """Await the shared initialization task (starting it if needed).

        Returns:
            True if the gate is READY when this returns.
        """
        if self.gate.is_ready:
            return True
        task = self.start()
        try:
            await asyncio.wait_for(asyncio.shield(task), timeout=timeout)
        except asyncio.TimeoutError:
            log.info("parser_init_wait_timeout", timeout_seconds=timeout)
        return self.gate.is_ready

    async def stop(self) -> None:
        if self.in_flight:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                log.info("parser_init_cancelled", attempts=self.attempts)

    async def _run(self) -> None:
        retrying = AsyncRetrying(
            wait=wait_fixed(self.retry_seconds),
            stop=stop_never,
            retry=retry_if_exception_type(InitializationError),
            before_sleep=_log_before_sleep,
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                await self._attempt()

        self.gate._mark_ready()
        log.info("parser_ready", school=self.school_name, attempts=self.attempts)

    async def _attempt(self) -> None:
        """One pass through the initialization chain.

        Raises:
            InitializationError: On any failure in the chain.
        """
        self.attempts += 1
        log.info("parser_init_started", attempt=self.attempts, school=self.school_name)
        try:
            await asyncio.to_thread(self.source.initialize, self.cache_seconds)
            schools = await asyncio.to_thread(self.source.search, self.school_name)
            school = pick_school(schools, self.school_name)
            if school is None:
                raise InitializationError(f"school not found on Comcigan: {self.school_name}")
            await asyncio.to_thread(self.source.select_school, school)
        except InitializationError as e:
            log.error("parser_init_failed", attempt=self.attempts, error=str(e))
            raise
        except Exception as e:
            log.error(
                "parser_init_failed",
                attempt=self.attempts,
                error=str(e),
                type=type(e).__name__,
            )
            raise InitializationError(f"initialization failed: {e}") from e
