"""FastAPI application for the timetable skill.

Endpoints:
    POST /api/timeTable   skill webhook, always answers with a simpleText envelope
    GET  /healthz         liveness, plain "OK"
    GET  /readyz          200 once the schedule source is initialized, else 503
"""

from collections.abc import Callable
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import ValidationError as PydanticValidationError

from src.skillserver.config import SkillServerConfig, get_config
from src.skillserver.logging import bind_request, clear_request, get_logger
from src.skillserver.models import SkillRequest
from src.skillserver.readiness import Initializer
from src.skillserver.service import TimetableService
from src.skillserver.source import CachedTimetable, ComciganSource, ScheduleSource

log = get_logger(__name__)


def parse_skill_request(body: object) -> SkillRequest:
    """Build a SkillRequest from an untrusted JSON body.

    A body that is not an object becomes an empty request, which then fails
    validation with the guidance message. Null or mistyped sections inside an
    object are emptied one by one, so a usable utterance survives them.
    """
    if not isinstance(body, dict):
        return SkillRequest()
    try:
        return SkillRequest.model_validate(body)
    except PydanticValidationError as e:
        log.warning("skill_request_unparseable", errors=e.error_count())
        return SkillRequest()


def create_app(
    config: SkillServerConfig | None = None,
    source: ScheduleSource | None = None,
    clock: Callable[[], datetime] | None = None,
) -> FastAPI:
    """Wire the schedule source, initializer and service into a FastAPI app.

    Args:
        config: Settings; defaults to the environment-backed singleton.
        source: Schedule source; defaults to Comcigan.
        clock: Current-time provider for day resolution; defaults to the system clock.
    """
    config = config or get_config()
    source = source or ComciganSource(week_num=config.week_num)

    initializer = Initializer(
        source,
        config.school_name,
        retry_seconds=config.init_retry_seconds,
    )
    timetable = CachedTimetable(
        source,
        ttl_seconds=config.timetable_cache_seconds,
        timeout_seconds=config.fetch_timeout_seconds,
    )
    service = TimetableService(
        initializer,
        timetable,
        not_ready_status_code=config.not_ready_status_code,
        inline_wait=config.init_inline_wait,
        wait_timeout=config.fetch_timeout_seconds,
        clock=clock,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        initializer.start()
        log.info("skill_server_started", school=config.school_name, port=config.port)
        yield
        await initializer.stop()
        log.info("skill_server_stopped")

    app = FastAPI(title="Timetable skill server", lifespan=lifespan)
    app.state.config = config
    app.state.initializer = initializer
    app.state.service = service

    api = APIRouter(prefix="/api")

    @api.post("/timeTable")
    async def time_table(request: Request) -> JSONResponse:
        try:
            body = await request.json()
        except ValueError:
            log.warning("skill_request_invalid_json")
            body = {}

        skill_request = parse_skill_request(body)
        bind_request(skill_request.utterance)
        try:
            log.info("timetable_request_received", body=body)
            reply = await service.handle(skill_request)
            log.info("timetable_request_answered", status_code=reply.status_code)
        finally:
            clear_request()
        return JSONResponse(status_code=reply.status_code, content=reply.payload)

    app.include_router(api)

    @app.get("/healthz", response_class=PlainTextResponse)
    async def healthz() -> str:
        return "OK"

    @app.get("/readyz", response_class=PlainTextResponse)
    async def readyz() -> PlainTextResponse:
        if initializer.gate.is_ready:
            return PlainTextResponse("ready")
        return PlainTextResponse("not ready", status_code=503)

    return app
