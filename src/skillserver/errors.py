"""Error hierarchy for timetable requests.

Each error maps to exactly one kind of reply. The request handler catches
SkillError subclasses and turns them into a simpleText envelope, so none of
these ever reach the web framework's default error handling.

Example:
    try:
        query = validate(grade, classroom, day_offset)
    except ValidationError as e:
        return simple_text(e.user_message)
"""

GUIDANCE_MESSAGE = "❌ 학년과 반 정보를 올바르게 입력해주세요. 예: 2학년 5반, 2-5"
NOT_READY_MESSAGE = "⚠️ 서버 초기화 중입니다. 잠시 후 다시 시도해주세요."
FETCH_FAILED_MESSAGE = "⚠️ 시간표를 불러오는 중 오류가 발생했어요."


class SkillError(Exception):
    """Base exception for all timetable skill errors."""

    user_message: str = FETCH_FAILED_MESSAGE


class NotReadyError(SkillError):
    """Schedule source has not finished initializing.

    Always recoverable: the client is told to try again later.
    """

    user_message = NOT_READY_MESSAGE


class ValidationError(SkillError):
    """Grade or classroom missing, unparseable or out of range."""

    user_message = GUIDANCE_MESSAGE


class WeekendError(SkillError):
    """Resolved day has no classes.

    Not a failure: the message is sent through the normal success reply.
    """

    def __init__(self, weekday_name: str) -> None:
        super().__init__(f"{weekday_name} has no classes")
        self.weekday_name = weekday_name
        self.user_message = f"{weekday_name}은 수업이 없습니다! 💤"


class UpstreamFetchError(SkillError):
    """Timetable fetch failed or timed out inside the schedule source.

    Does not affect readiness: fetch and initialization fail independently.
    """


class InitializationError(SkillError):
    """School search or selection failed during startup.

    Recovered by staying not-ready and retrying after a fixed delay.
    """
