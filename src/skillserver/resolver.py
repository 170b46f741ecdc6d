"""Parameter resolution and validation for timetable requests.

Grade and classroom come from the structured action params when both are
numeric; otherwise they are pulled out of the user's utterance. Supported
utterance notations, tried in this order:

    "2학년 5반"   Korean grade/classroom words
    "2-5", "2/5", "2,5"
    "2 5"         bare pair, only if nothing else matched

The day offset is 0 (today) unless the params say "tomorrow"/"내일" or the
utterance contains "내일", which wins over a params value of "today".
"""

import re
from typing import NamedTuple

from pydantic import ValidationError as PydanticValidationError

from src.skillserver.errors import ValidationError
from src.skillserver.logging import get_logger
from src.skillserver.models import ResolvedQuery, SkillRequest
from src.skillserver.utils import parse_int

log = get_logger(__name__)

# Digits are anchored with look-arounds so "12학년" or "2-15" never match.
_KOREAN_PATTERN = re.compile(r"(?<!\d)([1-3])\s*학년\s*([1-9])\s*반")
_SYMBOL_PATTERN = re.compile(r"(?<!\d)([1-3])\s*[-/,]\s*([1-9])(?!\d)")
_BARE_PAIR_PATTERN = re.compile(r"(?<!\d)([1-3])\s+([1-9])(?!\d)")

UTTERANCE_PATTERNS: tuple[re.Pattern, ...] = (
    _KOREAN_PATTERN,
    _SYMBOL_PATTERN,
    _BARE_PAIR_PATTERN,
)

TOMORROW_KEYWORD = "내일"
TOMORROW_PARAM_VALUES: frozenset[str] = frozenset({"tomorrow", "내일"})

GRADE_RANGE = range(1, 4)
CLASSROOM_RANGE = range(1, 10)


class Candidate(NamedTuple):
    """Best-effort resolution before validation. Values may be None."""

    grade: int | None
    classroom: int | None
    day_offset: int


def extract_grade_classroom(utterance: str) -> tuple[int, int] | None:
    """Find a (grade, classroom) pair in free text, highest-priority pattern first."""
    text = utterance.lower()
    for pattern in UTTERANCE_PATTERNS:
        match = pattern.search(text)
        if match:
            return int(match.group(1)), int(match.group(2))
    return None


def resolve_day_offset(day_param: object, utterance: str) -> int:
    offset = 0
    if isinstance(day_param, str) and day_param.strip().lower() in TOMORROW_PARAM_VALUES:
        offset = 1
    if TOMORROW_KEYWORD in utterance.lower():
        offset = 1
    return offset


def resolve_candidate(request: SkillRequest) -> Candidate:
    """Turn a skill request into an unvalidated (grade, classroom, day_offset)."""
    params = request.action.params
    utterance = request.utterance

    grade = parse_int(params.grade)
    classroom = parse_int(params.classroom)
    source = "params"

    if grade is None or classroom is None:
        pair = extract_grade_classroom(utterance)
        if pair is not None:
            grade, classroom = pair
            source = "utterance"
        else:
            source = "none"

    day_offset = resolve_day_offset(params.day, utterance)

    log.debug(
        "parameters_resolved",
        grade=grade,
        classroom=classroom,
        day_offset=day_offset,
        source=source,
    )
    return Candidate(grade=grade, classroom=classroom, day_offset=day_offset)


def validate(candidate: Candidate) -> ResolvedQuery:
    """Accept only grade 1-3 and classroom 1-9.

    Raises:
        ValidationError: If either value is missing or out of range.
    """
    grade, classroom = candidate.grade, candidate.classroom
    if grade not in GRADE_RANGE or classroom not in CLASSROOM_RANGE:
        raise ValidationError(f"invalid grade/classroom: {grade!r}/{classroom!r}")

    try:
        return ResolvedQuery(grade=grade, classroom=classroom, day_offset=candidate.day_offset)
    except PydanticValidationError as e:
        raise ValidationError(str(e)) from e


def resolve_query(request: SkillRequest) -> ResolvedQuery:
    """Resolve and validate in one step."""
    return validate(resolve_candidate(request))
