"""Pydantic models for skill requests, timetable data and replies.

All data structures use Pydantic v2 for validation, serialization, and type safety.
Inbound models are permissive (everything optional, unknown keys ignored) because
the chatbot platform sends far more than we read; ResolvedQuery and PeriodEntry
are strict and frozen.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _object_or_empty(value: Any) -> Any:
    """Replace a null or non-object sub-field with an empty object."""
    if isinstance(value, (dict, BaseModel)):
        return value
    return {}


class SkillParams(BaseModel):
    """action.params of a skill request. Values arrive as strings or numbers."""

    model_config = ConfigDict(extra="ignore")

    grade: Any = None
    classroom: Any = None
    day: Any = None


class SkillAction(BaseModel):
    model_config = ConfigDict(extra="ignore")

    params: SkillParams = Field(default_factory=SkillParams)

    @field_validator("params", mode="before")
    @classmethod
    def null_params_as_empty(cls, value: Any) -> Any:
        return _object_or_empty(value)


class UserRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    utterance: str | None = None

    @field_validator("utterance", mode="before")
    @classmethod
    def text_only(cls, value: Any) -> str | None:
        return value if isinstance(value, str) else None


class SkillRequest(BaseModel):
    """Inbound skill payload: {action: {params}, userRequest: {utterance}}."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    action: SkillAction = Field(default_factory=SkillAction)
    user_request: UserRequest = Field(default_factory=UserRequest, alias="userRequest")

    @field_validator("action", "user_request", mode="before")
    @classmethod
    def null_sections_as_empty(cls, value: Any) -> Any:
        return _object_or_empty(value)

    @property
    def utterance(self) -> str:
        return self.user_request.utterance or ""


class ResolvedQuery(BaseModel):
    """Validated (grade, classroom, day offset) ready for lookup.

    Built only by resolver.validate(); the field bounds repeat the domain rules
    so an out-of-range query cannot exist even if constructed directly.
    """

    model_config = ConfigDict(frozen=True)

    grade: int = Field(ge=1, le=3)
    classroom: int = Field(ge=1, le=9)
    day_offset: int = Field(default=0, ge=0, le=1)


class PeriodEntry(BaseModel):
    """One class period of a day, normalized from a raw library entry."""

    model_config = ConfigDict(frozen=True)

    period: int
    subject: str


class SchoolInfo(BaseModel):
    """A school search result from the schedule source.

    local_code is the Comcigan region code, when the search reported one.
    """

    name: str
    code: int | str
    local_code: int | None = None


# Reply envelope (skill response v2.0)


class SimpleText(BaseModel):
    text: str


class SimpleTextOutput(BaseModel):
    simpleText: SimpleText


class SkillTemplate(BaseModel):
    outputs: list[SimpleTextOutput]


class SkillResponse(BaseModel):
    version: str = "2.0"
    template: SkillTemplate
