"""Timetable skill server for the school chatbot.

Answers "what are my classes today/tomorrow" skill requests with the
Comcigan timetable for the configured school.
"""

from src.skillserver.app import create_app
from src.skillserver.models import PeriodEntry, ResolvedQuery, SkillRequest
from src.skillserver.service import TimetableService

__all__ = [
    "create_app",
    "TimetableService",
    "SkillRequest",
    "ResolvedQuery",
    "PeriodEntry",
]
