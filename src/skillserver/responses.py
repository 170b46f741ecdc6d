"""Builders for the skill response envelope.

Every reply, success or failure, has the same shape:
    {"version": "2.0", "template": {"outputs": [{"simpleText": {"text": ...}}]}}
"""

from src.skillserver.models import SimpleText, SimpleTextOutput, SkillResponse, SkillTemplate


def simple_text(text: str) -> dict:
    """Wrap a text reply in the v2.0 envelope and return it as a plain dict."""
    response = SkillResponse(
        template=SkillTemplate(outputs=[SimpleTextOutput(simpleText=SimpleText(text=text))])
    )
    return response.model_dump()


def reply_text(payload: dict) -> str:
    """Extract the first simpleText text from an envelope (used by CLI and tests)."""
    return payload["template"]["outputs"][0]["simpleText"]["text"]
