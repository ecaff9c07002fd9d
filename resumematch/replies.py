"""
Parsing of language-model replies.

Replies are free text expected to contain one JSON object. Everything here is
pure: a reply either parses into a structured value or raises
MalformedResponse, and the caller decides on the fallback.
"""

import json
from datetime import datetime
from typing import List, Optional

import pydantic
from pydantic import Field, ValidationInfo, field_validator

from .exceptions import MalformedResponse
from .models import ATSScore, CamelModel, JobDescription
from .scorer import round_half_up


UNKNOWN_TITLE = "Unknown Position"
UNKNOWN_COMPANY = "Unknown Company"

EMPTY_SCORE = ATSScore()


class ReplyModel(CamelModel):
    """Reply shape where an explicit null list means an empty one."""

    @field_validator("*", mode="before")
    @classmethod
    def null_list_is_empty(cls, value, info: ValidationInfo):
        if value is None and cls.model_fields[info.field_name].default_factory is list:
            return []
        return value


class JobReply(ReplyModel):
    title: Optional[str] = None
    company: Optional[str] = None
    location: Optional[str] = None
    requirements: List[str] = Field(default_factory=list)
    skills: List[str] = Field(default_factory=list)


class TailoredExperience(CamelModel):
    original_title: str
    new_description: Optional[List[str]] = None


class TailoringReply(ReplyModel):
    tailored_summary: Optional[str] = None
    tailored_experience: List[TailoredExperience] = Field(default_factory=list)
    keyword_matches: List[str] = Field(default_factory=list)


class ScoreReply(ReplyModel):
    score: Optional[float] = None
    match_percentage: Optional[float] = None
    matched_keywords: List[str] = Field(default_factory=list)
    missing_keywords: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)


def _balanced_end(text: str, start: int) -> int:
    """Index of the brace closing the one at start, or -1 when it is never closed."""
    depth = 0
    in_string = False
    escaped = False

    for i in range(start, len(text)):
        char = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return i

    return -1


def find_json_object(text: str) -> str:
    """
    Return the first balanced ``{...}`` span in text.

    Braces inside JSON strings are ignored. An opening brace that is never
    closed is skipped and the scan restarts at the next one. Raises
    MalformedResponse when no opening brace exists or none of them is closed.
    """
    start = text.find("{")
    if start == -1:
        raise MalformedResponse("No JSON object in reply", text)

    while start != -1:
        end = _balanced_end(text, start)
        if end != -1:
            return text[start:end + 1]
        start = text.find("{", start + 1)

    raise MalformedResponse("Unbalanced JSON object in reply", text)


def parse_json_object(text: str) -> dict:
    """Locate and decode the first JSON object of a reply."""
    span = find_json_object(text)
    try:
        data = json.loads(span)
    except json.JSONDecodeError as e:
        raise MalformedResponse(f"Invalid JSON ({e.msg})", text) from e

    if not isinstance(data, dict):
        raise MalformedResponse("Reply JSON is not an object", text)
    return data


def _validate(model, text: str):
    data = parse_json_object(text)
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as e:
        raise MalformedResponse(f"Unexpected reply shape ({e.error_count()} errors)", text) from e


def default_job_description(text: str) -> JobDescription:
    """Placeholder job description used when the posting could not be structured."""
    return JobDescription(
        title=UNKNOWN_TITLE,
        company=UNKNOWN_COMPANY,
        description=text,
        requirements=[],
        skills=[],
    )


def parse_job_reply(reply: str, original_text: str) -> JobDescription:
    """Reply of shape {title, company, location, requirements, skills}."""
    parsed = _validate(JobReply, reply)
    return JobDescription(
        title=parsed.title or UNKNOWN_TITLE,
        company=parsed.company or UNKNOWN_COMPANY,
        location=parsed.location or None,
        description=original_text,
        requirements=parsed.requirements,
        skills=parsed.skills,
        extracted_at=datetime.utcnow(),
    )


def parse_tailoring_reply(reply: str) -> TailoringReply:
    """Reply of shape {tailoredSummary, tailoredExperience, keywordMatches}."""
    return _validate(TailoringReply, reply)


def _percent(value: Optional[float]) -> int:
    if not value:
        return 0
    return max(0, min(100, round_half_up(value)))


def parse_score_reply(reply: str) -> ATSScore:
    """Reply of shape {score, matchPercentage, matchedKeywords, missingKeywords, improvements}."""
    parsed = _validate(ScoreReply, reply)
    return ATSScore(
        score=_percent(parsed.score),
        match_percentage=_percent(parsed.match_percentage),
        keyword_matches=parsed.matched_keywords,
        missing_keywords=parsed.missing_keywords,
        improvements=parsed.improvements,
    )
