"""Core wire types for checks, suggestions and the apply endpoint.

All types use Pydantic models for validation and serialization.
snake_case naming throughout, with camelCase aliases for JSON compatibility.
"""

from __future__ import annotations

import uuid
from typing import Any, Literal, get_args

from pydantic import BaseModel, ConfigDict, Field, field_validator

Severity = Literal["error", "warning", "suggestion"]


def new_suggestion_id() -> str:
    return str(uuid.uuid4())


# --- Checker output ---


class RawMatch(BaseModel):
    """A match as reported by a checker, before normalization.

    ``start`` and ``end`` are code point indices into the checked text,
    ``end`` exclusive. Nothing about them is trusted.
    """

    model_config = ConfigDict(populate_by_name=True)

    message: str = ""
    start: int | None = None
    end: int | None = None
    replacement: str = ""
    severity: Severity = "suggestion"

    @field_validator("severity", mode="before")
    @classmethod
    def _coerce_severity(cls, value: Any) -> str:
        # Checkers invent labels; unknown ones keep the match as a suggestion.
        if isinstance(value, str) and value.lower() in get_args(Severity):
            return value.lower()
        return "suggestion"


# --- Suggestions ---


class Suggestion(BaseModel):
    """A normalized span over the live text, addressed in storage units."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(default_factory=new_suggestion_id)
    message: str = ""
    offset: int = Field(ge=0)
    length: int = Field(ge=0)
    original: str
    replacement: str
    rule: str = "llm"
    severity: Severity = "suggestion"

    @property
    def end(self) -> int:
        return self.offset + self.length


# --- HTTP payloads ---


class CheckRequest(BaseModel):
    text: str


class CheckResponse(BaseModel):
    matches: list[Suggestion] = Field(default_factory=list)


class MatchesResponse(BaseModel):
    """Checker contract response: raw code point matches."""

    matches: list[RawMatch] = Field(default_factory=list)


class ApplyRequest(BaseModel):
    text: str
    suggestion: Suggestion


class ApplyResponse(BaseModel):
    text: str
    matches: list[Suggestion] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    error: str
