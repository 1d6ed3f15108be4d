"""Checker contract shared by all checker implementations."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Protocol

from pydantic import ValidationError

from grammy.errors import CheckCancelledError, CheckerError
from grammy.types import RawMatch

logger = logging.getLogger(__name__)


class Checker(Protocol):
    """Consumes plain text and reports raw matches.

    ``signal`` is set when the caller no longer wants the result. Checkers may
    poll it and raise CheckCancelledError; the caller also cancels the task.
    Request-level failures raise CheckerError with a human-readable message.
    """

    async def check(self, text: str, signal: asyncio.Event | None = None) -> list[RawMatch]: ...


def raise_if_cancelled(signal: asyncio.Event | None) -> None:
    if signal is not None and signal.is_set():
        raise CheckCancelledError("Check cancelled")


def parse_matches(payload: Any) -> list[RawMatch]:
    """Validate ``{"matches": [...]}`` entry by entry.

    A payload without a matches list is a request-level error; individual bad
    entries are dropped.
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("matches", []), list):
        raise CheckerError("Checker response is missing a matches list")

    matches: list[RawMatch] = []
    for item in payload.get("matches", []):
        try:
            matches.append(RawMatch.model_validate(item))
        except ValidationError as e:
            logger.debug("Dropping unparseable match %r: %s", item, e)
    return matches


def parse_matches_json(content: str, source: str = "LLM") -> list[RawMatch]:
    """Parse a JSON document holding a matches list."""
    try:
        payload = json.loads(content)
    except json.JSONDecodeError as e:
        raise CheckerError(f"Invalid JSON from {source}: {e}") from e
    return parse_matches(payload)


def checker_name(checker: Checker) -> str:
    """Rule name recorded on suggestions produced by ``checker``."""
    return getattr(checker, "name", "custom")
