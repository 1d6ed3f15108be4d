"""REST API for checking text and applying suggestions."""

from __future__ import annotations

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from grammy.checker.base import Checker, checker_name
from grammy.engine.normalizer import normalize
from grammy.engine.registry import apply_suggestion
from grammy.engine.resolver import resolve
from grammy.engine.units import UnitScheme
from grammy.errors import CheckerError, InvalidRangeError, StaleSuggestionError
from grammy.types import (
    ApplyRequest,
    ApplyResponse,
    CheckRequest,
    CheckResponse,
    ErrorResponse,
    MatchesResponse,
)

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


def create_check_router(checker: Checker, units: UnitScheme = "utf16") -> APIRouter:
    router = APIRouter(prefix="/api", tags=["check"])
    rule = checker_name(checker)

    @router.post("/check", response_model=CheckResponse)
    async def check(body: CheckRequest):
        """Check ``text`` and return normalized, non-overlapping suggestions."""
        try:
            matches = await checker.check(body.text)
        except CheckerError as e:
            logger.warning("Check failed: %s", e)
            return _error(502, f"Check failed: {e}")
        return CheckResponse(matches=list(resolve(normalize(body.text, matches, units, rule=rule))))

    @router.post("/matches", response_model=MatchesResponse)
    async def matches(body: CheckRequest):
        """Raw code point matches, for remote HttpChecker clients."""
        try:
            raw = await checker.check(body.text)
        except CheckerError as e:
            logger.warning("Check failed: %s", e)
            return _error(502, f"Check failed: {e}")
        return MatchesResponse(matches=raw)

    @router.post("/apply", response_model=ApplyResponse)
    async def apply(body: ApplyRequest):
        # Remaining suggestions are the client's to rebase.
        try:
            text = apply_suggestion(body.text, body.suggestion, units)
        except InvalidRangeError as e:
            return _error(400, str(e))
        except StaleSuggestionError as e:
            return _error(409, str(e))
        return ApplyResponse(text=text, matches=[])

    return router
