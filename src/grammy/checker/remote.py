"""HTTP clients for a remote check service and its apply endpoint."""

from __future__ import annotations

import asyncio
import logging

import httpx

from grammy.checker.base import parse_matches, raise_if_cancelled
from grammy.errors import CheckerError, InvalidRangeError, StaleSuggestionError
from grammy.types import ApplyRequest, ApplyResponse, RawMatch, Suggestion

logger = logging.getLogger(__name__)


def _error_text(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(payload, dict) and isinstance(payload.get("error"), str):
        return payload["error"]
    return response.text


class HttpChecker:
    """Posts ``{"text": ...}`` to a service that answers with raw matches."""

    name = "remote"

    def __init__(self, url: str, *, timeout: float = 60.0, client: httpx.AsyncClient | None = None) -> None:
        self.url = url
        self.timeout = timeout
        self._client = client

    async def _post(self, client: httpx.AsyncClient, text: str) -> httpx.Response:
        try:
            return await client.post(self.url, json={"text": text})
        except httpx.HTTPError as e:
            raise CheckerError(f"Network error: {e}") from e

    async def check(self, text: str, signal: asyncio.Event | None = None) -> list[RawMatch]:
        raise_if_cancelled(signal)
        if self._client is not None:
            response = await self._post(self._client, text)
        else:
            async with httpx.AsyncClient(timeout=httpx.Timeout(self.timeout)) as client:
                response = await self._post(client, text)
        raise_if_cancelled(signal)

        if response.status_code >= 400:
            raise CheckerError(f"Check service error ({response.status_code}): {_error_text(response)}")
        try:
            payload = response.json()
        except ValueError as e:
            raise CheckerError(f"Invalid JSON from check service: {e}") from e
        return parse_matches(payload)


class RemoteApplier:
    """Client for ``POST /api/apply``."""

    def __init__(self, url: str, *, timeout: float = 30.0, client: httpx.AsyncClient | None = None) -> None:
        self.url = url
        self.timeout = timeout
        self._client = client

    async def apply(self, text: str, suggestion: Suggestion) -> ApplyResponse:
        body = ApplyRequest(text=text, suggestion=suggestion).model_dump(mode="json")
        try:
            if self._client is not None:
                response = await self._client.post(self.url, json=body)
            else:
                async with httpx.AsyncClient(timeout=httpx.Timeout(self.timeout)) as client:
                    response = await client.post(self.url, json=body)
        except httpx.HTTPError as e:
            raise CheckerError(f"Network error: {e}") from e

        if response.status_code == 400:
            raise InvalidRangeError()
        if response.status_code == 409:
            raise StaleSuggestionError(_error_text(response))
        if response.status_code >= 400:
            raise CheckerError(f"Apply failed ({response.status_code}): {_error_text(response)}")
        return ApplyResponse.model_validate(response.json())
