"""LLM-backed checker using the OpenAI Chat Completions API.

Works against OpenAI and OpenAI-compatible providers such as OpenRouter.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import time
from typing import Any

import httpx
import openai

from grammy.checker.base import parse_matches_json, raise_if_cancelled
from grammy.checker.history import CheckHistory
from grammy.checker.providers import Provider, get_env_api_key, get_env_base_url, get_env_model, get_provider
from grammy.errors import CheckerError
from grammy.types import RawMatch

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are a careful English writing assistant.
Your job: suggest minimal edits for grammar, typos, clarity, and phrases that sound non-native or awkward.
Rules:
- Do NOT rewrite the whole text.
- Do NOT suggest stylistic variations if the original is correct.
- Only propose small localized edits (replace a short span with a short span).
- Preserve the author's voice and meaning.
- Prefer fewer suggestions over many.

Return ONLY valid JSON with this exact schema:
{
  "matches": [
    {
      "message": "...",
      "start": 0,
      "end": 0,
      "replacement": "...",
      "severity": "error|warning|suggestion"
    }
  ]
}

Where start/end are CHARACTER indices (Unicode code point count) into the ORIGINAL input text. end is exclusive.
Severity: "error" for grammar errors and typos, "warning" for awkward phrasing, "suggestion" for optional improvements.
If there is nothing to change, return {"matches": []}.
"""

MISSING_KEY_MESSAGE = "API key not set. Set GRAMMY_LLM_API_KEY or run 'grammy config set apiKey <key>'."

_request_ids = itertools.count(1)


def _error_message(e: openai.APIStatusError) -> str:
    body = e.body
    if isinstance(body, dict):
        message = body.get("message")
        if isinstance(message, str):
            return message
        inner = body.get("error")
        if isinstance(inner, dict) and isinstance(inner.get("message"), str):
            return inner["message"]
    return "Unknown error"


class LlmChecker:
    """Checks text by asking a chat model for ``{"matches": [...]}``."""

    name = "llm"

    def __init__(
        self,
        *,
        provider: str = "openai",
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        timeout: float = 60.0,
        max_retries: int = 0,
        history: CheckHistory | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.provider: Provider = get_provider(provider)
        self.api_key = api_key or get_env_api_key(provider) or ""
        self.model = model or get_env_model(provider)
        self.base_url = base_url or get_env_base_url(provider)
        self.timeout = timeout
        self.max_retries = max_retries
        self.history = history if history is not None else CheckHistory()
        self._http_client = http_client
        self._client: openai.AsyncOpenAI | None = None

    def _get_client(self) -> openai.AsyncOpenAI:
        if not self.api_key:
            raise CheckerError(MISSING_KEY_MESSAGE)
        if self._client is None:
            self._client = openai.AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                default_headers=self.provider.headers or None,
                timeout=self.timeout,
                max_retries=self.max_retries,
                http_client=self._http_client,
            )
        return self._client

    def _build_messages(self, text: str) -> list[dict[str, Any]]:
        return [
            {"role": "system", "content": SYSTEM_PROMPT},
            *self.history.messages(),
            {"role": "user", "content": f"Text:\n{text}"},
        ]

    async def check(self, text: str, signal: asyncio.Event | None = None) -> list[RawMatch]:
        request_id = next(_request_ids)
        if not text.strip():
            return []
        client = self._get_client()
        raise_if_cancelled(signal)

        start = time.monotonic()
        logger.debug(
            "Check #%d: provider=%s model=%s text_len=%d",
            request_id,
            self.provider.name,
            self.model,
            len(text),
        )
        messages = self._build_messages(text)
        try:
            completion = await client.chat.completions.create(
                model=self.model,
                messages=messages,  # type: ignore[arg-type]
                response_format={"type": "json_object"},
            )
        except openai.APIStatusError as e:
            raise CheckerError(f"{self.provider.label} error ({e.status_code}): {_error_message(e)}") from e
        except openai.APIConnectionError as e:
            raise CheckerError(f"Network error: {e}") from e

        raise_if_cancelled(signal)

        content = None
        if completion.choices:
            content = completion.choices[0].message.content
        content = content or '{"matches": []}'
        logger.debug("Check #%d: response after %.2fs: %s", request_id, time.monotonic() - start, content[:200])

        matches = parse_matches_json(content)
        self.history.push_pair(messages[-1]["content"], content)
        return matches

    async def list_models(self) -> list[str]:
        """Model ids offered by the provider, sorted. Empty without an API key."""
        if not self.api_key:
            return []
        client = self._get_client()
        try:
            page = await client.models.list()
        except openai.APIStatusError as e:
            raise CheckerError(f"Failed to fetch models: {e.status_code}") from e
        except openai.APIConnectionError as e:
            raise CheckerError(f"Network error: {e}") from e
        return sorted(m.id for m in page.data)

    async def test_connection(self) -> None:
        """Raise CheckerError unless the key works and the model exists."""
        if not self.api_key:
            raise CheckerError(MISSING_KEY_MESSAGE)
        models = await self.list_models()
        if self.model and self.model not in models:
            raise CheckerError(f"Model '{self.model}' not found for {self.provider.label}")
        logger.info("Connection to %s ok (model %s)", self.provider.label, self.model)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
