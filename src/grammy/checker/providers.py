"""LLM provider presets and environment-based API key resolution."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Literal

ProviderName = Literal["openai", "openrouter"]


@dataclass(frozen=True)
class Provider:
    name: ProviderName
    label: str
    base_url: str
    default_model: str
    env_var: str
    headers: dict[str, str] = field(default_factory=dict)


PROVIDERS: dict[str, Provider] = {
    "openai": Provider(
        name="openai",
        label="OpenAI",
        base_url="https://api.openai.com/v1",
        default_model="gpt-4o-mini",
        env_var="OPENAI_API_KEY",
    ),
    "openrouter": Provider(
        name="openrouter",
        label="OpenRouter",
        base_url="https://openrouter.ai/api/v1",
        default_model="openai/gpt-4o-mini",
        env_var="OPENROUTER_API_KEY",
        headers={"HTTP-Referer": "https://github.com/grammy-app", "X-Title": "Grammy"},
    ),
}


def get_provider(name: str) -> Provider:
    provider = PROVIDERS.get(name)
    if provider is None:
        raise ValueError(f"Unknown provider: {name!r} (expected one of {', '.join(PROVIDERS)})")
    return provider


def get_env_api_key(provider: str) -> str | None:
    """Get the API key for a provider from environment variables.

    ``GRAMMY_LLM_API_KEY`` wins over the provider's own variable.
    """
    key = os.environ.get("GRAMMY_LLM_API_KEY")
    if key:
        return key
    preset = PROVIDERS.get(provider)
    return os.environ.get(preset.env_var) if preset else None


def get_env_base_url(provider: str) -> str:
    return os.environ.get("GRAMMY_LLM_API_BASE") or get_provider(provider).base_url


def get_env_model(provider: str) -> str:
    return os.environ.get("GRAMMY_LLM_MODEL") or get_provider(provider).default_model
