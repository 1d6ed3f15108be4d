"""Build a checker from settings."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Literal

from grammy.checker.base import Checker
from grammy.checker.history import CheckHistory
from grammy.checker.llm import LlmChecker
from grammy.checker.rules import RuleChecker

if TYPE_CHECKING:
    from grammy.settings import SettingsManager

logger = logging.getLogger(__name__)

CheckerKind = Literal["auto", "llm", "rules"]
CHECKER_KINDS: tuple[CheckerKind, ...] = ("auto", "llm", "rules")


def build_checker(settings: SettingsManager, kind: CheckerKind = "auto") -> Checker:
    """Create the checker selected by ``kind``.

    ``auto`` uses the LLM when an API key is available and the offline rules
    otherwise. ``llm`` without a key still builds an LlmChecker; its checks then
    fail with a missing-key message.
    """
    provider = settings.get_provider()
    api_key = settings.get_api_key(provider)

    if kind == "rules" or (kind == "auto" and not api_key):
        if kind == "auto":
            logger.info("No API key for %s; using offline rules", provider)
        return RuleChecker()

    return LlmChecker(
        provider=provider,
        api_key=api_key,
        model=settings.get_model(),
        timeout=settings.get_timeout_seconds(),
        history=CheckHistory(settings.get_history_pairs()),
    )
