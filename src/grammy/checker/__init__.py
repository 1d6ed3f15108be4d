"""Checkers: produce raw code point matches for a text."""

from grammy.checker.base import Checker, checker_name, parse_matches, parse_matches_json
from grammy.checker.history import CheckHistory
from grammy.checker.llm import LlmChecker
from grammy.checker.providers import PROVIDERS, Provider, get_provider
from grammy.checker.remote import HttpChecker, RemoteApplier
from grammy.checker.rules import RuleChecker

__all__ = [
    "PROVIDERS",
    "CheckHistory",
    "Checker",
    "HttpChecker",
    "LlmChecker",
    "Provider",
    "RemoteApplier",
    "RuleChecker",
    "checker_name",
    "get_provider",
    "parse_matches",
    "parse_matches_json",
]
