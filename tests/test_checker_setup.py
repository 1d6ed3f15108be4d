"""Tests for provider presets, history and checker selection."""

from __future__ import annotations

import pytest

from grammy.checker.base import parse_matches
from grammy.checker.factory import build_checker
from grammy.checker.history import CheckHistory
from grammy.checker.llm import LlmChecker
from grammy.checker.providers import get_env_api_key, get_env_base_url, get_provider
from grammy.checker.rules import RuleChecker
from grammy.settings import SettingsManager


class TestProviders:
    def test_known_provider(self):
        assert get_provider("openrouter").label == "OpenRouter"

    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="Unknown provider"):
            get_provider("nope")

    def test_grammy_key_wins(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-openai")
        assert get_env_api_key("openai") == "sk-openai"
        monkeypatch.setenv("GRAMMY_LLM_API_KEY", "sk-grammy")
        assert get_env_api_key("openai") == "sk-grammy"

    def test_provider_variable_is_per_provider(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-openai")
        assert get_env_api_key("openrouter") is None

    def test_base_url_override(self, monkeypatch):
        assert get_env_base_url("openai") == "https://api.openai.com/v1"
        monkeypatch.setenv("GRAMMY_LLM_API_BASE", "http://localhost:1234/v1")
        assert get_env_base_url("openai") == "http://localhost:1234/v1"


class TestHistory:
    def test_keeps_last_pairs(self):
        history = CheckHistory(max_pairs=2)
        for i in range(3):
            history.push_pair(f"u{i}", f"a{i}")
        assert len(history) == 2
        assert history.messages() == [
            {"role": "user", "content": "u1"},
            {"role": "assistant", "content": "a1"},
            {"role": "user", "content": "u2"},
            {"role": "assistant", "content": "a2"},
        ]

    def test_zero_pairs_disables(self):
        history = CheckHistory(max_pairs=0)
        history.push_pair("u", "a")
        assert history.is_empty()

    def test_clear(self):
        history = CheckHistory()
        history.push_pair("u", "a")
        history.clear()
        assert history.entries() == []


class TestBuildChecker:
    def test_auto_without_key_uses_rules(self):
        assert isinstance(build_checker(SettingsManager.in_memory()), RuleChecker)

    def test_auto_with_key_uses_llm(self):
        settings = SettingsManager.in_memory(
            {"provider": "openrouter", "apiKeys": {"openrouter": "sk-or"}, "historyPairs": 1, "timeoutSeconds": 5}
        )
        checker = build_checker(settings)
        assert isinstance(checker, LlmChecker)
        assert checker.api_key == "sk-or"
        assert checker.model == "openai/gpt-4o-mini"
        assert checker.timeout == 5.0
        assert checker.history.max_pairs == 1

    def test_explicit_rules(self):
        settings = SettingsManager.in_memory({"apiKeys": {"openai": "sk"}})
        assert isinstance(build_checker(settings, "rules"), RuleChecker)

    def test_explicit_llm_without_key(self):
        checker = build_checker(SettingsManager.in_memory(), "llm")
        assert isinstance(checker, LlmChecker)
        assert checker.api_key == ""


class TestParseMatches:
    def test_unknown_severity_keeps_match(self):
        [match] = parse_matches(
            {"matches": [{"message": "m", "start": 0, "end": 1, "replacement": "x", "severity": "style"}]}
        )
        assert (match.start, match.end, match.replacement) == (0, 1, "x")
        assert match.severity == "suggestion"

    @pytest.mark.parametrize("severity, expected", [("ERROR", "error"), ("warning", "warning"), (None, "suggestion"), (3, "suggestion")])
    def test_severity_labels(self, severity, expected):
        [match] = parse_matches({"matches": [{"start": 0, "end": 1, "replacement": "x", "severity": severity}]})
        assert match.severity == expected

    def test_missing_severity_defaults(self):
        [match] = parse_matches({"matches": [{"start": 0, "end": 1, "replacement": "x"}]})
        assert match.severity == "suggestion"
