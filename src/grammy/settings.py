"""Settings manager with JSON persistence.

Global settings live in ``~/.grammy/settings.json`` (``GRAMMY_DIR`` moves the
directory). CLI overrides are applied on top and never written back.
Tracks per-field modifications for safe concurrent file updates.
"""

from __future__ import annotations

import json
import logging
import os
from copy import deepcopy
from pathlib import Path
from typing import Any

from grammy.checker.providers import PROVIDERS, get_env_api_key, get_env_model
from grammy.engine.units import UNIT_SCHEMES, UnitScheme

logger = logging.getLogger(__name__)

CONFIG_DIR_NAME = ".grammy"

DEFAULT_PROVIDER = "openai"
DEFAULT_DEBOUNCE_MS = 600
DEFAULT_UNITS: UnitScheme = "utf16"
DEFAULT_TIMEOUT_SECONDS = 60.0
DEFAULT_HISTORY_PAIRS = 5

# Keys accepted by ``set_value``; apiKey is a shorthand for the current provider's key.
SETTABLE_KEYS = ("provider", "model", "apiKey", "debounceMs", "units", "timeoutSeconds", "historyPairs")


# --- Deep merge ---


def deep_merge_settings(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge overrides into base settings.

    For nested dicts, merge recursively. For primitives and arrays,
    override value wins completely. None values are skipped.
    """
    result = dict(base)
    for key, value in overrides.items():
        if value is None:
            continue
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge_settings(result[key], value)
        else:
            result[key] = value
    return result


# --- Migrations ---


def _migrate_settings(settings: dict[str, Any]) -> dict[str, Any]:
    """Apply all settings migrations."""
    # Migration 1: single apiKey -> per-provider apiKeys
    if "apiKey" in settings:
        key = settings.pop("apiKey")
        if key:
            provider = settings.get("provider") or DEFAULT_PROVIDER
            settings.setdefault("apiKeys", {}).setdefault(provider, key)
    return settings


# --- SettingsManager ---


class SettingsManager:
    """Manages settings with JSON file persistence.

    Use factory methods (create, in_memory) instead of calling constructor directly.
    """

    def __init__(
        self,
        *,
        settings_path: str | None,
        initial_settings: dict[str, Any],
        persist: bool = True,
        load_error: Exception | None = None,
    ) -> None:
        self._settings_path = settings_path
        self._global_settings = dict(initial_settings)
        self._persist = persist
        self._load_error = load_error
        self._modified_fields: set[str] = set()
        self._modified_nested_fields: dict[str, set[str]] = {}
        self._overrides: dict[str, Any] = {}
        self._settings = deepcopy(self._global_settings)

    # --- Factory methods ---

    @classmethod
    def create(cls, config_dir: str | None = None) -> SettingsManager:
        """Create a settings manager with file persistence."""
        settings_path = os.path.join(config_dir or default_config_dir(), "settings.json")
        settings, error = _load_from_file(settings_path)
        return cls(settings_path=settings_path, initial_settings=settings, persist=True, load_error=error)

    @classmethod
    def in_memory(cls, settings: dict[str, Any] | None = None) -> SettingsManager:
        """Create an in-memory settings manager for testing."""
        return cls(settings_path=None, initial_settings=settings or {}, persist=False)

    # --- Core operations ---

    @property
    def settings_path(self) -> str | None:
        return self._settings_path

    @property
    def load_error(self) -> Exception | None:
        return self._load_error

    @property
    def settings(self) -> dict[str, Any]:
        """Current merged settings (read-only view)."""
        return self._settings

    def reload(self) -> None:
        """Reload settings from disk."""
        if self._settings_path:
            self._global_settings, self._load_error = _load_from_file(self._settings_path)
        self._modified_fields.clear()
        self._modified_nested_fields.clear()
        self._remerge()

    def apply_overrides(self, overrides: dict[str, Any]) -> None:
        """Apply CLI-level overrides on top of stored settings."""
        self._overrides = deep_merge_settings(self._overrides, overrides)
        self._remerge()

    def get_global_settings(self) -> dict[str, Any]:
        """Get a deep copy of the raw stored settings."""
        return deepcopy(self._global_settings)

    def _remerge(self) -> None:
        self._settings = deep_merge_settings(deepcopy(self._global_settings), self._overrides)

    # --- Modification tracking ---

    def _mark_modified(self, field_name: str, nested_key: str | None = None) -> None:
        self._modified_fields.add(field_name)
        if nested_key:
            self._modified_nested_fields.setdefault(field_name, set()).add(nested_key)

    # --- Persistence ---

    def _save(self) -> None:
        """Write only modified fields to the settings file, preserving external changes."""
        # Don't overwrite corrupted files
        if self._persist and self._settings_path and not self._load_error:
            current_file, _ = _load_from_file(self._settings_path)
            merged: dict[str, Any] = dict(current_file)

            for field_name in self._modified_fields:
                value = self._global_settings.get(field_name)
                nested_keys = self._modified_nested_fields.get(field_name)

                if nested_keys and isinstance(value, dict):
                    if not isinstance(merged.get(field_name), dict):
                        merged[field_name] = {}
                    for nk in nested_keys:
                        merged[field_name][nk] = value.get(nk)
                else:
                    merged[field_name] = value

            merged = {k: v for k, v in merged.items() if v is not None}

            os.makedirs(os.path.dirname(self._settings_path), exist_ok=True)
            Path(self._settings_path).write_text(
                json.dumps(merged, indent=2, ensure_ascii=False) + "\n",
                encoding="utf-8",
            )

        self._remerge()

    # --- Getters ---

    def get_provider(self) -> str:
        provider = self._settings.get("provider") or DEFAULT_PROVIDER
        if provider not in PROVIDERS:
            logger.warning("Ignoring unknown provider setting %r; using %r", provider, DEFAULT_PROVIDER)
            return DEFAULT_PROVIDER
        return provider

    def get_model(self) -> str:
        return self._settings.get("model") or get_env_model(self.get_provider())

    def get_api_key(self, provider: str | None = None) -> str | None:
        """Stored key for ``provider``, falling back to the environment."""
        provider = provider or self.get_provider()
        keys = self._settings.get("apiKeys") or {}
        return keys.get(provider) or get_env_api_key(provider)

    def _get_number(self, key: str, default: Any, convert: Any, valid: Any) -> Any:
        value = self._settings.get(key)
        if value is None:
            return default
        try:
            number = convert(value)
        except (TypeError, ValueError):
            number = None
        if number is None or isinstance(value, bool) or not valid(number):
            logger.warning("Ignoring invalid %s setting %r; using %r", key, value, default)
            return default
        return number

    def get_debounce_ms(self) -> int:
        return self._get_number("debounceMs", DEFAULT_DEBOUNCE_MS, int, lambda n: n >= 0)

    def get_units(self) -> UnitScheme:
        units = self._settings.get("units")
        if units is None:
            return DEFAULT_UNITS
        if units not in UNIT_SCHEMES:
            logger.warning("Ignoring unknown units setting %r; using %r", units, DEFAULT_UNITS)
            return DEFAULT_UNITS
        return units

    def get_timeout_seconds(self) -> float:
        return self._get_number("timeoutSeconds", DEFAULT_TIMEOUT_SECONDS, float, lambda n: n > 0)

    def get_history_pairs(self) -> int:
        return self._get_number("historyPairs", DEFAULT_HISTORY_PAIRS, int, lambda n: n >= 0)

    # --- Setters ---

    def set_provider(self, provider: str) -> None:
        if provider not in PROVIDERS:
            raise ValueError(f"Unknown provider: {provider!r} (expected one of {', '.join(PROVIDERS)})")
        self._global_settings["provider"] = provider
        self._mark_modified("provider")
        self._save()

    def set_model(self, model: str) -> None:
        self._global_settings["model"] = model
        self._mark_modified("model")
        self._save()

    def set_api_key(self, key: str, provider: str | None = None) -> None:
        provider = provider or self.get_provider()
        self._global_settings.setdefault("apiKeys", {})[provider] = key
        self._mark_modified("apiKeys", provider)
        self._save()

    def set_debounce_ms(self, ms: int) -> None:
        if ms < 0:
            raise ValueError("debounceMs must be >= 0")
        self._global_settings["debounceMs"] = ms
        self._mark_modified("debounceMs")
        self._save()

    def set_units(self, units: str) -> None:
        if units not in UNIT_SCHEMES:
            raise ValueError(f"Unknown unit scheme: {units!r} (expected one of {', '.join(UNIT_SCHEMES)})")
        self._global_settings["units"] = units
        self._mark_modified("units")
        self._save()

    def set_timeout_seconds(self, seconds: float) -> None:
        if seconds <= 0:
            raise ValueError("timeoutSeconds must be > 0")
        self._global_settings["timeoutSeconds"] = seconds
        self._mark_modified("timeoutSeconds")
        self._save()

    def set_history_pairs(self, pairs: int) -> None:
        if pairs < 0:
            raise ValueError("historyPairs must be >= 0")
        self._global_settings["historyPairs"] = pairs
        self._mark_modified("historyPairs")
        self._save()

    def set_value(self, key: str, value: str) -> None:
        """Set one key from its string form (as given on the command line)."""
        match key:
            case "provider":
                self.set_provider(value)
            case "model":
                self.set_model(value)
            case "apiKey":
                self.set_api_key(value)
            case "debounceMs":
                self.set_debounce_ms(int(value))
            case "units":
                self.set_units(value)
            case "timeoutSeconds":
                self.set_timeout_seconds(float(value))
            case "historyPairs":
                self.set_history_pairs(int(value))
            case _:
                raise ValueError(f"Unknown setting: {key!r} (expected one of {', '.join(SETTABLE_KEYS)})")


# --- File I/O helpers ---


def _load_from_file(path: str) -> tuple[dict[str, Any], Exception | None]:
    """Load settings from a JSON file. Returns (settings, error)."""
    if not os.path.exists(path):
        return {}, None
    try:
        content = Path(path).read_text(encoding="utf-8")
        settings = json.loads(content)
        if not isinstance(settings, dict):
            raise ValueError(f"Settings file {path} does not hold a JSON object")
        return _migrate_settings(settings), None
    except (OSError, ValueError) as e:
        return {}, e


def default_config_dir() -> str:
    """Settings directory: ``$GRAMMY_DIR`` or ``~/.grammy``."""
    return os.environ.get("GRAMMY_DIR") or os.path.join(os.path.expanduser("~"), CONFIG_DIR_NAME)
