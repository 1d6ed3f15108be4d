"""Configuration for the web server."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from grammy.engine.units import UnitScheme
from grammy.settings import default_config_dir


@dataclass
class Config:
    """Server configuration."""

    host: str = "127.0.0.1"
    port: int = 3000
    units: UnitScheme = "utf16"
    debounce_ms: int = 600
    draft_path: str | None = field(default_factory=lambda: str(Path(default_config_dir()) / "draft.json"))
    static_dir: str = field(default_factory=lambda: str(Path(__file__).parent / "static"))
