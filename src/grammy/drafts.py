"""Persist the editor text between sessions."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)


class Draft(BaseModel):
    text: str = ""


class DraftStore:
    """Stores a single draft as ``{"text": ...}`` in a JSON file.

    A missing or unreadable file loads as an empty draft.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)

    def load(self) -> str:
        if not self.path.exists():
            return ""
        try:
            return Draft.model_validate_json(self.path.read_text(encoding="utf-8")).text
        except (OSError, ValidationError) as e:
            logger.warning("Ignoring unreadable draft %s: %s", self.path, e)
            return ""

    def save(self, text: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(Draft(text=text).model_dump(), ensure_ascii=False) + "\n", encoding="utf-8")
