"""Bounded LLM conversation history."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Literal


@dataclass(frozen=True)
class HistoryEntry:
    role: Literal["user", "assistant"]
    content: str

    def to_message(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


class CheckHistory:
    """Keeps the last ``max_pairs`` user/assistant exchanges.

    Sending recent exchanges back to the model keeps it from proposing a change
    and then proposing to revert it on the next check.
    """

    def __init__(self, max_pairs: int = 5) -> None:
        self.max_pairs = max_pairs
        self._pairs: deque[tuple[HistoryEntry, HistoryEntry]] = deque(maxlen=max(max_pairs, 0))

    def push_pair(self, user_content: str, assistant_content: str) -> None:
        if self.max_pairs <= 0:
            return
        self._pairs.append(
            (HistoryEntry("user", user_content), HistoryEntry("assistant", assistant_content))
        )

    def entries(self) -> list[HistoryEntry]:
        return [entry for pair in self._pairs for entry in pair]

    def messages(self) -> list[dict[str, str]]:
        return [entry.to_message() for entry in self.entries()]

    def clear(self) -> None:
        self._pairs.clear()

    def __len__(self) -> int:
        return len(self._pairs)

    def is_empty(self) -> bool:
        return not self._pairs
