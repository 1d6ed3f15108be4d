"""Single-line status channel."""

from __future__ import annotations

from collections.abc import Callable

StatusListener = Callable[[str], None]

READY = "Ready"
CHECKING = "Checking..."
ALL_GOOD = "All good!"
RECHECKING = "Text changed; re-checking..."
NOT_FOUND = "Suggestion not found"


def count_status(count: int) -> str:
    """Status line for a finished check or accept."""
    return f"{count} suggestion(s)" if count else ALL_GOOD


class StatusChannel:
    """Holds the current status line and notifies subscribers on change."""

    def __init__(self, initial: str = READY) -> None:
        self._text = initial
        self._listeners: set[StatusListener] = set()

    @property
    def text(self) -> str:
        return self._text

    def set(self, text: str) -> None:
        self._text = text
        for listener in list(self._listeners):
            listener(text)

    def subscribe(self, fn: StatusListener) -> Callable[[], None]:
        """Subscribe to status changes. Returns an unsubscribe function."""
        self._listeners.add(fn)

        def unsubscribe() -> None:
            self._listeners.discard(fn)

        return unsubscribe
