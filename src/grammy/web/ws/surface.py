"""Server-side mirror of a browser's editable element."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from grammy.engine.render import AnnotatedText, annotate
from grammy.engine.surface import SurfaceListeners
from grammy.engine.units import UnitScheme
from grammy.web.ws.protocol import caret_message, render_message


class WebSocketSurface(SurfaceListeners):
    """A Visual Surface whose screen is a browser on the other end of a socket.

    Renders and caret moves are queued as outgoing messages through ``send``.
    The browser reports edits, caret moves and hovers, which are fed back
    through ``apply_edit``, ``move_caret`` and ``hover``.
    """

    def __init__(self, send: Callable[[dict[str, Any]], None], units: UnitScheme = "utf16") -> None:
        super().__init__()
        self._send = send
        self._units = units
        self._annotated = annotate("", (), units)
        self._caret = 0

    # --- VisualSurface ---

    def render(self, annotated: AnnotatedText) -> None:
        self._annotated = annotated
        self._prune_hover_listeners(annotated)
        self._send(render_message(annotated))

    def get_text(self) -> str:
        return self._annotated.text

    def get_caret_offset(self) -> int:
        return self._caret

    def set_caret_offset(self, offset: int) -> None:
        self._caret = self._clamp(offset)
        self._send(caret_message(self._caret, self._annotated.locate(self._caret)))

    # --- Browser-reported actions ---

    def load(self, text: str) -> None:
        """Set the text without treating it as an edit (restored drafts)."""
        self._annotated = annotate(text, (), self._units)
        self._caret = self._annotated.length

    def apply_edit(self, text: str, caret: int | None = None) -> None:
        self._annotated = annotate(text, (), self._units)
        self._caret = self._clamp(self._annotated.length if caret is None else caret)
        self._notify_content(text)

    def move_caret(self, offset: int) -> None:
        self._caret = self._clamp(offset)

    def hover(self, span_id: str) -> None:
        self._notify_hover(span_id)

    def _clamp(self, offset: int) -> int:
        return max(0, min(offset, self._annotated.length))
