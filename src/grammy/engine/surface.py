"""Visual Surface capability and an in-memory implementation."""

from __future__ import annotations

import bisect
from collections.abc import Callable
from typing import Protocol

from grammy.engine.render import AnnotatedText, CaretPosition, annotate
from grammy.engine.units import UnitScheme, build_offset_table, unit_length

ContentChangedCallback = Callable[[str], None]
HoverCallback = Callable[[str], None]
Unsubscribe = Callable[[], None]


class VisualSurface(Protocol):
    """What the engine needs from an editable on-screen view.

    The surface owns the canonical live text. ``render`` replaces the rendered
    content structurally, so the caret has to be restored afterwards.
    Content-changed callbacks fire for user edits only, never for ``render``.
    """

    def render(self, annotated: AnnotatedText) -> None: ...

    def get_text(self) -> str: ...

    def get_caret_offset(self) -> int: ...

    def set_caret_offset(self, offset: int) -> None: ...

    def on_content_changed(self, callback: ContentChangedCallback) -> Unsubscribe: ...

    def on_hover(self, span_id: str, callback: HoverCallback) -> Unsubscribe: ...


class SurfaceListeners:
    """Content-changed and hover subscriptions shared by surface implementations."""

    def __init__(self) -> None:
        self._content_listeners: list[ContentChangedCallback] = []
        self._hover_listeners: dict[str, list[HoverCallback]] = {}

    def on_content_changed(self, callback: ContentChangedCallback) -> Unsubscribe:
        self._content_listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._content_listeners:
                self._content_listeners.remove(callback)

        return unsubscribe

    def on_hover(self, span_id: str, callback: HoverCallback) -> Unsubscribe:
        self._hover_listeners.setdefault(span_id, []).append(callback)

        def unsubscribe() -> None:
            callbacks = self._hover_listeners.get(span_id)
            if callbacks and callback in callbacks:
                callbacks.remove(callback)

        return unsubscribe

    def _prune_hover_listeners(self, annotated: AnnotatedText) -> None:
        # Spans that are no longer rendered cannot be hovered.
        live = set(annotated.span_ids())
        self._hover_listeners = {k: v for k, v in self._hover_listeners.items() if k in live}

    def _notify_content(self, text: str) -> None:
        for callback in list(self._content_listeners):
            callback(text)

    def _notify_hover(self, span_id: str) -> None:
        for callback in list(self._hover_listeners.get(span_id, ())):
            callback(span_id)


class BufferSurface(SurfaceListeners):
    """A headless surface holding runs and a run-relative caret.

    Used by the CLI and by tests; it behaves like a content-editable element:
    rendering drops the selection, and user edits collapse the markup to plain
    text before notifying listeners.
    """

    def __init__(self, text: str = "", units: UnitScheme = "utf16") -> None:
        super().__init__()
        self._units = units
        self._annotated = annotate(text, (), units)
        self._caret = self._annotated.locate(self._annotated.length)
        self.render_count = 0

    # --- VisualSurface ---

    def render(self, annotated: AnnotatedText) -> None:
        self._annotated = annotated
        self._caret = CaretPosition(0, 0)
        self._prune_hover_listeners(annotated)
        self.render_count += 1

    def get_text(self) -> str:
        return self._annotated.text

    def get_caret_offset(self) -> int:
        return self._annotated.offset_of(self._caret)

    def set_caret_offset(self, offset: int) -> None:
        self._caret = self._annotated.locate(offset)

    # --- Inspection ---

    @property
    def annotated(self) -> AnnotatedText:
        return self._annotated

    @property
    def caret_position(self) -> CaretPosition:
        return self._caret

    # --- User actions ---

    def set_text(self, text: str, caret: int | None = None) -> None:
        """Replace the whole content as a user edit (e.g. paste over all)."""
        self._annotated = annotate(text, (), self._units)
        self._caret = self._annotated.locate(self._annotated.length if caret is None else caret)
        self._notify()

    def type_text(self, chars: str) -> None:
        """Insert ``chars`` at the caret."""
        text = self.get_text()
        index = self._caret_char_index()
        new_text = text[:index] + chars + text[index:]
        caret = self.get_caret_offset() + unit_length(chars, self._units)
        self._annotated = annotate(new_text, (), self._units)
        self._caret = self._annotated.locate(caret)
        self._notify()

    def backspace(self) -> None:
        """Delete the code point before the caret."""
        index = self._caret_char_index()
        if index == 0:
            return
        text = self.get_text()
        removed = text[index - 1]
        caret = self.get_caret_offset() - unit_length(removed, self._units)
        self._annotated = annotate(text[: index - 1] + text[index:], (), self._units)
        self._caret = self._annotated.locate(caret)
        self._notify()

    def move_caret(self, offset: int) -> None:
        self.set_caret_offset(offset)

    def hover(self, span_id: str) -> None:
        self._notify_hover(span_id)

    def _caret_char_index(self) -> int:
        table = build_offset_table(self.get_text(), self._units)
        return bisect.bisect_right(table, self.get_caret_offset()) - 1

    def _notify(self) -> None:
        self._notify_content(self.get_text())
