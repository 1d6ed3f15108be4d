"""Annotated rendering and caret restoration."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from grammy.engine.units import UnitScheme, slice_units, unit_length
from grammy.types import Suggestion

if TYPE_CHECKING:
    from grammy.engine.surface import VisualSurface


@dataclass(frozen=True)
class TextRun:
    """A run of rendered text. Runs with a ``suggestion_id`` are tagged spans."""

    text: str
    suggestion_id: str | None = None

    def to_dict(self) -> dict[str, str | None]:
        return {"text": self.text, "id": self.suggestion_id}


@dataclass(frozen=True)
class CaretPosition:
    run_index: int
    run_offset: int


@dataclass(frozen=True)
class AnnotatedText:
    text: str
    runs: tuple[TextRun, ...]
    units: UnitScheme = "utf16"

    @property
    def length(self) -> int:
        return unit_length(self.text, self.units)

    def span_ids(self) -> list[str]:
        return [r.suggestion_id for r in self.runs if r.suggestion_id is not None]

    def locate(self, offset: int) -> CaretPosition:
        """Find the run holding a linear caret offset (clamped to the text).

        An offset on a boundary between two runs lands at the end of the
        earlier run.
        """
        offset = max(0, min(offset, self.length))
        current = 0
        for index, run in enumerate(self.runs):
            run_len = unit_length(run.text, self.units)
            if current + run_len >= offset:
                return CaretPosition(run_index=index, run_offset=offset - current)
            current += run_len
        return CaretPosition(run_index=0, run_offset=0)

    def offset_of(self, position: CaretPosition) -> int:
        """Linear offset of a caret position; the inverse of :meth:`locate`."""
        if not self.runs:
            return 0
        index = max(0, min(position.run_index, len(self.runs) - 1))
        before = sum(unit_length(r.text, self.units) for r in self.runs[:index])
        run_len = unit_length(self.runs[index].text, self.units)
        return before + max(0, min(position.run_offset, run_len))


def annotate(text: str, suggestions: Iterable[Suggestion], units: UnitScheme = "utf16") -> AnnotatedText:
    """Split ``text`` into plain runs and tagged spans, one per suggestion.

    ``suggestions`` must already be sorted and non-overlapping.
    """
    runs: list[TextRun] = []
    pos = 0
    total = unit_length(text, units)
    for s in suggestions:
        if s.offset > pos:
            runs.append(TextRun(slice_units(text, pos, s.offset - pos, units)))
        runs.append(TextRun(slice_units(text, s.offset, s.length, units), suggestion_id=s.id))
        pos = s.end
    if pos < total:
        runs.append(TextRun(slice_units(text, pos, total - pos, units)))
    return AnnotatedText(text=text, runs=tuple(runs), units=units)


class RenderSynchronizer:
    """Repaints a surface and puts the caret back where it was."""

    def __init__(self, surface: VisualSurface, units: UnitScheme = "utf16") -> None:
        self._surface = surface
        self._units = units
        self._last: AnnotatedText | None = None

    @property
    def last_render(self) -> AnnotatedText | None:
        return self._last

    def repaint(self, text: str, suggestions: Iterable[Suggestion]) -> AnnotatedText:
        caret = self._surface.get_caret_offset()
        annotated = annotate(text, suggestions, self._units)
        self._surface.render(annotated)
        self._surface.set_caret_offset(max(0, min(caret, annotated.length)))
        self._last = annotated
        return annotated
