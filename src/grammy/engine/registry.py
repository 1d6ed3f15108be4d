"""Authoritative set of active suggestions for one text snapshot."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from grammy.engine.units import UnitScheme, slice_units, splice_units, unit_length
from grammy.errors import InvalidRangeError, StaleSuggestionError, SuggestionNotFoundError
from grammy.types import Suggestion

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegistrySnapshot:
    """Text plus the suggestions that are valid against it."""

    text: str = ""
    suggestions: tuple[Suggestion, ...] = ()


@dataclass(frozen=True)
class AcceptResult:
    text: str
    suggestions: tuple[Suggestion, ...]
    accepted: Suggestion


def apply_suggestion(text: str, suggestion: Suggestion, units: UnitScheme = "utf16") -> str:
    """Splice ``suggestion`` into ``text`` after verifying it still applies.

    Raises InvalidRangeError when the range runs past the text and
    StaleSuggestionError when the slice no longer equals ``original``.
    """
    if suggestion.offset + suggestion.length > unit_length(text, units):
        raise InvalidRangeError()

    current = slice_units(text, suggestion.offset, suggestion.length, units)
    if current != suggestion.original:
        raise StaleSuggestionError()

    return splice_units(text, suggestion.offset, suggestion.length, suggestion.replacement, units)


def validate_suggestions(text: str, suggestions: Iterable[Suggestion], units: UnitScheme) -> None:
    """Raise ValueError unless ``suggestions`` satisfy the active-set invariants."""
    total = unit_length(text, units)
    seen: set[str] = set()
    cursor = 0
    for s in suggestions:
        if s.id in seen:
            raise ValueError(f"Duplicate suggestion id {s.id}")
        seen.add(s.id)
        if s.offset < cursor:
            raise ValueError(f"Suggestion {s.id} overlaps or is out of order at offset {s.offset}")
        if s.end > total:
            raise ValueError(f"Suggestion {s.id} ends at {s.end}, past text length {total}")
        if s.original == s.replacement:
            raise ValueError(f"Suggestion {s.id} is a no-op")
        cursor = s.end


class SuggestionRegistry:
    """Owns the active suggestion set and the text it was computed against.

    The snapshot is immutable and swapped in a single assignment, so a reader
    never observes a half-updated set.
    """

    def __init__(self, units: UnitScheme = "utf16") -> None:
        self._units = units
        self._snapshot = RegistrySnapshot()

    @property
    def units(self) -> UnitScheme:
        return self._units

    @property
    def snapshot(self) -> RegistrySnapshot:
        return self._snapshot

    @property
    def text(self) -> str:
        return self._snapshot.text

    @property
    def suggestions(self) -> tuple[Suggestion, ...]:
        return self._snapshot.suggestions

    def __len__(self) -> int:
        return len(self._snapshot.suggestions)

    def get(self, suggestion_id: str) -> Suggestion | None:
        for s in self._snapshot.suggestions:
            if s.id == suggestion_id:
                return s
        return None

    def replace_all(self, text: str, suggestions: Iterable[Suggestion]) -> None:
        """Swap in a new text snapshot and its suggestion set."""
        items = tuple(suggestions)
        validate_suggestions(text, items, self._units)
        self._snapshot = RegistrySnapshot(text=text, suggestions=items)

    def clear(self, text: str) -> None:
        self.replace_all(text, ())

    def accept(self, suggestion_id: str, live_text: str) -> AcceptResult:
        """Apply one suggestion to ``live_text`` and rebase the others.

        ``live_text`` comes from the surface, which owns the canonical text.
        On any error nothing is mutated.
        """
        accepted = self.get(suggestion_id)
        if accepted is None:
            raise SuggestionNotFoundError(suggestion_id)

        new_text = apply_suggestion(live_text, accepted, self._units)
        delta = unit_length(accepted.replacement, self._units) - accepted.length

        rebased: list[Suggestion] = []
        for s in self._snapshot.suggestions:
            if s.id == accepted.id:
                continue
            # A sibling at the same offset as an accepted insertion sits after it.
            if s.offset > accepted.offset or (accepted.length == 0 and s.offset == accepted.offset):
                s = s.model_copy(update={"offset": s.offset + delta})
            rebased.append(s)

        self._snapshot = RegistrySnapshot(text=new_text, suggestions=tuple(rebased))
        logger.debug(
            "Accepted %s at %d (delta=%d), %d suggestion(s) remain",
            accepted.id,
            accepted.offset,
            delta,
            len(rebased),
        )
        return AcceptResult(text=new_text, suggestions=self._snapshot.suggestions, accepted=accepted)
