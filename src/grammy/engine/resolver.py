"""Order suggestion candidates and drop overlaps."""

from __future__ import annotations

from collections.abc import Iterable

from grammy.types import Suggestion


def resolve(candidates: Iterable[Suggestion]) -> list[Suggestion]:
    """Return a non-overlapping subset sorted ascending by offset.

    Earlier-starting suggestions win; among equal offsets the first one in
    input order wins.
    """
    ordered = sorted(candidates, key=lambda s: s.offset)

    kept: list[Suggestion] = []
    cursor = 0
    for candidate in ordered:
        if candidate.offset < cursor:
            continue
        kept.append(candidate)
        cursor = candidate.offset + candidate.length
    return kept
