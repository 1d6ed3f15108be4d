"""Convert checker matches (code point indices) into storage-unit suggestions."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from grammy.engine.units import UnitScheme, build_offset_table
from grammy.types import RawMatch, Suggestion

logger = logging.getLogger(__name__)


def normalize(
    text: str,
    matches: Iterable[RawMatch],
    units: UnitScheme = "utf16",
    *,
    rule: str = "llm",
) -> list[Suggestion]:
    """Turn raw matches into suggestion candidates addressed in ``units``.

    Malformed matches (missing or out-of-range indices) and no-op matches
    (replacement equal to the original slice) are dropped; the rest of the
    batch is kept. Output order follows input order.
    """
    table = build_offset_table(text, units)
    char_len = len(table) - 1

    candidates: list[Suggestion] = []
    for match in matches:
        start, end = match.start, match.end
        if start is None or end is None or start < 0 or start > end or end > char_len:
            logger.debug("Dropping malformed match start=%r end=%r (len=%d)", start, end, char_len)
            continue

        offset = table[start]
        length = table[end] - offset
        # Code point slicing at table boundaries is the same slice as the
        # storage range [offset, offset + length).
        original = text[start:end]

        if original == match.replacement:
            logger.debug("Dropping no-op match at %d: %r", offset, original)
            continue

        candidates.append(
            Suggestion(
                message=match.message,
                offset=offset,
                length=length,
                original=original,
                replacement=match.replacement,
                rule=rule,
                severity=match.severity,
            )
        )
    return candidates
