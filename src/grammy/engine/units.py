"""Storage-unit addressing for live text.

Checkers count code points. Surfaces slice text in their own storage units:
UTF-16 code units for browser surfaces, UTF-8 bytes for byte buffers, or code
points for plain Python strings. Every offset the engine hands out is in one of
these schemes.
"""

from __future__ import annotations

from typing import Literal

UnitScheme = Literal["utf16", "utf8", "codepoint"]

UNIT_SCHEMES: tuple[UnitScheme, ...] = ("utf16", "utf8", "codepoint")


def unit_width(char: str, units: UnitScheme) -> int:
    """Width of a single code point in the given scheme."""
    if units == "codepoint":
        return 1
    cp = ord(char)
    if units == "utf16":
        return 2 if cp > 0xFFFF else 1
    if cp < 0x80:
        return 1
    if cp < 0x800:
        return 2
    if cp < 0x10000:
        return 3
    return 4


def unit_length(text: str, units: UnitScheme) -> int:
    if units == "codepoint":
        return len(text)
    return sum(unit_width(ch, units) for ch in text)


def build_offset_table(text: str, units: UnitScheme) -> list[int]:
    """Map every code point index ``0..N`` to its storage offset.

    The table has ``N + 1`` entries; the last one is the total storage length.
    """
    table = [0] * (len(text) + 1)
    position = 0
    for i, ch in enumerate(text):
        table[i] = position
        position += unit_width(ch, units)
    table[len(text)] = position
    return table


def _encode(text: str, units: UnitScheme) -> bytes:
    codec = "utf-16-le" if units == "utf16" else "utf-8"
    return text.encode(codec, "surrogatepass")


def _decode(data: bytes, units: UnitScheme) -> str:
    codec = "utf-16-le" if units == "utf16" else "utf-8"
    try:
        return data.decode(codec, "surrogatepass")
    except UnicodeDecodeError:
        # A range that splits an encoded character.
        return data.decode(codec, "replace")


def slice_units(text: str, offset: int, length: int, units: UnitScheme) -> str:
    """Return ``text[offset:offset+length]`` with offsets in storage units.

    A range that splits a multi-unit character yields a string that cannot
    equal any well-formed original, which callers treat as stale.
    """
    if units == "codepoint":
        return text[offset : offset + length]
    scale = 2 if units == "utf16" else 1
    data = _encode(text, units)
    return _decode(data[offset * scale : (offset + length) * scale], units)


def splice_units(text: str, offset: int, length: int, replacement: str, units: UnitScheme) -> str:
    """Replace the storage range ``[offset, offset+length)`` with ``replacement``."""
    if units == "codepoint":
        return text[:offset] + replacement + text[offset + length :]
    scale = 2 if units == "utf16" else 1
    data = _encode(text, units)
    head = data[: offset * scale]
    tail = data[(offset + length) * scale :]
    return _decode(head + _encode(replacement, units) + tail, units)
