"""grammy: live grammar suggestions over an editable text surface."""

from grammy.engine import BufferSurface, EditorSession, SuggestionRegistry
from grammy.errors import (
    CheckCancelledError,
    CheckerError,
    GrammyError,
    InvalidRangeError,
    StaleSuggestionError,
    SuggestionNotFoundError,
)
from grammy.types import RawMatch, Suggestion

__all__ = [
    "BufferSurface",
    "CheckCancelledError",
    "CheckerError",
    "EditorSession",
    "GrammyError",
    "InvalidRangeError",
    "RawMatch",
    "StaleSuggestionError",
    "Suggestion",
    "SuggestionNotFoundError",
    "SuggestionRegistry",
]
