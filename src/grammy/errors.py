"""Error taxonomy for the suggestion engine and its collaborators."""

from __future__ import annotations


class GrammyError(Exception):
    """Base class for all engine errors."""


class SuggestionNotFoundError(GrammyError):
    """Accept was requested for an id that is not in the active set."""

    def __init__(self, suggestion_id: str) -> None:
        super().__init__(f"Suggestion not found: {suggestion_id}")
        self.suggestion_id = suggestion_id


class StaleSuggestionError(GrammyError):
    """The live text no longer holds the suggestion's original slice."""

    def __init__(self, message: str = "Text changed since the last check; please run Check again") -> None:
        super().__init__(message)


class InvalidRangeError(StaleSuggestionError):
    """The suggestion range reaches past the end of the live text."""

    def __init__(self) -> None:
        super().__init__("Invalid suggestion range")


class CheckerError(GrammyError):
    """A check request failed. The message is shown to the user verbatim."""


class CheckCancelledError(GrammyError):
    """A checker observed its cancellation signal and gave up."""
