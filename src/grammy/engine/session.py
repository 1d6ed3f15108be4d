"""One editing session: surface, registry, scheduler, renderer and status."""

from __future__ import annotations

import logging
from collections.abc import Callable

from grammy.checker.base import Checker, checker_name
from grammy.engine.registry import AcceptResult, SuggestionRegistry
from grammy.engine.render import RenderSynchronizer
from grammy.engine.scheduler import (
    DEFAULT_DEBOUNCE_MS,
    CheckDiscardedEvent,
    CheckFailedEvent,
    CheckScheduler,
    CheckSkippedEvent,
    CheckStartedEvent,
    SchedulerEvent,
    SuggestionsClearedEvent,
    SuggestionsReadyEvent,
)
from grammy.engine.status import CHECKING, NOT_FOUND, READY, RECHECKING, StatusChannel, count_status
from grammy.engine.surface import VisualSurface
from grammy.engine.units import UnitScheme
from grammy.errors import StaleSuggestionError, SuggestionNotFoundError
from grammy.types import Suggestion

logger = logging.getLogger(__name__)

SuggestionsListener = Callable[[tuple[Suggestion, ...]], None]
PreviewListener = Callable[[Suggestion | None], None]


class EditorSession:
    """Drives a Visual Surface from user edits, check results and accepts."""

    def __init__(
        self,
        surface: VisualSurface,
        checker: Checker,
        *,
        units: UnitScheme = "utf16",
        debounce_ms: int = DEFAULT_DEBOUNCE_MS,
        status: StatusChannel | None = None,
        rule: str | None = None,
    ) -> None:
        self.surface = surface
        self.status = status or StatusChannel()
        self.registry = SuggestionRegistry(units)
        self.synchronizer = RenderSynchronizer(surface, units)
        self.scheduler = CheckScheduler(
            checker,
            self.registry,
            surface.get_text,
            debounce_ms=debounce_ms,
            rule=rule or checker_name(checker),
        )
        self._preview: Suggestion | None = None
        self._suggestion_listeners: set[SuggestionsListener] = set()
        self._preview_listeners: set[PreviewListener] = set()
        self._hover_unsubscribers: list[Callable[[], None]] = []
        self._unsubscribers: list[Callable[[], None]] = []

    # --- Properties ---

    @property
    def suggestions(self) -> tuple[Suggestion, ...]:
        return self.registry.suggestions

    @property
    def preview(self) -> Suggestion | None:
        return self._preview

    # --- Subscriptions ---

    def on_suggestions(self, fn: SuggestionsListener) -> Callable[[], None]:
        self._suggestion_listeners.add(fn)
        return lambda: self._suggestion_listeners.discard(fn)

    def on_preview(self, fn: PreviewListener) -> Callable[[], None]:
        self._preview_listeners.add(fn)
        return lambda: self._preview_listeners.discard(fn)

    # --- Lifecycle ---

    def start(self, *, check_now: bool = True) -> None:
        """Attach to the surface and paint the current text.

        With ``check_now`` and non-blank text, a check is scheduled right away
        (this needs a running event loop).
        """
        self._unsubscribers.append(self.surface.on_content_changed(self._on_content_changed))
        self._unsubscribers.append(self.scheduler.subscribe(self._on_scheduler_event))

        text = self.surface.get_text()
        self.registry.clear(text)
        self._repaint()
        if check_now and text.strip():
            self.scheduler.schedule()

    def close(self) -> None:
        self.scheduler.close()
        for unsubscribe in self._unsubscribers + self._hover_unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
        self._hover_unsubscribers.clear()

    # --- User actions ---

    def accept(self, suggestion_id: str) -> AcceptResult | None:
        """Accept one suggestion. Failures are reported on the status channel."""
        try:
            result = self.registry.accept(suggestion_id, self.surface.get_text())
        except SuggestionNotFoundError:
            logger.info("Accept for unknown suggestion %s", suggestion_id)
            self.status.set(NOT_FOUND)
            return None
        except StaleSuggestionError as e:
            logger.info("Accept for %s rejected (%s); re-checking", suggestion_id, e)
            self.scheduler.schedule()
            self.status.set(RECHECKING)
            return None

        self._set_preview(None)
        self._repaint()
        self.status.set(count_status(len(result.suggestions)))
        return result

    def recheck(self) -> None:
        """Run a fresh check of the current text."""
        self.scheduler.schedule()

    # --- Internal ---

    def _on_content_changed(self, text: str) -> None:
        self.scheduler.schedule()

    def _on_scheduler_event(self, event: SchedulerEvent) -> None:
        match event:
            case SuggestionsClearedEvent():
                self._set_preview(None)
                self._repaint()
            case CheckSkippedEvent():
                self.status.set(READY)
            case CheckStartedEvent():
                self.status.set(CHECKING)
            case SuggestionsReadyEvent():
                self._repaint()
                self.status.set(count_status(len(event.suggestions)))
            case CheckFailedEvent():
                self._repaint()
                self.status.set(event.message)
            case CheckDiscardedEvent():
                self.status.set(READY)

    def _repaint(self) -> None:
        snapshot = self.registry.snapshot
        self.synchronizer.repaint(snapshot.text, snapshot.suggestions)

        for unsubscribe in self._hover_unsubscribers:
            unsubscribe()
        self._hover_unsubscribers = [self.surface.on_hover(s.id, self._on_hover) for s in snapshot.suggestions]

        for listener in list(self._suggestion_listeners):
            listener(snapshot.suggestions)

    def _on_hover(self, span_id: str) -> None:
        self._set_preview(self.registry.get(span_id))

    def _set_preview(self, suggestion: Suggestion | None) -> None:
        if suggestion is self._preview:
            return
        self._preview = suggestion
        for listener in list(self._preview_listeners):
            listener(suggestion)
