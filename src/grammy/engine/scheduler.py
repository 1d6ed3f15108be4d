"""Debounced, cancellable check scheduling.

At most one check request is current. Every text-changing event clears the
active suggestions, cancels the timer and any in-flight request, and arms a
fresh debounce timer. Results are installed only when the text they were
computed against is still the live text.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal

from grammy.checker.base import Checker
from grammy.engine.normalizer import normalize
from grammy.engine.registry import SuggestionRegistry
from grammy.engine.resolver import resolve
from grammy.errors import CheckCancelledError, CheckerError
from grammy.types import RawMatch, Suggestion

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_MS = 600

# idle: nothing armed or outstanding
# pending: debounce timer armed
# in_flight: the current request is outstanding
# stale: debounce timer armed while a superseded request has not settled
SchedulerState = Literal["idle", "pending", "in_flight", "stale"]

_TRANSITIONS: dict[tuple[SchedulerState, str], SchedulerState] = {
    ("idle", "edit"): "pending",
    ("pending", "edit"): "pending",
    ("stale", "edit"): "pending",
    ("idle", "edit_superseding"): "stale",
    ("pending", "edit_superseding"): "stale",
    ("in_flight", "edit_superseding"): "stale",
    ("stale", "edit_superseding"): "stale",
    ("stale", "superseded_settled"): "pending",
    ("pending", "blank"): "idle",
    ("stale", "blank"): "idle",
    ("pending", "fire"): "in_flight",
    ("stale", "fire"): "in_flight",
    ("in_flight", "resolved"): "idle",
    ("in_flight", "discarded"): "idle",
    ("in_flight", "failed"): "idle",
    ("in_flight", "cancelled"): "idle",
}


# --- Scheduler events ---


@dataclass
class StateChangedEvent:
    previous: SchedulerState
    state: SchedulerState
    type: Literal["state_changed"] = "state_changed"


@dataclass
class SuggestionsClearedEvent:
    text: str
    type: Literal["suggestions_cleared"] = "suggestions_cleared"


@dataclass
class CheckSkippedEvent:
    text: str
    type: Literal["check_skipped"] = "check_skipped"


@dataclass
class CheckStartedEvent:
    text: str
    request_id: int
    type: Literal["check_started"] = "check_started"


@dataclass
class SuggestionsReadyEvent:
    text: str
    suggestions: tuple[Suggestion, ...]
    request_id: int
    type: Literal["suggestions_ready"] = "suggestions_ready"


@dataclass
class CheckDiscardedEvent:
    request_id: int
    type: Literal["check_discarded"] = "check_discarded"


@dataclass
class CheckFailedEvent:
    message: str
    request_id: int
    type: Literal["check_failed"] = "check_failed"


@dataclass
class CheckCancelledEvent:
    request_id: int
    type: Literal["check_cancelled"] = "check_cancelled"


SchedulerEvent = (
    StateChangedEvent
    | SuggestionsClearedEvent
    | CheckSkippedEvent
    | CheckStartedEvent
    | SuggestionsReadyEvent
    | CheckDiscardedEvent
    | CheckFailedEvent
    | CheckCancelledEvent
)


@dataclass
class _Request:
    request_id: int
    text: str
    task: asyncio.Task[list[RawMatch]]
    signal: asyncio.Event


class CheckScheduler:
    """Owns debounce timing and the one-request-at-a-time discipline."""

    def __init__(
        self,
        checker: Checker,
        registry: SuggestionRegistry,
        get_text: Callable[[], str],
        *,
        debounce_ms: int = DEFAULT_DEBOUNCE_MS,
        rule: str = "llm",
    ) -> None:
        self._checker = checker
        self._registry = registry
        self._get_text = get_text
        self._debounce_ms = debounce_ms
        self._rule = rule

        self._state: SchedulerState = "idle"
        self._epoch = 0
        self._timer: asyncio.TimerHandle | None = None
        self._request: _Request | None = None
        self._superseded: set[asyncio.Task[list[RawMatch]]] = set()
        self._listeners: set[Callable[[SchedulerEvent], None]] = set()
        self._idle = asyncio.Event()
        self._idle.set()

    # --- Properties ---

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def debounce_ms(self) -> int:
        return self._debounce_ms

    @property
    def checker(self) -> Checker:
        return self._checker

    @checker.setter
    def checker(self, value: Checker) -> None:
        self._checker = value

    # --- Subscriptions ---

    def subscribe(self, fn: Callable[[SchedulerEvent], None]) -> Callable[[], None]:
        """Subscribe to scheduler events. Returns an unsubscribe function."""
        self._listeners.add(fn)

        def unsubscribe() -> None:
            self._listeners.discard(fn)

        return unsubscribe

    def _emit(self, event: SchedulerEvent) -> None:
        for listener in list(self._listeners):
            listener(event)

    # --- Main methods ---

    def schedule(self) -> None:
        """Handle a text-changing event. Must be called from the event loop."""
        loop = asyncio.get_running_loop()
        self._epoch += 1
        self._cancel_timer()
        self._supersede_request()

        text = self._get_text()
        self._registry.clear(text)
        self._timer = loop.call_later(self._debounce_ms / 1000, self._on_timer, self._epoch)

        self._transition("edit_superseding" if self._superseded else "edit")
        self._emit(SuggestionsClearedEvent(text=text))

    def close(self) -> None:
        """Cancel the timer and any outstanding request, and go idle."""
        self._epoch += 1
        self._cancel_timer()
        self._supersede_request()
        previous = self._state
        self._set_state("idle")
        if previous != "idle":
            self._emit(StateChangedEvent(previous=previous, state="idle"))

    async def wait_for_idle(self) -> None:
        """Wait until nothing is pending or in flight."""
        await self._idle.wait()

    # --- Internal ---

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _supersede_request(self) -> None:
        request = self._request
        if request is None:
            return
        self._request = None
        request.signal.set()
        # Tracked until its done callback runs, even if it already finished.
        self._superseded.add(request.task)
        request.task.cancel()
        logger.debug("Superseded check #%d", request.request_id)

    def _on_timer(self, epoch: int) -> None:
        self._timer = None
        if epoch != self._epoch:
            return

        text = self._get_text()
        if not text.strip():
            self._registry.clear(text)
            self._transition("blank")
            self._emit(CheckSkippedEvent(text=text))
            return

        signal = asyncio.Event()
        task = asyncio.get_running_loop().create_task(self._checker.check(text, signal))
        request = _Request(request_id=epoch, text=text, task=task, signal=signal)
        self._request = request
        task.add_done_callback(functools.partial(self._on_done, request))

        self._transition("fire")
        self._emit(CheckStartedEvent(text=text, request_id=epoch))

    def _on_done(self, request: _Request, task: asyncio.Task[list[RawMatch]]) -> None:
        self._superseded.discard(task)
        error = None if task.cancelled() else task.exception()

        if request is not self._request:
            logger.debug("Ignoring result of superseded check #%d", request.request_id)
            if self._state == "stale" and not self._superseded:
                self._transition("superseded_settled")
            return

        self._request = None

        if task.cancelled() or isinstance(error, CheckCancelledError):
            self._transition("cancelled")
            self._emit(CheckCancelledEvent(request_id=request.request_id))
            return

        if error is not None:
            if isinstance(error, CheckerError):
                message = str(error)
                logger.warning("Check #%d failed: %s", request.request_id, message)
            else:
                message = f"Check failed: {error}"
                logger.warning("Check #%d failed", request.request_id, exc_info=error)
            self._registry.clear(self._get_text())
            self._transition("failed")
            self._emit(CheckFailedEvent(message=message, request_id=request.request_id))
            return

        if self._get_text() != request.text:
            logger.debug("Discarding check #%d: text changed since request", request.request_id)
            self._transition("discarded")
            self._emit(CheckDiscardedEvent(request_id=request.request_id))
            return

        suggestions = resolve(normalize(request.text, task.result(), self._registry.units, rule=self._rule))
        self._registry.replace_all(request.text, suggestions)
        self._transition("resolved")
        self._emit(
            SuggestionsReadyEvent(
                text=request.text,
                suggestions=self._registry.suggestions,
                request_id=request.request_id,
            )
        )

    def _transition(self, event: str) -> None:
        new_state = _TRANSITIONS.get((self._state, event))
        if new_state is None:
            raise RuntimeError(f"Invalid scheduler transition: {event!r} in state {self._state!r}")
        previous = self._state
        self._set_state(new_state)
        logger.debug("Scheduler %s --%s--> %s", previous, event, new_state)
        if previous != new_state:
            self._emit(StateChangedEvent(previous=previous, state=new_state))

    def _set_state(self, state: SchedulerState) -> None:
        self._state = state
        if state == "idle":
            self._idle.set()
        else:
            self._idle.clear()
