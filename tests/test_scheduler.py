"""Tests for debounced, cancellable check scheduling."""

import asyncio

import pytest

from grammy.engine.registry import SuggestionRegistry
from grammy.engine.scheduler import (
    CheckCancelledEvent,
    CheckDiscardedEvent,
    CheckFailedEvent,
    CheckScheduler,
    CheckSkippedEvent,
    CheckStartedEvent,
    StateChangedEvent,
    SuggestionsClearedEvent,
    SuggestionsReadyEvent,
)
from grammy.errors import CheckCancelledError, CheckerError
from grammy.types import RawMatch

HAS = RawMatch(message="verb", start=2, end=5, replacement="have")


class Editor:
    """Mutable live text plus a scheduler wired to it."""

    def __init__(self, checker, text: str = "", debounce_ms: int = 0) -> None:
        self.text = text
        self.registry = SuggestionRegistry()
        self.scheduler = CheckScheduler(checker, self.registry, lambda: self.text, debounce_ms=debounce_ms)
        self.events = []
        self.scheduler.subscribe(self.events.append)

    def edit(self, text: str) -> None:
        self.text = text
        self.scheduler.schedule()

    def of_type(self, cls):
        return [e for e in self.events if isinstance(e, cls)]


async def test_edit_clears_then_installs_results(static_checker):
    checker = static_checker([HAS])
    editor = Editor(checker)
    editor.registry.replace_all("old", [])

    editor.edit("I has a cat")
    assert editor.scheduler.state == "pending"
    assert editor.registry.text == "I has a cat"
    assert editor.registry.suggestions == ()
    assert isinstance(editor.events[-1], SuggestionsClearedEvent)

    await editor.scheduler.wait_for_idle()
    assert checker.calls == ["I has a cat"]
    [ready] = editor.of_type(SuggestionsReadyEvent)
    [s] = ready.suggestions
    assert (s.offset, s.length, s.original) == (2, 3, "has")
    assert editor.registry.suggestions == ready.suggestions


async def test_state_transitions_for_one_cycle(static_checker):
    editor = Editor(static_checker([HAS]))
    editor.edit("I has a cat")
    await editor.scheduler.wait_for_idle()
    states = [(e.previous, e.state) for e in editor.of_type(StateChangedEvent)]
    assert states == [("idle", "pending"), ("pending", "in_flight"), ("in_flight", "idle")]


async def test_debounce_coalesces_rapid_edits(static_checker, until):
    checker = static_checker()
    editor = Editor(checker, debounce_ms=40)
    for text in ("I", "I h", "I has"):
        editor.edit(text)
        await asyncio.sleep(0.005)

    await until(lambda: checker.calls)
    await editor.scheduler.wait_for_idle()
    await asyncio.sleep(0.06)
    assert checker.calls == ["I has"]


async def test_blank_text_skips_checker(static_checker):
    checker = static_checker([HAS])
    editor = Editor(checker)
    editor.edit("I has a cat")
    await editor.scheduler.wait_for_idle()
    assert len(editor.registry) == 1

    editor.edit("   \n")
    assert editor.registry.suggestions == ()
    await editor.scheduler.wait_for_idle()

    assert checker.calls == ["I has a cat"]
    assert editor.scheduler.state == "idle"
    [skipped] = editor.of_type(CheckSkippedEvent)
    assert skipped.text == "   \n"


async def test_failure_reports_message_and_leaves_set_empty(static_checker):
    editor = Editor(static_checker(error=CheckerError("OpenAI error (401): bad key")))
    editor.edit("I has a cat")
    await editor.scheduler.wait_for_idle()

    [failed] = editor.of_type(CheckFailedEvent)
    assert failed.message == "OpenAI error (401): bad key"
    assert editor.registry.suggestions == ()
    assert editor.scheduler.state == "idle"


async def test_unexpected_exception_is_reported(static_checker):
    editor = Editor(static_checker(error=KeyError("boom")))
    editor.edit("I has a cat")
    await editor.scheduler.wait_for_idle()
    [failed] = editor.of_type(CheckFailedEvent)
    assert failed.message.startswith("Check failed:")


async def test_checker_acknowledging_cancellation_is_silent(static_checker):
    editor = Editor(static_checker(error=CheckCancelledError("Check cancelled")))
    editor.edit("I has a cat")
    await editor.scheduler.wait_for_idle()
    assert editor.of_type(CheckCancelledEvent)
    assert not editor.of_type(CheckFailedEvent)


async def test_edit_while_in_flight_cancels_and_signals(gated_checker, until):
    checker = gated_checker()
    editor = Editor(checker)
    editor.edit("I has a cat")
    await until(lambda: len(checker.calls) == 1)
    assert editor.scheduler.state == "in_flight"

    editor.edit("I has a dog")
    assert checker.calls[0].signal.is_set()
    assert editor.scheduler.state == "stale"

    await until(lambda: len(checker.calls) == 2)
    checker.release(1, [HAS])
    await editor.scheduler.wait_for_idle()

    assert [e.text for e in editor.of_type(SuggestionsReadyEvent)] == ["I has a dog"]
    assert editor.registry.text == "I has a dog"
    assert not editor.of_type(CheckFailedEvent)


async def test_superseded_result_arriving_late_is_ignored(gated_checker, until):
    checker = gated_checker(ignore_cancel=True)
    editor = Editor(checker, debounce_ms=30)
    editor.edit("I has a cat")
    await until(lambda: len(checker.calls) == 1)

    editor.edit("I has a dog")
    assert editor.scheduler.state == "stale"

    # The old request finishes after being superseded, before the new one starts.
    checker.release(0, [HAS])
    await until(lambda: editor.scheduler.state == "pending")
    assert editor.registry.suggestions == ()

    await until(lambda: len(checker.calls) == 2)
    assert checker.calls[1].text == "I has a dog"
    checker.release(1, [])
    await editor.scheduler.wait_for_idle()

    assert editor.registry.text == "I has a dog"
    assert editor.registry.suggestions == ()
    assert [e.request_id for e in editor.of_type(SuggestionsReadyEvent)] == [
        e.request_id for e in editor.of_type(CheckStartedEvent)[1:]
    ]


async def test_result_for_changed_text_is_discarded(gated_checker, until):
    checker = gated_checker()
    editor = Editor(checker)
    editor.edit("I has a cat")
    await until(lambda: len(checker.calls) == 1)

    # Live text moved on without a scheduling event reaching us yet.
    editor.text = "I has a cat!"
    checker.release(0, [HAS])
    await editor.scheduler.wait_for_idle()

    assert editor.of_type(CheckDiscardedEvent)
    assert editor.registry.text == "I has a cat"
    assert editor.registry.suggestions == ()


async def test_close_cancels_everything(gated_checker, until):
    checker = gated_checker()
    editor = Editor(checker)
    editor.edit("I has a cat")
    await until(lambda: len(checker.calls) == 1)

    editor.scheduler.close()
    assert editor.scheduler.state == "idle"
    assert checker.calls[0].signal.is_set()

    await asyncio.sleep(0.01)
    assert not editor.of_type(SuggestionsReadyEvent)
    assert not editor.of_type(CheckFailedEvent)


async def test_close_before_timer_fires(static_checker):
    checker = static_checker([HAS])
    editor = Editor(checker, debounce_ms=10)
    editor.edit("I has a cat")
    editor.scheduler.close()
    await asyncio.sleep(0.03)
    assert checker.calls == []


async def test_failure_of_current_request_after_supersede_round(gated_checker, until):
    checker = gated_checker()
    editor = Editor(checker)
    editor.edit("one")
    await until(lambda: len(checker.calls) == 1)
    editor.edit("two")
    await until(lambda: len(checker.calls) == 2)

    checker.fail(1, CheckerError("Network error: down"))
    await editor.scheduler.wait_for_idle()
    assert [e.message for e in editor.of_type(CheckFailedEvent)] == ["Network error: down"]


async def test_unsubscribe_stops_events(static_checker):
    checker = static_checker()
    registry = SuggestionRegistry()
    scheduler = CheckScheduler(checker, registry, lambda: "text", debounce_ms=0)
    events = []
    unsubscribe = scheduler.subscribe(events.append)
    unsubscribe()
    scheduler.schedule()
    await scheduler.wait_for_idle()
    assert events == []


def test_schedule_requires_running_loop(static_checker):
    scheduler = CheckScheduler(static_checker(), SuggestionRegistry(), lambda: "x")
    with pytest.raises(RuntimeError):
        scheduler.schedule()
