import asyncio
from dataclasses import dataclass

import pytest

from grammy.types import RawMatch


class StaticChecker:
    """Answers every check with the same matches (or error)."""

    name = "fake"

    def __init__(self, matches: list[RawMatch] | None = None, error: Exception | None = None) -> None:
        self.matches = list(matches or [])
        self.error = error
        self.calls: list[str] = []

    async def check(self, text: str, signal: asyncio.Event | None = None) -> list[RawMatch]:
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return list(self.matches)


@dataclass
class PendingCall:
    text: str
    signal: asyncio.Event | None
    future: asyncio.Future


class GatedChecker:
    """Holds every check open until the test releases it.

    With ``ignore_cancel`` a cancelled check keeps waiting and still returns
    its result, like a checker that cannot be interrupted.
    """

    name = "fake"

    def __init__(self, ignore_cancel: bool = False) -> None:
        self.ignore_cancel = ignore_cancel
        self.calls: list[PendingCall] = []

    async def check(self, text: str, signal: asyncio.Event | None = None) -> list[RawMatch]:
        future = asyncio.get_running_loop().create_future()
        self.calls.append(PendingCall(text, signal, future))
        try:
            return await asyncio.shield(future)
        except asyncio.CancelledError:
            if self.ignore_cancel:
                return await future
            raise

    def release(self, index: int, matches: list[RawMatch]) -> None:
        self.calls[index].future.set_result(matches)

    def fail(self, index: int, error: Exception) -> None:
        self.calls[index].future.set_exception(error)


async def wait_until(predicate, timeout: float = 2.0) -> None:
    """Poll ``predicate`` on the event loop until it holds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.001)


@pytest.fixture
def static_checker():
    return StaticChecker


@pytest.fixture
def gated_checker():
    return GatedChecker


@pytest.fixture
def until():
    return wait_until


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Keep tests away from real keys and the user's settings directory."""
    for var in ("GRAMMY_LLM_API_KEY", "GRAMMY_LLM_API_BASE", "GRAMMY_LLM_MODEL", "OPENAI_API_KEY", "OPENROUTER_API_KEY"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("GRAMMY_DIR", str(tmp_path / "grammy-home"))
