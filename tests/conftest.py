import asyncio
import base64
from typing import Any, Callable, Dict, List, Optional

import pytest

from config import ConversationSettings
from models.session_models import CompletionResult
from services.voice.errors import TransportError
from services.voice.session_store import SessionStore
from services.voice.turn_controller import TurnController


class FakeTimer:
    def __init__(self, when: float, callback: Callable[[], None]) -> None:
        self.when = when
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Deterministic stand-in for the event loop's call_later."""

    def __init__(self) -> None:
        self.now = 0.0
        self.timers: List[FakeTimer] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(self.now + delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def pending(self) -> List[FakeTimer]:
        return [t for t in self.timers if not t.cancelled and not t.fired]

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = sorted((t for t in self.pending if t.when <= target), key=lambda t: t.when)
            if not due:
                break
            timer = due[0]
            self.now = timer.when
            timer.fired = True
            timer.callback()
        self.now = target


class RecordingChannel:
    def __init__(self) -> None:
        self.events: List[Any] = []
        self.closed = False

    async def send(self, event) -> None:
        if self.closed:
            raise TransportError(details="closed")
        self.events.append(event)

    @property
    def types(self) -> List[str]:
        return [event.type for event in self.events]

    def last(self, kind: str):
        for event in reversed(self.events):
            if event.type == kind:
                return event
        raise AssertionError(f"no {kind} event in {self.types}")


class FakeGateway:
    """Scripted completion gateway that records every call."""

    def __init__(self, replies: Optional[List[str]] = None, text: str = "Hello from Rev") -> None:
        self.replies = list(replies or [])
        self.text = text
        self.transcript: Optional[str] = None
        self.error: Optional[Exception] = None
        self.gate: Optional[asyncio.Event] = None
        self.calls: List[Dict[str, Any]] = []

    async def complete(self, **kwargs) -> CompletionResult:
        self.calls.append(kwargs)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        text = self.replies.pop(0) if self.replies else self.text
        return CompletionResult(text=text, transcript=self.transcript)


async def flush() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


def make_audio(size: int = 2_000) -> str:
    return base64.b64encode(b"\x01" * size).decode("ascii")


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def store(scheduler) -> SessionStore:
    return SessionStore(clock=lambda: scheduler.now)


@pytest.fixture
def channel() -> RecordingChannel:
    return RecordingChannel()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def settings() -> ConversationSettings:
    return ConversationSettings()


@pytest.fixture
def controller(store, gateway, channel, settings, scheduler) -> TurnController:
    return TurnController("conn-1", store, gateway, channel, settings=settings, scheduler=scheduler)


@pytest.fixture
def audio() -> str:
    return make_audio()
