import asyncio

import pytest
from loguru import logger


class FakeClock:
    """Settable nanosecond clock."""

    def __init__(self, now: int = 0) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ns: int) -> None:
        self.now += ns


class FakeLoop(asyncio.AbstractEventLoop):
    """Records call_later/call_soon requests; tests fire them explicitly."""

    def __init__(self) -> None:
        self.timers: list[tuple[float, object, tuple]] = []
        self.ready: list[tuple[object, tuple]] = []

    def call_later(self, delay, callback, *args, context=None):
        self.timers.append((delay, callback, args))

    def call_soon(self, callback, *args, context=None):
        self.ready.append((callback, args))

    def fire_timers(self) -> None:
        timers, self.timers = self.timers, []
        for _, callback, args in timers:
            callback(*args)

    def run_ready(self) -> None:
        ready, self.ready = self.ready, []
        for callback, args in ready:
            callback(*args)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_loop() -> FakeLoop:
    return FakeLoop()


@pytest.fixture
def log_records():
    """Capture loguru records emitted during the test."""
    records = []
    handler_id = logger.add(lambda message: records.append(message.record), level="DEBUG")
    yield records
    logger.remove(handler_id)
