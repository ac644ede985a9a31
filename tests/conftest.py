# tests/conftest.py
import logging
import pytest

from stickpm.core.session_registry import SessionRegistry

# ------------------------------------------------------------------------------
# 1. Global Configuration
# ------------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def setup_test_logging(caplog):
    """
    Capture logging at DEBUG level for every test.
    Registry and dispatch outcomes are log records, so tests assert on them.
    """
    caplog.set_level(logging.DEBUG)


# ------------------------------------------------------------------------------
# 2. Simulated Time
# ------------------------------------------------------------------------------

class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now


class FakeTimer:
    def __init__(self, due: float, callback):
        self.due = due
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self):
        self.cancelled = True


class FakeScheduler:
    """
    Drop-in for the registry's scheduler.

    Timers fire only from advance(), in due-time order, with the clock set to
    each timer's due time while its callback runs.
    """

    def __init__(self, clock: ManualClock):
        self.clock = clock
        self.timers = []

    def __call__(self, delay, callback):
        timer = FakeTimer(self.clock.now + delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def pending(self):
        return [t for t in self.timers if not t.cancelled and not t.fired]

    def advance(self, seconds: float):
        target = self.clock.now + seconds
        while True:
            due = [t for t in self.pending if t.due <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.due)
            self.clock.now = max(self.clock.now, timer.due)
            timer.fired = True
            timer.callback()
        self.clock.now = target


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def scheduler(clock):
    return FakeScheduler(clock)


@pytest.fixture
def registry(clock, scheduler):
    """A SessionRegistry driven entirely by simulated time."""
    return SessionRegistry(scheduler=scheduler, clock=clock)
