"""Shared fixtures for slack-focus-mode tests."""

from concurrent.futures import Future
from datetime import datetime, timedelta, timezone

import pytest

from slack_focus_mode.focus import FocusSessionManager
from slack_focus_mode.store import SessionStore

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced clock for session expiry."""

    def __init__(self, start: datetime = T0):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


class InlineExecutor:
    """Executor stand-in that runs submitted work immediately."""

    def __init__(self):
        self.calls = []

    def submit(self, fn, *args, **kwargs):
        self.calls.append((fn, args, kwargs))
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as exc:
            future.set_exception(exc)
        return future


@pytest.fixture
def store(tmp_path):
    """Empty initialized session store."""
    s = SessionStore(tmp_path / "focus.db")
    s.initialize()
    yield s
    s.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def manager(store, clock):
    return FocusSessionManager(store, clock=clock)
