import pytest

from pipemit.core.diagnostics import DiagnosticsCollector, DiagnosticsContext
from pipemit.core.events import EventEmitter


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture()
def emitter() -> EventEmitter:
    return EventEmitter()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def diagnostics():
    """Enabled, empty diagnostics collector for the duration of one test."""
    DiagnosticsCollector.reset_instance()
    with DiagnosticsContext() as collector:
        yield collector
    DiagnosticsCollector.reset_instance()
