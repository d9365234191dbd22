"""
Diagnostics - Recording channel for contained emitter failures.

The emitter never raises listener or step failures to the emitting caller.
It logs them and reports a diagnostic here, so tests can assert on what
was contained:

- listener.failed          a handler raised during delivery
- step.<kind>_failed       a transform, filter or tap step raised
- listeners.limit_exceeded advisory max-listeners cap passed
- emit.dropped / emit.deferred   throttle and debounce decisions
- once.timeout / once.aborted    one-shot subscription failures

Disabled by default: report_diagnostic() is then a no-op.

Usage:
    >>> with DiagnosticsContext() as dc:
    ...     emitter.emit("greet", "hi")
    ...     assert not dc.has("listener.failed")
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from pipemit.core.config import DiagnosticsConfig


@dataclass(frozen=True, slots=True)
class DiagnosticEvent:
    """One reported diagnostic and the context its reporter attached."""

    name: str
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __getitem__(self, key: str) -> Any:
        return self.data[key]


class DiagnosticsCollector:
    """
    Process-wide collector, created from DiagnosticsConfig
    (environment prefix PIPEMIT_DIAGNOSTICS_).
    """

    _instance: DiagnosticsCollector | None = None

    def __init__(self, enabled: bool = False, max_events: int = 10000):
        """
        Args:
            enabled: Whether to record diagnostics
            max_events: Keep at most this many (0=unlimited); oldest are dropped
        """
        self.enabled = enabled
        self._events: deque[DiagnosticEvent] = deque(maxlen=max_events or None)

    @classmethod
    def get_instance(cls, enabled: bool | None = None) -> DiagnosticsCollector:
        if cls._instance is None:
            config = DiagnosticsConfig()
            cls._instance = cls(
                enabled=config.enabled if enabled is None else enabled,
                max_events=config.max_events,
            )
        elif enabled is not None:
            cls._instance.enabled = enabled
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset singleton (for tests)."""
        cls._instance = None

    def record(self, name: str, **data: Any) -> DiagnosticEvent | None:
        """Record a diagnostic; returns None while disabled."""
        if not self.enabled:
            return None
        event = DiagnosticEvent(name=name, data=data)
        self._events.append(event)
        return event

    def has(self, name: str) -> bool:
        return any(event.name == name for event in self._events)

    def get_all(self, name: str | None = None) -> list[DiagnosticEvent]:
        """Recorded diagnostics in order, optionally only those called ``name``."""
        if name is None:
            return list(self._events)
        return [event for event in self._events if event.name == name]

    def clear(self) -> None:
        self._events.clear()

    def __repr__(self) -> str:
        return f"DiagnosticsCollector(enabled={self.enabled}, events={len(self._events)})"


def get_diagnostics(enabled: bool | None = None) -> DiagnosticsCollector:
    """Get the global diagnostics collector."""
    return DiagnosticsCollector.get_instance(enabled=enabled)


def report_diagnostic(name: str, **data: Any) -> DiagnosticEvent | None:
    return DiagnosticsCollector.get_instance().record(name, **data)


class DiagnosticsContext:
    """Enable and clear the global collector for the duration of a block."""

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self.collector = DiagnosticsCollector.get_instance()
        self._old_enabled = self.collector.enabled

    def __enter__(self) -> DiagnosticsCollector:
        self.collector.enabled = self.enabled
        self.collector.clear()
        return self.collector

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.collector.enabled = self._old_enabled
        return False
