"""
Timing Controller - Debounce and throttle gates in front of delivery.

Both gates act on entry to the operation chain, never on exit. Throttle is
checked first; a throttled emission stops there and never reaches the
debounce gate.

Debounce deferrals are asyncio TimerHandles scheduled on the running loop.
Every path that supersedes a pending deferral cancels its handle.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from enum import Enum
import logging
import threading
import time
from typing import Any

from pipemit.core.diagnostics import report_diagnostic
from pipemit.core.exceptions import ConfigurationError, SchedulerError

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
DeliverFunc = Callable[[str, Any], bool]


class GateDecision(str, Enum):
    """Outcome of passing an emission through the timing gates."""

    PROCEED = "proceed"
    DEFERRED = "deferred"
    DROPPED = "dropped"


def monotonic_ms() -> float:
    """Default clock: monotonic time in milliseconds."""
    return time.monotonic() * 1000


def running_loop() -> asyncio.AbstractEventLoop:
    """
    Get the running event loop.

    Raises:
        SchedulerError: If called outside a running loop
    """
    try:
        return asyncio.get_running_loop()
    except RuntimeError as e:
        raise SchedulerError("This operation requires a running asyncio event loop") from e


def _validate_delay(kind: str, delay_ms: float) -> float:
    if delay_ms < 0:
        raise ConfigurationError(f"{kind} delay cannot be negative, got {delay_ms}")
    return delay_ms


class TimingController:
    """
    Per-event debounce and throttle state.

    State per event name:
    - debounce delay, plus at most one pending deferred emission
    - throttle delay, plus the last time an emission was let through
    """

    def __init__(self, clock: Clock | None = None, lock: threading.RLock | None = None):
        """
        Initialize TimingController.

        Args:
            clock: Millisecond clock used for throttling (default: monotonic)
            lock: Lock shared with the owning emitter
        """
        self._clock = clock or monotonic_ms
        self._lock = lock or threading.RLock()
        self._debounce_delays: dict[str, float] = {}
        self._pending: dict[str, asyncio.TimerHandle] = {}
        self._throttle_delays: dict[str, float] = {}
        self._last_fire: dict[str, float] = {}

    def set_debounce(self, event: str, delay_ms: float) -> None:
        with self._lock:
            if _validate_delay("Debounce", delay_ms):
                self._debounce_delays[event] = delay_ms
            else:
                self.remove_debounce(event)

    def set_throttle(self, event: str, delay_ms: float) -> None:
        with self._lock:
            if _validate_delay("Throttle", delay_ms):
                self._throttle_delays[event] = delay_ms
            else:
                self.remove_throttle(event)

    def debounce_delay(self, event: str) -> float | None:
        return self._debounce_delays.get(event)

    def throttle_delay(self, event: str) -> float | None:
        return self._throttle_delays.get(event)

    def has_pending(self, event: str) -> bool:
        return event in self._pending

    def gate(self, event: str, payload: Any, deliver: DeliverFunc) -> GateDecision:
        """
        Decide whether an emission proceeds now, later, or not at all.

        Args:
            event: Event name
            payload: Raw payload (carried by a deferred emission)
            deliver: Called with (event, payload) when a deferral fires

        Returns:
            GateDecision

        Raises:
            SchedulerError: If debounce is configured and no loop is running
        """
        with self._lock:
            throttle_delay = self._throttle_delays.get(event)
            if throttle_delay:
                now = self._clock()
                last = self._last_fire.get(event)
                if last is not None and now - last < throttle_delay:
                    logger.debug("Throttled emission for '%s' dropped", event)
                    report_diagnostic("emit.dropped", event=event, throttle_ms=throttle_delay)
                    return GateDecision.DROPPED

            debounce_delay = self._debounce_delays.get(event)
            loop = running_loop() if debounce_delay else None

            if throttle_delay:
                self._last_fire[event] = now

            if loop is not None:
                self._cancel_pending(event)
                self._pending[event] = loop.call_later(
                    debounce_delay / 1000, self._fire, event, payload, deliver
                )
                logger.debug("Emission for '%s' deferred %sms", event, debounce_delay)
                report_diagnostic("emit.deferred", event=event, debounce_ms=debounce_delay)
                return GateDecision.DEFERRED

            return GateDecision.PROCEED

    def _fire(self, event: str, payload: Any, deliver: DeliverFunc) -> None:
        with self._lock:
            self._pending.pop(event, None)
        deliver(event, payload)

    def _cancel_pending(self, event: str) -> None:
        handle = self._pending.pop(event, None)
        if handle is not None:
            handle.cancel()

    def remove_debounce(self, event: str) -> None:
        """Drop debounce configuration and any pending deferral."""
        with self._lock:
            self._debounce_delays.pop(event, None)
            self._cancel_pending(event)

    def remove_throttle(self, event: str) -> None:
        """Drop throttle configuration and the last-fire record."""
        with self._lock:
            self._throttle_delays.pop(event, None)
            self._last_fire.pop(event, None)

    def cancel_pending(self, event: str | None = None) -> None:
        """
        Cancel pending deferrals and forget last-fire times, keeping delays.

        Args:
            event: Limit to one event name (default: all)
        """
        with self._lock:
            if event is not None:
                self._cancel_pending(event)
                self._last_fire.pop(event, None)
                return
            for handle in self._pending.values():
                handle.cancel()
            self._pending.clear()
            self._last_fire.clear()

    def reset(self, event: str | None = None) -> None:
        """Drop all timing configuration and state for one event, or all."""
        with self._lock:
            if event is not None:
                self.remove_debounce(event)
                self.remove_throttle(event)
                return
            self.cancel_pending()
            self._debounce_delays.clear()
            self._throttle_delays.clear()

    def get_stats(self) -> dict[str, Any]:
        return {
            "debounce_ms": dict(self._debounce_delays),
            "throttle_ms": dict(self._throttle_delays),
            "pending_debounce": sorted(self._pending),
        }


__all__ = [
    "GateDecision",
    "TimingController",
    "monotonic_ms",
    "running_loop",
]
