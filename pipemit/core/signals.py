"""
Cancellation signals for subscriptions and one-shot waits.

An AbortController owns an AbortSignal. Handing the signal to
``EventEmitter.subscribe`` removes the listener when the controller aborts;
handing it to ``EventEmitter.once`` fails the pending result with AbortedError.

Example:
    >>> controller = AbortController()
    >>> emitter.subscribe("tick", on_tick, controller.signal)
    >>> controller.abort()
    >>> emitter.listener_count("tick")
    0
"""

from __future__ import annotations

from collections.abc import Callable
import logging
from typing import Any

logger = logging.getLogger(__name__)

AbortCallback = Callable[[Any], None]


class AbortSignal:
    """
    One-way cancellation flag with abort callbacks.

    A signal transitions to aborted at most once. Callbacks registered before
    that moment are invoked once with the abort reason, in registration order;
    callbacks added afterwards are never invoked.
    """

    def __init__(self) -> None:
        self._aborted = False
        self._reason: Any = None
        self._callbacks: list[AbortCallback] = []

    @classmethod
    def aborted_signal(cls, reason: Any = None) -> AbortSignal:
        """Create a signal that is already aborted."""
        signal = cls()
        signal._abort(reason)
        return signal

    @property
    def aborted(self) -> bool:
        return self._aborted

    @property
    def reason(self) -> Any:
        return self._reason

    def add_listener(self, callback: AbortCallback) -> None:
        """Register a callback for the abort transition."""
        if self._aborted:
            return
        self._callbacks.append(callback)

    def remove_listener(self, callback: AbortCallback) -> bool:
        """Unregister a callback. Returns False if it was not registered."""
        try:
            self._callbacks.remove(callback)
        except ValueError:
            return False
        return True

    def _abort(self, reason: Any) -> None:
        if self._aborted:
            return
        self._aborted = True
        self._reason = reason

        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            try:
                callback(reason)
            except Exception:
                logger.exception("Error in abort callback %r", callback)

    def __repr__(self) -> str:
        return f"AbortSignal(aborted={self._aborted})"


class AbortController:
    """Owner side of an AbortSignal."""

    def __init__(self) -> None:
        self._signal = AbortSignal()

    @property
    def signal(self) -> AbortSignal:
        return self._signal

    def abort(self, reason: Any = None) -> None:
        """Abort the signal. Calling again has no effect."""
        self._signal._abort(reason)
