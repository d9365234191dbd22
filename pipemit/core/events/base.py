"""
Base Event Types - Records shared by the registry, chain and emitter.

Core Concepts:
- WILDCARD: reserved event name that matches every emission
- Envelope: what wildcard listeners receive ({type, data})
- Listener: a registered handler with its identity

Design Principles:
- Listener identity is the emitter-assigned id, never the handler value
- Envelopes are immutable (frozen dataclass)
- Handlers are plain synchronous callables
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
import inspect
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pipemit.core.signals import AbortCallback, AbortSignal

WILDCARD = "*"

Handler = Callable[[Any], Any]
TransformFunc = Callable[[Any], Any]
PredicateFunc = Callable[[Any], bool]
TapFunc = Callable[[Any], Any]


@dataclass(frozen=True, slots=True)
class Envelope:
    """
    Payload wrapper delivered to wildcard listeners.

    Attributes:
        type: Name of the event that was emitted
        data: Payload after the event's operation chain ran
    """

    type: str
    data: Any


@dataclass(eq=False, slots=True)
class Listener:
    """
    A registered handler.

    Compared by identity: two registrations of the same callable are two
    listeners with two ids.

    Attributes:
        id: Emitter-assigned identity, never reused
        handler: The callable itself (used for removal by reference)
        event: Registry slot the listener lives in (an event name or WILDCARD)
        signal: Optional cancellation signal bound to this listener
    """

    id: str
    handler: Handler
    event: str
    signal: AbortSignal | None = None
    on_abort: AbortCallback | None = field(default=None, repr=False)

    @property
    def handler_name(self) -> str:
        """Human-readable name for logging/debugging."""
        return getattr(self.handler, "__qualname__", repr(self.handler))

    def matches(self, id_or_handler: str | Handler) -> bool:
        """Check whether this listener is the one named by an id or a handler reference."""
        if isinstance(id_or_handler, str):
            return self.id == id_or_handler
        if self.handler is id_or_handler:
            return True
        # bound methods are rebuilt on every attribute access
        return inspect.ismethod(id_or_handler) and self.handler == id_or_handler

    def detach_signal(self) -> None:
        """Stop watching the cancellation signal."""
        if self.signal is not None and self.on_abort is not None:
            self.signal.remove_listener(self.on_abort)
        self.on_abort = None


__all__ = [
    "WILDCARD",
    "Envelope",
    "Handler",
    "Listener",
    "PredicateFunc",
    "TapFunc",
    "TransformFunc",
]
