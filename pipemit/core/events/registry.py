"""
Listener Registry - Per-event listener lists plus the wildcard list.

Each listener lives in exactly one slot: the list for its event name, or
the wildcard list. Lists keep subscription order. Delivery iterates a
snapshot, so a listener removed mid-delivery still receives the current
emission but none after it.
"""

from collections import defaultdict
from typing import Any

from pipemit.core.events.base import WILDCARD, Handler, Listener


class ListenerRegistry:
    """
    Ordered listener storage keyed by event name.

    Not thread-safe by itself; the owning emitter serializes access.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = defaultdict(list)
        self._wildcard: list[Listener] = []

    def _slot(self, event: str) -> list[Listener] | None:
        if event == WILDCARD:
            return self._wildcard
        return self._listeners.get(event)

    def add(self, listener: Listener) -> None:
        if listener.event == WILDCARD:
            self._wildcard.append(listener)
        else:
            self._listeners[listener.event].append(listener)

    def remove(self, event: str, id_or_handler: str | Handler) -> bool:
        """
        Remove every listener in one slot matching an id or handler reference.

        Args:
            event: Event name, or WILDCARD for wildcard listeners
            id_or_handler: Listener id (str) or the subscribed callable

        Returns:
            True if anything was removed
        """
        slot = self._slot(event)
        if not slot:
            return False

        kept: list[Listener] = []
        removed: list[Listener] = []
        for listener in slot:
            (removed if listener.matches(id_or_handler) else kept).append(listener)

        if not removed:
            return False

        slot[:] = kept
        if event != WILDCARD and not kept:
            del self._listeners[event]
        for listener in removed:
            listener.detach_signal()
        return True

    def get(self, event: str, listener_id: str) -> Listener | None:
        """Find a per-event listener by id. Wildcard listeners are not searched."""
        for listener in self._listeners.get(event, ()):
            if listener.id == listener_id:
                return listener
        return None

    def snapshot(self, event: str) -> list[Listener]:
        """Copy of a slot's listeners in subscription order."""
        return list(self._slot(event) or ())

    def count(self, event: str) -> int:
        return len(self._slot(event) or ())

    def event_names(self) -> list[str]:
        """Event names with at least one non-wildcard listener."""
        return [event for event, listeners in self._listeners.items() if listeners]

    def clear(self, event: str | None = None) -> None:
        """
        Drop listeners.

        Args:
            event: Drop only this event's listeners (WILDCARD drops the
                wildcard list). Default: drop everything.
        """
        if event is None:
            dropped = [listener for slot in self._listeners.values() for listener in slot]
            dropped.extend(self._wildcard)
            self._listeners.clear()
            self._wildcard = []
        elif event == WILDCARD:
            dropped, self._wildcard = self._wildcard, []
        else:
            dropped = self._listeners.pop(event, [])

        for listener in dropped:
            listener.detach_signal()

    def get_stats(self) -> dict[str, Any]:
        return {
            "total_events": len(self.event_names()),
            "total_listeners": sum(len(slot) for slot in self._listeners.values()),
            "wildcard_listeners": len(self._wildcard),
            "listeners_by_event": {
                event: len(slot) for event, slot in self._listeners.items() if slot
            },
        }


__all__ = ["ListenerRegistry"]
