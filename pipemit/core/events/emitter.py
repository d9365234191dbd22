"""
EventEmitter - In-process publish/subscribe with per-event operation chains.

Responsibilities:
- Register/unregister listeners (per event name or wildcard)
- Gate emissions through throttle and debounce
- Run payloads through the event's operation chain
- Fan out to listeners with per-listener error isolation
- Targeted delivery to one listener by id
- One-shot awaitable subscription with timeout and cancellation

Architecture:
    emit → TimingController → OperationChain → listeners, then wildcard listeners

Ordering:
- listeners for one event are invoked in subscription order
- wildcard listeners run after them, in their own subscription order
- nothing is guaranteed across different event names
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable, Mapping
import inspect
import itertools
import logging
import threading
from typing import Any, Self, get_type_hints
import warnings

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from pipemit.core.config import EmitterConfig
from pipemit.core.diagnostics import report_diagnostic
from pipemit.core.events.base import WILDCARD, Envelope, Handler, Listener
from pipemit.core.events.operations import SUPPRESSED, OperationChain, OperationChainBuilder
from pipemit.core.events.registry import ListenerRegistry
from pipemit.core.events.timing import GateDecision, TimingController, running_loop
from pipemit.core.exceptions import (
    AbortedError,
    ConfigurationError,
    ListenerInvocationError,
    MaxListenersExceededWarning,
    OnceTimeoutError,
    PayloadValidationError,
    SchedulerError,
    UnknownEventError,
)
from pipemit.core.signals import AbortSignal

logger = logging.getLogger(__name__)


class EventEmitter:
    """
    Typed event emitter with operation pipelines.

    Features:
    - Listener ids for targeted emission and removal
    - Wildcard listeners receiving Envelope(type, data)
    - transform/filter/tap chains, debounce and throttle per event
    - Error isolation (one listener failure doesn't affect others)
    - Optional event schema validated with pydantic

    Usage:
        emitter = EventEmitter(max_listeners=20)
        listener_id = emitter.subscribe("greet", print)
        emitter.operation("greet").transform(str.upper)
        emitter.emit("greet", "hi")
        payload = await emitter.once("greet", timeout_ms=500)
    """

    def __init__(
        self,
        config: EmitterConfig | None = None,
        *,
        max_listeners: int | None = None,
        schema: type | Mapping[str, Any] | None = None,
        clock: Callable[[], float] | None = None,
    ):
        """
        Initialize EventEmitter.

        Args:
            config: Emitter configuration (default: EmitterConfig() from environment)
            max_listeners: Override config.max_listeners
            schema: TypedDict class or mapping of event name to payload type
            clock: Millisecond clock for throttling (default: monotonic)

        Raises:
            ConfigurationError: If max_listeners is negative or the config is invalid
        """
        if max_listeners is not None and max_listeners < 0:
            raise ConfigurationError(f"max_listeners cannot be negative, got {max_listeners}")

        try:
            if config is None:
                config = EmitterConfig()
            if max_listeners is not None:
                config = EmitterConfig(**{**config.model_dump(), "max_listeners": max_listeners})
        except PydanticValidationError as e:
            raise ConfigurationError(f"Invalid emitter configuration: {e}") from e

        self.config = config
        self._max_listeners = config.max_listeners
        self._lock = threading.RLock()
        self._ids = itertools.count()
        self._registry = ListenerRegistry()
        self._operations: dict[str, OperationChain] = {}
        self._timing = TimingController(clock=clock, lock=self._lock)
        self._schema = self._build_schema(schema) if schema is not None else None
        self._tasks: set[asyncio.Future[Any]] = set()

        logger.debug(f"EventEmitter initialized: max_listeners={self._max_listeners}")

    @staticmethod
    def _build_schema(schema: type | Mapping[str, Any]) -> dict[str, TypeAdapter[Any]]:
        hints = dict(schema) if isinstance(schema, Mapping) else get_type_hints(schema)
        return {event: TypeAdapter(payload_type) for event, payload_type in hints.items()}

    def _check_event(self, event: str, allow_wildcard: bool = False) -> None:
        if self._schema is None or event in self._schema:
            return
        if allow_wildcard and event == WILDCARD:
            return
        raise UnknownEventError(event)

    def _validate_payload(self, event: str, payload: Any) -> None:
        if self._schema is None:
            return
        try:
            self._schema[event].validate_python(payload)
        except PydanticValidationError as e:
            raise PayloadValidationError(
                f"Invalid payload for event '{event}': {e}", event=event
            ) from e

    # Registration

    def subscribe(self, event: str, handler: Handler, signal: AbortSignal | None = None) -> str:
        """
        Register a listener and return its id.

        If ``signal`` is already aborted, an id is returned but nothing is
        registered. Otherwise the listener is removed when the signal aborts.

        Args:
            event: Event name, or WILDCARD to receive every emission as an Envelope
            handler: Callable receiving the processed payload
            signal: Optional cancellation signal

        Returns:
            Listener id, unique for this emitter's lifetime
        """
        self._check_event(event, allow_wildcard=True)

        with self._lock:
            listener_id = str(next(self._ids))
            if signal is not None and signal.aborted:
                return listener_id

            count = self._registry.count(event)
            if self._max_listeners > 0 and count >= self._max_listeners:
                self._warn_max_listeners(event, count)

            listener = Listener(id=listener_id, handler=handler, event=event, signal=signal)
            self._registry.add(listener)

            if signal is not None:

                def _on_abort(_reason: Any) -> None:
                    self.unsubscribe(event, listener_id)

                listener.on_abort = _on_abort
                signal.add_listener(_on_abort)

        logger.debug(f"Subscribed listener {listener_id} ({listener.handler_name}) to '{event}'")
        return listener_id

    on = subscribe

    def _warn_max_listeners(self, event: str, count: int) -> None:
        target = "wildcard event" if event == WILDCARD else f"event: {event}"
        message = f"Max listeners exceeded for {target} ({count + 1} > {self._max_listeners})"
        logger.warning(message)
        report_diagnostic(
            "listeners.limit_exceeded",
            event=event,
            count=count + 1,
            max_listeners=self._max_listeners,
        )
        if self.config.warn_on_max_listeners:
            warnings.warn(message, MaxListenersExceededWarning, stacklevel=3)

    def unsubscribe(self, event: str, id_or_handler: str | Handler) -> bool:
        """
        Remove a listener by id or by handler reference.

        Args:
            event: Event name, or WILDCARD for wildcard listeners
            id_or_handler: Listener id or the subscribed callable

        Returns:
            True if a listener was removed
        """
        with self._lock:
            removed = self._registry.remove(event, id_or_handler)
        if removed:
            logger.debug(f"Unsubscribed {id_or_handler!r} from '{event}'")
        return removed

    off = unsubscribe

    def once(
        self,
        event: str,
        *,
        timeout_ms: float | None = None,
        signal: AbortSignal | None = None,
    ) -> asyncio.Future[Any]:
        """
        Wait for the next payload delivered to an event.

        Subscribes immediately, so an emission between this call and the
        ``await`` is still captured. Exactly one of payload, timeout or abort
        settles the result; the others are disarmed. Cancelling the returned
        future also unsubscribes.

        Args:
            event: Event name
            timeout_ms: Fail with OnceTimeoutError after this many milliseconds
            signal: Fail with AbortedError when this signal aborts

        Returns:
            Future resolving with the processed payload

        Raises:
            SchedulerError: If no event loop is running
        """
        self._check_event(event, allow_wildcard=True)
        loop = running_loop()
        future: asyncio.Future[Any] = loop.create_future()

        if signal is not None and signal.aborted:
            report_diagnostic("once.aborted", event=event, reason=signal.reason)
            future.set_exception(AbortedError(signal.reason))
            return future

        timer: asyncio.TimerHandle | None = None
        listener_id: str | None = None

        def cleanup(_future: asyncio.Future[Any] | None = None) -> None:
            nonlocal timer
            if timer is not None:
                timer.cancel()
                timer = None
            if signal is not None:
                signal.remove_listener(on_abort)
            if listener_id is not None:
                self.unsubscribe(event, listener_id)

        def on_payload(payload: Any) -> None:
            if future.done():
                return
            cleanup()
            future.set_result(payload)

        def on_timeout() -> None:
            if future.done():
                return
            cleanup()
            report_diagnostic("once.timeout", event=event, timeout_ms=timeout_ms)
            future.set_exception(OnceTimeoutError(timeout_ms))

        def on_abort(reason: Any) -> None:
            if future.done():
                return
            cleanup()
            report_diagnostic("once.aborted", event=event, reason=reason)
            future.set_exception(AbortedError(reason))

        listener_id = self.subscribe(event, on_payload)
        if timeout_ms and timeout_ms > 0:
            timer = loop.call_later(timeout_ms / 1000, on_timeout)
        if signal is not None:
            signal.add_listener(on_abort)
        future.add_done_callback(cleanup)
        return future

    # Operations

    def operation(self, event: str) -> OperationChainBuilder:
        """
        Get a builder that attaches transform/filter/tap/debounce/throttle to an event.

        Usage:
            >>> emitter.operation("n").transform(lambda x: x + 1).filter(lambda x: x < 5)
        """
        self._check_event(event)
        chain = self.get_operation(event) or OperationChain(event)
        return OperationChainBuilder(self, event, chain)

    def get_operation(self, event: str) -> OperationChain | None:
        """Get the chain currently bound to an event."""
        return self._operations.get(event)

    def _bind_operation(self, event: str, chain: OperationChain) -> None:
        with self._lock:
            self._operations[event] = chain

    def remove_debounce(self, event: str) -> None:
        """Drop an event's debounce setting and any pending deferred emission."""
        self._timing.remove_debounce(event)

    def remove_throttle(self, event: str) -> None:
        """Drop an event's throttle setting and last-fire record."""
        self._timing.remove_throttle(event)

    # Emission

    def emit(self, event: str, payload: Any = None) -> bool:
        """
        Emit a payload to an event's listeners and to wildcard listeners.

        Args:
            event: Event name
            payload: Event data

        Returns:
            True if any listener was invoked, or if delivery was deferred by
            debounce. False if throttled, suppressed, or nobody is listening.

        Raises:
            UnknownEventError / PayloadValidationError: Schema violations
            SchedulerError: If the event is debounced and no loop is running
        """
        self._check_event(event)
        self._validate_payload(event, payload)

        decision = self._timing.gate(event, payload, self._deliver)
        if decision is GateDecision.DROPPED:
            return False
        if decision is GateDecision.DEFERRED:
            return True
        return self._deliver(event, payload)

    def emit_many(self, items: Iterable[tuple[str, Any]]) -> list[bool]:
        """
        Emit several (event, payload) pairs in order.

        Returns:
            One emit() result per pair
        """
        return [self.emit(event, payload) for event, payload in items]

    def _deliver(self, event: str, payload: Any) -> bool:
        with self._lock:
            listeners = self._registry.snapshot(event) if event != WILDCARD else []
            wildcards = self._registry.snapshot(WILDCARD)
            chain = self._operations.get(event)

        if not listeners and not wildcards:
            logger.debug(f"No listeners registered for event '{event}'")
            return False

        delivered = False

        if listeners:
            processed = chain.execute(payload) if chain is not None else payload
            if processed is not SUPPRESSED:
                for listener in listeners:
                    self._invoke(listener, event, processed)
                delivered = True

        # the chain is re-run for every wildcard listener
        for listener in wildcards:
            processed = chain.execute(payload) if chain is not None else payload
            if processed is not SUPPRESSED:
                self._invoke(listener, event, Envelope(type=event, data=processed))
                delivered = True

        return delivered

    def emit_to_listener(self, event: str, payload: Any, listener_id: str) -> bool:
        """
        Deliver a payload to one listener of an event, bypassing debounce and throttle.

        Wildcard listeners cannot be targeted.

        Args:
            event: Event name
            payload: Event data
            listener_id: Id returned by subscribe()

        Returns:
            True if the listener was invoked without raising
        """
        self._check_event(event)
        self._validate_payload(event, payload)

        with self._lock:
            listener = self._registry.get(event, listener_id)
            chain = self._operations.get(event)

        if listener is None:
            return False

        processed = chain.execute(payload) if chain is not None else payload
        if processed is SUPPRESSED:
            return False
        return self._invoke(listener, event, processed)

    def _invoke(self, listener: Listener, event: str, value: Any) -> bool:
        try:
            result = listener.handler(value)
            if inspect.isawaitable(result):
                self._track_task(listener, event, result)
        except Exception as e:
            self._report_listener_failure(listener, event, e)
            return False
        return True

    def _track_task(self, listener: Listener, event: str, awaitable: Any) -> None:
        try:
            loop = running_loop()
        except SchedulerError:
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            raise

        task = asyncio.ensure_future(awaitable, loop=loop)
        self._tasks.add(task)

        def _done(finished: asyncio.Future[Any]) -> None:
            self._tasks.discard(finished)
            if finished.cancelled():
                return
            error = finished.exception()
            if isinstance(error, Exception):
                self._report_listener_failure(listener, event, error)

        task.add_done_callback(_done)

    def _report_listener_failure(self, listener: Listener, event: str, error: Exception) -> None:
        failure = ListenerInvocationError(event, listener.id)
        failure.__cause__ = error
        logger.error(f"{failure}: {error}", exc_info=error)
        report_diagnostic("listener.failed", event=event, listener_id=listener.id, error=failure)

    # Introspection and lifecycle

    def listener_count(self, event: str) -> int:
        """Number of listeners for an event, or of wildcard listeners for WILDCARD."""
        with self._lock:
            return self._registry.count(event)

    def event_names(self) -> list[str]:
        """Event names that currently have at least one non-wildcard listener."""
        with self._lock:
            return self._registry.event_names()

    def remove_all_listeners(self, event: str | None = None) -> None:
        """
        Remove listeners for one event, or all listeners including wildcards.

        Pending debounced emissions and throttle records for the affected
        events are discarded too. Operation chains and delays are kept.
        """
        with self._lock:
            self._registry.clear(event)
            self._timing.cancel_pending(event)
        logger.debug(f"Removed all listeners for {event or 'all events'}")

    def remove_all_operations(self, event: str | None = None) -> None:
        """
        Remove operation chains and all debounce/throttle configuration
        for one event, or for every event. Listeners are kept.
        """
        with self._lock:
            if event is None:
                self._operations.clear()
            else:
                self._operations.pop(event, None)
            self._timing.reset(event)
        logger.info(f"Removed all operations for {event or 'all events'}")

    def get_max_listeners(self) -> int:
        return self._max_listeners

    def set_max_listeners(self, n: int) -> Self:
        """
        Set the advisory listener cap (0 disables it).

        Raises:
            ConfigurationError: If n is negative
        """
        if n < 0:
            raise ConfigurationError(f"max_listeners cannot be negative, got {n}")
        self._max_listeners = n
        return self

    def get_stats(self) -> dict[str, Any]:
        """Get emitter statistics for monitoring."""
        with self._lock:
            return {
                **self._registry.get_stats(),
                "max_listeners": self._max_listeners,
                "operations": {event: len(chain) for event, chain in self._operations.items()},
                **self._timing.get_stats(),
                "pending_tasks": len(self._tasks),
            }

    def __repr__(self) -> str:
        return (
            f"EventEmitter(events={len(self.event_names())}, "
            f"wildcard={self.listener_count(WILDCARD)}, max_listeners={self._max_listeners})"
        )


_global_emitter: EventEmitter | None = None


def get_emitter() -> EventEmitter:
    """
    Get the global EventEmitter instance.

    Creates a singleton instance on first call.
    Can be overridden for testing via set_emitter().
    """
    global _global_emitter
    if _global_emitter is None:
        _global_emitter = EventEmitter()
    return _global_emitter


def set_emitter(emitter: EventEmitter | None) -> None:
    """
    Set the global EventEmitter instance.

    Args:
        emitter: EventEmitter to use globally (None resets it)
    """
    global _global_emitter
    _global_emitter = emitter


__all__ = [
    "EventEmitter",
    "get_emitter",
    "set_emitter",
]
