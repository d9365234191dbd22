"""
Operation Chains - Per-event payload processing before delivery.

A chain is an immutable, ordered tuple of steps bound to one event name:

    transform  replaces the running value with the step's return value
    filter     stops the evaluation (SUPPRESSED) when the predicate is falsy
    tap        runs for its side effect; the running value is unchanged

Failure policy:
- a transform that raises suppresses the evaluation (the payload is invalid now)
- a filter or tap that raises is reported and the evaluation continues with
  the running value unchanged (a raising filter counts as "keep")

Appending a step returns a new chain; a chain some emission is executing
against is never mutated.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
from typing import TYPE_CHECKING, Any, Self

from pipemit.core.diagnostics import report_diagnostic
from pipemit.core.exceptions import (
    FilterError,
    OperationChainError,
    OperationStepError,
    TapError,
    TransformError,
)

if TYPE_CHECKING:
    from pipemit.core.events.base import PredicateFunc, TapFunc, TransformFunc
    from pipemit.core.events.emitter import EventEmitter

logger = logging.getLogger(__name__)


class StepKind(str, Enum):
    """Kinds of operation steps."""

    TRANSFORM = "transform"
    FILTER = "filter"
    TAP = "tap"


class _Suppressed(Enum):
    SUPPRESSED = "suppressed"

    def __repr__(self) -> str:
        return "SUPPRESSED"


SUPPRESSED = _Suppressed.SUPPRESSED

_STEP_ERRORS: dict[StepKind, type[OperationStepError]] = {
    StepKind.TRANSFORM: TransformError,
    StepKind.FILTER: FilterError,
    StepKind.TAP: TapError,
}


@dataclass(frozen=True, slots=True)
class OperationStep:
    """A single processing step."""

    kind: StepKind
    handler: Any

    def __repr__(self) -> str:
        name = getattr(self.handler, "__qualname__", repr(self.handler))
        return f"OperationStep({self.kind.value}, {name})"


def _log_tap(label: str) -> TapFunc:
    def _log(value: Any) -> None:
        logger.info("%s %r", label, value)

    return _log


class OperationChain:
    """
    Immutable sequence of operation steps for one event.

    Usage:
        >>> chain = OperationChain("price").transform(float).filter(lambda p: p > 0)
        >>> chain.execute("12.5")
        12.5
        >>> chain.execute("-1") is SUPPRESSED
        True
    """

    __slots__ = ("_event", "_steps")

    def __init__(self, event: str, steps: tuple[OperationStep, ...] = ()) -> None:
        self._event = event
        self._steps = tuple(steps)

    @property
    def event(self) -> str:
        return self._event

    @property
    def steps(self) -> tuple[OperationStep, ...]:
        return self._steps

    def __len__(self) -> int:
        return len(self._steps)

    def __repr__(self) -> str:
        return f"OperationChain(event={self._event!r}, steps={len(self._steps)})"

    def _append(self, kind: StepKind, handler: Any) -> OperationChain:
        return OperationChain(self._event, (*self._steps, OperationStep(kind, handler)))

    def transform(self, handler: TransformFunc) -> OperationChain:
        return self._append(StepKind.TRANSFORM, handler)

    def filter(self, handler: PredicateFunc) -> OperationChain:
        return self._append(StepKind.FILTER, handler)

    def tap(self, handler: TapFunc) -> OperationChain:
        return self._append(StepKind.TAP, handler)

    def log(self, message: str | None = None) -> OperationChain:
        """Append a tap that logs the running value at INFO."""
        return self.tap(_log_tap(message or f"[{self._event}]:"))

    def compose(self, other: OperationChain) -> OperationChain:
        """
        Append another chain's steps after this chain's.

        Raises:
            OperationChainError: If the chains belong to different events
        """
        if other.event != self._event:
            raise OperationChainError(
                f"Cannot compose chain for '{other.event}' onto chain for '{self._event}'"
            )
        return OperationChain(self._event, (*self._steps, *other.steps))

    def execute(self, payload: Any) -> Any:
        """
        Run a payload through every step in order.

        Step failures are reported, never raised.

        Args:
            payload: Raw emitted payload

        Returns:
            The processed payload, or SUPPRESSED
        """
        value = payload
        for step in self._steps:
            try:
                if step.kind is StepKind.TRANSFORM:
                    value = step.handler(value)
                elif step.kind is StepKind.FILTER:
                    if not step.handler(value):
                        return SUPPRESSED
                else:
                    step.handler(value)
            except Exception as e:
                self._report_failure(step, e)
                if step.kind is StepKind.TRANSFORM:
                    return SUPPRESSED
        return value

    def _report_failure(self, step: OperationStep, error: Exception) -> None:
        failure = _STEP_ERRORS[step.kind](self._event)
        failure.__cause__ = error
        logger.error("%s: %s", failure, error, exc_info=error)
        report_diagnostic(
            f"step.{step.kind.value}_failed",
            event=self._event,
            step=step,
            error=failure,
        )


class OperationChainBuilder:
    """
    Fluent attachment of operation steps to an emitter's event.

    Every step call extends the chain currently bound on the emitter (falling
    back to this builder's own chain if none is bound), binds the result, and
    returns a new builder. Interleaved builders for the same event therefore
    always extend the latest chain.

    Usage:
        >>> emitter.operation("n").transform(lambda x: x + 1).filter(lambda x: x < 5)
        >>> emitter.operation("search").debounce(300)
    """

    def __init__(self, emitter: EventEmitter, event: str, chain: OperationChain) -> None:
        self._emitter = emitter
        self._event = event
        self._chain = chain

    @property
    def event(self) -> str:
        return self._event

    @property
    def chain(self) -> OperationChain:
        return self._chain

    def _extend(self, kind: StepKind, handler: Any) -> OperationChainBuilder:
        with self._emitter._lock:
            current = self._emitter.get_operation(self._event) or self._chain
            chain = current._append(kind, handler)
            self._emitter._bind_operation(self._event, chain)
        return OperationChainBuilder(self._emitter, self._event, chain)

    def transform(self, handler: TransformFunc) -> OperationChainBuilder:
        return self._extend(StepKind.TRANSFORM, handler)

    def filter(self, handler: PredicateFunc) -> OperationChainBuilder:
        return self._extend(StepKind.FILTER, handler)

    def tap(self, handler: TapFunc) -> OperationChainBuilder:
        return self._extend(StepKind.TAP, handler)

    def log(self, message: str | None = None) -> OperationChainBuilder:
        return self._extend(StepKind.TAP, _log_tap(message or f"[{self._event}]:"))

    def debounce(self, delay_ms: float) -> Self:
        """Deliver only the latest payload after ``delay_ms`` of quiet. 0 clears."""
        self._emitter._timing.set_debounce(self._event, delay_ms)
        return self

    def throttle(self, delay_ms: float) -> Self:
        """Deliver at most one payload per ``delay_ms``. 0 clears."""
        self._emitter._timing.set_throttle(self._event, delay_ms)
        return self

    def __repr__(self) -> str:
        return f"OperationChainBuilder(event={self._event!r}, steps={len(self._chain)})"


__all__ = [
    "SUPPRESSED",
    "OperationChain",
    "OperationChainBuilder",
    "OperationStep",
    "StepKind",
]
