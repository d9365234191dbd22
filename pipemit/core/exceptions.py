"""Custom exceptions for the pipemit event emitter."""

from typing import Any


class EmitterError(Exception):
    """Base exception for all emitter errors."""


class ConfigurationError(EmitterError):
    """Raised when emitter configuration is invalid."""


class SchedulerError(EmitterError, RuntimeError):
    """Raised when an operation needs a running event loop and there is none."""


class UnknownEventError(EmitterError, KeyError):
    """Raised when an event name is not declared in the emitter schema."""

    def __init__(self, event: str) -> None:
        super().__init__(event)
        self.event = event

    def __str__(self) -> str:
        return f"Unknown event: {self.event!r}"


class PayloadValidationError(EmitterError, ValueError):
    """Raised when a payload does not match the schema declared for its event."""

    def __init__(self, message: str, event: str) -> None:
        super().__init__(message)
        self.event = event


class OperationChainError(EmitterError, ValueError):
    """Raised when operation chains are combined incorrectly."""


class ListenerInvocationError(EmitterError):
    """
    A subscribed handler raised during delivery.

    Never raised to the emitting caller; built and reported so the diagnostic
    channel sees which listener failed. The handler's exception is the ``__cause__``.
    """

    def __init__(self, event: str, listener_id: str) -> None:
        super().__init__(f"Error in listener {listener_id} for event '{event}'")
        self.event = event
        self.listener_id = listener_id


class OperationStepError(EmitterError):
    """A transform, filter or tap step raised while processing a payload."""

    step_kind: str = "step"

    def __init__(self, event: str) -> None:
        super().__init__(f"Error in operation step {self.step_kind} for event '{event}'")
        self.event = event


class TransformError(OperationStepError):
    """A transform step raised; the evaluation is suppressed."""

    step_kind = "transform"


class FilterError(OperationStepError):
    """A filter predicate raised; the payload is treated as kept."""

    step_kind = "filter"


class TapError(OperationStepError):
    """A tap raised; the running value is unchanged."""

    step_kind = "tap"


class OnceTimeoutError(EmitterError, TimeoutError):
    """Raised through ``once`` when no payload arrived before the timeout."""

    def __init__(self, timeout_ms: float) -> None:
        super().__init__(f"Timeout after {timeout_ms:g}ms")
        self.timeout_ms = timeout_ms


class AbortedError(EmitterError):
    """Raised through ``once`` when its cancellation signal fired."""

    def __init__(self, reason: Any = None) -> None:
        super().__init__("Operation aborted")
        self.reason = reason


class MaxListenersExceededWarning(UserWarning):
    """Advisory warning: an event has more listeners than the configured cap."""
