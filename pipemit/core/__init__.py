"""Core module for pipemit - emitter, configuration, errors and signals."""

from pipemit.core.config import DiagnosticsConfig, EmitterConfig
from pipemit.core.events import EventEmitter
from pipemit.core.exceptions import (
    AbortedError,
    ConfigurationError,
    EmitterError,
    FilterError,
    ListenerInvocationError,
    MaxListenersExceededWarning,
    OnceTimeoutError,
    OperationChainError,
    OperationStepError,
    PayloadValidationError,
    SchedulerError,
    TapError,
    TransformError,
    UnknownEventError,
)
from pipemit.core.signals import AbortController, AbortSignal

__all__ = [
    "AbortController",
    "AbortSignal",
    "AbortedError",
    "ConfigurationError",
    "DiagnosticsConfig",
    "EmitterConfig",
    "EmitterError",
    "EventEmitter",
    "FilterError",
    "ListenerInvocationError",
    "MaxListenersExceededWarning",
    "OnceTimeoutError",
    "OperationChainError",
    "OperationStepError",
    "PayloadValidationError",
    "SchedulerError",
    "TapError",
    "TransformError",
    "UnknownEventError",
]
