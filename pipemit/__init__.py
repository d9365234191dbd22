"""
pipemit - Typed in-process event emitter with operation pipelines.

Main Features:
- Listener ids for targeted emission and removal
- Wildcard listeners receiving every emission as an Envelope
- Per-event transform / filter / tap chains
- Debounce and throttle per event
- Awaitable one-shot subscription with timeout and cancellation

Quick Start:
    >>> from pipemit import EventEmitter
    >>> emitter = EventEmitter()
    >>> listener_id = emitter.subscribe("greet", print)
    >>> emitter.emit("greet", "hi")
    hi
    True
    >>> payload = await emitter.once("greet", timeout_ms=1000)

Architecture:
    Producer → emit → TimingController → OperationChain → listeners → wildcard listeners
"""

__version__ = "0.1.0"

from pipemit.core.config import DiagnosticsConfig, EmitterConfig
from pipemit.core.diagnostics import DiagnosticsContext, get_diagnostics
from pipemit.core.events import (
    SUPPRESSED,
    WILDCARD,
    Envelope,
    EventEmitter,
    OperationChain,
    OperationChainBuilder,
    get_emitter,
    set_emitter,
)
from pipemit.core.exceptions import (
    AbortedError,
    ConfigurationError,
    EmitterError,
    ListenerInvocationError,
    MaxListenersExceededWarning,
    OnceTimeoutError,
    OperationStepError,
    PayloadValidationError,
    SchedulerError,
    UnknownEventError,
)
from pipemit.core.signals import AbortController, AbortSignal

__all__ = [
    "SUPPRESSED",
    "WILDCARD",
    "AbortController",
    "AbortSignal",
    "AbortedError",
    "ConfigurationError",
    "DiagnosticsConfig",
    "DiagnosticsContext",
    "EmitterConfig",
    "EmitterError",
    "Envelope",
    "EventEmitter",
    "ListenerInvocationError",
    "MaxListenersExceededWarning",
    "OnceTimeoutError",
    "OperationChain",
    "OperationChainBuilder",
    "OperationStepError",
    "PayloadValidationError",
    "SchedulerError",
    "UnknownEventError",
    "__version__",
    "get_diagnostics",
    "get_emitter",
    "set_emitter",
]
