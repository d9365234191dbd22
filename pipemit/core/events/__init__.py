"""
Event System - Emitter, listener registry and operation pipelines.

Core Components:
- EventEmitter: subscribe / emit / once / emit_to_listener
- ListenerRegistry: ordered per-event and wildcard listener storage
- OperationChain / OperationChainBuilder: transform, filter, tap
- TimingController: debounce and throttle gates

Design Philosophy:
- Listeners = reactions (isolated, one failure never blocks another)
- Chains = immutable values, rebound on the emitter as steps are added
- Timing gates act before the chain, never after

Quick Start:
    from pipemit.core.events import EventEmitter, WILDCARD

    emitter = EventEmitter()
    emitter.operation("n").transform(lambda x: x + 1).filter(lambda x: x < 5)

    emitter.subscribe("n", print)
    emitter.subscribe(WILDCARD, lambda envelope: print(envelope.type, envelope.data))

    emitter.emit("n", 3)  # prints 4, then "n 4"
    emitter.emit("n", 5)  # suppressed by the filter
"""

from .base import WILDCARD, Envelope, Handler, Listener
from .emitter import EventEmitter, get_emitter, set_emitter
from .operations import (
    SUPPRESSED,
    OperationChain,
    OperationChainBuilder,
    OperationStep,
    StepKind,
)
from .registry import ListenerRegistry
from .timing import GateDecision, TimingController

__all__ = [
    "SUPPRESSED",
    "WILDCARD",
    "Envelope",
    "EventEmitter",
    "GateDecision",
    "Handler",
    "Listener",
    "ListenerRegistry",
    "OperationChain",
    "OperationChainBuilder",
    "OperationStep",
    "StepKind",
    "TimingController",
    "get_emitter",
    "set_emitter",
]
