"""Debounce and throttle gates."""

import asyncio

import pytest

from pipemit.core.events import EventEmitter
from pipemit.core.exceptions import ConfigurationError, SchedulerError

DEBOUNCE_MS = 40
SETTLE_S = 0.15


def test_throttle_drops_inside_window(clock) -> None:
    emitter = EventEmitter(clock=clock)
    received: list[int] = []
    emitter.operation("t").throttle(10)
    emitter.subscribe("t", received.append)

    results = []
    for now in (0, 5, 15):
        clock.now = now
        results.append(emitter.emit("t", now))

    assert results == [True, False, True]
    assert received == [0, 15]


def test_throttle_window_is_measured_from_last_delivery(clock) -> None:
    emitter = EventEmitter(clock=clock)
    received: list[int] = []
    emitter.operation("t").throttle(10)
    emitter.subscribe("t", received.append)

    for now in (0, 9, 10, 19, 20):
        clock.now = now
        emitter.emit("t", now)

    assert received == [0, 10, 20]


def test_throttled_emission_skips_chain(clock) -> None:
    emitter = EventEmitter(clock=clock)
    taps: list[int] = []
    emitter.operation("t").tap(taps.append).throttle(100)
    emitter.subscribe("t", lambda _: None)

    emitter.emit("t", 1)
    clock.now = 50
    emitter.emit("t", 2)

    assert taps == [1]


def test_remove_throttle(clock) -> None:
    emitter = EventEmitter(clock=clock)
    received: list[int] = []
    emitter.operation("t").throttle(100)
    emitter.subscribe("t", received.append)

    emitter.emit("t", 1)
    emitter.remove_throttle("t")
    emitter.emit("t", 2)

    assert received == [1, 2]


def test_remove_all_listeners_forgets_last_fire(clock) -> None:
    emitter = EventEmitter(clock=clock)
    received: list[int] = []
    emitter.operation("t").throttle(100)
    emitter.subscribe("t", received.append)
    emitter.emit("t", 1)

    emitter.remove_all_listeners("t")
    emitter.subscribe("t", received.append)
    clock.now = 10

    assert emitter.emit("t", 2) is True
    assert received == [1, 2]


def test_emit_to_listener_ignores_throttle(clock, diagnostics) -> None:
    emitter = EventEmitter(clock=clock)
    received: list[int] = []
    emitter.operation("t").throttle(100)
    listener_id = emitter.subscribe("t", received.append)

    emitter.emit("t", 1)
    assert emitter.emit("t", 2) is False
    assert emitter.emit_to_listener("t", 3, listener_id) is True

    assert received == [1, 3]
    assert len(diagnostics.get_all("emit.dropped")) == 1


def test_negative_delays_rejected(emitter: EventEmitter) -> None:
    with pytest.raises(ConfigurationError):
        emitter.operation("t").debounce(-1)
    with pytest.raises(ConfigurationError):
        emitter.operation("t").throttle(-1)


def test_zero_delay_clears_setting(emitter: EventEmitter) -> None:
    emitter.operation("t").debounce(50).throttle(50)
    emitter.operation("t").debounce(0).throttle(0)

    stats = emitter.get_stats()
    assert stats["debounce_ms"] == {}
    assert stats["throttle_ms"] == {}


def test_debounce_needs_running_loop(emitter: EventEmitter) -> None:
    emitter.operation("d").debounce(DEBOUNCE_MS)
    emitter.subscribe("d", lambda _: None)

    with pytest.raises(SchedulerError):
        emitter.emit("d", 1)


def test_throttled_emission_is_dropped_without_running_loop(clock) -> None:
    emitter = EventEmitter(clock=clock)
    received: list[int] = []
    emitter.operation("d").throttle(100)
    emitter.subscribe("d", received.append)
    emitter.emit("d", 1)

    emitter.operation("d").debounce(DEBOUNCE_MS)
    clock.now = 50

    assert emitter.emit("d", 2) is False
    assert received == [1]

    clock.now = 150
    with pytest.raises(SchedulerError):
        emitter.emit("d", 3)


@pytest.mark.asyncio
async def test_debounce_delivers_latest_payload_once(emitter: EventEmitter) -> None:
    received: list[str] = []
    emitter.operation("d").debounce(DEBOUNCE_MS)
    emitter.subscribe("d", received.append)

    assert emitter.emit("d", "first") is True
    await asyncio.sleep(0.01)
    assert emitter.emit("d", "second") is True
    assert received == []

    await asyncio.sleep(SETTLE_S)
    assert received == ["second"]
    assert emitter.get_stats()["pending_debounce"] == []


@pytest.mark.asyncio
async def test_debounced_delivery_runs_chain(emitter: EventEmitter) -> None:
    received: list[int] = []
    emitter.operation("d").transform(lambda x: x * 2).debounce(DEBOUNCE_MS)
    emitter.subscribe("d", received.append)

    emitter.emit("d", 1)
    emitter.emit("d", 2)
    emitter.emit("d", 3)
    await asyncio.sleep(SETTLE_S)

    assert received == [6]


@pytest.mark.asyncio
async def test_debounce_returns_true_even_without_listeners(emitter: EventEmitter) -> None:
    emitter.operation("d").debounce(DEBOUNCE_MS)

    assert emitter.emit("d", 1) is True
    await asyncio.sleep(SETTLE_S)


@pytest.mark.asyncio
async def test_remove_debounce_cancels_pending(emitter: EventEmitter) -> None:
    received: list[int] = []
    emitter.operation("d").debounce(DEBOUNCE_MS)
    emitter.subscribe("d", received.append)

    emitter.emit("d", 1)
    emitter.remove_debounce("d")
    await asyncio.sleep(SETTLE_S)
    assert received == []

    assert emitter.emit("d", 2) is True
    assert received == [2]


@pytest.mark.asyncio
async def test_remove_all_listeners_cancels_pending(emitter: EventEmitter) -> None:
    received: list[int] = []
    emitter.operation("d").debounce(DEBOUNCE_MS)
    emitter.subscribe("d", received.append)

    emitter.emit("d", 1)
    emitter.remove_all_listeners()
    emitter.subscribe("d", received.append)
    await asyncio.sleep(SETTLE_S)

    assert received == []
    assert emitter.get_stats()["debounce_ms"] == {"d": DEBOUNCE_MS}


@pytest.mark.asyncio
async def test_remove_all_operations_cancels_pending(emitter: EventEmitter) -> None:
    received: list[int] = []
    emitter.operation("d").debounce(DEBOUNCE_MS)
    emitter.subscribe("d", received.append)

    emitter.emit("d", 1)
    emitter.remove_all_operations()
    await asyncio.sleep(SETTLE_S)
    assert received == []

    emitter.emit("d", 2)
    assert received == [2]


@pytest.mark.asyncio
async def test_emit_to_listener_ignores_debounce(emitter: EventEmitter) -> None:
    received: list[int] = []
    emitter.operation("d").debounce(DEBOUNCE_MS)
    listener_id = emitter.subscribe("d", received.append)

    assert emitter.emit_to_listener("d", 7, listener_id) is True
    assert received == [7]
    assert emitter.get_stats()["pending_debounce"] == []


@pytest.mark.asyncio
async def test_throttle_is_checked_before_debounce(clock) -> None:
    emitter = EventEmitter(clock=clock)
    received: list[int] = []
    emitter.operation("d").throttle(100).debounce(DEBOUNCE_MS)
    emitter.subscribe("d", received.append)

    assert emitter.emit("d", 1) is True
    clock.now = 50
    assert emitter.emit("d", 2) is False

    await asyncio.sleep(SETTLE_S)
    assert received == [1]
