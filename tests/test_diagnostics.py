"""Diagnostics collector."""

from pipemit.core.diagnostics import (
    DiagnosticsCollector,
    DiagnosticsContext,
    get_diagnostics,
    report_diagnostic,
)


def test_disabled_collector_records_nothing() -> None:
    collector = DiagnosticsCollector(enabled=False)

    assert collector.record("listener.failed") is None
    assert collector.get_all() == []


def test_record_and_query() -> None:
    collector = DiagnosticsCollector(enabled=True)
    collector.record("step.tap_failed", event="a")
    collector.record("step.filter_failed", event="b")
    collector.record("listener.failed", event="a")

    assert collector.has("listener.failed")
    assert not collector.has("once.timeout")
    assert [event["event"] for event in collector.get_all("step.filter_failed")] == ["b"]
    assert len(collector.get_all()) == 3

    collector.clear()
    assert collector.get_all() == []


def test_max_events_drops_oldest() -> None:
    collector = DiagnosticsCollector(enabled=True, max_events=2)
    collector.record("a")
    collector.record("b")
    collector.record("c")

    assert [event.name for event in collector.get_all()] == ["b", "c"]
    assert not collector.has("a")


def test_context_restores_enabled_state() -> None:
    DiagnosticsCollector.reset_instance()
    collector = get_diagnostics(enabled=False)

    with DiagnosticsContext() as active:
        report_diagnostic("emit.dropped", event="t")
        assert active.has("emit.dropped")

    assert collector.enabled is False
    assert report_diagnostic("emit.dropped") is None
    DiagnosticsCollector.reset_instance()
