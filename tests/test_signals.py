"""Abort controller and signal."""

from pipemit.core.signals import AbortController, AbortSignal


def test_abort_runs_callbacks_once_in_order() -> None:
    controller = AbortController()
    calls: list[str] = []
    controller.signal.add_listener(lambda reason: calls.append(f"a:{reason}"))
    controller.signal.add_listener(lambda reason: calls.append(f"b:{reason}"))

    controller.abort("stop")
    controller.abort("again")

    assert calls == ["a:stop", "b:stop"]
    assert controller.signal.aborted is True
    assert controller.signal.reason == "stop"


def test_failing_callback_does_not_stop_others() -> None:
    controller = AbortController()
    calls: list[str] = []

    def broken(_):
        raise RuntimeError("callback crashed")

    controller.signal.add_listener(broken)
    controller.signal.add_listener(lambda _: calls.append("after"))
    controller.abort()

    assert calls == ["after"]


def test_remove_listener() -> None:
    controller = AbortController()
    calls: list[str] = []

    def callback(_):
        calls.append("called")

    controller.signal.add_listener(callback)
    assert controller.signal.remove_listener(callback) is True
    assert controller.signal.remove_listener(callback) is False
    controller.abort()

    assert calls == []


def test_already_aborted_signal() -> None:
    signal = AbortSignal.aborted_signal("why")
    calls: list[str] = []
    signal.add_listener(lambda _: calls.append("late"))

    assert signal.aborted is True
    assert signal.reason == "why"
    assert calls == []
