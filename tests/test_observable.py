from __future__ import annotations

from fitsync.observable import Observable


def test_listeners_see_changes_only() -> None:
    value = Observable(0)
    seen: list[int] = []
    value.subscribe(seen.append)

    value.set(0)
    value.set(1)
    value.set(1)
    value.set(2)

    assert seen == [1, 2]
    assert value.value == 2


def test_emit_current_and_unsubscribe() -> None:
    value = Observable("idle")
    seen: list[str] = []

    unsubscribe = value.subscribe(seen.append, emit_current=True)
    value.set("syncing")
    unsubscribe()
    value.set("idle")

    assert seen == ["idle", "syncing"]


def test_failing_listener_is_isolated() -> None:
    value = Observable(0)
    seen: list[int] = []

    def _boom(_: int) -> None:
        raise RuntimeError("listener bug")

    value.subscribe(_boom)
    value.subscribe(seen.append)
    value.set(5)

    assert seen == [5]
