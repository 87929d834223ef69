from __future__ import annotations

from kernel import Lifecycle


def test_dispose_runs_disposables_in_reverse_registration_order() -> None:
    lifecycle = Lifecycle()
    calls: list[int] = []

    for i in range(3):
        lifecycle.collect(lambda i=i: calls.append(i))

    assert len(lifecycle) == 3
    lifecycle.dispose()

    assert calls == [2, 1, 0]
    assert lifecycle.is_disposed


def test_dispose_is_idempotent() -> None:
    lifecycle = Lifecycle()
    calls: list[str] = []
    lifecycle.collect(lambda: calls.append("x"))

    lifecycle.dispose()
    lifecycle.dispose()

    assert calls == ["x"]


def test_failing_disposable_does_not_stop_the_rest() -> None:
    lifecycle = Lifecycle()
    calls: list[str] = []

    def broken() -> None:
        raise RuntimeError("cleanup failed")

    lifecycle.collect(lambda: calls.append("first"))
    lifecycle.collect(broken)
    lifecycle.collect(lambda: calls.append("last"))

    lifecycle.dispose()

    assert calls == ["last", "first"]
    assert lifecycle.is_disposed


def test_new_lifecycle_is_active_and_empty() -> None:
    lifecycle = Lifecycle()
    assert not lifecycle.is_disposed
    assert len(lifecycle) == 0
    lifecycle.dispose()


def test_collect_returns_a_remover() -> None:
    lifecycle = Lifecycle()
    calls: list[str] = []
    remove = lifecycle.collect(lambda: calls.append("removed"))
    lifecycle.collect(lambda: calls.append("kept"))

    remove()
    remove()
    assert len(lifecycle) == 1

    lifecycle.dispose()
    assert calls == ["kept"]
    remove()
