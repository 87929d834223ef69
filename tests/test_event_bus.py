from __future__ import annotations

import asyncio

import pytest

from kernel import EventBus, ParallelDispatchError
from utils.task_utils import wait_background_tasks


def test_emit_calls_every_listener_in_order_with_prepend_first() -> None:
    bus = EventBus()
    calls: list[str] = []

    bus.on("tick", lambda: calls.append("a"))
    bus.on("tick", lambda: calls.append("b"))
    bus.on("tick", lambda: calls.append("c"), prepend=True)

    bus.emit("tick")
    bus.emit("tick")

    assert calls == ["c", "a", "b", "c", "a", "b"]


def test_emit_passes_arguments_and_ignores_return_values() -> None:
    bus = EventBus()
    seen: list[tuple] = []
    bus.on("msg", lambda *args: seen.append(args) or "ignored")

    assert bus.emit("msg", 1, "two") is None
    assert seen == [(1, "two")]


def test_emit_without_listeners_is_a_noop() -> None:
    EventBus().emit("nobody-listens")


def test_emit_continues_after_a_failing_listener() -> None:
    bus = EventBus()
    calls: list[str] = []

    def broken() -> None:
        raise RuntimeError("boom")

    bus.on("tick", broken)
    bus.on("tick", lambda: calls.append("after"))

    bus.emit("tick")

    assert calls == ["after"]


def test_emit_uses_snapshot_of_listeners() -> None:
    bus = EventBus()
    calls: list[str] = []

    def late() -> None:
        calls.append("late")

    def first() -> None:
        calls.append("first")
        bus.on("tick", late)
        bus.off("tick", second)

    def second() -> None:
        calls.append("second")

    bus.on("tick", first)
    bus.on("tick", second)

    bus.emit("tick")
    assert calls == ["first", "second"]

    calls.clear()
    bus.emit("tick")
    assert calls == ["first", "late"]


def test_bail_returns_first_non_none_and_stops() -> None:
    bus = EventBus()
    calls: list[str] = []

    def none_listener() -> None:
        calls.append("none")

    def decides() -> str:
        calls.append("decides")
        return "handled"

    def never() -> str:
        calls.append("never")
        return "too late"

    bus.on("decide", none_listener)
    bus.on("decide", decides)
    bus.on("decide", never)

    assert bus.bail("decide") == "handled"
    assert calls == ["none", "decides"]


def test_bail_treats_falsy_values_as_results() -> None:
    bus = EventBus()
    bus.on("decide", lambda: 0)
    bus.on("decide", lambda: "not reached")

    assert bus.bail("decide") == 0


def test_bail_returns_none_when_nobody_answers() -> None:
    bus = EventBus()
    assert bus.bail("decide") is None

    bus.on("decide", lambda: None)
    assert bus.bail("decide") is None


def test_bail_skips_failing_listener() -> None:
    bus = EventBus()

    def broken() -> str:
        raise ValueError("nope")

    bus.on("decide", broken)
    bus.on("decide", lambda: "fallback")

    assert bus.bail("decide") == "fallback"


def test_once_fires_once_and_removes_itself_before_running() -> None:
    bus = EventBus()
    calls: list[int] = []

    def listener(n: int) -> str:
        calls.append(n)
        # re-triggering from inside must not recurse into this listener
        bus.emit("ping", n + 1)
        return "result"

    bus.once("ping", listener)
    bus.emit("ping", 1)
    bus.emit("ping", 10)

    assert calls == [1]
    assert bus.listeners("ping") == []


def test_once_forwards_return_value_to_bail() -> None:
    bus = EventBus()
    bus.once("decide", lambda value: value * 2)

    assert bus.bail("decide", 21) == 42
    assert bus.bail("decide", 21) is None


def test_disposer_removes_exact_listener_and_empty_entries() -> None:
    bus = EventBus()

    def listener() -> None:
        pass

    dispose_a = bus.on("a", listener)
    bus.on("b", listener)
    assert set(bus.events()) == {"a", "b"}

    dispose_a()
    assert bus.listeners("a") == []
    assert "a" not in bus.events()
    assert bus.listeners("b") == [listener]

    dispose_a()  # second call is harmless


def test_off_removes_only_the_first_matching_instance() -> None:
    bus = EventBus()

    def listener() -> None:
        pass

    bus.on("a", listener)
    bus.on("a", listener)
    bus.off("a", listener)

    assert bus.listeners("a") == [listener]


def test_listeners_returns_a_copy() -> None:
    bus = EventBus()
    bus.on("a", print)

    snapshot = bus.listeners("a")
    snapshot.clear()

    assert bus.listeners("a") == [print]


@pytest.mark.asyncio
async def test_emit_schedules_coroutine_listeners() -> None:
    bus = EventBus()
    done: list[str] = []

    async def listener(value: str) -> None:
        await asyncio.sleep(0)
        done.append(value)

    bus.on("tick", listener)
    bus.emit("tick", "x")
    await wait_background_tasks(timeout=1)

    assert done == ["x"]


@pytest.mark.asyncio
async def test_parallel_starts_all_listeners_before_joining() -> None:
    bus = EventBus()
    gate = asyncio.Event()
    finished: list[str] = []

    async def waits_for_gate() -> None:
        await gate.wait()
        finished.append("waiter")

    async def opens_gate() -> None:
        await asyncio.sleep(0.01)
        gate.set()
        finished.append("opener")

    bus.on("ready", waits_for_gate)
    bus.on("ready", opens_gate)

    # sequential dispatch would deadlock here
    await asyncio.wait_for(bus.parallel("ready"), timeout=1)

    assert sorted(finished) == ["opener", "waiter"]


@pytest.mark.asyncio
async def test_parallel_accepts_sync_listeners() -> None:
    bus = EventBus()
    calls: list[int] = []
    bus.on("ready", lambda: calls.append(1))

    await bus.parallel("ready")
    await bus.parallel("nobody")

    assert calls == [1]


@pytest.mark.asyncio
async def test_parallel_reports_every_failure_after_all_settle() -> None:
    bus = EventBus()
    finished: list[str] = []

    async def slow_ok() -> None:
        await asyncio.sleep(0.02)
        finished.append("slow")

    async def fails() -> None:
        raise RuntimeError("async failure")

    def fails_sync() -> None:
        raise ValueError("sync failure")

    bus.on("ready", fails)
    bus.on("ready", fails_sync)
    bus.on("ready", slow_ok)

    with pytest.raises(ParallelDispatchError) as e:
        await bus.parallel("ready")

    assert finished == ["slow"]
    assert e.value.event == "ready"
    assert sorted(type(err).__name__ for err in e.value.errors) == ["RuntimeError", "ValueError"]
