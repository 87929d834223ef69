from __future__ import annotations

import asyncio
import io
import threading

import pytest

from core.adapters import ConsoleAdapter
from kernel import Context


@pytest.mark.asyncio
async def test_lines_become_sessions_until_eof(root: Context) -> None:
    replies: list[str] = []
    unhandled: list[str] = []
    root.command("echo <msg>", "").action(lambda options, args, session: " ".join(args))
    root.on("message/unhandled", lambda session: unhandled.append(session.content))

    adapter = ConsoleAdapter(root, stream=io.StringIO("echo hi there\n\n   \nbogus\n"))
    adapter._reply = replies.append

    await adapter.start()
    await adapter.wait_closed()
    await adapter.stop()

    assert replies == ["hi there"]
    assert unhandled == ["bogus"]


def test_session_shape(root: Context) -> None:
    session = ConsoleAdapter(root, stream=io.StringIO()).create_session("help")

    assert session.platform == "console"
    assert session.user_id == "console-user"
    assert session.channel_id == "console"
    assert session.content == "help"
    assert session.type == "text"


@pytest.mark.asyncio
async def test_reply_is_printed(root: Context, capsys: pytest.CaptureFixture[str]) -> None:
    adapter = ConsoleAdapter(root, stream=io.StringIO(), bot_name="kernel-bot")
    await adapter.create_session("x").send("pong")

    out = capsys.readouterr().out
    assert "[console] kernel-bot：" in out
    assert "pong" in out


class BlockingStream:
    """readline 一直阻塞，直到 release() 之后返回 EOF"""

    def __init__(self) -> None:
        self._released = threading.Event()

    def readline(self) -> str:
        self._released.wait(5)
        return ""

    def release(self) -> None:
        self._released.set()


@pytest.mark.asyncio
async def test_stop_does_not_wait_for_a_blocked_reader(root: Context) -> None:
    stream = BlockingStream()
    adapter = ConsoleAdapter(root, stream=stream)

    await adapter.start()
    assert adapter._thread is not None
    assert adapter._thread.daemon

    await asyncio.wait_for(adapter.stop(), timeout=1)
    assert adapter._thread.is_alive()
    stream.release()


@pytest.mark.asyncio
async def test_cancelling_wait_closed_propagates(root: Context) -> None:
    stream = BlockingStream()
    adapter = ConsoleAdapter(root, stream=stream)
    await adapter.start()

    waiter = asyncio.ensure_future(adapter.wait_closed())
    await asyncio.sleep(0)
    waiter.cancel()

    with pytest.raises(asyncio.CancelledError):
        await waiter

    await adapter.stop()
    stream.release()


@pytest.mark.asyncio
async def test_wait_closed_returns_when_stopped(root: Context) -> None:
    stream = BlockingStream()
    adapter = ConsoleAdapter(root, stream=stream)
    await adapter.start()

    waiter = asyncio.ensure_future(adapter.wait_closed())
    await asyncio.sleep(0)
    await adapter.stop()

    assert await asyncio.wait_for(waiter, timeout=1) is None
    stream.release()
