from __future__ import annotations

import asyncio

import pytest

from core.adapters import Adapter
from core.app import App
from kernel import Context


class FakeAdapter(Adapter):
    def __init__(self, ctx: Context) -> None:
        super().__init__(ctx, "fake")
        self.started = False
        self.stopped = False

    async def start(self) -> None:
        self.started = True

    async def stop(self) -> None:
        self.stopped = True


@pytest.mark.asyncio
async def test_help_command_lists_registered_commands(make_session, replies) -> None:
    app = App()
    app.command("echo <msg>", "复读")

    await app.handle_message(make_session("help"))

    assert app.plugin_name == "app"
    assert replies == [app.commands.get_help()]
    assert "echo <msg>" in replies[0]
    assert "help" in replies[0]


@pytest.mark.asyncio
async def test_prefix_from_config(make_session, replies) -> None:
    app = App({"prefix": "!"})

    await app.handle_message(make_session("help"))
    assert replies == []

    await app.handle_message(make_session("!help"))
    assert len(replies) == 1


@pytest.mark.asyncio
async def test_start_provides_adapter_and_waits_for_every_ready_listener() -> None:
    app = App()
    finished: list[str] = []

    def make_plugin(name: str, delay: float):
        def plugin(ctx: Context, config) -> None:
            async def on_ready() -> None:
                await asyncio.sleep(delay)
                finished.append(name)

            ctx.on("ready", on_ready)

        plugin.__name__ = name
        return plugin

    app.plugin(make_plugin("fast", 0.01))
    app.plugin(make_plugin("slow", 0.05))

    adapter = FakeAdapter(app)
    await app.start(adapter)

    assert adapter.started
    assert app.get_service("adapter") is adapter
    assert finished == ["fast", "slow"]


@pytest.mark.asyncio
async def test_stop_stops_adapter_and_tears_down_the_tree() -> None:
    app = App()
    child = app.plugin(lambda ctx, config: ctx.command("ping", ""))
    adapter = FakeAdapter(app)
    await app.start(adapter)

    await app.stop()

    assert adapter.stopped
    assert app.is_disposed
    assert child.is_disposed
    assert app.commands.get_command_names() == []
    assert app.get_service("adapter") is None
