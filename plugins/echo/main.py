# plugins/echo/main.py
# 示例插件：echo 指令、消息计数服务和未知指令提示

from kernel import PluginBase


class MessageCounter:
    """统计收到的消息数"""

    def __init__(self):
        self.count = 0

    def increase(self, *_args):
        self.count += 1


class EchoPlugin(PluginBase):
    name = "echo"

    def on_load(self):
        counter = MessageCounter()
        self.ctx.provide("counter", counter)
        self.ctx.on("message", counter.increase)
        self.ctx.on("message/unhandled", self.on_unhandled)
        self.ctx.on("ready", self.on_ready)

        limit = int(self.config.get("repeat_limit", 3))

        def echo(options, args, session):
            try:
                times = min(int(options.get("times", 1)), limit)
            except ValueError:
                times = 1
            text = " ".join(args)
            return "\n".join([text] * times)

        self.ctx.command("echo <message>", "复读消息") \
            .option("times", "-t 重复次数") \
            .action(echo)

        self.ctx.command("count", "查看已收到的消息数") \
            .action(lambda options, args, session: f"已收到 {counter.count} 条消息")

    async def on_unhandled(self, session):
        name = (session.content.split() or [""])[0]
        await session.send(f"未知指令: {name}，输入 help 查看可用指令")

    def on_ready(self):
        self.logger.info("echo 插件已就绪")

    def on_unload(self):
        self.logger.info("echo 插件已卸载")
