# core/app.py
# 应用入口：根上下文 + 适配器 + 启停流程

from typing import Any, Dict, Optional

from logger_config import get_logger
from kernel.context import Context
from core.adapters import Adapter, ConsoleAdapter
from core.config_manager import load_config

logger = get_logger("App")


class App(Context):
    """应用，即根上下文

    start() 启动适配器并以 parallel 方式触发 ready 事件；
    stop() 停止适配器并销毁整棵上下文树。
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        super().__init__()
        self.plugin_name = "app"

        self.config: Dict[str, Any] = dict(load_config())
        if config:
            self.config.update(config)

        self._commands.prefix = self.config.get("prefix") or ""
        self.adapter: Optional[Adapter] = None
        self._register_builtin_commands()

    async def start(self, adapter: Optional[Adapter] = None):
        """启动应用

        Args:
            adapter: 使用的适配器，默认创建控制台适配器
        """
        self.adapter = adapter or ConsoleAdapter(self)
        self.provide("adapter", self.adapter)

        await self.adapter.start()
        logger.info(f"适配器 {self.adapter.name} 已启动")

        await self.parallel("ready")
        logger.success("应用已就绪")

    async def stop(self):
        """停止应用，级联销毁所有插件"""
        logger.info("正在停止...")
        if self.adapter is not None:
            await self.adapter.stop()
        self.dispose()
        logger.info("已停止")

    def _register_builtin_commands(self):
        self.command("help", "显示帮助信息").action(
            lambda options, args, session: self._commands.get_help()
        )
