# kernel/plugin.py
# 插件形态解析和插件基类

import inspect
from abc import ABC, abstractmethod
from typing import Any, Callable, NamedTuple
from kernel.exceptions import PluginError
from utils.task_utils import create_monitored_task


class ResolvedPlugin(NamedTuple):
    """加载时统一成的 (名称, apply 函数) 二元组"""
    name: str
    apply: Callable[[Any, Any], Any]


def get_plugin_name(plugin: Any) -> str:
    """获取插件显示名称"""
    name = getattr(plugin, 'name', None)
    if isinstance(name, str) and name:
        return name
    name = getattr(plugin, '__name__', None)
    if isinstance(name, str) and name and name != '<lambda>':
        return name
    if inspect.isfunction(plugin) or inspect.ismethod(plugin):
        return "anonymous"
    return type(plugin).__name__


def get_plugin_apply(plugin: Any) -> Callable[[Any, Any], Any]:
    """获取插件的 apply 函数

    支持三种形态：
        - 函数：plugin(ctx, config)
        - 类：实例化 plugin(ctx, config)
        - 带 apply 的对象：plugin.apply(ctx, config)

    Raises:
        PluginError: 无法识别的插件形态
    """
    if inspect.isclass(plugin):
        return plugin
    apply = getattr(plugin, 'apply', None)
    if callable(apply):
        return apply
    if callable(plugin):
        return plugin
    raise PluginError(f"无法识别的插件: {plugin!r}")


def resolve_plugin(plugin: Any) -> ResolvedPlugin:
    return ResolvedPlugin(get_plugin_name(plugin), get_plugin_apply(plugin))


class PluginBase(ABC):
    """类形式插件的基类

    以 plugin(ctx, config) 的方式实例化，构造时调用 on_load()，
    上下文销毁时调用 on_unload() 并取消所有后台任务。
    """

    name = ""

    def __init__(self, ctx, config: Any = None):
        self.ctx = ctx
        self.config = config if config is not None else {}
        self.logger = ctx.logger
        self._tasks = []
        ctx.lifecycle.collect(self._cleanup)
        self.on_load()

    @abstractmethod
    def on_load(self) -> None:
        """插件加载时调用，在这里通过 self.ctx 注册事件、指令和中间件"""
        pass

    def on_unload(self) -> None:
        """插件卸载时调用"""
        pass

    def create_background_task(self, coro, name: str = None):
        """创建后台任务，插件卸载时自动取消

        Args:
            coro: 协程
            name: 任务名称

        Returns:
            任务对象
        """
        task = create_monitored_task(coro, name=name or f"{self.ctx.plugin_name}_bg_task")
        self._tasks.append(task)
        return task

    def _cleanup(self) -> None:
        try:
            self.on_unload()
        finally:
            for task in self._tasks:
                if not task.done():
                    task.cancel()
            self._tasks.clear()

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.ctx.plugin_name}>"
