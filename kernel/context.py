# kernel/context.py
# 上下文：插件使用的统一 API 入口，组成一棵可级联销毁的树

import inspect
import logging
from typing import Any, Callable, Iterable, List, Optional, TYPE_CHECKING
from logger_config import get_logger, log_exception
from kernel.event_bus import EventBus, Listener, Dispose, schedule_awaitable
from kernel.exceptions import ContextDisposedError
from kernel.lifecycle import Lifecycle
from kernel.logger_factory import LoggerFactory
from kernel.middleware import MiddlewareManager, MiddlewareFunction
from kernel.plugin import resolve_plugin
from kernel.service_registry import ServiceRegistry
from core.command import Command, CommandManager

if TYPE_CHECKING:
    from core.session import Session


logger = get_logger("Context")


class Context:
    """插件上下文

    根上下文创建事件总线、服务注册表、指令表和中间件管理器，
    子上下文直接引用根上下文的这些对象，所以注册全局可见；
    但每个上下文都有自己的 Lifecycle，注册时返回的清理函数收集到
    发起注册的上下文上，销毁时只清理它自己（及其子插件）的副作用。
    """

    def __init__(self, parent: Optional['Context'] = None):
        if parent is not None:
            self.root = parent.root
            self.parent = parent
            self._events = parent.root._events
            self._services = parent.root._services
            self._commands = parent.root._commands
            self._middlewares = parent.root._middlewares
        else:
            self.root = self
            self.parent = None
            self._events = EventBus()
            self._services = ServiceRegistry(on_change=self._on_service_change)
            self._commands = CommandManager()
            self._middlewares = MiddlewareManager()

        self.lifecycle = Lifecycle()
        self.plugin_name = "root"
        self._children: List['Context'] = []
        self._disposing = False
        self._detach: Optional[Callable[[], None]] = None

    @property
    def logger(self) -> logging.Logger:
        """当前插件的日志器"""
        return LoggerFactory.get_logger(self.plugin_name)

    @property
    def is_disposed(self) -> bool:
        return self.lifecycle.is_disposed

    @property
    def children(self) -> List['Context']:
        return list(self._children)

    @property
    def events(self) -> EventBus:
        return self._events

    @property
    def services(self) -> ServiceRegistry:
        return self._services

    @property
    def middlewares(self) -> MiddlewareManager:
        return self._middlewares

    @property
    def commands(self) -> CommandManager:
        return self._commands

    def _ensure_active(self):
        if self.lifecycle.is_disposed:
            raise ContextDisposedError(f"上下文 {self.plugin_name} 已销毁，不能再注册")

    def _on_service_change(self, name: str):
        self._events.emit("service", name)

    # 事件

    def on(self, event: str, listener: Listener, prepend: bool = False) -> Dispose:
        """注册事件监听，插件卸载时自动移除"""
        self._ensure_active()
        dispose = self._events.on(event, listener, prepend)
        self.lifecycle.collect(dispose)
        return dispose

    def once(self, event: str, listener: Listener) -> Dispose:
        """注册只触发一次的事件监听"""
        self._ensure_active()
        dispose = self._events.once(event, listener)
        self.lifecycle.collect(dispose)
        return dispose

    def emit(self, event: str, *args):
        self._events.emit(event, *args)

    def bail(self, event: str, *args) -> Any:
        return self._events.bail(event, *args)

    async def parallel(self, event: str, *args):
        await self._events.parallel(event, *args)

    # 插件

    def plugin(self, plugin: Any, config: Any = None) -> 'Context':
        """加载插件

        为插件创建子上下文并执行插件；插件执行失败只记录日志，
        子上下文依然保留。子上下文的销毁会收集到当前上下文，
        当前上下文销毁时级联销毁。

        Args:
            plugin: 函数、类或带 apply 方法的对象
            config: 传给插件的配置

        Returns:
            插件的子上下文，可用于单独卸载
        """
        self._ensure_active()
        name, apply = resolve_plugin(plugin)

        child = self.extend()
        child.plugin_name = name
        logger.info(f"加载插件: {name}")

        try:
            result = apply(child, config)
            if inspect.isawaitable(result):
                schedule_awaitable(result, f"plugin:{name}")
        except Exception as e:
            log_exception(logger, f"插件 {name} 加载失败", e, show_traceback=True)

        child._detach = self.lifecycle.collect(child.dispose)
        return child

    def extend(self) -> 'Context':
        """创建共享根上下文的子上下文"""
        self._ensure_active()
        child = Context(self)
        self._children.append(child)
        return child

    # 指令

    def command(self, definition: str, description: str = "") -> Command:
        """注册指令，卸载时按名称移除

        同名指令后注册的会覆盖先注册的，任意一方卸载都会删除该名称。
        """
        self._ensure_active()
        command = self._commands.register(definition, description)
        name = command.name
        self.lifecycle.collect(lambda: self._commands.remove(name))
        return command

    # 中间件

    def middleware(self, middleware: MiddlewareFunction, prepend: bool = False) -> Dispose:
        """注册中间件，插件卸载时自动移除"""
        self._ensure_active()
        dispose = self._middlewares.add(middleware, prepend)
        self.lifecycle.collect(dispose)
        return dispose

    # 服务

    def provide(self, name: str, instance: Any):
        """提供服务，插件卸载时服务被置为未提供"""
        self._ensure_active()
        self._services.set(name, instance)
        self.lifecycle.collect(lambda: self._services.set(name, None))

    def get_service(self, name: str) -> Any:
        return self._services.get(name)

    def inject(self, deps: Iterable[str], callback: Callable[['Context'], Any]):
        """依赖全部就绪时执行回调

        依赖已就绪时立即执行一次；之后每次 service 事件都会重新检查，
        检查通过就再次执行，所以回调可能被执行多次。

        Args:
            deps: 依赖的服务名称
            callback: 回调函数，参数为当前上下文
        """
        self._ensure_active()
        deps = list(deps)

        def ready() -> bool:
            return all(self._services.has(dep) for dep in deps)

        def run():
            result = callback(self)
            if inspect.isawaitable(result):
                schedule_awaitable(result, f"inject:{self.plugin_name}")

        if ready():
            run()

        def on_service(*_args):
            if ready():
                run()

        self.on("service", on_service)

    # 生命周期

    def dispose(self):
        """销毁上下文，清理它注册的所有副作用，重复调用无效果"""
        if self._disposing or self.lifecycle.is_disposed:
            return
        self._disposing = True

        logger.info(f"销毁上下文: {self.plugin_name}")
        self.emit("dispose", self)
        self.lifecycle.dispose()

        # 单独卸载时从父上下文的清理列表中移除自己
        if self._detach is not None:
            self._detach()
            self._detach = None
        if self.parent is not None and self in self.parent._children:
            self.parent._children.remove(self)

    # 消息处理

    async def handle_message(self, session: 'Session'):
        """处理一条消息：message 事件 -> 中间件链 -> 指令匹配

        Args:
            session: 会话对象
        """
        self.emit("message", session)

        async def final_handler(session):
            matched = await self._commands.execute(session.content, session)
            if not matched:
                self.emit("message/unhandled", session)

        try:
            await self._middlewares.run(session, final_handler)
        except Exception as e:
            logger.error(f"处理消息时发生错误: {e}", exc_info=True)
            self.emit("message/error", session, e)

    def __repr__(self) -> str:
        return f"<Context plugin={self.plugin_name} children={len(self._children)} disposed={self.is_disposed}>"
