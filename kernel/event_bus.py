# kernel/event_bus.py
# 事件总线，管理事件监听和分发

import asyncio
import inspect
from typing import Dict, List, Callable, Any, Optional
from logger_config import get_logger
from kernel.exceptions import ParallelDispatchError
from utils.task_utils import create_monitored_task


logger = get_logger("EventBus")

Listener = Callable[..., Any]
Dispose = Callable[[], None]


class EventBus:
    """事件总线，管理事件监听和分发

    支持三种分发方式：
        - emit: 广播，忽略返回值
        - bail: 短路，返回第一个非 None 的结果
        - parallel: 并行启动所有监听器，全部完成后返回
    """

    def __init__(self):
        # {event: [listener, ...]}，按执行顺序排列
        self._listeners: Dict[str, List[Listener]] = {}

    def on(self, event: str, listener: Listener, prepend: bool = False) -> Dispose:
        """注册监听器

        Args:
            event: 事件名称
            listener: 监听函数
            prepend: 是否插入到已有监听器之前

        Returns:
            移除该监听器的 dispose 函数
        """
        listeners = self._listeners.setdefault(event, [])
        if prepend:
            listeners.insert(0, listener)
        else:
            listeners.append(listener)
        logger.debug(f"注册事件监听 {event} (共 {len(listeners)} 个)")

        def dispose():
            self.off(event, listener)

        return dispose

    def once(self, event: str, listener: Listener) -> Dispose:
        """注册只触发一次的监听器

        Args:
            event: 事件名称
            listener: 监听函数

        Returns:
            移除该监听器的 dispose 函数
        """
        def wrapper(*args, **kwargs):
            # 先移除再执行，回调里再次触发同一事件时不会递归
            dispose()
            return listener(*args, **kwargs)

        dispose = self.on(event, wrapper)
        return dispose

    def off(self, event: str, listener: Listener):
        """移除监听器（按对象身份匹配第一个）

        Args:
            event: 事件名称
            listener: 监听函数
        """
        listeners = self._listeners.get(event)
        if listeners is None:
            return

        for index, registered in enumerate(listeners):
            if registered is listener:
                del listeners[index]
                break

        if not listeners:
            del self._listeners[event]

    def emit(self, event: str, *args):
        """广播事件，忽略监听器返回值

        Args:
            event: 事件名称
            *args: 传给监听器的参数
        """
        for listener in self.listeners(event):
            try:
                result = listener(*args)
            except Exception as e:
                logger.error(f"事件 {event} 的监听器 {_describe(listener)} 执行出错: {e}", exc_info=True)
                continue
            if inspect.isawaitable(result):
                schedule_awaitable(result, f"emit:{event}")

    def bail(self, event: str, *args) -> Optional[Any]:
        """短路分发，返回第一个非 None 的结果

        Args:
            event: 事件名称
            *args: 传给监听器的参数

        Returns:
            第一个非 None 的监听器返回值，全部为 None 时返回 None
        """
        for listener in self.listeners(event):
            try:
                result = listener(*args)
            except Exception as e:
                logger.error(f"事件 {event} 的监听器 {_describe(listener)} 执行出错: {e}", exc_info=True)
                continue
            if result is not None:
                return result
        return None

    async def parallel(self, event: str, *args):
        """并行分发事件，等待所有监听器完成

        Args:
            event: 事件名称
            *args: 传给监听器的参数

        Raises:
            ParallelDispatchError: 有监听器执行失败时，在全部结束后抛出
        """
        errors: List[BaseException] = []
        pending = []

        for listener in self.listeners(event):
            try:
                result = listener(*args)
            except Exception as e:
                errors.append(e)
                continue
            if inspect.isawaitable(result):
                pending.append(result)

        if pending:
            results = await asyncio.gather(*pending, return_exceptions=True)
            errors.extend(r for r in results if isinstance(r, BaseException))

        if errors:
            for error in errors:
                logger.error(f"并行事件 {event} 的监听器执行出错: {type(error).__name__}: {error}")
            raise ParallelDispatchError(event, errors)

    def listeners(self, event: str) -> List[Listener]:
        """获取某事件监听器列表的快照"""
        return list(self._listeners.get(event, ()))

    def events(self) -> List[str]:
        """获取当前有监听器的事件名称"""
        return list(self._listeners.keys())


def _describe(listener: Listener) -> str:
    return getattr(listener, '__qualname__', repr(listener))


def schedule_awaitable(awaitable, name: str):
    """把监听器返回的协程交给后台任务执行"""
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        logger.warning(f"{name} 的监听器返回了协程，但当前没有运行中的事件循环，已丢弃")
        if inspect.iscoroutine(awaitable):
            awaitable.close()
        return
    create_monitored_task(_await(awaitable), name=name)


async def _await(awaitable):
    return await awaitable
