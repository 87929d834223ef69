# utils/task_utils.py
# 后台任务工具，保证协程异常不会被静默丢弃

import asyncio
from logger_config import get_logger

logger = get_logger("TaskUtils")

# 存储所有创建的任务引用，防止被垃圾回收
_background_tasks = set()


def create_monitored_task(coro, name: str = "Unnamed Task") -> asyncio.Task:
    """
    创建一个受监控的后台任务

    :param coro: 协程对象
    :param name: 任务名称
    :return: Task对象
    """
    task = asyncio.create_task(coro, name=name)
    _background_tasks.add(task)

    def task_done_callback(task):
        _background_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"后台任务 '{name}' 发生未处理异常: {type(exc).__name__}: {exc}")

    task.add_done_callback(task_done_callback)

    logger.debug(f"创建了后台任务: {name}")
    return task


def pending_tasks() -> set:
    """获取尚未完成的后台任务"""
    return {task for task in _background_tasks if not task.done()}


async def wait_background_tasks(timeout: float = None):
    """等待当前所有后台任务结束

    :param timeout: 超时秒数，None 表示一直等待
    """
    tasks = pending_tasks()
    if tasks:
        await asyncio.wait(tasks, timeout=timeout)
