# kernel/exceptions.py
# 内核自定义异常

from typing import List


class KernelError(Exception):
    """内核基础异常"""
    pass


class ContextDisposedError(KernelError):
    """在已销毁的上下文上注册副作用"""
    pass


class ParallelDispatchError(KernelError):
    """并行分发事件时有监听器失败"""

    def __init__(self, event: str, errors: List[BaseException]):
        self.event = event
        self.errors = list(errors)
        super().__init__(f"事件 {event} 有 {len(self.errors)} 个监听器执行失败")


class PluginError(KernelError):
    """插件基础异常"""
    pass


class PluginLoadError(PluginError):
    """插件加载失败异常"""
    pass


class PluginDependencyError(PluginError):
    """插件依赖错误异常"""
    pass
