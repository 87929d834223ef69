# kernel/lifecycle.py
# 生命周期管理，收集并统一执行清理函数

from typing import Callable, List
from logger_config import get_logger


logger = get_logger("Lifecycle")


class Lifecycle:
    """每个上下文独有的清理账本

    通过上下文注册的副作用都会把对应的清理函数收集到这里，
    dispose() 时按注册顺序的逆序执行，后注册的先清理。
    """

    def __init__(self):
        self._disposables: List[Callable[[], None]] = []
        self._disposed = False

    @property
    def is_disposed(self) -> bool:
        """是否已销毁"""
        return self._disposed

    def collect(self, disposable: Callable[[], None]):
        """收集清理函数

        Args:
            disposable: 无参数的清理函数

        Returns:
            移除函数，调用后从清理列表中移除该清理函数（不执行）
        """
        self._disposables.append(disposable)

        def remove():
            for index, item in enumerate(self._disposables):
                if item is disposable:
                    del self._disposables[index]
                    return

        return remove

    def dispose(self):
        """执行所有清理函数，重复调用无效果"""
        if self._disposed:
            return
        self._disposed = True

        disposables = self._disposables
        self._disposables = []
        for disposable in reversed(disposables):
            try:
                disposable()
            except Exception as e:
                # 单个清理失败不影响其余清理
                logger.error(f"执行清理函数时发生错误: {e}", exc_info=True)

    def __len__(self) -> int:
        return len(self._disposables)
