# core/adapters/adapter.py
# 适配器基类，把平台输入转换成 Session 并交给上下文处理

from abc import ABC, abstractmethod


class Adapter(ABC):
    """适配器基类"""

    def __init__(self, ctx, name: str):
        self.ctx = ctx  # 接收消息的上下文
        self.name = name  # 适配器名称

    @abstractmethod
    async def start(self) -> None:
        """启动适配器，开始接收消息"""
        pass

    @abstractmethod
    async def stop(self) -> None:
        """停止适配器"""
        pass

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name}>"
