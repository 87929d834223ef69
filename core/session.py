# core/session.py
# 会话，封装一条消息及其回复方式

import inspect
import time
from typing import Any, Callable, Dict


SendCallback = Callable[[str], Any]


class Session:
    """会话对象，由适配器把平台消息转换而来"""

    def __init__(
        self,
        platform: str,
        user_id: str,
        content: str,
        send: SendCallback,
        username: str = None,
        channel_id: str = "",
        type: str = "text"
    ):
        self.platform = platform  # 平台标识
        self.user_id = str(user_id)  # 用户ID
        self.username = username or self.user_id  # 用户昵称
        self.channel_id = channel_id  # 频道ID，私聊为空
        self.content = content  # 消息文本
        self.type = type  # 消息类型
        self.timestamp = time.time()  # 创建时间
        self._send = send

        # 供中间件在处理过程中传递数据
        self.extra_data: Dict[str, Any] = {}

    async def send(self, content: str):
        """回复消息"""
        result = self._send(content)
        if inspect.isawaitable(result):
            await result

    def __str__(self) -> str:
        return f"Session(platform={self.platform}, user={self.user_id}, channel={self.channel_id}, content={self.content!r})"
