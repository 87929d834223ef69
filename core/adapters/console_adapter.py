# core/adapters/console_adapter.py
# 控制台适配器，从标准输入读取消息，回复输出到终端

import asyncio
import queue
import sys
import threading
from datetime import datetime
from typing import Optional, TextIO

from logger_config import get_logger, print_colored_message
from core.session import Session
from utils.task_utils import create_monitored_task
from .adapter import Adapter

logger = get_logger("ConsoleAdapter")

# 输入线程放入队列的结束标记
_EOF = ""


class ConsoleAdapter(Adapter):
    """控制台适配器

    在守护线程中逐行读取输入流并放入队列，事件循环轮询队列，
    每一行非空输入转换成一个 Session 交给上下文的 handle_message 处理。
    读到 EOF 或调用 stop() 时结束；守护线程阻塞在 readline 上也不会妨碍进程退出。
    """

    def __init__(self, ctx, stream: Optional[TextIO] = None, bot_name: str = "bot"):
        super().__init__(ctx, "console")
        self.stream = stream or sys.stdin
        self.bot_name = bot_name
        self.input_queue: "queue.Queue[str]" = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._task: Optional[asyncio.Task] = None
        self._should_exit = False

    async def start(self) -> None:
        if self._task is not None:
            logger.warning("控制台适配器已启动")
            return
        self._should_exit = False
        self._thread = threading.Thread(target=self._input_reader, name="console_input", daemon=True)
        self._thread.start()
        self._task = create_monitored_task(self._read_loop(), name="console_adapter")
        logger.info("控制台适配器已启动，输入指令开始交互")

    async def stop(self) -> None:
        self._should_exit = True
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        logger.info("控制台适配器已停止")

    async def wait_closed(self) -> None:
        """等待输入结束

        调用方被取消时 CancelledError 照常抛出；读取任务被 stop() 取消则正常返回。
        """
        task = self._task
        if task is None:
            return
        try:
            await asyncio.shield(task)
        except asyncio.CancelledError:
            if not task.cancelled():
                raise

    def _input_reader(self):
        """输入读取线程"""
        while not self._should_exit:
            try:
                line = self.stream.readline()
            except (OSError, ValueError) as e:
                logger.error(f"输入读取线程错误: {e}")
                line = _EOF
            self.input_queue.put(line)
            if line == _EOF:
                break

    async def _read_loop(self):
        while not self._should_exit:
            try:
                line = self.input_queue.get_nowait()
            except queue.Empty:
                await asyncio.sleep(0.1)
                continue

            if line == _EOF:
                logger.info("输入已结束")
                break

            content = line.strip()
            if not content:
                continue

            await self.ctx.handle_message(self.create_session(content))

    def create_session(self, content: str) -> Session:
        """把一行输入转换为会话"""
        return Session(
            platform="console",
            user_id="console-user",
            username="控制台用户",
            channel_id="console",
            content=content,
            send=self._reply
        )

    def _reply(self, content: str):
        timestamp = datetime.now().strftime("%m-%d %H:%M:%S")
        print_colored_message(timestamp, self.name, self.bot_name, content)
