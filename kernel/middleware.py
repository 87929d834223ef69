# kernel/middleware.py
# 中间件管理器，以洋葱模型执行消息处理链

import inspect
from typing import Any, Awaitable, Callable, List, Optional
from logger_config import get_logger


logger = get_logger("Middleware")

NextFunction = Callable[[], Awaitable[None]]
MiddlewareFunction = Callable[[Any, NextFunction], Any]
FinalHandler = Callable[[Any], Any]


class MiddlewareManager:
    """中间件管理器

    每个中间件接收 (session, next)。调用 await next() 进入后续中间件，
    返回后可以继续执行"后置"逻辑；不调用 next 则终止整条链，
    后续中间件和最终处理函数都不会执行。
    """

    def __init__(self):
        self._middlewares: List[MiddlewareFunction] = []

    def add(self, middleware: MiddlewareFunction, prepend: bool = False) -> Callable[[], None]:
        """添加中间件

        Args:
            middleware: 中间件函数
            prepend: 是否插入到最前面

        Returns:
            移除该中间件的 dispose 函数
        """
        if prepend:
            self._middlewares.insert(0, middleware)
        else:
            self._middlewares.append(middleware)
        logger.debug(f"添加中间件 {getattr(middleware, '__qualname__', middleware)} (共 {len(self._middlewares)} 个)")

        def dispose():
            self.remove(middleware)

        return dispose

    def remove(self, middleware: MiddlewareFunction):
        """移除中间件（按对象身份匹配第一个）"""
        for index, registered in enumerate(self._middlewares):
            if registered is middleware:
                del self._middlewares[index]
                return

    async def run(self, session: Any, final_handler: Optional[FinalHandler] = None):
        """执行中间件链

        Args:
            session: 会话对象
            final_handler: 所有中间件都调用 next 后执行的最终处理函数
        """
        # 快照，执行过程中的增删不影响本次调用
        middlewares = list(self._middlewares)

        async def dispatch(index: int):
            if index >= len(middlewares):
                if final_handler is not None:
                    await _maybe_await(final_handler(session))
                return

            middleware = middlewares[index]

            def next_():
                return dispatch(index + 1)

            await _maybe_await(middleware(session, next_))

        await dispatch(0)

    @property
    def count(self) -> int:
        """中间件数量"""
        return len(self._middlewares)


async def _maybe_await(value):
    if inspect.isawaitable(value):
        return await value
    return value
