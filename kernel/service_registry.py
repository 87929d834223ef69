# kernel/service_registry.py
# 服务注册表，实现跨插件的依赖注入

from typing import Dict, Any, Optional, Callable
from logger_config import get_logger


logger = get_logger("ServiceRegistry")


class ServiceRegistry:
    """服务注册表，服务名称 -> 服务实例

    值为 None 表示服务未提供。每次 set() 之后都会调用 on_change，
    由上下文转成 "service" 事件通知等待依赖的插件。
    """

    def __init__(self, on_change: Optional[Callable[[str], None]] = None):
        self._services: Dict[str, Any] = {}
        self._on_change = on_change

    def set(self, name: str, instance: Any):
        """设置服务

        Args:
            name: 服务名称
            instance: 服务对象，None 表示移除
        """
        if instance is None:
            self._services.pop(name, None)
            logger.debug(f"服务 {name} 已移除")
        else:
            self._services[name] = instance
            logger.debug(f"服务 {name} 已提供: {type(instance).__name__}")

        if self._on_change is not None:
            self._on_change(name)

    def get(self, name: str) -> Optional[Any]:
        """获取服务

        Args:
            name: 服务名称

        Returns:
            服务对象，如果不存在则返回None
        """
        return self._services.get(name)

    def has(self, name: str) -> bool:
        """服务是否已提供"""
        return self._services.get(name) is not None

    def list_services(self) -> Dict[str, Any]:
        """列出所有已提供的服务"""
        return self._services.copy()
