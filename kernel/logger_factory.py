# kernel/logger_factory.py
# 插件日志工厂

import logging
from logger_config import get_logger


class LoggerFactory:
    """插件日志工厂，插件日志器统一命名为 Plugin.<name>"""

    PREFIX = "Plugin."

    @classmethod
    def get_logger(cls, plugin_name: str) -> logging.Logger:
        """获取插件专用日志器

        Args:
            plugin_name: 插件名称

        Returns:
            日志器实例
        """
        return get_logger(f"{cls.PREFIX}{plugin_name}")

    @classmethod
    def set_level(cls, level: int):
        """设置所有插件日志器的日志级别

        Args:
            level: 日志级别
        """
        for logger in logging.Logger.manager.loggerDict.values():
            if isinstance(logger, logging.Logger) and logger.name.startswith(cls.PREFIX):
                logger.setLevel(level)
