import logging
import os
import sys
from logging.handlers import RotatingFileHandler

import colorama

# 全局标志，控制是否禁用 colorama
_no_colorama = False

def set_no_colorama(value: bool):
    """设置是否禁用 colorama"""
    global _no_colorama
    _no_colorama = value
    if value:
        colorama.deinit()

def is_no_colorama() -> bool:
    """获取是否禁用 colorama"""
    return _no_colorama

# 👇 启用 colorama 以支持 Windows 颜色显示
colorama.init()


# 彩色日志格式化器（仅在终端启用颜色）
class ColoredFormatter(logging.Formatter):
    COLORS = {
        'DEBUG': '\033[90m',      # 灰色
        'INFO': '\033[38;2;243;238;210m',  # 浅紫色 #f3eed2
        'SUCCESS': '\033[92m',    # 绿色
        'WARNING': '\033[93m',    # 黄色
        'ERROR': '\033[91m',      # 红色
        'CRITICAL': '\033[41m',   # 红底白字
        'WHITE': '\033[97m',      # 白色
        'SKY_BLUE': '\033[96m',   # 天蓝色
        'RESET': '\033[0m'
    }

    def __init__(self, fmt, datefmt=None, style='%'):
        super().__init__(fmt, datefmt, style)
        # 仅当输出到终端时启用颜色
        self.use_color = sys.stdout.isatty()

    def format(self, record):
        message = record.getMessage()
        if record.exc_info and not record.exc_text:
            record.exc_text = self.formatException(record.exc_info)
        if record.exc_text:
            message = f"{message}\n{record.exc_text}"

        asctime = self.formatTime(record, self.datefmt)

        if not self.use_color or _no_colorama:
            return f"{asctime} [{record.name}] {message}"

        color = self.COLORS.get(record.levelname, self.COLORS['INFO'])
        white = self.COLORS['WHITE']
        reset = self.COLORS['RESET']
        # 月-日 时:分:秒（白色） [模块（颜色取决于level）] 正文
        return f"{white}{asctime}{reset} {color}[{record.name}]{reset} {message}"


# 定义日志格式
LOG_FORMAT = '%(asctime)s %(name)s %(message)s'
DATE_FORMAT = '%m-%d %H:%M:%S'

# 创建日志目录
LOG_DIR = 'logs'
os.makedirs(LOG_DIR, exist_ok=True)

# 控制台处理器（带颜色）
console_handler = logging.StreamHandler(sys.stdout)
console_handler.setFormatter(ColoredFormatter(LOG_FORMAT, DATE_FORMAT))

# 文件处理器（无颜色，纯文本，轮转）
file_handler = RotatingFileHandler(
    os.path.join(LOG_DIR, 'app.log'),
    maxBytes=1024 * 1024 * 5,  # 5MB
    backupCount=5,
    encoding='utf-8'
)
file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))

# 根日志器放行所有级别，由 get_logger 按配置调整各 logger 的级别
DEFAULT_LOG_LEVEL = logging.DEBUG

logging.basicConfig(
    level=DEFAULT_LOG_LEVEL,
    handlers=[console_handler, file_handler]
)

# 日志级别映射
LOG_LEVEL_MAP = {
    'DEBUG': logging.DEBUG,
    'INFO': logging.INFO,
    'WARNING': logging.WARNING,
    'ERROR': logging.ERROR,
    'CRITICAL': logging.CRITICAL
}

# 获取配置的日志级别的函数
def _get_configured_log_level():
    try:
        # 动态导入以避免循环依赖
        from core.config_manager import load_config
        config = load_config()
        log_level_str = config.get('log_level', 'INFO').upper()
        return LOG_LEVEL_MAP.get(log_level_str, logging.INFO)
    except ImportError:
        # 配置管理器尚未加载完成时使用默认日志级别
        return logging.INFO

# 抑制 asyncio 的debug日志
logging.getLogger('asyncio').setLevel(logging.WARNING)

# 注册 SUCCESS 级别（复用 INFO 级别值，仅改名）
logging.addLevelName(logging.INFO, 'SUCCESS')

# 为 Logger 类动态添加 .success() 方法
def success(self, message, *args, **kwargs):
    if self.isEnabledFor(logging.INFO):
        self._log(logging.INFO, message, args, **kwargs)

logging.Logger.success = success


# 公共接口函数
def get_logger(name: str) -> logging.Logger:
    """
    获取指定名称的日志记录器，并应用配置的日志级别
    :param name: 日志记录器名称
    :return: 日志记录器实例
    """
    logger = logging.getLogger(name)
    logger.setLevel(_get_configured_log_level())
    return logger


def log_exception(logger: logging.Logger, message: str, e: Exception, level: str = 'error', show_traceback: bool = False):
    """
    统一记录异常信息
    :param logger: 日志记录器
    :param message: 自定义消息
    :param e: 异常对象
    :param level: 日志级别 (debug/info/warning/error/critical)
    :param show_traceback: 是否显示完整堆栈跟踪，默认False避免控制台刷屏
    """
    log_func = getattr(logger, level.lower(), logger.error)  # 防止非法 level
    exc_info = (type(e), e, e.__traceback__) if show_traceback else False
    log_func(f"{message}: {type(e).__name__}: {str(e)}", exc_info=exc_info)


def print_colored_message(timestamp: str, location: str, sender: str, message: str):
    """
    打印彩色消息日志
    格式：时间（白色） [（蓝色）位置 发送者：（白色）消息
    :param timestamp: 时间戳，格式为 "MM-DD HH:MM:SS"
    :param location: 位置（频道名或平台名）
    :param sender: 发送者名称
    :param message: 消息内容
    """
    if sys.stdout.isatty() and not _no_colorama:
        white = ColoredFormatter.COLORS['WHITE']
        blue = ColoredFormatter.COLORS['SKY_BLUE']
        reset = ColoredFormatter.COLORS['RESET']

        output = f"{white}{timestamp}{reset} {blue}[{location}] {sender}：{reset}{white}{message}{reset}"
    else:
        output = f"{timestamp} [{location}] {sender}：{message}"

    print(output)
