# core/config_manager.py
# 负责加载和校验 config.yml

import copy
import os
from typing import Any, Dict, Optional

import yaml

from logger_config import get_logger, log_exception, LOG_LEVEL_MAP

logger = get_logger("ConfigManager")

CONFIG_ENV = "BOT_CONFIG"
DEFAULT_CONFIG_PATH = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "config.yml")

DEFAULT_CONFIG: Dict[str, Any] = {
    "log_level": "INFO",
    "prefix": "",
    "plugins_dir": "plugins",
    "plugins": {},
}

# 缓存已加载的配置
_cached_config: Optional[Dict[str, Any]] = None


def get_config_path() -> str:
    """配置文件路径，可通过环境变量 BOT_CONFIG 覆盖"""
    return os.environ.get(CONFIG_ENV) or DEFAULT_CONFIG_PATH


def load_config(path: str = None) -> Dict[str, Any]:
    """加载配置，已加载过时直接返回缓存

    Args:
        path: 配置文件路径，默认读取 get_config_path()

    Returns:
        合并了默认值的配置字典
    """
    global _cached_config
    if _cached_config is not None and path is None:
        return _cached_config

    config = copy.deepcopy(DEFAULT_CONFIG)
    config.update(_load_config_file(path or get_config_path()))

    if not _validate_config(config):
        logger.error("配置文件验证失败，使用默认配置")
        config = copy.deepcopy(DEFAULT_CONFIG)

    if path is None:
        _cached_config = config
    return config


def reload_config() -> Dict[str, Any]:
    """重新加载配置文件"""
    global _cached_config
    logger.info("开始重新加载配置文件")
    _cached_config = None
    return load_config()


def get_module_config(config: Dict[str, Any], module_name: str) -> Dict[str, Any]:
    """获取某个插件的配置"""
    return config.get("plugins", {}).get(module_name) or {}


def _load_config_file(filepath: str) -> Dict[str, Any]:
    """读取单个 YAML 文件，不存在或出错时返回空字典"""
    if not os.path.exists(filepath):
        logger.debug(f"{filepath} 文件不存在，使用默认配置")
        return {}

    try:
        with open(filepath, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        log_exception(logger, f"加载 {filepath} 异常", e)
        return {}

    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.error(f"{filepath} 的顶层必须是映射")
        return {}
    return data


def _validate_config(config: Dict[str, Any]) -> bool:
    """校验配置项类型"""
    log_level = config.get("log_level")
    if not isinstance(log_level, str) or log_level.upper() not in LOG_LEVEL_MAP:
        logger.error(f"log_level 配置无效: {log_level!r}")
        return False

    if not isinstance(config.get("prefix"), str):
        logger.error("prefix 配置项必须是字符串")
        return False

    if not isinstance(config.get("plugins_dir"), str):
        logger.error("plugins_dir 配置项必须是字符串")
        return False

    plugins = config.get("plugins")
    if plugins is None:
        config["plugins"] = {}
    elif not isinstance(plugins, dict):
        logger.error("plugins 配置项必须是映射")
        return False

    return True
