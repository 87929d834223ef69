# kernel/__init__.py
# 插件组合内核入口

from kernel.context import Context
from kernel.event_bus import EventBus
from kernel.lifecycle import Lifecycle
from kernel.service_registry import ServiceRegistry
from kernel.middleware import MiddlewareManager
from kernel.plugin import PluginBase, get_plugin_name, get_plugin_apply
from kernel.logger_factory import LoggerFactory
from kernel.exceptions import (
    KernelError,
    ContextDisposedError,
    ParallelDispatchError,
    PluginError,
    PluginLoadError,
    PluginDependencyError
)

__version__ = "1.0.0"

__all__ = [
    'Context',
    'EventBus',
    'Lifecycle',
    'ServiceRegistry',
    'MiddlewareManager',
    'PluginBase',
    'get_plugin_name',
    'get_plugin_apply',
    'LoggerFactory',
    'KernelError',
    'ContextDisposedError',
    'ParallelDispatchError',
    'PluginError',
    'PluginLoadError',
    'PluginDependencyError',
]
