# core/adapters/__init__.py
# 平台适配器

from .adapter import Adapter
from .console_adapter import ConsoleAdapter

__all__ = [
    'Adapter',
    'ConsoleAdapter'
]
