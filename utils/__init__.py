# utils/__init__.py
# 通用工具
